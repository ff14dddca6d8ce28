"""JSONL log of finished games and the aggregates shown at game end."""

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from .config import GAME_HISTORY_PATH


def iter_game_history(path: Path = GAME_HISTORY_PATH) -> Iterator[dict[str, Any]]:
    """Yield each well-formed summary row; unreadable files yield nothing."""
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return

    for line in lines:
        if not line.strip():
            continue
        try:
            row = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(row, dict):
            yield row


def get_high_score(path: Path = GAME_HISTORY_PATH) -> int:
    scores = [row["score"] for row in iter_game_history(path) if isinstance(row.get("score"), int)]
    return max(scores, default=0)


def summarize_history(path: Path = GAME_HISTORY_PATH) -> dict[str, int]:
    """Games played, tracks guessed across them, and the best score."""
    rows = list(iter_game_history(path))
    return {
        "games": len(rows),
        "tracks_guessed": sum(row.get("correct", 0) for row in rows if isinstance(row.get("correct"), int)),
        "high_score": get_high_score(path),
    }


def append_game_history(summary: dict[str, Any], path: Path = GAME_HISTORY_PATH) -> None:
    with path.open("a", encoding="utf-8") as file:
        file.write(json.dumps(summary) + "\n")
