"""Tagged states of a game session."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class NotStarted:
    error: str | None = None


@dataclass(frozen=True)
class Loading:
    playlist_url: str


@dataclass(frozen=True)
class Playing:
    track_index: int
    stage: int = 1
    # Replaying a track that was already guessed; guesses no longer score.
    solved: bool = False


@dataclass(frozen=True)
class Answered:
    track_index: int
    stage: int
    skipped: bool = False


@dataclass(frozen=True)
class GameOver:
    pass


GameState = Union[NotStarted, Loading, Playing, Answered, GameOver]


@dataclass(frozen=True)
class RoundResult:
    track_index: int
    stage: int
    correct: bool
    points: int
