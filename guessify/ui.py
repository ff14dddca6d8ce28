"""Terminal rendering and line-based input for the guessing game."""

import shutil
import sys
import textwrap

from .config import MAX_STAGE, MAX_TERMINAL_WIDTH, STAGE_DURATIONS

COMMANDS = {
    "/more": "more",
    "/skip": "skip",
    "/next": "next",
    "/replay": "replay",
    "/quit": "quit",
    "/q": "quit",
}
HELP_LINE = "Type a guess, or /more /skip /next /replay /quit. Enter replays the clip."


def get_terminal_width() -> int:
    return min(MAX_TERMINAL_WIDTH, shutil.get_terminal_size(fallback=(MAX_TERMINAL_WIDTH, 24)).columns)


def clear_terminal() -> None:
    if not sys.stdout.isatty():
        return

    sys.stdout.write("\033[2J\033[3J\033[H")
    sys.stdout.flush()


def enter_alternate_screen() -> bool:
    if not sys.stdout.isatty():
        return False

    sys.stdout.write("\033[?1049h\033[H")
    sys.stdout.flush()
    return True


def leave_alternate_screen() -> None:
    if not sys.stdout.isatty():
        return

    sys.stdout.write("\033[?1049l")
    sys.stdout.flush()


def build_stage_bar(stage: int) -> str:
    """Render e.g. ``Stage 3/6 [###...] 4s``."""
    filled = "#" * stage
    empty = "." * (MAX_STAGE - stage)
    return f"Stage {stage}/{MAX_STAGE} [{filled}{empty}] {STAGE_DURATIONS[stage - 1]}s"


def build_round_lines(
    score: int,
    track_number: int,
    track_count: int,
    stage: int,
    message: str,
    answer: str | None = None,
    width: int | None = None,
) -> list[str]:
    width = width or get_terminal_width()
    divider = "=" * width
    lines: list[str] = [
        divider,
        f"Score: {score}",
        f"Track {track_number} / {track_count}",
        build_stage_bar(stage),
        divider,
    ]

    if message:
        lines.extend(textwrap.wrap(message, width=width) or [message])
    if answer:
        lines.extend(textwrap.wrap(f"Answer: {answer}", width=width, break_on_hyphens=False))

    lines.append(divider)
    lines.append(HELP_LINE)
    return lines


def render_screen(lines: list[str]) -> None:
    clear_terminal()
    print("\n".join(lines))


def parse_command(raw_value: str) -> tuple[str, str]:
    """Split one input line into (command, guess text)."""
    value = raw_value.strip()
    if not value:
        return "enter", ""

    command = COMMANDS.get(value.lower())
    if command:
        return command, ""
    return "guess", value


def prompt_line(prompt: str) -> str | None:
    """Read one line; None on end of input."""
    try:
        return input(prompt)
    except EOFError:
        print()
        return None


def prompt_playlist_url() -> str | None:
    return prompt_line("Paste a Spotify playlist link (blank to quit) -> ")


def prompt_play_again() -> bool:
    answer = prompt_line("Play again? [y/N] -> ")
    return bool(answer) and answer.strip().lower() in {"y", "yes"}
