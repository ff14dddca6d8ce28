"""Stage caps, per-stage points, and guess matching."""

from .config import MAX_STAGE, MAX_STAGE_SCORE, MIN_STAGE_SCORE, STAGE_DURATIONS, STAGE_SCORE_STEP
from .playlist import UNKNOWN_ARTIST, UNKNOWN_TRACK, Track


def _check_stage(stage: int) -> None:
    if not 1 <= stage <= MAX_STAGE:
        raise ValueError(f"Stage must be between 1 and {MAX_STAGE}, got {stage}")


def stage_duration(stage: int) -> int:
    """Playback cap in seconds for a 1-based stage."""
    _check_stage(stage)
    return STAGE_DURATIONS[stage - 1]


def score_for_stage(stage: int) -> int:
    """Points for a correct guess; fewer the more of the clip was heard."""
    _check_stage(stage)
    return max(MAX_STAGE_SCORE - STAGE_SCORE_STEP * (stage - 1), MIN_STAGE_SCORE)


def normalize_text(value: str) -> str:
    return " ".join(value.split()).lower()


def check_guess(guess: str, track: Track) -> bool:
    """Match a guess against the track title and artist line.

    Accepted: the exact title or artist, "title artist" in either order, or
    any substring relation with the title or the artist. Placeholder names
    for missing metadata never match.
    """
    normalized = normalize_text(guess)
    if not normalized:
        return False

    name = "" if track.name == UNKNOWN_TRACK else normalize_text(track.name)
    artist = "" if track.artist == UNKNOWN_ARTIST else normalize_text(track.artist)
    candidates = {name, artist, f"{name} {artist}", f"{artist} {name}"} if name and artist else {name, artist}
    if normalized in candidates - {""}:
        return True

    for target in (name, artist):
        if target and (normalized in target or target in normalized):
            return True
    return False
