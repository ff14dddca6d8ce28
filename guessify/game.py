"""Game controller state machine and the terminal game loop."""

import threading
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from .config import GAME_HISTORY_PATH, MAX_STAGE, PLAYBACK_POLL_INTERVAL_SECONDS
from .errors import TrackLoadError
from .history import append_game_history, get_high_score, summarize_history
from .playback import PlaybackTicker
from .playlist import Track
from .scoring import check_guess, score_for_stage, stage_duration
from .states import Answered, GameOver, GameState, Loading, NotStarted, Playing, RoundResult
from .ui import (
    build_round_lines,
    enter_alternate_screen,
    leave_alternate_screen,
    parse_command,
    prompt_line,
    render_screen,
)

EMPTY_PLAYLIST_MESSAGE = "No playable previews found in this playlist. Try another one."
LOAD_ERROR_MESSAGE = "Could not load the playlist."
TrackLoader = Callable[[str], Sequence[Track]]


class Player(Protocol):
    def play(self, url: str) -> None: ...

    def stop(self) -> None: ...

    def position(self) -> float: ...

    def is_playing(self) -> bool: ...


class Ticker(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


class GameController:
    """Drive one game: load a playlist, then reveal, guess, and score per track.

    Each transition method returns True when it was applied and False when the
    current state does not allow it (a no-op). Playback and its polling ticker
    only run while the state is ``Playing``; every transition stops them.
    """

    def __init__(
        self,
        player: Player,
        ticker_factory: Callable[[float, Callable[[], None]], Ticker] = PlaybackTicker,
        poll_interval: float = PLAYBACK_POLL_INTERVAL_SECONDS,
    ):
        self.player = player
        self._ticker_factory = ticker_factory
        self._poll_interval = poll_interval
        self._ticker: Ticker | None = None
        # The ticker thread and the input loop both touch playback.
        self._lock = threading.RLock()

        self.state: GameState = NotStarted()
        self.playlist_url = ""
        self.tracks: list[Track] = []
        self.score = 0
        self.message = ""
        self.results: list[RoundResult] = []

    # -----------------------
    # read-only views
    # -----------------------
    @property
    def current_track(self) -> Track | None:
        if isinstance(self.state, (Playing, Answered)):
            return self.tracks[self.state.track_index]
        return None

    @property
    def stage_cap(self) -> int | None:
        """Playback cap in seconds for the current stage."""
        if isinstance(self.state, (Playing, Answered)):
            return stage_duration(self.state.stage)
        return None

    @property
    def clip_finished(self) -> bool:
        return isinstance(self.state, Playing) and not self.player.is_playing()

    # -----------------------
    # loading
    # -----------------------
    def start(self, playlist_url: str) -> bool:
        with self._lock:
            if not isinstance(self.state, (NotStarted, GameOver)):
                return False

            self._stop_playback()
            self.playlist_url = playlist_url
            self.tracks = []
            self.score = 0
            self.results = []
            self.message = "Loading..."
            self.state = Loading(playlist_url)
            return True

    def load_succeeded(self, tracks: Sequence[Track]) -> bool:
        with self._lock:
            if not isinstance(self.state, Loading):
                return False

            self.tracks = list(tracks)
            if not self.tracks:
                self.message = EMPTY_PLAYLIST_MESSAGE
                self.state = NotStarted(EMPTY_PLAYLIST_MESSAGE)
                return True

            self.message = ""
            self._enter_playing(0, 1)
            return True

    def load_failed(self, message: str) -> bool:
        with self._lock:
            if not isinstance(self.state, Loading):
                return False

            self.message = message
            self.state = NotStarted(message)
            return True

    def load_playlist(self, playlist_url: str, loader: TrackLoader) -> bool:
        """Run start -> load -> succeeded/failed; True when a round is playing."""
        if not self.start(playlist_url):
            return False

        try:
            tracks = loader(playlist_url)
        except TrackLoadError as exc:
            self.load_failed(exc.message)
            return False
        except Exception:
            self.load_failed(LOAD_ERROR_MESSAGE)
            raise

        self.load_succeeded(tracks)
        return isinstance(self.state, Playing)

    # -----------------------
    # rounds
    # -----------------------
    def submit_guess(self, guess: str) -> bool:
        """Check a guess; True only when it was correct and scored."""
        with self._lock:
            state = self.state
            if not isinstance(state, Playing):
                return False
            if state.solved:
                self.message = "Already solved. Use /next for the next track."
                return False

            if not check_guess(guess, self.tracks[state.track_index]):
                self.message = "Try again!"
                return False

            points = score_for_stage(state.stage)
            self._stop_playback()
            self.score += points
            self.results.append(RoundResult(state.track_index, state.stage, correct=True, points=points))
            self.message = f"Correct! +{points}"
            self.state = Answered(state.track_index, state.stage)
            return True

    def skip(self) -> bool:
        with self._lock:
            state = self.state
            if not isinstance(state, Playing) or state.solved:
                return False

            self._stop_playback()
            self.results.append(RoundResult(state.track_index, state.stage, correct=False, points=0))
            self.message = "Skipped."
            self.state = Answered(state.track_index, state.stage, skipped=True)
            return True

    def advance_stage(self) -> bool:
        """Move to the next, longer clip; a no-op at the last stage."""
        with self._lock:
            state = self.state
            if isinstance(state, Playing) and state.stage < MAX_STAGE:
                self.message = ""
                self._enter_playing(state.track_index, state.stage + 1, solved=state.solved)
                return True
            if isinstance(state, Answered) and not state.skipped and state.stage < MAX_STAGE:
                self._enter_playing(state.track_index, state.stage + 1, solved=True)
                return True
            return False

    def next_track(self) -> bool:
        with self._lock:
            state = self.state
            finished = isinstance(state, Answered) or (isinstance(state, Playing) and state.solved)
            if not finished:
                return False

            self._stop_playback()
            self.message = ""
            next_index = state.track_index + 1
            if next_index < len(self.tracks):
                self._enter_playing(next_index, 1)
            else:
                self.message = "Game over!"
                self.state = GameOver()
            return True

    def replay(self) -> bool:
        with self._lock:
            state = self.state
            if not isinstance(state, Playing):
                return False
            self._enter_playing(state.track_index, state.stage, solved=state.solved)
            return True

    def shutdown(self) -> None:
        """Stop playback and end a game that is still in progress."""
        with self._lock:
            self._stop_playback()
            if isinstance(self.state, (Playing, Answered)):
                self.state = GameOver()

    # -----------------------
    # playback scope
    # -----------------------
    def _enter_playing(self, track_index: int, stage: int, solved: bool = False) -> None:
        self._stop_playback()
        self.state = Playing(track_index, stage, solved=solved)
        self.player.play(self.tracks[track_index].preview_url)
        self._ticker = self._ticker_factory(self._poll_interval, self._on_tick)
        self._ticker.start()

    def _stop_playback(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self.player.stop()

    def _on_tick(self) -> None:
        with self._lock:
            cap = self.stage_cap
            if not isinstance(self.state, Playing) or cap is None:
                return
            if self.player.is_playing() and self.player.position() >= cap:
                self._stop_playback()


def build_controller_lines(controller: GameController) -> list[str]:
    state = controller.state
    track = controller.current_track
    message = controller.message
    if controller.clip_finished and not message:
        message = "Clip finished. /replay to hear it again or /more for a longer clip."

    answer = None
    if track and (isinstance(state, Answered) or (isinstance(state, Playing) and state.solved)):
        answer = f"{track.name} - {track.artist}"

    return build_round_lines(
        score=controller.score,
        track_number=state.track_index + 1,
        track_count=len(controller.tracks),
        stage=state.stage,
        message=message,
        answer=answer,
    )


def handle_command(controller: GameController, command: str, guess: str) -> None:
    """Apply one parsed input line to the controller."""
    if command == "guess":
        if isinstance(controller.state, Answered):
            controller.message = "Press Enter for the next track."
            return
        controller.submit_guess(guess)
    elif command == "more":
        if not controller.advance_stage():
            controller.message = "No longer clip available for this track."
    elif command == "skip":
        controller.skip()
    elif command == "next":
        if not controller.next_track():
            controller.message = "Guess or /skip before moving on."
    elif command == "replay":
        controller.replay()
    elif command == "enter":
        if isinstance(controller.state, Playing) and not controller.state.solved:
            controller.replay()
        else:
            controller.next_track()


def play_game(
    controller: GameController,
    loader: TrackLoader,
    playlist_url: str,
    history_path: Path = GAME_HISTORY_PATH,
) -> bool:
    """Run a full game for one playlist until the tracks run out or the player quits.

    Returns False when the playlist could not be loaded and no game was played.
    """
    previous_high_score = get_high_score(history_path)

    print("Loading...")
    if not controller.load_playlist(playlist_url, loader):
        print(controller.message)
        return False

    started_at = time.time()
    alternate_screen_enabled = enter_alternate_screen()
    quit_requested = False
    try:
        try:
            while isinstance(controller.state, (Playing, Answered)):
                render_screen(build_controller_lines(controller))
                raw_value = prompt_line("-> ")
                if raw_value is None:
                    quit_requested = True
                    break

                command, guess = parse_command(raw_value)
                if command == "quit":
                    quit_requested = True
                    break
                handle_command(controller, command, guess)
        finally:
            # Always stop the clip before leaving the round loop.
            controller.shutdown()
    finally:
        if alternate_screen_enabled:
            leave_alternate_screen()

    correct = sum(1 for result in controller.results if result.correct)
    summary = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "playlist_url": playlist_url,
        "track_count": len(controller.tracks),
        "correct": correct,
        "skipped": len(controller.results) - correct,
        "score": controller.score,
        "duration_seconds": round(time.time() - started_at, 2),
    }
    append_game_history(summary, history_path)

    is_new_high_score = controller.score > previous_high_score
    totals = summarize_history(history_path)

    print("\nGame ended by user." if quit_requested else "\nGame Over")
    print(f"Guessed {correct} of {len(controller.tracks)} tracks.")
    if is_new_high_score:
        print(f"Final score: {controller.score} (HIGH SCORE)")
    else:
        print(f"Final score: {controller.score}")
    print(f"High score: {totals['high_score']} ({totals['games']} games, {totals['tracks_guessed']} tracks guessed)")
    print(f"Run log appended to: {history_path}")
    return True
