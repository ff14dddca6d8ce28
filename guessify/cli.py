"""CLI entrypoint: run the track server or play the terminal game."""

import argparse
import logging
from functools import partial
from pathlib import Path

from .api_client import load_tracks
from .config import DEFAULT_API_URL, DEFAULT_HOST, DEFAULT_PORT, GAME_HISTORY_PATH
from .env import load_env_file
from .game import GameController, play_game
from .playback import PreviewPlayer
from .server import create_app
from .token_cache import TokenCache
from .ui import prompt_play_again, prompt_playlist_url


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse the serve/play subcommands and their options."""
    parser = argparse.ArgumentParser(description="Guess songs from Spotify playlist previews")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API that serves playlist tracks.")
    serve.add_argument("--host", default=DEFAULT_HOST, help=f"Bind address (default: {DEFAULT_HOST}).")
    serve.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Port (default: {DEFAULT_PORT}).")
    serve.add_argument("--debug", action="store_true", help="Run Flask in debug mode.")
    serve.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Server log level (default: INFO).",
    )

    play = subparsers.add_parser("play", help="Play the guessing game in this terminal.")
    play.add_argument("--api-url", default=DEFAULT_API_URL, help=f"Guessify server (default: {DEFAULT_API_URL}).")
    play.add_argument("--playlist", help="Playlist link, URI, or id. Prompted for when omitted.")
    play.add_argument("--mpv-path", help="Path to the mpv binary used for audio (default: mpv on PATH).")
    play.add_argument(
        "--history-file",
        type=Path,
        default=GAME_HISTORY_PATH,
        help=f"JSONL file for run summaries (default: {GAME_HISTORY_PATH}).",
    )
    return parser.parse_args(argv)


def serve(args: argparse.Namespace) -> None:
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    token_cache = TokenCache()
    try:
        app = create_app(token_cache=token_cache)
        app.run(host=args.host, port=args.port, debug=args.debug)
    finally:
        # Release the token endpoint session on shutdown.
        token_cache.close()


def play(args: argparse.Namespace) -> None:
    player = PreviewPlayer(mpv_path=args.mpv_path)
    if not player.has_audio:
        print("mpv not found; clips will play silently. Install mpv or pass --mpv-path.")

    controller = GameController(player)
    loader = partial(load_tracks, args.api_url)
    playlist_url = args.playlist

    while True:
        if not playlist_url:
            playlist_url = prompt_playlist_url()
            if not playlist_url or not playlist_url.strip():
                break

        played = play_game(controller, loader, playlist_url.strip(), history_path=args.history_file)
        playlist_url = None
        if not played:
            continue
        if not prompt_play_again():
            break


def main(argv: list[str] | None = None) -> None:
    """Load local env, then dispatch to the chosen subcommand."""
    args = parse_args(argv)
    load_env_file()

    if args.command == "serve":
        serve(args)
    else:
        play(args)
