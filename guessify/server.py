"""Flask application serving the playlist track list to game clients."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import spotipy
from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .config import REQUEST_TIMEOUT_SECONDS, SPOTIFY_RETRIES
from .env import credential_presence
from .errors import GuessifyError, ValidationError
from .playlist import extract_playlist_id, fetch_tracks
from .spotify_client import close_sessions, create_spotify_client
from .token_cache import TokenCache

logger = logging.getLogger(__name__)

EXTENSION_KEY = "guessify"

DEFAULT_CONFIG = {
    "PLAYLIST_ID_STRICT": True,
    "CORS_ALLOW_ORIGIN": "*",
    "SPOTIFY_REQUEST_TIMEOUT": REQUEST_TIMEOUT_SECONDS,
    "SPOTIFY_RETRIES": SPOTIFY_RETRIES,
}

SpotifyFactory = Callable[[str], spotipy.Spotify]


def create_app(
    config: dict[str, Any] | None = None,
    token_cache: TokenCache | None = None,
    spotify_factory: SpotifyFactory | None = None,
) -> Flask:
    """Build the app with its own token cache and Spotify client factory.

    The caller owns the token cache lifecycle and should ``close()`` it on
    shutdown; see ``guessify.cli``.
    """
    app = Flask(__name__)
    app.config.update(DEFAULT_CONFIG)
    app.config.from_prefixed_env("GUESSIFY")
    if config:
        app.config.update(config)

    if spotify_factory is None:

        def spotify_factory(token: str) -> spotipy.Spotify:
            return create_spotify_client(
                token,
                requests_timeout=app.config["SPOTIFY_REQUEST_TIMEOUT"],
                retries=app.config["SPOTIFY_RETRIES"],
            )

    app.extensions[EXTENSION_KEY] = {
        "token_cache": token_cache or TokenCache(),
        "spotify_factory": spotify_factory,
    }

    CORS(app, origins=app.config["CORS_ALLOW_ORIGIN"], methods=["GET", "OPTIONS"])

    register_error_handlers(app)

    app.add_url_rule("/api/health", view_func=health, methods=["GET"])
    app.add_url_rule("/api/tracks", view_func=tracks, methods=["GET"])
    return app


def get_token_cache(app: Flask) -> TokenCache:
    return app.extensions[EXTENSION_KEY]["token_cache"]


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(GuessifyError)
    def _handle_guessify_error(exc: GuessifyError):
        logger.warning("Request failed (%s): %s", exc.status, exc.message)
        return jsonify({"error": exc.message}), exc.status

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        logger.exception("Unexpected error while serving %s", request.path)
        return jsonify({"error": f"Server error: {exc}"}), 500


def health():
    return jsonify(
        {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "env": credential_presence(),
        }
    )


def tracks():
    playlist_url = request.args.get("url", "")
    logger.info("Track request for %r", playlist_url)
    if not playlist_url.strip():
        raise ValidationError("No playlist URL provided.")

    playlist_id = extract_playlist_id(playlist_url, strict=current_app.config["PLAYLIST_ID_STRICT"])
    if not playlist_id:
        raise ValidationError("Invalid playlist URL format. Please use a valid Spotify playlist URL.")

    extension = current_app.extensions[EXTENSION_KEY]
    token_cache: TokenCache = extension["token_cache"]
    sp = extension["spotify_factory"](token_cache.get_token())
    try:
        playlist_tracks = fetch_tracks(sp, playlist_id)
    except GuessifyError as exc:
        # A rejected bearer token must not be reused by the next request.
        if exc.status == 401:
            token_cache.invalidate()
        raise
    finally:
        close_sessions(sp)

    return jsonify([track.to_dict() for track in playlist_tracks])
