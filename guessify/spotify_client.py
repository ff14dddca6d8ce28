"""Spotipy client setup and cleanup helpers."""

import logging

import spotipy

from .config import REQUEST_TIMEOUT_SECONDS, SPOTIFY_RETRIES


def configure_spotipy_logging() -> None:
    """Reduce Spotipy logger noise; upstream failures are logged by Guessify."""
    for logger_name in ("spotipy", "spotipy.client", "spotipy.oauth2"):
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.CRITICAL)
        logger.propagate = False


# Apply logging policy at import so all consumers get consistent behavior.
configure_spotipy_logging()


def create_spotify_client(
    access_token: str,
    requests_timeout: float = REQUEST_TIMEOUT_SECONDS,
    retries: int = SPOTIFY_RETRIES,
) -> spotipy.Spotify:
    """Create a Spotipy client bound to an already issued bearer token."""
    return spotipy.Spotify(
        auth=access_token,
        requests_timeout=requests_timeout,
        retries=retries,
        status_retries=retries,
    )


def close_sessions(sp: spotipy.Spotify) -> None:
    """Close HTTP sessions held by Spotipy objects."""
    for obj in (sp, getattr(sp, "auth_manager", None)):
        # Spotipy exposes sessions on private attributes.
        session = getattr(obj, "_session", None)
        close_fn = getattr(session, "close", None)
        if callable(close_fn):
            close_fn()
