"""Shared configuration constants used across the application."""

from pathlib import Path

# Spotify endpoints used by the token cache and the playlist fetch.
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
CLIENT_ID_ENV = "SPOTIFY_CLIENT_ID"
CLIENT_SECRET_ENV = "SPOTIFY_CLIENT_SECRET"

# Refresh tokens a minute early so requests never race the real expiry.
TOKEN_EXPIRY_MARGIN_SECONDS = 60
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600

PLAYLIST_TRACK_LIMIT = 50  # Single page; the game never needs more tracks.
REQUEST_TIMEOUT_SECONDS = 10
SPOTIFY_RETRIES = 3

# Game rules: playback cap in seconds for stages 1..6.
STAGE_DURATIONS = (1, 2, 4, 7, 11, 16)
MAX_STAGE = len(STAGE_DURATIONS)
MAX_STAGE_SCORE = 600
STAGE_SCORE_STEP = 100
MIN_STAGE_SCORE = 100
PLAYBACK_POLL_INTERVAL_SECONDS = 0.1

# Local server and client defaults.
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4000
DEFAULT_API_URL = f"http://{DEFAULT_HOST}:{DEFAULT_PORT}"
GAME_HISTORY_PATH = Path("game_history.jsonl")
MAX_TERMINAL_WIDTH = 110
