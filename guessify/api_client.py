"""Client side of the one HTTP call: load a playlist's tracks from the server."""

import requests

from .config import REQUEST_TIMEOUT_SECONDS
from .errors import TrackLoadError
from .playlist import Track

NETWORK_ERROR_MESSAGE = "Could not reach the Guessify server. Check your connection and try again."
BAD_RESPONSE_MESSAGE = "Unexpected response from the server. Try another playlist."


def load_tracks(
    api_url: str,
    playlist_url: str,
    session: requests.Session | None = None,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> list[Track]:
    """Fetch ``/api/tracks`` and return the playable tracks.

    An empty list is a valid answer (no previews in the playlist); every
    failure raises TrackLoadError with a message fit for the player.
    """
    http = session or requests
    try:
        response = http.get(
            f"{api_url.rstrip('/')}/api/tracks",
            params={"url": playlist_url},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise TrackLoadError(NETWORK_ERROR_MESSAGE) from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise TrackLoadError(BAD_RESPONSE_MESSAGE, status=response.status_code) from exc

    if not response.ok:
        message = payload.get("error") if isinstance(payload, dict) else None
        raise TrackLoadError(message or f"Server error ({response.status_code}).", status=response.status_code)

    if not isinstance(payload, list):
        raise TrackLoadError(BAD_RESPONSE_MESSAGE, status=response.status_code)

    tracks: list[Track] = []
    for entry in payload:
        track = Track.from_dict(entry)
        if track:
            tracks.append(track)
    return tracks
