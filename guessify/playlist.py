"""Playlist id parsing, Spotify playlist fetch, and track normalization."""

import logging
import re
from dataclasses import dataclass
from typing import Any

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from .config import PLAYLIST_TRACK_LIMIT
from .errors import TransportError, UpstreamError

logger = logging.getLogger(__name__)

UNKNOWN_TRACK = "Unknown Track"
UNKNOWN_ARTIST = "Unknown Artist"

# Tried in order: share URL, Spotify URI, bare id.
PLAYLIST_ID_PATTERNS = (
    re.compile(r"playlist/([a-zA-Z0-9]+)"),
    re.compile(r"playlist:([a-zA-Z0-9]+)"),
    re.compile(r"^([a-zA-Z0-9]+)$"),
)

UPSTREAM_ERROR_MESSAGES = {
    401: "Authentication failed. Please check Spotify API credentials.",
    403: "Access forbidden. Make sure the playlist is public.",
    404: "Playlist not found. Make sure the playlist exists and is public.",
}


@dataclass(frozen=True)
class Track:
    """One playable round: a preview clip and the answers it accepts."""

    name: str
    artist: str
    preview_url: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "artist": self.artist, "previewUrl": self.preview_url}

    @classmethod
    def from_dict(cls, payload: Any) -> "Track | None":
        """Build a Track from a server JSON record; None when it is unusable."""
        if not isinstance(payload, dict):
            return None
        preview_url = payload.get("previewUrl") or payload.get("preview_url")
        name = payload.get("name")
        if not isinstance(preview_url, str) or not preview_url or not isinstance(name, str):
            return None
        artist = payload.get("artist")
        return cls(name=name, artist=artist if isinstance(artist, str) else "", preview_url=preview_url)


def extract_playlist_id(raw_value: str, strict: bool = True) -> str | None:
    """Pull a playlist id out of a share URL, a Spotify URI, or a bare id.

    With ``strict`` off, unparseable input is returned unchanged and left for
    Spotify to reject.
    """
    value = raw_value.strip()
    for pattern in PLAYLIST_ID_PATTERNS:
        match = pattern.search(value)
        if match:
            return match.group(1)

    logger.info("Could not extract playlist id from %r", raw_value)
    return None if strict else raw_value


def join_artist_names(raw_artists: Any) -> str:
    if not isinstance(raw_artists, list):
        return ""
    names = [artist.get("name", "").strip() for artist in raw_artists if isinstance(artist, dict)]
    return ", ".join(name for name in names if name)


def normalize_track(raw_track: dict[str, Any] | None) -> Track | None:
    if not isinstance(raw_track, dict):
        return None

    preview_url = raw_track.get("preview_url")
    name = str(raw_track.get("name") or UNKNOWN_TRACK)
    artist = join_artist_names(raw_track.get("artists")) or UNKNOWN_ARTIST
    if not isinstance(preview_url, str) or not preview_url:
        logger.debug("Track without preview: %s by %s", name, artist)
        return None

    return Track(name=name, artist=artist, preview_url=preview_url)


def fetch_tracks(sp: spotipy.Spotify, playlist_id: str) -> list[Track]:
    """Fetch the first page of a playlist and keep tracks with a preview clip."""
    try:
        page = sp.playlist_items(playlist_id, limit=PLAYLIST_TRACK_LIMIT, additional_types=("track",))
    except SpotifyException as exc:
        status = exc.http_status or 500
        logger.warning("Spotify API error for playlist %s (%s): %s", playlist_id, status, exc.msg)
        message = UPSTREAM_ERROR_MESSAGES.get(status, f"Spotify API error ({status}): {exc.msg}")
        raise UpstreamError(message, status=status) from exc
    except requests.RequestException as exc:
        raise TransportError(f"Could not reach Spotify: {exc}") from exc

    items = page.get("items") if isinstance(page, dict) else None
    if not isinstance(items, list):
        raise UpstreamError("No items in playlist response.", status=500)

    tracks: list[Track] = []
    for item in items:
        track = normalize_track(item.get("track") if isinstance(item, dict) else None)
        if track:
            tracks.append(track)

    logger.info("Playlist %s: %d of %d items playable", playlist_id, len(tracks), len(items))
    return tracks
