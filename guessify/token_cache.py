"""Client-credentials token cache for the Spotify Web API."""

import logging
import time
from collections.abc import Callable

import requests

from .config import (
    DEFAULT_TOKEN_LIFETIME_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
    SPOTIFY_TOKEN_URL,
    TOKEN_EXPIRY_MARGIN_SECONDS,
)
from .env import read_client_credentials
from .errors import AuthError, ConfigurationError, TransportError

logger = logging.getLogger(__name__)


class TokenCache:
    """Hold one bearer token and refresh it lazily when it expires.

    One instance is owned by the Flask app for the process lifetime. There is
    no locking: concurrent callers hitting an expired token may each refresh,
    and the last write wins.
    """

    def __init__(
        self,
        credentials: Callable[[], tuple[str, str]] = read_client_credentials,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
        token_url: str = SPOTIFY_TOKEN_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        expiry_margin: float = TOKEN_EXPIRY_MARGIN_SECONDS,
    ):
        self._credentials = credentials
        self._session = session or requests.Session()
        self._clock = clock
        self._token_url = token_url
        self._timeout = timeout
        self._expiry_margin = expiry_margin
        self._token: str | None = None
        self._expires_at = 0.0

    @property
    def expires_at(self) -> float:
        return self._expires_at

    def get_token(self) -> str:
        """Return a valid access token, refreshing it when absent or expired."""
        if self._token and self._clock() <= self._expires_at:
            return self._token
        return self._refresh()

    def invalidate(self) -> None:
        """Forget the cached token so the next call refreshes it."""
        self._token = None
        self._expires_at = 0.0

    def close(self) -> None:
        """Release the HTTP session held by the cache."""
        self.invalidate()
        self._session.close()

    def _refresh(self) -> str:
        try:
            client_id, client_secret = self._credentials()
        except ConfigurationError as exc:
            raise AuthError(f"Missing Spotify credentials: {exc.message}", status=500) from exc

        logger.info("Requesting Spotify client-credentials token")
        try:
            response = self._session.post(
                self._token_url,
                auth=(client_id, client_secret),
                data={"grant_type": "client_credentials"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Could not reach Spotify token endpoint: {exc}") from exc

        if not response.ok:
            logger.warning("Token endpoint answered %s: %s", response.status_code, response.text)
            # 400/401 mean Spotify rejected the client id/secret pair.
            status = 401 if response.status_code in (400, 401) else 500
            raise AuthError(f"Failed to get Spotify token: {response.text}", status=status)

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthError("Token endpoint returned a non-JSON body.") from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AuthError("Token response did not include an access token.")

        expires_in = payload.get("expires_in", DEFAULT_TOKEN_LIFETIME_SECONDS)
        if not isinstance(expires_in, (int, float)):
            expires_in = DEFAULT_TOKEN_LIFETIME_SECONDS

        self._token = token
        self._expires_at = self._clock() + (expires_in - self._expiry_margin)
        logger.info("Spotify token obtained, valid for %ss", expires_in)
        return token
