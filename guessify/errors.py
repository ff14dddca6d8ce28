"""Error taxonomy shared by the HTTP service and the terminal client."""


class GuessifyError(Exception):
    """Base error carrying the HTTP status it should be reported with."""

    status = 500

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class ValidationError(GuessifyError):
    """Missing or unparseable playlist reference."""

    status = 400


class AuthError(GuessifyError):
    """Missing/invalid service credentials or a failed token exchange."""


class UpstreamError(GuessifyError):
    """Non-success answer from the Spotify Web API."""


class TransportError(GuessifyError):
    """Network failure while reaching Spotify."""


class ConfigurationError(GuessifyError):
    """Required process configuration is absent."""


class TrackLoadError(GuessifyError):
    """Client-side failure to load the track list from the Guessify server."""
