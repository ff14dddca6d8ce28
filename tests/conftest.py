# tests/conftest.py
"""Small fakes shared by the test modules: clock, HTTP session, Spotify, player, ticker."""

import pytest

from guessify.playlist import Track

_NO_JSON = object()


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is _NO_JSON:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Returns queued responses (or raises queued exceptions) and records calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        result = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(result, Exception):
            raise result
        return result

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeSpotify:
    def __init__(self, page=None, error=None):
        self.page = page
        self.error = error
        self.calls = []

    def playlist_items(self, playlist_id, **kwargs):
        self.calls.append((playlist_id, kwargs))
        if self.error is not None:
            raise self.error
        return self.page


class FakePlayer:
    def __init__(self):
        self.played = []
        self.stop_count = 0
        self.elapsed = 0.0
        self.playing = False

    def play(self, url):
        self.played.append(url)
        self.elapsed = 0.0
        self.playing = True

    def stop(self):
        self.stop_count += 1
        self.elapsed = 0.0
        self.playing = False

    def position(self):
        return self.elapsed if self.playing else 0.0

    def is_playing(self):
        return self.playing


class ManualTicker:
    """Ticker that only fires when the test calls tick()."""

    created = []

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False
        ManualTicker.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def tick(self):
        if not self.cancelled:
            self.callback()


def token_response(token="token-1", expires_in=3600):
    return FakeResponse(200, {"access_token": token, "token_type": "Bearer", "expires_in": expires_in})


def playlist_item(name, preview_url, artists=("Artist",)):
    return {
        "added_at": "2024-01-01T00:00:00Z",
        "track": {
            "name": name,
            "preview_url": preview_url,
            "artists": [{"id": f"id-{a}", "name": a} for a in artists],
        },
    }


@pytest.fixture
def no_json():
    return _NO_JSON


@pytest.fixture
def tracks():
    return [
        Track(name="Yellow", artist="Coldplay", preview_url="https://p.scdn.co/mp3-preview/yellow"),
        Track(name="Clocks", artist="Coldplay", preview_url="https://p.scdn.co/mp3-preview/clocks"),
    ]


@pytest.fixture(autouse=True)
def reset_manual_tickers():
    ManualTicker.created = []
    yield
