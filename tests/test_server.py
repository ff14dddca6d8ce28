# tests/test_server.py
import pytest
from spotipy.exceptions import SpotifyException

from conftest import FakeClock, FakeResponse, FakeSession, FakeSpotify, playlist_item, token_response
from guessify.env import read_client_credentials
from guessify.server import create_app, get_token_cache
from guessify.token_cache import TokenCache

PLAYLIST_URL = "https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M"


def build_client(sp, token_session=None, config=None, credentials=lambda: ("id", "secret")):
    token_session = token_session or FakeSession(token_response("token-1"))
    cache = TokenCache(credentials=credentials, session=token_session, clock=FakeClock())
    tokens_seen = []

    def spotify_factory(token):
        tokens_seen.append(token)
        return sp

    app = create_app(config={"TESTING": True, **(config or {})}, token_cache=cache, spotify_factory=spotify_factory)
    return app.test_client(), tokens_seen


def test_tracks_returns_only_tracks_with_preview():
    sp = FakeSpotify(page={"items": [playlist_item("Yellow", "https://p/1", ("Coldplay",)), playlist_item("Clocks", None)]})
    client, tokens_seen = build_client(sp)

    response = client.get("/api/tracks", query_string={"url": PLAYLIST_URL})

    assert response.status_code == 200
    assert response.get_json() == [{"name": "Yellow", "artist": "Coldplay", "previewUrl": "https://p/1"}]
    assert tokens_seen == ["token-1"]
    assert sp.calls[0][0] == "37i9dQZF1DXcBWIGoYBM5M"


def test_tracks_returns_empty_list_when_nothing_is_playable():
    client, _ = build_client(FakeSpotify(page={"items": [playlist_item("Clocks", None)]}))

    response = client.get("/api/tracks", query_string={"url": PLAYLIST_URL})

    assert response.status_code == 200
    assert response.get_json() == []


@pytest.mark.parametrize("query", [{}, {"url": ""}, {"url": "   "}])
def test_tracks_without_url_is_400(query):
    client, _ = build_client(FakeSpotify(page={"items": []}))

    response = client.get("/api/tracks", query_string=query)

    assert response.status_code == 400
    assert response.get_json() == {"error": "No playlist URL provided."}


def test_tracks_with_unparseable_url_is_400():
    sp = FakeSpotify(page={"items": []})
    client, _ = build_client(sp)

    response = client.get("/api/tracks", query_string={"url": "https://example.com/album/abc"})

    assert response.status_code == 400
    assert "Invalid playlist URL" in response.get_json()["error"]
    assert sp.calls == []


def test_loose_id_extraction_forwards_raw_input():
    sp = FakeSpotify(page={"items": []})
    client, _ = build_client(sp, config={"PLAYLIST_ID_STRICT": False})

    response = client.get("/api/tracks", query_string={"url": "odd value"})

    assert response.status_code == 200
    assert sp.calls[0][0] == "odd value"


@pytest.mark.parametrize("upstream_status,expected_status", [(401, 401), (400, 401), (500, 500)])
def test_token_failure_is_reported_as_json_error(upstream_status, expected_status):
    session = FakeSession(FakeResponse(upstream_status, {"error": "invalid_client"}, text="invalid_client"))
    client, tokens_seen = build_client(FakeSpotify(page={"items": []}), token_session=session)

    response = client.get("/api/tracks", query_string={"url": PLAYLIST_URL})

    assert response.status_code == expected_status
    assert response.get_json() == {"error": "Failed to get Spotify token: invalid_client"}
    assert tokens_seen == []


def test_missing_server_credentials_is_500(monkeypatch):
    monkeypatch.delenv("SPOTIFY_CLIENT_ID", raising=False)
    monkeypatch.delenv("SPOTIFY_CLIENT_SECRET", raising=False)
    client, _ = build_client(FakeSpotify(page={"items": []}), credentials=read_client_credentials)

    response = client.get("/api/tracks", query_string={"url": PLAYLIST_URL})

    assert response.status_code == 500
    assert "Missing Spotify credentials" in response.get_json()["error"]


@pytest.mark.parametrize("status", [403, 404, 429])
def test_upstream_errors_mirror_status(status):
    client, _ = build_client(FakeSpotify(error=SpotifyException(status, -1, "nope")))

    response = client.get("/api/tracks", query_string={"url": PLAYLIST_URL})

    assert response.status_code == status
    assert "error" in response.get_json()


def test_upstream_401_invalidates_cached_token():
    sp = FakeSpotify(error=SpotifyException(401, -1, "The access token expired"))
    token_session = FakeSession(token_response("token-1"), token_response("token-2"))
    client, tokens_seen = build_client(sp, token_session=token_session)

    assert client.get("/api/tracks", query_string={"url": PLAYLIST_URL}).status_code == 401
    sp.error = None
    sp.page = {"items": []}
    assert client.get("/api/tracks", query_string={"url": PLAYLIST_URL}).status_code == 200

    assert tokens_seen == ["token-1", "token-2"]


def test_token_is_cached_across_requests():
    token_session = FakeSession(token_response("token-1"), token_response("token-2"))
    client, tokens_seen = build_client(FakeSpotify(page={"items": []}), token_session=token_session)

    client.get("/api/tracks", query_string={"url": PLAYLIST_URL})
    client.get("/api/tracks", query_string={"url": PLAYLIST_URL})

    assert tokens_seen == ["token-1", "token-1"]
    assert len(token_session.calls) == 1


def test_unexpected_exception_is_500_json():
    client, _ = build_client(FakeSpotify(error=RuntimeError("boom")))

    response = client.get("/api/tracks", query_string={"url": PLAYLIST_URL})

    assert response.status_code == 500
    assert response.get_json() == {"error": "Server error: boom"}


def test_health(monkeypatch):
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "id")
    monkeypatch.delenv("SPOTIFY_CLIENT_SECRET", raising=False)
    client, _ = build_client(FakeSpotify(page={"items": []}))

    payload = client.get("/api/health").get_json()

    assert payload["status"] == "OK"
    assert payload["timestamp"]
    assert payload["env"] == {"clientId": "Present", "clientSecret": "Missing"}


def test_cors_header_and_json_404():
    client, _ = build_client(FakeSpotify(page={"items": []}))

    response = client.get("/api/unknown")

    assert response.status_code == 404
    assert "error" in response.get_json()
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_cors_uses_configured_origin():
    client, _ = build_client(FakeSpotify(page={"items": []}), config={"CORS_ALLOW_ORIGIN": "http://localhost:5173"})

    allowed = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
    other = client.get("/api/health", headers={"Origin": "http://evil.example"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    assert "Access-Control-Allow-Origin" not in other.headers


def test_wrong_method_is_405_json():
    client, _ = build_client(FakeSpotify(page={"items": []}))

    response = client.post("/api/tracks")

    assert response.status_code == 405
    assert "error" in response.get_json()


def test_app_exposes_its_token_cache():
    cache = TokenCache(credentials=lambda: ("id", "secret"), session=FakeSession(token_response()))
    app = create_app(token_cache=cache, spotify_factory=lambda token: FakeSpotify(page={"items": []}))

    assert get_token_cache(app) is cache
