import httpx
import pytest

from tests.spotify_helpers import IDENTITY, build_test_client, set_cookie_headers


class SpotifyAPIRecorder:
    def __init__(self, status_code: int = 200, json=None, headers=None) -> None:
        self.status_code = status_code
        self.json = {"items": [{"name": "Song"}]} if json is None else json
        self.headers = headers or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code == 204:
            return httpx.Response(204, request=request)
        return httpx.Response(
            self.status_code, request=request, json=self.json, headers=self.headers
        )


def _authenticated_client(fake_spotify, recorder=None, access_token="valid-access"):
    test_client = build_test_client(fake_spotify, api_handler=recorder)
    test_client.cookies.set("access_token", access_token)
    test_client.cookies.set("refresh_token", "valid-refresh")
    return test_client


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("GET", "/api/auth-status"),
        ("GET", "/api/me"),
        ("GET", "/api/playlists"),
        ("GET", "/api/top/tracks"),
        ("GET", "/api/top/artists"),
        ("GET", "/api/search?q=abc"),
        ("GET", "/api/player/currently-playing"),
        ("PUT", "/api/player/play"),
        ("PUT", "/api/player/pause"),
    ],
)
def test_guarded_routes_reject_missing_cookies(fake_spotify, method, path) -> None:
    recorder = SpotifyAPIRecorder()
    test_client = build_test_client(fake_spotify, api_handler=recorder)

    response = test_client.request(method, path)

    assert response.status_code == 401
    assert response.json()["authenticated"] is False
    assert response.json()["code"] == "missing_credential"
    assert recorder.requests == []
    assert fake_spotify.probe_calls == []


def test_only_access_token_is_not_authenticated(fake_spotify) -> None:
    test_client = build_test_client(fake_spotify)
    test_client.cookies.set("access_token", "valid-access")

    response = test_client.get("/api/auth-status")

    assert response.status_code == 401
    assert response.json()["error"] == "No refresh token provided"


def test_auth_status_reuses_probe(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder()
    test_client = _authenticated_client(fake_spotify, recorder)

    response = test_client.get("/api/auth-status")

    assert response.status_code == 200
    assert response.json() == {"authenticated": True, "user": IDENTITY}
    assert fake_spotify.probe_calls == ["valid-access"]
    assert recorder.requests == []


def test_me_returns_profile(fake_spotify) -> None:
    test_client = _authenticated_client(fake_spotify)

    response = test_client.get("/api/me")

    assert response.json() == IDENTITY


def test_expired_token_is_refreshed_and_cookie_reissued(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder()
    test_client = _authenticated_client(fake_spotify, recorder, access_token="stale-access")

    response = test_client.get("/api/playlists")

    assert response.status_code == 200
    assert recorder.requests[0].headers["authorization"] == "Bearer new-access"
    cookies = set_cookie_headers(response)
    assert cookies["access_token"].startswith("access_token=new-access;")
    assert "HttpOnly" in cookies["access_token"]
    assert "Max-Age=3600" in cookies["access_token"]
    assert "refresh_token" not in cookies
    assert fake_spotify.refresh_calls == ["valid-refresh"]


def test_rotated_refresh_token_cookie_reissued(fake_spotify) -> None:
    fake_spotify.refresh_result = {
        "access_token": "new-access",
        "refresh_token": "rotated-refresh",
        "expires_in": 3600,
    }
    test_client = _authenticated_client(fake_spotify, access_token="stale-access")

    response = test_client.get("/api/me")

    cookies = set_cookie_headers(response)
    assert cookies["refresh_token"].startswith("refresh_token=rotated-refresh;")


def test_invalid_refresh_token_is_rejected(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder()
    test_client = build_test_client(fake_spotify, api_handler=recorder)
    test_client.cookies.set("access_token", "stale-access")
    test_client.cookies.set("refresh_token", "revoked")

    response = test_client.get("/api/playlists")

    assert response.status_code == 401
    assert response.json()["code"] == "invalid_refresh_token"
    assert recorder.requests == []


def test_probe_outage_returns_502(fake_spotify) -> None:
    fake_spotify.probe_error_status = 503
    test_client = _authenticated_client(fake_spotify)

    response = test_client.get("/api/me")

    assert response.status_code == 502
    assert response.json()["code"] == "upstream_unavailable"
    assert "authenticated" not in response.json()


def test_top_tracks_defaults(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder()
    test_client = _authenticated_client(fake_spotify, recorder)

    response = test_client.get("/api/top/tracks")

    assert response.status_code == 200
    request = recorder.requests[0]
    assert request.url.path == "/v1/me/top/tracks"
    assert request.url.params["time_range"] == "medium_term"
    assert request.url.params["limit"] == "50"


def test_top_artists_invalid_time_range(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder()
    test_client = _authenticated_client(fake_spotify, recorder)

    response = test_client.get("/api/top/artists", params={"time_range": "forever"})

    assert response.status_code == 400
    assert recorder.requests == []


def test_top_tracks_forbidden_maps_to_permission_message(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder(status_code=403, json={"error": {"message": "Insufficient"}})
    test_client = _authenticated_client(fake_spotify, recorder)

    response = test_client.get("/api/top/tracks")

    assert response.status_code == 403
    assert response.json() == {
        "error": "Permission denied. Make sure you have granted access to view your top tracks."
    }


def test_upstream_server_error_does_not_leak_body(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder(status_code=500, json={"secret": "internal detail"})
    test_client = _authenticated_client(fake_spotify, recorder)

    response = test_client.get("/api/playlists")

    assert response.status_code == 502
    assert response.json() == {"error": "Failed to get playlists"}


def test_rate_limit_passes_retry_after(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder(status_code=429, json={}, headers={"Retry-After": "7"})
    test_client = _authenticated_client(fake_spotify, recorder)

    response = test_client.get("/api/search", params={"q": "song"})

    assert response.status_code == 429
    assert response.headers["retry-after"] == "7"


def test_search_requires_query(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder()
    test_client = _authenticated_client(fake_spotify, recorder)

    response = test_client.get("/api/search")

    assert response.status_code == 400
    assert response.json() == {"error": "Query parameter 'q' is required"}
    assert recorder.requests == []


def test_search_forwards_query(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder()
    test_client = _authenticated_client(fake_spotify, recorder)

    response = test_client.get("/api/search", params={"q": "daft punk"})

    assert response.status_code == 200
    params = recorder.requests[0].url.params
    assert params["q"] == "daft punk"
    assert params["type"] == "track"
    assert params["limit"] == "10"


@pytest.mark.parametrize("limit", ["0", "51", "ten"])
def test_search_rejects_bad_limit(fake_spotify, limit) -> None:
    test_client = _authenticated_client(fake_spotify)

    response = test_client.get("/api/search", params={"q": "abc", "limit": limit})

    assert response.status_code == 400


def test_currently_playing_nothing_playing(fake_spotify) -> None:
    test_client = _authenticated_client(fake_spotify, SpotifyAPIRecorder(status_code=204))

    response = test_client.get("/api/player/currently-playing")

    assert response.status_code == 204


def test_play_and_pause(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder(status_code=204)
    test_client = _authenticated_client(fake_spotify, recorder)

    play = test_client.put("/api/player/play")
    pause = test_client.put("/api/player/pause")

    assert play.json() == {"message": "Playback started"}
    assert pause.json() == {"message": "Playback paused"}
    assert [request.method for request in recorder.requests] == ["PUT", "PUT"]
    assert recorder.requests[0].url.path == "/v1/me/player/play"
    assert recorder.requests[1].url.path == "/v1/me/player/pause"


def test_playback_without_active_device(fake_spotify) -> None:
    recorder = SpotifyAPIRecorder(status_code=404, json={"error": {"reason": "NO_ACTIVE_DEVICE"}})
    test_client = _authenticated_client(fake_spotify, recorder)

    response = test_client.put("/api/player/play")

    assert response.status_code == 404
    assert response.json() == {
        "error": "Failed to start playback. The requested resource was not found on Spotify."
    }


def test_invalid_refresh_token_clears_cookies(fake_spotify) -> None:
    test_client = build_test_client(fake_spotify)
    test_client.cookies.set("access_token", "stale-access")
    test_client.cookies.set("refresh_token", "revoked")

    response = test_client.get("/api/me")

    cookies = set_cookie_headers(response)
    assert "Max-Age=0" in cookies["access_token"]
    assert "Max-Age=0" in cookies["refresh_token"]
