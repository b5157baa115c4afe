from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from auth.cookies import CookiePolicy
from auth.errors import SpotifyAPIError
from auth.guard import TokenGuard, guarded

from .constants import LOGGER
from .http import friendly_error_message, proxied_status
from .spotify_api import SEARCH_TYPES, TIME_RANGES, SpotifyAPI


class BadRequest(ValueError):
    pass


def upstream_error_response(error: SpotifyAPIError, action: str, resource: str) -> Response:
    LOGGER.error("Error trying to %s: %s", action, error)
    payload = {"error": friendly_error_message(error.status_code, action, resource)}
    if error.status_code == 401:
        payload["authenticated"] = False
    headers = {}
    if error.status_code == 429 and error.retry_after:
        headers["Retry-After"] = error.retry_after
    return JSONResponse(payload, status_code=proxied_status(error.status_code), headers=headers)


def _int_param(request: Request, name: str, default: int, *, low: int, high: int) -> int:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise BadRequest(f"Query parameter '{name}' must be an integer")
    if not low <= value <= high:
        raise BadRequest(f"Query parameter '{name}' must be between {low} and {high}")
    return value


def _time_range_param(request: Request) -> str:
    time_range = request.query_params.get("time_range") or "medium_term"
    if time_range not in TIME_RANGES:
        raise BadRequest(
            "Query parameter 'time_range' must be one of: " + ", ".join(sorted(TIME_RANGES))
        )
    return time_range


def _bad_request(error: BadRequest) -> Response:
    return JSONResponse({"error": str(error)}, status_code=400)


def _json_or_no_content(data: dict | None) -> Response:
    if data is None:
        return Response(status_code=204)
    return JSONResponse(data)


def build_api_routes(
    spotify: SpotifyAPI,
    guard: TokenGuard,
    cookie_policy: CookiePolicy,
) -> Mount:
    requires_auth = guarded(guard, cookie_policy)

    @requires_auth
    async def auth_status(request: Request) -> Response:
        identity = request.state.identity
        return JSONResponse(
            {
                "authenticated": True,
                "user": {
                    "id": identity.get("id"),
                    "display_name": identity.get("display_name"),
                    "email": identity.get("email"),
                },
            }
        )

    @requires_auth
    async def me(request: Request) -> Response:
        return JSONResponse(request.state.identity)

    @requires_auth
    async def playlists(request: Request) -> Response:
        try:
            limit = _int_param(request, "limit", 20, low=1, high=50)
            offset = _int_param(request, "offset", 0, low=0, high=100_000)
        except BadRequest as error:
            return _bad_request(error)
        try:
            data = await spotify.get_playlists(
                request.state.credential.access_token, limit=limit, offset=offset
            )
        except SpotifyAPIError as error:
            return upstream_error_response(error, "get playlists", "your playlists")
        return _json_or_no_content(data)

    async def _top_items(request: Request, kind: str) -> Response:
        try:
            time_range = _time_range_param(request)
            limit = _int_param(request, "limit", 50, low=1, high=50)
        except BadRequest as error:
            return _bad_request(error)

        LOGGER.info("Fetching top %s...", kind)
        try:
            data = await spotify.get_top_items(
                request.state.credential.access_token,
                kind,
                time_range=time_range,
                limit=limit,
            )
        except SpotifyAPIError as error:
            return upstream_error_response(error, f"get top {kind}", f"view your top {kind}")

        if data is not None:
            LOGGER.info("Successfully fetched top %s: total=%s", kind, len(data.get("items", [])))
        return _json_or_no_content(data)

    @requires_auth
    async def top_tracks(request: Request) -> Response:
        return await _top_items(request, "tracks")

    @requires_auth
    async def top_artists(request: Request) -> Response:
        return await _top_items(request, "artists")

    @requires_auth
    async def search(request: Request) -> Response:
        query = request.query_params.get("q", "").strip()
        if not query:
            return JSONResponse({"error": "Query parameter 'q' is required"}, status_code=400)

        search_type = request.query_params.get("type") or "track"
        if not set(search_type.split(",")) <= SEARCH_TYPES:
            return JSONResponse(
                {"error": f"Unsupported search type: {search_type}"}, status_code=400
            )
        try:
            limit = _int_param(request, "limit", 10, low=1, high=50)
        except BadRequest as error:
            return _bad_request(error)

        try:
            data = await spotify.search(
                request.state.credential.access_token,
                query,
                search_type=search_type,
                limit=limit,
            )
        except SpotifyAPIError as error:
            return upstream_error_response(error, "search tracks", "search")
        return _json_or_no_content(data)

    @requires_auth
    async def currently_playing(request: Request) -> Response:
        try:
            data = await spotify.get_currently_playing(request.state.credential.access_token)
        except SpotifyAPIError as error:
            return upstream_error_response(
                error, "get currently playing track", "your playback state"
            )
        return _json_or_no_content(data)

    @requires_auth
    async def play(request: Request) -> Response:
        try:
            await spotify.play(request.state.credential.access_token)
        except SpotifyAPIError as error:
            return upstream_error_response(error, "start playback", "control playback")
        return JSONResponse({"message": "Playback started"})

    @requires_auth
    async def pause(request: Request) -> Response:
        try:
            await spotify.pause(request.state.credential.access_token)
        except SpotifyAPIError as error:
            return upstream_error_response(error, "pause playback", "control playback")
        return JSONResponse({"message": "Playback paused"})

    return Mount(
        "/api",
        routes=[
            Route("/auth-status", auth_status, methods=["GET"]),
            Route("/me", me, methods=["GET"]),
            Route("/playlists", playlists, methods=["GET"]),
            Route("/top/tracks", top_tracks, methods=["GET"]),
            Route("/top/artists", top_artists, methods=["GET"]),
            Route("/search", search, methods=["GET"]),
            Route("/player/currently-playing", currently_playing, methods=["GET"]),
            Route("/player/play", play, methods=["PUT"]),
            Route("/player/pause", pause, methods=["PUT"]),
        ],
    )
