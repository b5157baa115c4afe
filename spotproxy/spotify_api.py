from __future__ import annotations

import httpx

from auth.errors import SpotifyAPIError

from .constants import SPOTIFY_API_BASE_URL

TIME_RANGES = {"short_term", "medium_term", "long_term"}
SEARCH_TYPES = {"album", "artist", "playlist", "track", "show", "episode", "audiobook"}


class SpotifyAPI:
    """Stateless Web API client: the access token is an argument of every call."""

    def __init__(self, client: httpx.AsyncClient, *, base_url: str = SPOTIFY_API_BASE_URL) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def _request(
        self,
        method: str,
        path: str,
        access_token: str,
        *,
        params: dict | None = None,
    ) -> dict | None:
        try:
            response = await self._client.request(
                method,
                f"{self._base_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as error:
            raise SpotifyAPIError(
                f"Spotify request {method} {path} failed: {error.__class__.__name__}."
            ) from error

        if response.status_code >= 400:
            raise SpotifyAPIError(
                f"Spotify request {method} {path} failed with status {response.status_code}.",
                status_code=response.status_code,
                retry_after=response.headers.get("retry-after"),
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as error:
            raise SpotifyAPIError(f"Spotify returned invalid JSON for {path}.") from error

    async def get_playlists(
        self,
        access_token: str,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> dict | None:
        return await self._request(
            "GET",
            "/me/playlists",
            access_token,
            params={"limit": limit, "offset": offset},
        )

    async def get_top_items(
        self,
        access_token: str,
        kind: str,
        *,
        time_range: str = "medium_term",
        limit: int = 50,
    ) -> dict | None:
        if kind not in {"tracks", "artists"}:
            raise ValueError(f"Unsupported top item kind: {kind!r}")
        if time_range not in TIME_RANGES:
            raise ValueError(f"Unsupported time_range: {time_range!r}")
        return await self._request(
            "GET",
            f"/me/top/{kind}",
            access_token,
            params={"time_range": time_range, "limit": limit},
        )

    async def search(
        self,
        access_token: str,
        query: str,
        *,
        search_type: str = "track",
        limit: int = 10,
    ) -> dict | None:
        return await self._request(
            "GET",
            "/search",
            access_token,
            params={"q": query, "type": search_type, "limit": limit},
        )

    async def get_currently_playing(self, access_token: str) -> dict | None:
        return await self._request("GET", "/me/player/currently-playing", access_token)

    async def play(self, access_token: str) -> None:
        await self._request("PUT", "/me/player/play", access_token)

    async def pause(self, access_token: str) -> None:
        await self._request("PUT", "/me/player/pause", access_token)
