from __future__ import annotations

import secrets
import string
import time
import urllib.parse
from dataclasses import dataclass

import httpx

from auth.errors import SpotifyAPIError

SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_ME_URL = "https://api.spotify.com/v1/me"

STATE_ALPHABET = string.ascii_letters + string.digits
STATE_LENGTH = 16


@dataclass
class TokenResponse:
    access_token: str
    refresh_token: str | None
    expires_in: int
    expires_at: float
    scope: str

    @classmethod
    def from_payload(
        cls,
        payload: dict,
        *,
        require_refresh_token: bool = True,
        now: float | None = None,
    ) -> "TokenResponse":
        if not isinstance(payload, dict):
            raise SpotifyAPIError("Token response must be a JSON object.")

        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        expires_in = payload.get("expires_in")
        scope = payload.get("scope", "")

        if not isinstance(access_token, str) or not access_token:
            raise SpotifyAPIError("Token response missing access_token.")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise SpotifyAPIError("Token response refresh_token must be a string.")
        if require_refresh_token and not refresh_token:
            raise SpotifyAPIError("Token response missing refresh_token.")
        if not isinstance(expires_in, int) or isinstance(expires_in, bool):
            raise SpotifyAPIError("Token response missing expires_in.")
        if not isinstance(scope, str):
            raise SpotifyAPIError("Token response scope must be a string.")

        issued_at = time.time() if now is None else now
        return cls(
            access_token=access_token,
            refresh_token=refresh_token or None,
            expires_in=expires_in,
            expires_at=issued_at + expires_in,
            scope=scope,
        )


def generate_state(length: int = STATE_LENGTH) -> str:
    return "".join(secrets.choice(STATE_ALPHABET) for _ in range(length))


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    scopes: list[str],
    state: str,
    *,
    show_dialog: bool = True,
) -> str:
    query = {
        "response_type": "code",
        "client_id": client_id,
        "scope": " ".join(scopes),
        "redirect_uri": redirect_uri,
        "state": state,
    }
    if show_dialog:
        query["show_dialog"] = "true"
    return f"{SPOTIFY_AUTHORIZE_URL}?{urllib.parse.urlencode(query)}"


async def _token_request(
    payload: dict[str, str],
    client_id: str,
    client_secret: str,
    *,
    require_refresh_token: bool,
    client: httpx.AsyncClient | None = None,
) -> TokenResponse:
    own_client = client is None
    http_client = client or httpx.AsyncClient()

    try:
        response = await http_client.post(
            SPOTIFY_TOKEN_URL,
            data=payload,
            auth=(client_id, client_secret),
        )
        response.raise_for_status()
        body = response.json()
    except httpx.HTTPStatusError as error:
        raise SpotifyAPIError(
            f"Token request failed with status {error.response.status_code}.",
            status_code=error.response.status_code,
        ) from error
    except httpx.HTTPError as error:
        raise SpotifyAPIError(f"Token request failed: {error.__class__.__name__}.") from error
    except ValueError as error:
        raise SpotifyAPIError("Token response is not valid JSON.") from error
    finally:
        if own_client:
            await http_client.aclose()

    return TokenResponse.from_payload(body, require_refresh_token=require_refresh_token)


async def exchange_code(
    client_id: str,
    client_secret: str,
    code: str,
    redirect_uri: str,
    *,
    client: httpx.AsyncClient | None = None,
) -> TokenResponse:
    return await _token_request(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        },
        client_id,
        client_secret,
        require_refresh_token=True,
        client=client,
    )


async def refresh_token(
    client_id: str,
    client_secret: str,
    refresh_token: str,
    *,
    client: httpx.AsyncClient | None = None,
) -> TokenResponse:
    return await _token_request(
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        },
        client_id,
        client_secret,
        require_refresh_token=False,
        client=client,
    )


async def fetch_current_user(
    access_token: str,
    *,
    client: httpx.AsyncClient | None = None,
) -> dict:
    """Identity probe: ``GET /v1/me`` with the bearer token.

    Raises :class:`SpotifyAPIError` carrying the upstream status on any
    non-200 answer, and with ``status_code=None`` on transport failures or
    payloads without a user id.
    """
    own_client = client is None
    http_client = client or httpx.AsyncClient()

    try:
        response = await http_client.get(
            SPOTIFY_ME_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.status_code != 200:
            raise SpotifyAPIError(
                f"Identity probe failed with status {response.status_code}.",
                status_code=response.status_code,
            )
        payload = response.json()
    except httpx.HTTPError as error:
        raise SpotifyAPIError(f"Identity probe failed: {error.__class__.__name__}.") from error
    except ValueError as error:
        raise SpotifyAPIError("Identity probe returned invalid JSON.") from error
    finally:
        if own_client:
            await http_client.aclose()

    if not isinstance(payload, dict) or not isinstance(payload.get("id"), str):
        raise SpotifyAPIError("Identity probe returned an unexpected payload.")
    return payload
