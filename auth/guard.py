from __future__ import annotations

import functools
import time

import httpx
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from auth import spotify_oauth
from auth.cookies import CookiePolicy, credential_from_cookies
from auth.errors import (
    AuthError,
    InvalidRefreshTokenError,
    MissingCredentialError,
    SpotifyAPIError,
    UpstreamUnavailableError,
)
from auth.models import AuthOutcome, Credential
from spotproxy.constants import LOGGER

REFRESH_REJECTED_STATUSES = {400, 401}


class TokenGuard:
    """Validates a cookie credential against Spotify before a route runs.

    One run per request: probe ``/v1/me``; on a 401 refresh once and probe
    again with the new access token. The guard never stores anything, it hands
    the (possibly refreshed) credential back to the caller.
    """

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        client: httpx.AsyncClient | None = None,
        fetch_identity_fn=spotify_oauth.fetch_current_user,
        refresh_token_fn=spotify_oauth.refresh_token,
        clock=time.time,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self._client = client
        self._fetch_identity_fn = fetch_identity_fn
        self._refresh_token_fn = refresh_token_fn
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    async def authenticate(self, credential: Credential) -> AuthOutcome:
        if not credential.access_token:
            LOGGER.info("No access token found in cookies")
            raise MissingCredentialError("No access token provided")
        if not credential.refresh_token:
            LOGGER.info("No refresh token found in cookies")
            raise MissingCredentialError("No refresh token provided")

        try:
            identity = await self._probe(credential.access_token)
        except SpotifyAPIError as error:
            if error.status_code != 401:
                LOGGER.warning("Token validation failed upstream: %s", error)
                raise UpstreamUnavailableError() from error
            LOGGER.info("Access token rejected; attempting refresh")
        else:
            return AuthOutcome(identity=identity, credential=credential)

        refreshed = await self._refresh(credential.refresh_token)

        try:
            identity = await self._probe(refreshed.access_token)
        except SpotifyAPIError as error:
            LOGGER.warning("Refreshed access token was not accepted: %s", error)
            raise UpstreamUnavailableError(
                "Spotify rejected the refreshed access token."
            ) from error

        LOGGER.info("Token refreshed successfully")
        return AuthOutcome(
            identity=identity,
            credential=credential.with_refreshed(
                access_token=refreshed.access_token,
                expires_at=refreshed.expires_at,
                expires_in=refreshed.expires_in,
                refresh_token=refreshed.refresh_token,
            ),
            refreshed=True,
            refresh_token_rotated=bool(
                refreshed.refresh_token
                and refreshed.refresh_token != credential.refresh_token
            ),
        )

    async def refresh(self, credential: Credential) -> Credential:
        """Refresh without probing; used by the explicit refresh route."""
        if not credential.refresh_token:
            raise MissingCredentialError("No refresh token found")
        refreshed = await self._refresh(credential.refresh_token)
        return credential.with_refreshed(
            access_token=refreshed.access_token,
            expires_at=refreshed.expires_at,
            expires_in=refreshed.expires_in,
            refresh_token=refreshed.refresh_token,
        )

    async def _probe(self, access_token: str) -> dict:
        return await self._fetch_identity_fn(access_token, client=self._client)

    async def _refresh(self, refresh_token: str) -> spotify_oauth.TokenResponse:
        try:
            refreshed = await self._refresh_token_fn(
                client_id=self.client_id,
                client_secret=self.client_secret,
                refresh_token=refresh_token,
                client=self._client,
            )
        except SpotifyAPIError as error:
            if error.status_code in REFRESH_REJECTED_STATUSES:
                LOGGER.warning("Refresh token rejected: %s", error)
                raise InvalidRefreshTokenError() from error
            LOGGER.warning("Token refresh failed upstream: %s", error)
            raise UpstreamUnavailableError() from error

        # expires_at is recomputed against the guard clock, not the parse time.
        refreshed.expires_at = self._clock() + refreshed.expires_in
        return refreshed


def auth_error_response(error: AuthError) -> JSONResponse:
    payload = {"error": str(error), "code": error.code}
    if error.is_auth_failure:
        payload["authenticated"] = False
    return JSONResponse(payload, status_code=error.status_code)


def guarded(guard: TokenGuard, cookie_policy: CookiePolicy):
    """Run ``guard`` before a Starlette endpoint.

    The endpoint only executes after a successful guard run and finds the
    credential and the ``/v1/me`` identity on ``request.state``. A refreshed
    credential is written back to the response cookies.
    """

    def decorator(endpoint):
        @functools.wraps(endpoint)
        async def wrapper(request: Request) -> Response:
            credential = credential_from_cookies(request.cookies)
            try:
                outcome = await guard.authenticate(credential)
            except AuthError as error:
                response = auth_error_response(error)
                if isinstance(error, InvalidRefreshTokenError):
                    cookie_policy.clear_credential(response)
                return response

            request.state.credential = outcome.credential
            request.state.identity = outcome.identity
            response = await endpoint(request)
            if outcome.refreshed:
                cookie_policy.write_credential(
                    response,
                    outcome.credential,
                    include_refresh_token=outcome.refresh_token_rotated,
                    now=guard.now(),
                )
            return response

        return wrapper

    return decorator
