from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from auth.cookies import CookiePolicy, credential_from_cookies
from auth.errors import (
    InvalidAuthorizationCodeError,
    InvalidRefreshTokenError,
    MissingCredentialError,
    StateMismatchError,
    UpstreamUnavailableError,
)
from auth.guard import TokenGuard, auth_error_response
from auth.login_flow import LoginFlow
from auth.urls import fragment_redirect_url
from spotproxy.constants import AUTH_STATE_COOKIE, LOGGER

DASHBOARD_PATH = "/dashboard"


class OAuthServer:
    """Browser-facing half of the authorization-code flow.

    Tokens only ever travel to the browser as HTTP-only cookies.
    """

    def __init__(
        self,
        *,
        login_flow: LoginFlow,
        guard: TokenGuard,
        cookie_policy: CookiePolicy | None = None,
        home_path: str = "/",
        dashboard_path: str = DASHBOARD_PATH,
    ) -> None:
        self.login_flow = login_flow
        self.guard = guard
        self.cookie_policy = cookie_policy or CookiePolicy()
        self.home_path = home_path
        self.dashboard_path = dashboard_path

    # -- routes ----------------------------------------------------------------

    def routes(self) -> list[Route]:
        return [
            Route("/auth/login", self._handle_login, methods=["GET"]),
            Route("/auth/callback", self._handle_callback, methods=["GET"]),
            Route("/auth/refresh", self._handle_refresh, methods=["GET"]),
            # Root-level paths registered with the provider by older deployments.
            Route("/login", self._handle_login, methods=["GET"]),
            Route("/callback", self._handle_callback, methods=["GET"]),
        ]

    # -- handlers --------------------------------------------------------------

    async def _handle_login(self, request: Request) -> Response:
        del request
        authorize_url, state = self.login_flow.begin_login()
        LOGGER.info("Redirecting to Spotify authorize URL")
        response = RedirectResponse(url=authorize_url, status_code=302)
        self.cookie_policy.write_state(response, state)
        return response

    async def _handle_callback(self, request: Request) -> Response:
        code = request.query_params.get("code")
        state = request.query_params.get("state")
        stored_state = request.cookies.get(AUTH_STATE_COOKIE)

        LOGGER.info(
            "Received callback (code=%s, state=%s, stored_state=%s)",
            "present" if code else "missing",
            "present" if state else "missing",
            "present" if stored_state else "missing",
        )

        provider_error = request.query_params.get("error")
        if provider_error:
            LOGGER.warning("Spotify authorization returned an error: %s", provider_error)
            return self._error_redirect(provider_error)

        try:
            credential = await self.login_flow.complete_login(code, state, stored_state)
        except StateMismatchError as error:
            return self._error_redirect(error.code)
        except InvalidAuthorizationCodeError as error:
            return self._error_redirect(error.code)

        response = RedirectResponse(url=self.dashboard_path, status_code=302)
        self.cookie_policy.clear_state(response)
        self.cookie_policy.write_credential(response, credential, now=self.login_flow.now())
        return response

    async def _handle_refresh(self, request: Request) -> Response:
        credential = credential_from_cookies(request.cookies)
        try:
            refreshed = await self.guard.refresh(credential)
        except MissingCredentialError as error:
            return JSONResponse({"error": str(error)}, status_code=401)
        except InvalidRefreshTokenError as error:
            response = JSONResponse({"error": str(error)}, status_code=401)
            self.cookie_policy.clear_credential(response)
            return response
        except UpstreamUnavailableError as error:
            return auth_error_response(error)

        response = JSONResponse({"refreshed": True, "expires_in": refreshed.expires_in})
        self.cookie_policy.write_credential(
            response,
            refreshed,
            include_refresh_token=refreshed.refresh_token != credential.refresh_token,
            now=self.guard.now(),
        )
        return response

    # -- helpers ---------------------------------------------------------------

    def _error_redirect(self, error_code: str) -> Response:
        response = RedirectResponse(
            url=fragment_redirect_url(self.home_path, {"error": error_code}),
            status_code=302,
        )
        self.cookie_policy.clear_state(response)
        return response
