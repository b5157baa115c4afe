from __future__ import annotations

import hmac
import time

import httpx

from auth import spotify_oauth
from auth.errors import InvalidAuthorizationCodeError, SpotifyAPIError, StateMismatchError
from auth.models import Credential
from spotproxy.constants import DEFAULT_SCOPES, LOGGER


def states_match(returned_state: str | None, stored_state: str | None) -> bool:
    if not returned_state or not stored_state:
        return False
    return hmac.compare_digest(returned_state.encode(), stored_state.encode())


class LoginFlow:
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: list[str] | None = None,
        show_dialog: bool = True,
        client: httpx.AsyncClient | None = None,
        exchange_code_fn=spotify_oauth.exchange_code,
        clock=time.time,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = scopes or list(DEFAULT_SCOPES)
        self.show_dialog = show_dialog
        self._client = client
        self._exchange_code_fn = exchange_code_fn
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def begin_login(self) -> tuple[str, str]:
        state = spotify_oauth.generate_state()
        url = spotify_oauth.build_authorization_url(
            client_id=self.client_id,
            redirect_uri=self.redirect_uri,
            scopes=self.scopes,
            state=state,
            show_dialog=self.show_dialog,
        )
        return url, state

    async def complete_login(
        self,
        code: str | None,
        returned_state: str | None,
        stored_state: str | None,
    ) -> Credential:
        if not states_match(returned_state, stored_state):
            LOGGER.warning(
                "State mismatch on callback (state=%s, stored=%s)",
                "present" if returned_state else "missing",
                "present" if stored_state else "missing",
            )
            raise StateMismatchError()

        if not code:
            raise InvalidAuthorizationCodeError("Missing authorization code")

        try:
            exchanged = await self._exchange_code_fn(
                client_id=self.client_id,
                client_secret=self.client_secret,
                code=code,
                redirect_uri=self.redirect_uri,
                client=self._client,
            )
        except SpotifyAPIError as error:
            LOGGER.warning("Authorization code exchange failed: %s", error)
            raise InvalidAuthorizationCodeError() from error

        LOGGER.info("Token exchange successful (expires_in=%s)", exchanged.expires_in)
        return Credential(
            access_token=exchanged.access_token,
            refresh_token=exchanged.refresh_token,
            expires_at=self._clock() + exchanged.expires_in,
            expires_in=exchanged.expires_in,
        )
