from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass

from starlette.responses import Response

from auth.models import Credential
from spotproxy.constants import (
    ACCESS_TOKEN_COOKIE,
    AUTH_STATE_COOKIE,
    AUTH_STATE_MAX_AGE,
    REFRESH_TOKEN_COOKIE,
    REFRESH_TOKEN_MAX_AGE,
)


def credential_from_cookies(cookies: Mapping[str, str]) -> Credential:
    return Credential(
        access_token=cookies.get(ACCESS_TOKEN_COOKIE) or None,
        refresh_token=cookies.get(REFRESH_TOKEN_COOKIE) or None,
    )


@dataclass
class CookiePolicy:
    secure: bool = False
    samesite: str = "lax"
    path: str = "/"

    def _set(self, response: Response, key: str, value: str, max_age: int) -> None:
        response.set_cookie(
            key,
            value,
            max_age=max_age,
            path=self.path,
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )

    def _delete(self, response: Response, key: str) -> None:
        response.delete_cookie(
            key,
            path=self.path,
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )

    def write_credential(
        self,
        response: Response,
        credential: Credential,
        *,
        include_refresh_token: bool = True,
        now: float | None = None,
    ) -> None:
        current = time.time() if now is None else now
        if credential.access_token:
            max_age = 3600
            if credential.expires_in is not None:
                max_age = credential.expires_in
            elif credential.expires_at is not None:
                max_age = max(0, round(credential.expires_at - current))
            self._set(response, ACCESS_TOKEN_COOKIE, credential.access_token, max_age)
        if include_refresh_token and credential.refresh_token:
            self._set(
                response,
                REFRESH_TOKEN_COOKIE,
                credential.refresh_token,
                REFRESH_TOKEN_MAX_AGE,
            )

    def clear_credential(self, response: Response) -> None:
        self._delete(response, ACCESS_TOKEN_COOKIE)
        self._delete(response, REFRESH_TOKEN_COOKIE)

    def write_state(self, response: Response, state: str) -> None:
        self._set(response, AUTH_STATE_COOKIE, state, AUTH_STATE_MAX_AGE)

    def clear_state(self, response: Response) -> None:
        self._delete(response, AUTH_STATE_COOKIE)
