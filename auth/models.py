from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Credential:
    access_token: str | None
    refresh_token: str | None
    expires_at: float | None = None
    expires_in: int | None = None

    def is_complete(self) -> bool:
        return bool(self.access_token) and bool(self.refresh_token)

    def with_refreshed(
        self,
        access_token: str,
        expires_at: float,
        refresh_token: str | None = None,
        expires_in: int | None = None,
    ) -> "Credential":
        return replace(
            self,
            access_token=access_token,
            expires_at=expires_at,
            expires_in=expires_in,
            refresh_token=refresh_token or self.refresh_token,
        )


@dataclass(frozen=True)
class AuthOutcome:
    """Result of a successful guard run.

    When ``refreshed`` is set the caller owns persisting ``credential`` (cookie
    reissue) before continuing the request.
    """

    identity: dict
    credential: Credential
    refreshed: bool = False
    refresh_token_rotated: bool = False
