from __future__ import annotations


class SpotifyAPIError(RuntimeError):
    """Raised for non-2xx responses, unusable payloads and transport failures.

    ``status_code`` is ``None`` when no HTTP response was received.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class AuthError(RuntimeError):
    code = "auth_error"
    status_code = 401
    default_message = "Authentication failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code == 401


class MissingCredentialError(AuthError):
    code = "missing_credential"
    default_message = "Missing tokens"


class InvalidRefreshTokenError(AuthError):
    code = "invalid_refresh_token"
    default_message = "Invalid refresh token"


class UpstreamUnavailableError(AuthError):
    code = "upstream_unavailable"
    status_code = 502
    default_message = "Spotify is unavailable. Please try again later."


class StateMismatchError(AuthError):
    code = "state_mismatch"
    status_code = 400
    default_message = "State mismatch"


class InvalidAuthorizationCodeError(AuthError):
    code = "invalid_token"
    status_code = 400
    default_message = "Invalid authorization code"
