from __future__ import annotations

import httpx

from .constants import LOGGER


def _redact_url(url: httpx.URL) -> str:
    return str(url.copy_with(query=None))


def build_http_client(
    *,
    timeout: float,
    debug_enabled: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Shared connection pool for every upstream call.

    It carries no credentials; each call supplies its own bearer token or
    client auth.
    """

    async def log_request(request: httpx.Request) -> None:
        if not debug_enabled:
            return
        LOGGER.info("Spotify request %s %s", request.method, _redact_url(request.url))

    async def log_response(response: httpx.Response) -> None:
        if not debug_enabled:
            return
        LOGGER.info(
            "Spotify response %s %s -> %s",
            response.request.method,
            _redact_url(response.request.url),
            response.status_code,
        )
        if response.status_code >= 400:
            body = await response.aread()
            text = body.decode("utf-8", errors="replace")
            if len(text) > 1000:
                text = text[:1000] + "...<truncated>"
            LOGGER.warning("Spotify error body: %s", text)

    return httpx.AsyncClient(
        timeout=timeout,
        transport=transport,
        event_hooks={
            "request": [log_request],
            "response": [log_response],
        },
    )


def friendly_error_message(status_code: int | None, action: str, resource: str) -> str:
    if status_code == 401:
        return "Authentication failed. Your Spotify session may have expired."
    if status_code == 403:
        return (
            "Permission denied. Make sure you have granted access to "
            f"{resource}."
        )
    if status_code == 404:
        return f"Failed to {action}. The requested resource was not found on Spotify."
    if status_code == 429:
        return "Rate limit exceeded. Please try again later."
    return f"Failed to {action}"


def proxied_status(status_code: int | None) -> int:
    """Map an upstream failure status onto the status returned to the browser."""
    if status_code in {401, 403, 404, 429}:
        return status_code
    return 502
