from __future__ import annotations

import urllib.parse


def fragment_redirect_url(path: str, params: dict[str, str]) -> str:
    """``/#error=state_mismatch`` style URLs read by the browser client."""
    return f"{path}#{urllib.parse.urlencode(params)}"
