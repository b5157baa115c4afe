from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import AnyHttpUrl, ValidationError

from .constants import DEFAULT_CORS_ORIGINS, DEFAULT_SCOPES, LOGGER

REQUIRED_ENV = ("CLIENT_ID", "CLIENT_SECRET", "REDIRECT_URI")


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv_env(key: str) -> set[str]:
    raw = os.getenv(key, "")
    if not raw.strip():
        return set()
    return {item.strip() for item in raw.split(",") if item.strip()}


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")
    if value <= 0:
        raise RuntimeError(f"{key} must be greater than zero.")
    return value


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    from dotenv import load_dotenv

    load_dotenv(env_path, override=False)


def validate_env() -> None:
    missing = [key for key in REQUIRED_ENV if not os.getenv(key, "").strip()]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    redirect_uri = os.getenv("REDIRECT_URI", "").strip()
    try:
        AnyHttpUrl(redirect_uri)
    except ValidationError as error:
        raise RuntimeError(
            "REDIRECT_URI must be an absolute http(s) URL (for example: "
            "http://localhost:3000/auth/callback)."
        ) from error


def cookie_secure_enabled() -> bool:
    if is_truthy(os.getenv("COOKIE_SECURE")):
        return True
    return os.getenv("APP_ENV", "development").strip().lower() == "production"


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("SPOTIFY_PROXY_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled


@dataclass
class Settings:
    client_id: str
    client_secret: str
    redirect_uri: str
    scopes: list[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    timeout: float = 10.0
    cors_origins: set[str] = field(default_factory=lambda: set(DEFAULT_CORS_ORIGINS))
    cookie_secure: bool = False
    static_dir: Path = Path("public")
    debug: bool = False

    @classmethod
    def from_env(cls, *, debug: bool = False) -> "Settings":
        validate_env()
        scopes = os.getenv("SPOTIFY_SCOPES", "").split() or list(DEFAULT_SCOPES)
        return cls(
            client_id=os.getenv("CLIENT_ID", "").strip(),
            client_secret=os.getenv("CLIENT_SECRET", "").strip(),
            redirect_uri=os.getenv("REDIRECT_URI", "").strip(),
            scopes=scopes,
            timeout=_get_env_float("SPOTIFY_TIMEOUT", 10.0),
            cors_origins=set(DEFAULT_CORS_ORIGINS) | parse_csv_env("CORS_ORIGINS"),
            cookie_secure=cookie_secure_enabled(),
            static_dir=Path(os.getenv("STATIC_DIR", "public")),
            debug=debug,
        )
