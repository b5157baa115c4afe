from __future__ import annotations

import logging

LOGGER = logging.getLogger("spotproxy")
APP_VERSION = "0.1.0"
SERVICE_NAME = "spotify-cookie-proxy"

SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"
AUTH_STATE_COOKIE = "spotify_auth_state"

REFRESH_TOKEN_MAX_AGE = 30 * 24 * 60 * 60
AUTH_STATE_MAX_AGE = 60 * 60

DEFAULT_SCOPES = [
    "user-read-private",
    "user-read-email",
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "user-read-recently-played",
    "user-top-read",
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-public",
    "playlist-modify-private",
]

DEFAULT_CORS_ORIGINS = {"http://localhost:3000"}
