"""Configuration constants for the CRPT client."""

import os
from datetime import timedelta

from .errors import ConfigurationError


def _env_number(name: str, default: float, cast: type = float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


# Override via CRPT_BASE_URL (e.g. the sandbox host)
BASE_URL = os.getenv("CRPT_BASE_URL", "https://ismp.crpt.ru/api/v3").rstrip("/")

USER_AGENT = os.getenv("CRPT_USER_AGENT", "crptapi/0.1.0")

# API quota: REQUEST_LIMIT calls per WINDOW_SECONDS
REQUEST_LIMIT = int(_env_number("CRPT_REQUEST_LIMIT", 10, int))
WINDOW_SECONDS = _env_number("CRPT_WINDOW_SECONDS", 1.0)

# Issued tokens are accepted for 10 hours
TOKEN_LIFETIME = timedelta(hours=_env_number("CRPT_TOKEN_LIFETIME_HOURS", 10.0))

# Endpoint paths, relative to BASE_URL
AUTH_KEY_PATH = "/auth/cert/key"
AUTH_TOKEN_PATH = "/auth/cert/"
DOCUMENT_CREATE_PATH = "/lk/documents/create"

SUCCESS_STATUS_CODES = frozenset({200, 201, 202})

# HTTP client settings
CONNECT_TIMEOUT = 30.0
READ_TIMEOUT = 60.0
