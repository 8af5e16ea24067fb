"""Runtime settings for the Safari Zone server, read from SAFARI_* variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_PORT = 8000


@dataclass(frozen=True)
class BackendSettings:
    server_salt: str
    database_url: str | None
    host: str
    port: int
    admin_token: str
    log_level: str


def _read_port() -> int:
    raw = os.getenv("SAFARI_PORT", str(DEFAULT_PORT))
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"SAFARI_PORT must be an integer, got {raw!r}") from None


def load_settings() -> BackendSettings:
    return BackendSettings(
        server_salt=os.getenv("SAFARI_SERVER_SALT", "dev-salt"),
        database_url=os.getenv("SAFARI_DATABASE_URL") or None,
        host=os.getenv("SAFARI_HOST", "127.0.0.1"),
        port=_read_port(),
        admin_token=os.getenv("SAFARI_ADMIN_TOKEN", "dev-admin"),
        log_level=os.getenv("SAFARI_LOG_LEVEL", "INFO").upper(),
    )
