"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_DATABASE_URL = "sqlite:///./data/gratitude.db"


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class Settings:
    """Application settings.  Use :meth:`from_env` outside tests."""

    database_url: str = DEFAULT_DATABASE_URL
    max_length: int = 300
    sweep_interval: int = 300  # seconds; 0 disables the sweep task
    max_age: int = 3600  # seconds before a message is deactivated
    sync_window: int = 30  # seconds of history sent on socket sync
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        origins = os.environ.get("GRATITUDE_CORS_ORIGINS", "*")
        return cls(
            database_url=(
                os.environ.get("GRATITUDE_DATABASE_URL")
                or os.environ.get("DATABASE_URL")
                or DEFAULT_DATABASE_URL
            ),
            max_length=_int_env("GRATITUDE_MAX_LENGTH", 300),
            sweep_interval=_int_env("GRATITUDE_SWEEP_INTERVAL", 300),
            max_age=_int_env("GRATITUDE_MAX_AGE", 3600),
            sync_window=_int_env("GRATITUDE_SYNC_WINDOW", 30),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
            log_level=os.environ.get("GRATITUDE_LOG_LEVEL", "INFO").upper(),
        )
