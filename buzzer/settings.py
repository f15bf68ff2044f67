# buzzer/settings.py
from __future__ import annotations

from pydantic import BaseModel, Field
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y", "on")


class Settings(BaseModel):
    APP_NAME: str = "buzzer-server"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" | "json"

    # WebSocket origin policy (comma-separated, "*" = accept any origin)
    WS_ALLOWED_ORIGINS: str = "*"
    # Also accept origins whose host is a private LAN IP
    WS_ALLOW_LAN_ORIGINS: bool = False

    # Room rules
    ENFORCE_HOST_ROLE: bool = False
    NAME_MAX_LEN: int = Field(default=64, ge=1, le=256)


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "buzzer-server"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FORMAT=os.getenv("LOG_FORMAT", "console").lower(),
        WS_ALLOWED_ORIGINS=os.getenv("WS_ALLOWED_ORIGINS", "*"),
        WS_ALLOW_LAN_ORIGINS=_env_bool("WS_ALLOW_LAN_ORIGINS", "false"),
        ENFORCE_HOST_ROLE=_env_bool("ENFORCE_HOST_ROLE", "false"),
        NAME_MAX_LEN=int(os.getenv("NAME_MAX_LEN", "64")),
    )
