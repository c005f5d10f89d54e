# lurdinha/settings.py
from __future__ import annotations

from pydantic import BaseModel
import os

from lurdinha.domain.common.types import NoMajorityPolicy


class Settings(BaseModel):
    APP_NAME: str = "lurdinha-server"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    ROOM_TTL_SEC: int = 6 * 3600
    # Ask Redis for keyspace expiry events so listeners learn about expired rooms
    ROOM_EXPIRY_EVENTS: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Dev
    LOG_LEVEL: str = "INFO"

    # WebSocket origin policy (comma-separated)
    WS_ALLOWED_ORIGINS: str = "http://localhost:8081,http://127.0.0.1:8081,null"
    # Dev helper: allow any private LAN IP (Expo on a phone)
    WS_ALLOW_LAN_ORIGINS: bool = True

    # Game
    # What happens when every submitted answer is different
    NO_MAJORITY_POLICY: NoMajorityPolicy = "all_safe"
    DEFAULT_TIME_PER_ROUND: int = 20
    DEFAULT_TOTAL_ROUNDS: int = 5
    DEFAULT_THEME: str = "Geral"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y", "on")


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "lurdinha-server"),
        REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        ROOM_TTL_SEC=int(os.getenv("ROOM_TTL_SEC", str(6 * 3600))),
        ROOM_EXPIRY_EVENTS=_env_bool("ROOM_EXPIRY_EVENTS", "true"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),

        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:8081,http://127.0.0.1:8081,null",
        ),
        WS_ALLOW_LAN_ORIGINS=_env_bool("WS_ALLOW_LAN_ORIGINS", "true"),

        NO_MAJORITY_POLICY=os.getenv("NO_MAJORITY_POLICY", "all_safe"),
        DEFAULT_TIME_PER_ROUND=int(os.getenv("DEFAULT_TIME_PER_ROUND", "20")),
        DEFAULT_TOTAL_ROUNDS=int(os.getenv("DEFAULT_TOTAL_ROUNDS", "5")),
        DEFAULT_THEME=os.getenv("DEFAULT_THEME", "Geral"),
    )
