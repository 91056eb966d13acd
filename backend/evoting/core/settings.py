from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field


class Settings(BaseModel):
    admin_address: str = Field(default="admin")
    jwt_secret: str = Field(default="your-secret-key")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60)
    database_url: Optional[str] = Field(default=None)
    log_file: str = Field(default="election.log")
    write_rate_limit: str = Field(default="10/second;120/minute")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name, default)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _load_settings() -> Settings:
    return Settings(
        admin_address=_env("ELECTION_ADMIN", "admin"),
        jwt_secret=_env("JWT_SECRET", "your-secret-key"),
        jwt_algorithm=_env("JWT_ALGORITHM", "HS256"),
        access_token_expire_minutes=int(_env("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
        database_url=_env("DATABASE_URL"),
        log_file=_env("ELECTION_LOG_FILE", "election.log"),
        write_rate_limit=_env("WRITE_RATE_LIMIT", "10/second;120/minute"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return _load_settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = ["Settings", "get_settings", "reload_settings"]
