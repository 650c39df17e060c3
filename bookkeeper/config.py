import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env

DEFAULT_DATABASE_URL = "sqlite:///./.storage/bookkeeper.db"
DEFAULT_UPLOAD_DIR = "./.storage/uploads"


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    upload_dir: str = DEFAULT_UPLOAD_DIR
    session_ttl_hours: int = 168
    default_admin_username: str = "admin"
    default_admin_password: str = "admin"
    cors_origins: List[str] = field(default_factory=list)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            upload_dir=os.getenv("UPLOAD_DIR", DEFAULT_UPLOAD_DIR),
            session_ttl_hours=int(os.getenv("SESSION_TTL_HOURS", "168")),
            default_admin_username=os.getenv("DEFAULT_ADMIN_USERNAME", "admin"),
            default_admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD", "admin"),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process; call get_settings.cache_clear() to reload."""
    return Settings.from_env()
