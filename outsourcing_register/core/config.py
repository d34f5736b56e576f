"""Application configuration loaded from environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# bcrypt cost bounds; below 10 is too cheap for stored credentials, above 15 makes login sluggish.
BCRYPT_ROUNDS_MIN = 10
BCRYPT_ROUNDS_MAX = 15


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"

    # Local data directory: default store, app-config.json and the remember-me session file live here.
    DATA_DIR: Path = Path("data")
    DATABASE_FILENAME: str = "suppliers.db"
    APP_CONFIG_FILENAME: str = "app-config.json"
    SESSION_STORE_FILENAME: str = "session.json"

    # Password hashing cost (bcrypt rounds)
    BCRYPT_ROUNDS: int = 12

    # "never": the bootstrap admin can never be deleted.
    # "when_other_admin": it can be deleted once another admin exists.
    SYSTEM_USER_DELETION_POLICY: Literal["never", "when_other_admin"] = "never"

    @field_validator("DATA_DIR")
    @classmethod
    def validate_data_dir(cls, v: Path) -> Path:
        if not str(v).strip():
            raise ValueError("DATA_DIR must be set and non-empty")
        return v.expanduser()

    @field_validator("DATABASE_FILENAME")
    @classmethod
    def validate_database_filename(cls, v: str) -> str:
        v = v.strip()
        if not v or not v.lower().endswith(".db"):
            raise ValueError("DATABASE_FILENAME must be a file name ending with .db")
        if "/" in v or "\\" in v:
            raise ValueError("DATABASE_FILENAME must not contain path separators")
        return v

    @field_validator("APP_CONFIG_FILENAME", "SESSION_STORE_FILENAME")
    @classmethod
    def validate_json_filename(cls, v: str) -> str:
        v = v.strip()
        if not v or not v.lower().endswith(".json"):
            raise ValueError("Config and session file names must end with .json")
        return v

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if v < BCRYPT_ROUNDS_MIN or v > BCRYPT_ROUNDS_MAX:
            raise ValueError(
                f"BCRYPT_ROUNDS must be between {BCRYPT_ROUNDS_MIN} and {BCRYPT_ROUNDS_MAX}"
            )
        return v

    @property
    def default_database_path(self) -> Path:
        return self.DATA_DIR / self.DATABASE_FILENAME

    @property
    def app_config_path(self) -> Path:
        return self.DATA_DIR / self.APP_CONFIG_FILENAME

    @property
    def session_store_path(self) -> Path:
        return self.DATA_DIR / self.SESSION_STORE_FILENAME


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()
