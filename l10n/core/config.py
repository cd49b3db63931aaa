from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file explicitly
ENV_FILE_NAME = ".env"
env_path = Path(__file__).parent.parent.parent / ENV_FILE_NAME
load_dotenv(env_path, override=False)


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/l10n.db"
    GLOBAL_LOCALE: str = "en-US"
    DEBUG: bool = False
    LOG_FILE: bool = False

    @field_validator("GLOBAL_LOCALE", mode="before")
    @classmethod
    def parse_global_locale(cls, v):  # type: ignore
        # An empty value would make every row look locale specific
        if v in (None, ""):
            return "en-US"
        return str(v).strip()

    model_config = SettingsConfigDict(
        env_file=ENV_FILE_NAME,
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings(
    DATABASE_URL=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/l10n.db"),
    GLOBAL_LOCALE=os.getenv("GLOBAL_LOCALE", "en-US"),
)
