"""
Central configuration via pydantic-settings.
All secrets are read from environment variables / .env file.
"""
from __future__ import annotations

import json
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Telegram ──────────────────────────────────────────────────────────────
    BOT_TOKEN: str

    # Raw comma-separated Telegram IDs, e.g. "123,456"
    ADMIN_IDS: str = ""
    STAFF_IDS: str = ""   # registrars + gate scanners

    # ── Code store ────────────────────────────────────────────────────────────
    # No default: the bot refuses to start without a store.
    DATABASE_URL: str

    @property
    def async_database_url(self) -> str:
        """
        Railway / Heroku inject DATABASE_URL as 'postgresql://...'
        SQLAlchemy async requires 'postgresql+asyncpg://...'
        """
        url = self.DATABASE_URL
        if url.startswith("postgresql://") or url.startswith("postgres://"):
            return url.replace("://", "+asyncpg://", 1).replace("postgres+", "postgresql+", 1)
        return url

    # ── Public verify page ────────────────────────────────────────────────────
    PUBLIC_BASE_URL: Optional[str] = None
    WEB_HOST: str = "0.0.0.0"
    WEB_PORT: int = 8080

    @property
    def verify_base_url(self) -> str:
        """Base for verify links: explicit override, else the web server origin."""
        if self.PUBLIC_BASE_URL:
            return self.PUBLIC_BASE_URL
        host = "localhost" if self.WEB_HOST in ("0.0.0.0", "") else self.WEB_HOST
        return f"http://{host}:{self.WEB_PORT}"

    # ── Behaviour ─────────────────────────────────────────────────────────────
    EXPORT_DATE_FORMAT: str = "%m/%d/%Y"
    SCAN_BUFFER_SIZE: int = 16
    SCAN_HISTORY_LIMIT: int = 200
    FEED_DEBOUNCE_SECONDS: float = 0.5

    # ── Google Sheets (optional) ──────────────────────────────────────────────
    GOOGLE_CREDENTIALS_JSON: Optional[str] = None
    GOOGLE_SPREADSHEET_ID: Optional[str] = None

    # ─────────────────────────────────────────────────────────────────────────

    @property
    def admin_ids_list(self) -> list[int]:
        """Parse ADMIN_IDS env var to a list of integers."""
        return _parse_ids(self.ADMIN_IDS)

    @property
    def staff_ids_list(self) -> list[int]:
        return _parse_ids(self.STAFF_IDS)

    @property
    def google_credentials(self) -> dict:
        """Deserialize Google service-account credentials."""
        if self.GOOGLE_CREDENTIALS_JSON:
            return json.loads(self.GOOGLE_CREDENTIALS_JSON)
        return {}

    @property
    def sheets_enabled(self) -> bool:
        return bool(self.GOOGLE_CREDENTIALS_JSON and self.GOOGLE_SPREADSHEET_ID)


def _parse_ids(raw: str) -> list[int]:
    if not raw:
        return []
    return [int(x.strip()) for x in raw.split(",") if x.strip().isdigit()]


@lru_cache
def get_settings() -> Settings:
    """Load settings once. Raises pydantic.ValidationError when required vars are missing."""
    return Settings()
