"""
Tests — Settings parsing (pydantic-settings).
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from fancard.config import Settings


def _settings(**overrides) -> Settings:
    values = {"BOT_TOKEN": "t", "DATABASE_URL": "sqlite+aiosqlite:///x.db"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_missing_database_url_is_fatal(self, monkeypatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None, BOT_TOKEN="t")

    @pytest.mark.parametrize("raw", ["postgresql://u:p@h/db", "postgres://u:p@h/db"])
    def test_postgres_url_rewritten_for_asyncpg(self, raw: str) -> None:
        assert _settings(DATABASE_URL=raw).async_database_url == "postgresql+asyncpg://u:p@h/db"

    def test_other_urls_untouched(self) -> None:
        assert _settings().async_database_url == "sqlite+aiosqlite:///x.db"

    def test_id_lists(self) -> None:
        s = _settings(ADMIN_IDS="1, 2,,x", STAFF_IDS="3")
        assert s.admin_ids_list == [1, 2]
        assert s.staff_ids_list == [3]

    def test_verify_base_url(self) -> None:
        assert _settings(WEB_PORT=9000).verify_base_url == "http://localhost:9000"
        assert _settings(PUBLIC_BASE_URL="https://club.example").verify_base_url == "https://club.example"

    def test_defaults(self) -> None:
        s = _settings()
        assert s.EXPORT_DATE_FORMAT == "%m/%d/%Y"
        assert s.SCAN_BUFFER_SIZE == 16
        assert not s.sheets_enabled
        assert _settings(GOOGLE_CREDENTIALS_JSON="{}", GOOGLE_SPREADSHEET_ID="abc").sheets_enabled
