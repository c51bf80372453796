"""
Tests — CSV export and the Google Sheets layout (no network).
"""
from __future__ import annotations

import csv
import io
from datetime import date, datetime, timezone

from fancard.models.models import Code
from fancard.services.code_service import create_codes, list_codes, register_code
from fancard.services.export_service import CSV_HEADER, codes_to_csv, export_filename
from fancard.services.sheets_service import COLOUR, FIRST_DATA_ROW, build_sheet


def _code(value: str, registered: bool = False, **kwargs) -> Code:
    return Code(
        code=value,
        created_at=datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc),
        is_registered=registered,
        **kwargs,
    )


# ─────────────────────────── CSV ──────────────────────────────────────────────

class TestCodesToCsv:
    def test_header_only_when_empty(self) -> None:
        assert codes_to_csv([]) == "Code,Created Date,Status,Registered Date,Name,Email\n"

    def test_rows(self) -> None:
        codes = [
            _code("FC1"),
            _code(
                "FC2", registered=True,
                registered_at=datetime(2024, 3, 7, 18, 30, tzinfo=timezone.utc),
                fan_name="Jane Doe", fan_email="jane@example.com",
            ),
        ]
        rows = list(csv.reader(io.StringIO(codes_to_csv(codes))))
        assert rows[0] == CSV_HEADER
        assert rows[1] == ["FC1", "03/05/2024", "Pending", "", "", ""]
        assert rows[2] == ["FC2", "03/05/2024", "Registered", "03/07/2024", "Jane Doe", "jane@example.com"]

    def test_custom_date_format(self) -> None:
        rows = list(csv.reader(io.StringIO(codes_to_csv([_code("FC1")], "%Y-%m-%d"))))
        assert rows[1][1] == "2024-03-05"

    def test_names_with_commas_are_quoted(self) -> None:
        c = _code("FC1", registered=True, fan_name='Doe, Jane "JD"')
        text = codes_to_csv([c])
        assert '"Doe, Jane ""JD"""' in text
        assert list(csv.reader(io.StringIO(text)))[1][4] == 'Doe, Jane "JD"'

    async def test_from_store(self, async_session) -> None:
        codes = await create_codes(async_session, 3)
        await register_code(async_session, codes[0].code, "Jane Doe")
        await async_session.commit()

        rows = list(csv.reader(io.StringIO(codes_to_csv(await list_codes(async_session)))))
        assert len(rows) == 4
        assert [r[2] for r in rows[1:]] == ["Registered", "Pending", "Pending"]

    def test_filename(self) -> None:
        assert export_filename(date(2024, 3, 5)) == "fancard_codes_2024-03-05.csv"


# ─────────────────────────── Sheets layout ────────────────────────────────────

class TestBuildSheet:
    def test_layout_and_highlighting(self) -> None:
        codes = [_code("FC1"), _code("FC2", registered=True, fan_name="Jane")]
        rows, requests = build_sheet(
            codes, sheet_id=7, date_format="%m/%d/%Y",
            now=datetime(2024, 3, 8, 12, 0, tzinfo=timezone.utc),
        )

        assert rows[FIRST_DATA_ROW - 2] == CSV_HEADER
        assert rows[FIRST_DATA_ROW - 1][0] == "FC1"
        assert rows[FIRST_DATA_ROW][0] == "FC2"
        assert "всего 2, зарегистрировано 1" in rows[1][0]

        # header + one registered row
        assert len(requests) == 2
        highlight = requests[1]["repeatCell"]
        assert highlight["range"]["sheetId"] == 7
        assert highlight["range"]["startRowIndex"] == FIRST_DATA_ROW       # 0-indexed row of FC2
        assert highlight["cell"]["userEnteredFormat"]["backgroundColor"] == COLOUR["registered"]
