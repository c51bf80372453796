"""
Google Sheets export service.

Mirrors the code registry into a Google Spreadsheet using gspread-asyncio
(wraps gspread 6.x) for non-blocking I/O.

Sheet layout
------------
Row 1: Title
Row 2: Export timestamp + totals
Row 3: blank
Row 4: Column headers (same as the CSV export)
Row 5…: one row per code, registered rows highlighted green
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fancard.config import Settings
from fancard.models.models import Code
from fancard.services.export_service import CSV_HEADER, code_row

logger = logging.getLogger(__name__)

SHEET_TITLE = "FanCard Codes"
FIRST_DATA_ROW = 5   # 1-indexed

# ── Colour palette (RGB 0-1 float for Sheets API) ────────────────────────────
COLOUR = {
    "header_bg":  {"red": 0.122, "green": 0.302, "blue": 0.184},   # club green
    "header_fg":  {"red": 1.0,   "green": 1.0,   "blue": 1.0},
    "registered": {"red": 0.851, "green": 0.937, "blue": 0.859},
}


async def export_to_sheets(codes: List[Code], settings: Settings) -> Optional[str]:
    """
    Replace the FanCard worksheet with the current registry.
    Returns the spreadsheet URL on success, None if Sheets is not configured.
    """
    if not settings.sheets_enabled:
        logger.warning("Google Sheets export requested but not configured.")
        return None

    import gspread_asyncio
    from google.oauth2.service_account import Credentials

    creds_info = settings.google_credentials
    scopes = [
        "https://spreadsheets.google.com/feeds",
        "https://www.googleapis.com/auth/drive",
    ]

    def _make_credentials():
        return Credentials.from_service_account_info(creds_info, scopes=scopes)

    agcm = gspread_asyncio.AsyncioGspreadClientManager(_make_credentials)
    agc  = await agcm.authorize()

    spreadsheet = await agc.open_by_key(settings.GOOGLE_SPREADSHEET_ID)

    # Create or clear the worksheet
    try:
        worksheet = await spreadsheet.worksheet(SHEET_TITLE)
        await worksheet.clear()
    except Exception:
        worksheet = await spreadsheet.add_worksheet(
            title=SHEET_TITLE, rows=max(len(codes) + 10, 100), cols=len(CSV_HEADER)
        )

    # In gspread-asyncio the underlying sync object is at .ws
    sheet_id = worksheet.ws.id

    all_rows, format_requests = build_sheet(codes, sheet_id, settings.EXPORT_DATE_FORMAT)

    # gspread 6.x: update(values, range_name)
    await worksheet.update(all_rows, "A1")

    # ── Apply formatting (best-effort) ────────────────────────────────────────
    if format_requests:
        try:
            await spreadsheet.batch_update({"requests": format_requests})
        except Exception as fmt_err:
            logger.warning("Could not apply formatting: %s", fmt_err)

    logger.info("Exported %d codes to Google Sheets", len(codes))
    return f"https://docs.google.com/spreadsheets/d/{settings.GOOGLE_SPREADSHEET_ID}"


def build_sheet(
    codes: List[Code],
    sheet_id: int,
    date_format: str,
    now: Optional[datetime] = None,
) -> tuple[list[list], list[dict]]:
    """Rows and formatting requests for the worksheet; no network involved."""
    now = now or datetime.now(timezone.utc)
    registered = sum(1 for c in codes if c.is_registered)

    all_rows: list[list] = [
        ["🎫 FanCard — реестр кодов"],
        [f"Экспорт: {now.strftime('%Y-%m-%d %H:%M')} UTC  |  "
         f"всего {len(codes)}, зарегистрировано {registered}, "
         f"ожидают {len(codes) - registered}"],
        [],
        list(CSV_HEADER),
    ]
    format_requests: list[dict] = [
        _fmt_range(sheet_id, 4, 1, 4, len(CSV_HEADER),
                   bg=COLOUR["header_bg"], fg=COLOUR["header_fg"], bold=True),
    ]

    for offset, code in enumerate(codes):
        all_rows.append(code_row(code, date_format))
        if code.is_registered:
            row = FIRST_DATA_ROW + offset
            format_requests.append(
                _fmt_range(sheet_id, row, 1, row, len(CSV_HEADER), bg=COLOUR["registered"])
            )
    return all_rows, format_requests


# ── Helpers ───────────────────────────────────────────────────────────────────

def _fmt_range(
    sheet_id: int,
    start_row: int,
    start_col: int,
    end_row: int,
    end_col: int,
    bg: Optional[dict] = None,
    fg: Optional[dict] = None,
    bold: bool = False,
) -> dict:
    """Build a Sheets API repeatCell request dict."""
    fmt: dict = {}
    if bg:
        fmt["backgroundColor"] = bg
    if fg or bold:
        fmt["textFormat"] = {}
        if fg:
            fmt["textFormat"]["foregroundColor"] = fg
        if bold:
            fmt["textFormat"]["bold"] = True

    return {
        "repeatCell": {
            "range": {
                "sheetId":          sheet_id,
                "startRowIndex":    start_row - 1,
                "endRowIndex":      end_row,
                "startColumnIndex": start_col - 1,
                "endColumnIndex":   end_col,
            },
            "cell": {"userEnteredFormat": fmt},
            "fields": "userEnteredFormat(backgroundColor,textFormat)",
        }
    }
