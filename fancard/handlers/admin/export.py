"""
Admin export handler: CSV download + optional Google Sheets mirror.
"""
import logging

from aiogram import F, Router
from aiogram.enums import ParseMode
from aiogram.types import BufferedInputFile, CallbackQuery
from aiogram.utils.markdown import hcode, hlink
from sqlalchemy.ext.asyncio import AsyncSession

from fancard.config import Settings
from fancard.errors import FanCardError
from fancard.keyboards import AdminPanelCb, ExportCb, export_kb
from fancard.middlewares import IsAdmin
from fancard.services import LiveViews, codes_to_csv, code_stats, export_filename, list_codes
from fancard.services.sheets_service import export_to_sheets

logger = logging.getLogger(__name__)
router = Router(name="admin_export")
router.callback_query.filter(IsAdmin())


# ── Entry ─────────────────────────────────────────────────────────────────────

@router.callback_query(AdminPanelCb.filter(F.action == "export"))
async def cq_export_entry(
    callback: CallbackQuery,
    session: AsyncSession,
    settings: Settings,
    live_views: LiveViews,
) -> None:
    await live_views.close(callback.message.chat.id)
    stats = await code_stats(session)
    if stats.total == 0:
        await callback.answer("Нет кодов для экспорта.", show_alert=True)
        return

    await callback.message.edit_text(
        "📤 <b>Экспорт кодов</b>\n\n"
        f"🎫 Всего: <code>{stats.total}</code> (✅ {stats.registered} / ⏳ {stats.pending})\n\n"
        "Выберите формат:",
        parse_mode=ParseMode.HTML,
        reply_markup=export_kb(settings.sheets_enabled),
    )
    await callback.answer()


# ── CSV ───────────────────────────────────────────────────────────────────────

@router.callback_query(ExportCb.filter(F.action == "csv"))
async def cq_export_csv(callback: CallbackQuery, session: AsyncSession, settings: Settings) -> None:
    try:
        codes = await list_codes(session)
    except FanCardError as e:
        await callback.answer(e.message, show_alert=True)
        return

    payload  = codes_to_csv(codes, settings.EXPORT_DATE_FORMAT).encode("utf-8")
    filename = export_filename()
    await callback.message.answer_document(
        BufferedInputFile(payload, filename=filename),
        caption=f"📄 Экспортировано кодов: {len(codes)}",
    )
    logger.info("CSV export: %d codes → %s", len(codes), filename)
    await callback.answer()


# ── Google Sheets ─────────────────────────────────────────────────────────────

@router.callback_query(ExportCb.filter(F.action == "sheets"))
async def cq_export_sheets(callback: CallbackQuery, session: AsyncSession, settings: Settings) -> None:
    await callback.answer("⏳ Экспортирую…")
    codes = await list_codes(session)

    try:
        url = await export_to_sheets(codes, settings)
    except Exception as e:
        logger.exception("Sheets export failed: %s", e)
        await callback.message.answer(
            f"❌ Ошибка экспорта: {hcode(str(e))}",
            parse_mode=ParseMode.HTML,
        )
        return

    if url:
        await callback.message.answer(
            f"✅ <b>Экспорт завершён!</b>\n\n📊 {hlink('Открыть таблицу', url)}",
            parse_mode=ParseMode.HTML,
        )
    else:
        await callback.message.answer(
            "⚠️ Google Sheets не настроен. Проверьте переменные GOOGLE_CREDENTIALS_JSON и GOOGLE_SPREADSHEET_ID."
        )
