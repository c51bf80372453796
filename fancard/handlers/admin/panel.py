"""
Admin dashboard and scan log.

The dashboard message refreshes itself while it is the chat's current
screen: a LiveViews watcher re-reads the stats after every committed burst
of code changes. Navigating anywhere else closes the watcher.
"""
import logging

from aiogram import Bot, F, Router, html
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder
from aiogram.utils.markdown import hcode
from sqlalchemy.ext.asyncio import AsyncSession

from fancard.config import Settings
from fancard.keyboards import AdminPanelCb, admin_main_menu
from fancard.middlewares import IsAdmin
from fancard.models import Database
from fancard.services import CodeStats, LiveViews, code_stats, fetch_scan_history

logger = logging.getLogger(__name__)
router = Router(name="admin_panel")
router.callback_query.filter(IsAdmin())

SCAN_LOG_PREVIEW = 25


def dashboard_text(stats: CodeStats) -> str:
    return (
        "⚡ <b>Панель администратора</b>\n\n"
        f"🎫 Всего кодов: <code>{stats.total}</code>\n"
        f"✅ Зарегистрировано: <code>{stats.registered}</code>\n"
        f"⏳ Ожидают регистрации: <code>{stats.pending}</code>\n\n"
        "Выберите раздел:"
    )


# ── Dashboard ─────────────────────────────────────────────────────────────────

@router.callback_query(AdminPanelCb.filter(F.action == "back"))
async def cq_admin_home(
    callback: CallbackQuery,
    bot: Bot,
    session: AsyncSession,
    database: Database,
    live_views: LiveViews,
) -> None:
    stats = await code_stats(session)
    await callback.message.edit_text(
        dashboard_text(stats),
        parse_mode=ParseMode.HTML,
        reply_markup=admin_main_menu(),
    )
    await callback.answer()

    chat_id    = callback.message.chat.id
    message_id = callback.message.message_id

    async def refresh() -> None:
        async with database.session() as s:
            fresh = await code_stats(s)
        try:
            await bot.edit_message_text(
                dashboard_text(fresh),
                chat_id=chat_id,
                message_id=message_id,
                parse_mode=ParseMode.HTML,
                reply_markup=admin_main_menu(),
            )
        except TelegramBadRequest as e:
            # "message is not modified" or the message is gone
            logger.debug("Dashboard refresh skipped: %s", e)

    await live_views.open(chat_id, refresh)


# ── Scan log ──────────────────────────────────────────────────────────────────

@router.callback_query(AdminPanelCb.filter(F.action == "scans"))
async def cq_scan_log(
    callback: CallbackQuery,
    session: AsyncSession,
    settings: Settings,
    live_views: LiveViews,
) -> None:
    await live_views.close(callback.message.chat.id)
    history = await fetch_scan_history(session, settings.SCAN_HISTORY_LIMIT)

    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="🔙 Назад", callback_data=AdminPanelCb(action="back").pack()))

    if not history:
        await callback.message.edit_text(
            "🧾 <b>Журнал сканов</b>\n\n<i>Сканов пока не было.</i>",
            parse_mode=ParseMode.HTML,
            reply_markup=builder.as_markup(),
        )
        await callback.answer()
        return

    lines = [f"🧾 <b>Журнал сканов</b> — последние <code>{min(len(history), SCAN_LOG_PREVIEW)}</code> из <code>{len(history)}</code>\n"]
    for entry in history[:SCAN_LOG_PREVIEW]:
        when = entry.scanned_at.strftime("%d.%m %H:%M:%S") if entry.scanned_at else "—"
        name = f" — {html.quote(entry.fan_name)}" if entry.fan_name else ""
        lines.append(f"{entry.status_emoji} <code>{when}</code> {hcode(entry.code)}{name}")

    await callback.message.edit_text(
        "\n".join(lines),
        parse_mode=ParseMode.HTML,
        reply_markup=builder.as_markup(),
    )
    await callback.answer()
