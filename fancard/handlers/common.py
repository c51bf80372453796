"""
Common handlers: /start, main menu routing.
"""
import logging

from aiogram import F, Router, html
from aiogram.enums import ParseMode
from aiogram.filters import CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from fancard.keyboards import MainMenuCb, menu_for
from fancard.services import LiveViews, ScanSessionRegistry

logger = logging.getLogger(__name__)
router = Router(name="common")


def _welcome_text(name: str, is_admin: bool, is_staff: bool) -> str:
    name = html.quote(name or "")
    if is_admin:
        return (
            f"⚡ <b>Панель администратора</b> — {name}\n\n"
            "Генерируйте коды фан-карт, следите за регистрациями\n"
            "и выгружайте список в CSV или Google Sheets.\n\n"
            "Выберите раздел:"
        )
    if is_staff:
        return (
            f"🎫 <b>FanCard</b> — {name}\n\n"
            "• Регистрируйте карты на болельщиков\n"
            "• Сканируйте карты на входе\n\n"
            "Выберите действие:"
        )
    return (
        f"🎫 Добро пожаловать в <b>FanCard</b>, {name}!\n\n"
        "Здесь можно проверить, действительна ли фан-карта.\n"
        "Отправьте /verify <code>КОД</code> или нажмите кнопку ниже."
    )


async def release_chat(chat_id: int, scan_registry: ScanSessionRegistry, live_views: LiveViews) -> None:
    """Stop the chat's scanner and live dashboard, if any."""
    await scan_registry.close(chat_id)
    await live_views.close(chat_id)


# ── /start ────────────────────────────────────────────────────────────────────

@router.message(CommandStart())
async def cmd_start(
    message: Message,
    state: FSMContext,
    is_admin: bool,
    is_staff: bool,
    scan_registry: ScanSessionRegistry,
    live_views: LiveViews,
) -> None:
    await state.clear()
    await release_chat(message.chat.id, scan_registry, live_views)
    await message.answer(
        _welcome_text(message.from_user.first_name, is_admin, is_staff),
        parse_mode=ParseMode.HTML,
        reply_markup=menu_for(is_admin, is_staff),
    )


# ── Main menu callback ────────────────────────────────────────────────────────

@router.callback_query(MainMenuCb.filter(F.action == "main"))
async def cq_main_menu(
    callback: CallbackQuery,
    state: FSMContext,
    is_admin: bool,
    is_staff: bool,
    scan_registry: ScanSessionRegistry,
    live_views: LiveViews,
) -> None:
    await state.clear()
    await release_chat(callback.message.chat.id, scan_registry, live_views)
    await callback.message.edit_text(
        _welcome_text(callback.from_user.first_name, is_admin, is_staff),
        parse_mode=ParseMode.HTML,
        reply_markup=menu_for(is_admin, is_staff),
    )
    await callback.answer()


@router.callback_query(F.data == "noop")
async def cq_noop(callback: CallbackQuery) -> None:
    await callback.answer()
