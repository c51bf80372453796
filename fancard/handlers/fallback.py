"""
Global fallback handler, included LAST in the dispatcher.

Answers any callback query no other router handled: keyboards left over
from before a restart (MemoryStorage does not survive redeploys), or staff
buttons pressed by someone without the role.
"""
import logging

from aiogram import Router
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery

from fancard.keyboards import menu_for

logger = logging.getLogger(__name__)
router = Router(name="fallback")


@router.callback_query()
async def cq_fallback(
    callback: CallbackQuery,
    state: FSMContext,
    is_admin: bool = False,
    is_staff: bool = False,
) -> None:
    if not is_staff:
        # Every public button is handled upstream; anything else is staff-only
        await callback.answer("⛔️ Доступ запрещён.", show_alert=True)
    else:
        await callback.answer("⚠️ Кнопка устарела. Начните заново.", show_alert=True)
    await state.clear()
    try:
        await callback.message.edit_text(
            "🔄 <b>Сессия сброшена.</b> Вернитесь в главное меню:",
            parse_mode=ParseMode.HTML,
            reply_markup=menu_for(is_admin, is_staff),
        )
    except TelegramBadRequest as e:
        logger.debug("Fallback edit skipped: %s", e)
