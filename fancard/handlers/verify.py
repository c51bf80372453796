"""
Public card check inside the bot: /verify CODE, or the "🔍" button.

Same classification as the gate scanner, but nothing is written to the
Scan Log.
"""
import logging

from aiogram import F, Router, html
from aiogram.enums import ParseMode
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from aiogram.utils.markdown import hcode
from sqlalchemy.ext.asyncio import AsyncSession

from fancard.config import Settings
from fancard.keyboards import MainMenuCb, back_to_main
from fancard.services import ViewState, VerifyFlow, build_verify_url, decode_payload, session_lookup
from fancard.states import VerifyStates

logger = logging.getLogger(__name__)
router = Router(name="verify")


def render_flow(flow: VerifyFlow, base_url: str) -> str:
    if flow.state == ViewState.OK:
        v = flow.result
        if v.is_registered:
            when = v.registered_at.strftime("%d.%m.%Y") if v.registered_at else "—"
            return (
                "✅ <b>Карта действительна</b>\n\n"
                f"🔖 Код: {hcode(v.code)}\n"
                f"👤 Болельщик: {html.quote(v.fan_name or '')}\n"
                f"📅 Зарегистрирована: {when}\n\n"
                f"🔗 {html.quote(build_verify_url(v.code, base_url))}"
            )
        return (
            "⚠️ <b>Карта не зарегистрирована</b>\n\n"
            f"Код {hcode(v.code)} существует, но ещё не привязан к болельщику."
        )
    if flow.state == ViewState.NOTFOUND:
        return f"❌ <b>Недействительный код</b>\n\n{html.quote(flow.message)}"
    if flow.state == ViewState.ERROR:
        return f"❌ <b>Ошибка при проверке</b>\n\n{html.quote(flow.message)}"
    return "🔍 Введите код фан-карты:"


def _resolve(text: str) -> str:
    """Accepts a bare code, a pasted verify link or a QR payload."""
    return decode_payload(text).strip().upper() if text.strip() else ""


async def _run_check(message: Message, session: AsyncSession, settings: Settings, code: str) -> None:
    flow = VerifyFlow(session_lookup(session), initial_code=code)
    await flow.start()
    await message.answer(
        render_flow(flow, settings.verify_base_url),
        parse_mode=ParseMode.HTML,
        reply_markup=back_to_main(),
    )


# ── /verify [code] ────────────────────────────────────────────────────────────

@router.message(Command("verify"))
async def cmd_verify(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    state: FSMContext,
    settings: Settings,
) -> None:
    code = _resolve(command.args or "")
    if not code:
        await state.set_state(VerifyStates.enter_code)
        await message.answer("🔍 Введите код фан-карты:", reply_markup=back_to_main())
        return
    await state.clear()
    await _run_check(message, session, settings, code)


@router.callback_query(MainMenuCb.filter(F.action == "verify"))
async def cq_verify_entry(callback: CallbackQuery, state: FSMContext) -> None:
    await state.set_state(VerifyStates.enter_code)
    await callback.message.edit_text(
        "🔍 <b>Проверка фан-карты</b>\n\nВведите код с карты (например <code>FC1712345678901ABC123</code>):",
        parse_mode=ParseMode.HTML,
        reply_markup=back_to_main(),
    )
    await callback.answer()


@router.message(VerifyStates.enter_code, F.text)
async def msg_verify_code(
    message: Message,
    session: AsyncSession,
    state: FSMContext,
    settings: Settings,
) -> None:
    code = _resolve(message.text)
    if not code:
        await message.answer("🔍 Введите код фан-карты:", reply_markup=back_to_main())
        return
    await state.clear()
    await _run_check(message, session, settings, code)
