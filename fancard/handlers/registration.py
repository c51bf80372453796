"""
Registrar FSM handler: bind a pending code to a fan.

Flow:
  🎫 Register → choose pending code → fan name → e-mail (or skip)
             → confirm → registered ✅ + QR ticket + verify link
"""
import asyncio
import logging

from aiogram import Bot, F, Router, html
from aiogram.enums import ParseMode
from aiogram.fsm.context import FSMContext
from aiogram.types import BufferedInputFile, CallbackQuery, Message
from aiogram.utils.markdown import hbold, hcode, hitalic
from sqlalchemy.ext.asyncio import AsyncSession

from fancard.config import Settings
from fancard.errors import FanCardError, InputValidationError
from fancard.keyboards import (
    MainMenuCb, RegisterCb,
    back_to_main, cancel_registration_kb, confirm_registration_kb,
    menu_for, pending_codes_kb, skip_email_kb,
)
from fancard.middlewares import IsStaff
from fancard.services import (
    build_verify_url, generate_qr_png, get_code_by_id, list_pending_codes,
    list_registered_codes, notify_admins_registered, register_code, registration_payload,
)
from fancard.states import RegistrationStates
from fancard.validators import RegistrationData, validate

logger = logging.getLogger(__name__)
router = Router(name="registration")
router.callback_query.filter(IsStaff())
router.message.filter(IsStaff())


def _summary(data: dict) -> str:
    email = data.get("fan_email") or "—"
    return (
        "📋 <b>Проверьте данные:</b>\n\n"
        f"🔖 Код: {hcode(data['code'])}\n"
        f"👤 Болельщик: {html.quote(data['fan_name'])}\n"
        f"✉️ E-mail: {html.quote(email)}\n"
    )


async def _show_pending(callback: CallbackQuery, session: AsyncSession, page: int) -> bool:
    codes = await list_pending_codes(session)
    if not codes:
        await callback.answer("Нет свободных кодов. Попросите администратора сгенерировать партию.", show_alert=True)
        return False
    await callback.message.edit_text(
        f"🎫 <b>Регистрация карты</b>\n\nСвободных кодов: <code>{len(codes)}</code>\nВыберите код с карты:",
        parse_mode=ParseMode.HTML,
        reply_markup=pending_codes_kb(codes, page),
    )
    return True


# ── Entry: "Register" button ──────────────────────────────────────────────────

@router.callback_query(MainMenuCb.filter(F.action == "register"))
async def cq_start_registration(callback: CallbackQuery, session: AsyncSession, state: FSMContext) -> None:
    if await _show_pending(callback, session, page=0):
        await state.set_state(RegistrationStates.choose_code)
        await callback.answer()


@router.callback_query(RegisterCb.filter(F.action == "page"), RegistrationStates.choose_code)
async def cq_pending_page(
    callback: CallbackQuery,
    callback_data: RegisterCb,
    session: AsyncSession,
) -> None:
    if await _show_pending(callback, session, callback_data.page):
        await callback.answer()


# ── Step 1: code chosen ───────────────────────────────────────────────────────

@router.callback_query(RegisterCb.filter(F.action == "pick"), RegistrationStates.choose_code)
async def cq_code_picked(
    callback: CallbackQuery,
    callback_data: RegisterCb,
    session: AsyncSession,
    state: FSMContext,
) -> None:
    c = await get_code_by_id(session, callback_data.cid)
    if not c:
        await callback.answer("Код не найден.", show_alert=True)
        return
    if c.is_registered:
        await callback.answer(f"Код уже зарегистрирован на {c.fan_name}.", show_alert=True)
        return

    await state.update_data(code=c.code)
    await state.set_state(RegistrationStates.enter_fan_name)
    await callback.message.edit_text(
        f"🔖 Код: {hcode(c.code)}\n\nВведите <b>имя болельщика</b>:",
        parse_mode=ParseMode.HTML,
        reply_markup=cancel_registration_kb(),
    )
    await callback.answer()


# ── Step 2: fan name ──────────────────────────────────────────────────────────

@router.message(RegistrationStates.enter_fan_name)
async def msg_fan_name(message: Message, state: FSMContext) -> None:
    data = await state.get_data()
    try:
        checked = validate(RegistrationData, code=data.get("code", ""), fan_name=message.text or "")
    except InputValidationError as e:
        await message.answer(
            f"⚠️ {html.quote(e.message)}. Введите имя ещё раз:",
            parse_mode=ParseMode.HTML,
            reply_markup=cancel_registration_kb(),
        )
        return

    await state.update_data(fan_name=checked.fan_name)
    await state.set_state(RegistrationStates.enter_fan_email)
    await message.answer(
        f"👤 {hbold(checked.fan_name)}\n\nВведите <b>e-mail</b> болельщика или пропустите этот шаг:",
        parse_mode=ParseMode.HTML,
        reply_markup=skip_email_kb(),
    )


# ── Step 3: e-mail (optional) ─────────────────────────────────────────────────

@router.message(RegistrationStates.enter_fan_email)
async def msg_fan_email(message: Message, state: FSMContext) -> None:
    data = await state.get_data()
    try:
        checked = validate(
            RegistrationData,
            code=data.get("code", ""),
            fan_name=data.get("fan_name", ""),
            fan_email=message.text or "",
        )
    except InputValidationError as e:
        await message.answer(
            f"⚠️ {html.quote(e.message)}. Попробуйте ещё раз:",
            parse_mode=ParseMode.HTML,
            reply_markup=skip_email_kb(),
        )
        return

    await state.update_data(fan_email=checked.fan_email)
    await state.set_state(RegistrationStates.confirm)
    await message.answer(
        _summary(await state.get_data()),
        parse_mode=ParseMode.HTML,
        reply_markup=confirm_registration_kb(),
    )


@router.callback_query(RegisterCb.filter(F.action == "skip_email"), RegistrationStates.enter_fan_email)
async def cq_skip_email(callback: CallbackQuery, state: FSMContext) -> None:
    await state.update_data(fan_email=None)
    await state.set_state(RegistrationStates.confirm)
    await callback.message.edit_text(
        _summary(await state.get_data()),
        parse_mode=ParseMode.HTML,
        reply_markup=confirm_registration_kb(),
    )
    await callback.answer()


# ── Step 4: confirm / edit ────────────────────────────────────────────────────

@router.callback_query(RegisterCb.filter(F.action == "edit"), RegistrationStates.confirm)
async def cq_edit(callback: CallbackQuery, state: FSMContext) -> None:
    data = await state.get_data()
    await state.set_state(RegistrationStates.enter_fan_name)
    await callback.message.edit_text(
        f"🔖 Код: {hcode(data['code'])}\n\nВведите <b>имя болельщика</b>:",
        parse_mode=ParseMode.HTML,
        reply_markup=cancel_registration_kb(),
    )
    await callback.answer()


@router.callback_query(RegisterCb.filter(F.action == "confirm"), RegistrationStates.confirm)
async def cq_confirm(
    callback: CallbackQuery,
    bot: Bot,
    session: AsyncSession,
    state: FSMContext,
    settings: Settings,
    is_admin: bool,
) -> None:
    data = await state.get_data()
    try:
        c = await register_code(session, data["code"], data["fan_name"], data.get("fan_email"))
    except InputValidationError as e:
        await callback.message.edit_text(
            f"⚠️ {html.quote(e.message)}\n\n{_summary(data)}",
            parse_mode=ParseMode.HTML,
            reply_markup=confirm_registration_kb(),
        )
        await callback.answer()
        return
    except FanCardError as e:
        # Conflict (someone was faster), NotFound (deleted) or store failure
        await state.clear()
        await callback.answer(e.message, show_alert=True)
        await callback.message.edit_text(
            f"❌ {html.quote(e.message)}",
            parse_mode=ParseMode.HTML,
            reply_markup=menu_for(is_admin, True),
        )
        return

    await state.clear()
    await session.commit()
    logger.info("Code %s registered by telegram_id=%d", c.code, callback.from_user.id)

    await callback.message.edit_text(
        "✅ <b>Карта зарегистрирована!</b>\n\n"
        f"🔖 Код: {hcode(c.code)}\n"
        f"👤 Болельщик: {html.quote(c.fan_name)}",
        parse_mode=ParseMode.HTML,
    )

    # QR ticket: the scanner decodes this payload at the gate
    png = await asyncio.to_thread(generate_qr_png, registration_payload(c.code))
    url = build_verify_url(c.code, settings.verify_base_url)
    await callback.message.answer_photo(
        BufferedInputFile(png, filename=f"{c.code}.png"),
        caption=f"🎫 QR-билет {hcode(c.code)}\n\n🔗 Проверка карты:\n{html.quote(url)}",
        parse_mode=ParseMode.HTML,
        reply_markup=menu_for(is_admin, True),
    )
    await callback.answer("✅ Готово!")

    admins = [a for a in settings.admin_ids_list if a != callback.from_user.id]
    await notify_admins_registered(bot, admins, c, callback.from_user.full_name)


# ── Cancel ────────────────────────────────────────────────────────────────────

@router.callback_query(RegisterCb.filter(F.action == "cancel"))
async def cq_cancel(callback: CallbackQuery, state: FSMContext, is_admin: bool) -> None:
    await state.clear()
    await callback.message.edit_text(
        "❌ <b>Регистрация отменена.</b>",
        parse_mode=ParseMode.HTML,
        reply_markup=menu_for(is_admin, True),
    )
    await callback.answer()


# ── Recent registrations ──────────────────────────────────────────────────────

@router.callback_query(MainMenuCb.filter(F.action == "registered"))
async def cq_recent_registrations(callback: CallbackQuery, session: AsyncSession) -> None:
    codes = await list_registered_codes(session, limit=20)
    if not codes:
        await callback.message.edit_text(
            "🗂 <b>Последние регистрации</b>\n\n<i>Зарегистрированных карт пока нет.</i>",
            parse_mode=ParseMode.HTML,
            reply_markup=back_to_main(),
        )
        await callback.answer()
        return

    lines = [f"🗂 <b>Последние регистрации</b> — <code>{len(codes)}</code>\n"]
    for c in codes:
        when = c.registered_at.strftime("%d.%m %H:%M") if c.registered_at else "—"
        lines.append(f"✅ {hcode(c.code)} — {html.quote(c.fan_name or '')}  {hitalic(when)}")
    await callback.message.edit_text(
        "\n".join(lines),
        parse_mode=ParseMode.HTML,
        reply_markup=back_to_main(),
    )
    await callback.answer()
