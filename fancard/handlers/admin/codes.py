"""
Admin code management.

  ➕ Generate  → batch size prompt (1–100) → codes created
  📋 All codes → paginated list → detail → verify-QR / delete (confirmed)
  🗑 / 💣      → delete pending or all codes (confirmed)
"""
import asyncio
import logging

from aiogram import F, Router, html
from aiogram.enums import ParseMode
from aiogram.fsm.context import FSMContext
from aiogram.types import BufferedInputFile, CallbackQuery, Message
from aiogram.utils.markdown import hbold, hcode
from sqlalchemy.ext.asyncio import AsyncSession

from fancard.config import Settings
from fancard.errors import FanCardError, InputValidationError
from fancard.keyboards import (
    AdminPanelCb, BulkDeleteCb, CodeCb,
    admin_main_menu, bulk_delete_confirm_kb, cancel_input_kb,
    code_detail_kb, code_list_kb, confirm_action_kb,
)
from fancard.middlewares import IsAdmin
from fancard.models import Code
from fancard.services import (
    LiveViews, build_verify_url, code_stats, create_codes, delete_all_codes,
    delete_code, delete_pending_codes, generate_qr_png, get_code_by_id, list_codes,
)
from fancard.states import AdminCodeStates
from fancard.validators import MAX_BATCH_SIZE, BatchSizeData, validate

logger = logging.getLogger(__name__)
router = Router(name="admin_codes")
router.callback_query.filter(IsAdmin())
router.message.filter(IsAdmin())


def _code_card(c: Code) -> str:
    created = c.created_at.strftime("%d.%m.%Y %H:%M") if c.created_at else "—"
    lines = [
        f"🔖 {hcode(c.code)}\n",
        f"📅 Создан: {created}",
        f"📌 Статус: {c.status_emoji} {c.status_label}",
    ]
    if c.is_registered:
        registered = c.registered_at.strftime("%d.%m.%Y %H:%M") if c.registered_at else "—"
        lines.append(f"👤 Болельщик: {html.quote(c.fan_name or '')}")
        if c.fan_email:
            lines.append(f"✉️ E-mail: {html.quote(c.fan_email)}")
        lines.append(f"🕒 Зарегистрирован: {registered}")
    return "\n".join(lines)


async def _show_list(callback: CallbackQuery, session: AsyncSession, page: int) -> None:
    codes = await list_codes(session)
    if not codes:
        await callback.message.edit_text(
            "📋 <b>Коды</b>\n\n<i>Кодов пока нет. Сгенерируйте первую партию.</i>",
            parse_mode=ParseMode.HTML,
            reply_markup=admin_main_menu(),
        )
        return
    registered = sum(1 for c in codes if c.is_registered)
    await callback.message.edit_text(
        f"📋 <b>Коды</b> — <code>{len(codes)}</code> (✅ {registered} / ⏳ {len(codes) - registered})",
        parse_mode=ParseMode.HTML,
        reply_markup=code_list_kb(codes, page),
    )


# ── Generate ──────────────────────────────────────────────────────────────────

@router.callback_query(AdminPanelCb.filter(F.action == "generate"))
async def cq_generate_entry(
    callback: CallbackQuery,
    state: FSMContext,
    live_views: LiveViews,
) -> None:
    await live_views.close(callback.message.chat.id)
    await state.set_state(AdminCodeStates.enter_batch_size)
    await callback.message.edit_text(
        f"➕ <b>Генерация кодов</b>\n\nСколько кодов создать? Введите число от 1 до {MAX_BATCH_SIZE}:",
        parse_mode=ParseMode.HTML,
        reply_markup=cancel_input_kb(),
    )
    await callback.answer()


@router.message(AdminCodeStates.enter_batch_size)
async def msg_batch_size(message: Message, session: AsyncSession, state: FSMContext) -> None:
    raw = message.text.strip() if message.text else ""
    try:
        data = validate(BatchSizeData, batch_size=raw)
        codes = await create_codes(session, data.batch_size)
    except InputValidationError as e:
        await message.answer(f"⚠️ {html.quote(e.message)}", parse_mode=ParseMode.HTML, reply_markup=cancel_input_kb())
        return
    except FanCardError as e:
        await message.answer(f"❌ {html.quote(e.message)}", parse_mode=ParseMode.HTML, reply_markup=admin_main_menu())
        await state.clear()
        return

    await state.clear()
    preview = "\n".join(hcode(c.code) for c in codes[:10])
    more    = f"\n<i>…и ещё {len(codes) - 10}</i>" if len(codes) > 10 else ""
    await message.answer(
        f"✅ <b>Создано кодов: {len(codes)}</b>\n\n{preview}{more}",
        parse_mode=ParseMode.HTML,
        reply_markup=admin_main_menu(),
    )


# ── List + detail ─────────────────────────────────────────────────────────────

@router.callback_query(AdminPanelCb.filter(F.action == "codes"))
async def cq_codes_entry(callback: CallbackQuery, session: AsyncSession, live_views: LiveViews) -> None:
    await live_views.close(callback.message.chat.id)
    await _show_list(callback, session, page=0)
    await callback.answer()


@router.callback_query(CodeCb.filter(F.action == "list"))
async def cq_codes_page(callback: CallbackQuery, callback_data: CodeCb, session: AsyncSession) -> None:
    await _show_list(callback, session, callback_data.page)
    await callback.answer()


@router.callback_query(CodeCb.filter(F.action == "view"))
async def cq_code_detail(callback: CallbackQuery, callback_data: CodeCb, session: AsyncSession) -> None:
    c = await get_code_by_id(session, callback_data.cid)
    if not c:
        await callback.answer("Код не найден.", show_alert=True)
        return
    await callback.message.edit_text(
        _code_card(c),
        parse_mode=ParseMode.HTML,
        reply_markup=code_detail_kb(c, callback_data.page),
    )
    await callback.answer()


@router.callback_query(CodeCb.filter(F.action == "verify_qr"))
async def cq_code_verify_qr(
    callback: CallbackQuery,
    callback_data: CodeCb,
    session: AsyncSession,
    settings: Settings,
) -> None:
    c = await get_code_by_id(session, callback_data.cid)
    if not c:
        await callback.answer("Код не найден.", show_alert=True)
        return

    url = build_verify_url(c.code, settings.verify_base_url)
    png = await asyncio.to_thread(generate_qr_png, url)
    await callback.message.answer_photo(
        BufferedInputFile(png, filename=f"{c.code}.png"),
        caption=f"🔗 Ссылка для проверки {hcode(c.code)}:\n{html.quote(url)}",
        parse_mode=ParseMode.HTML,
    )
    await callback.answer()


# ── Delete one ────────────────────────────────────────────────────────────────

@router.callback_query(CodeCb.filter(F.action == "delete_confirm"))
async def cq_code_delete_confirm(callback: CallbackQuery, callback_data: CodeCb, session: AsyncSession) -> None:
    c = await get_code_by_id(session, callback_data.cid)
    if not c:
        await callback.answer("Код не найден.", show_alert=True)
        return
    warning = f"\n\n⚠️ Карта зарегистрирована на {hbold(c.fan_name or '')}." if c.is_registered else ""
    await callback.message.edit_text(
        f"🗑️ Удалить код {hcode(c.code)}?{warning}",
        parse_mode=ParseMode.HTML,
        reply_markup=confirm_action_kb(
            yes_cb=CodeCb(action="delete", cid=c.id, page=callback_data.page).pack(),
            no_cb=CodeCb(action="view", cid=c.id, page=callback_data.page).pack(),
        ),
    )
    await callback.answer()


@router.callback_query(CodeCb.filter(F.action == "delete"))
async def cq_code_delete(callback: CallbackQuery, callback_data: CodeCb, session: AsyncSession) -> None:
    try:
        await delete_code(session, callback_data.cid)
    except FanCardError as e:
        await callback.answer(e.message, show_alert=True)
        return
    await callback.answer("🗑️ Код удалён.")
    await _show_list(callback, session, callback_data.page)


# ── Bulk delete ───────────────────────────────────────────────────────────────

@router.callback_query(AdminPanelCb.filter(F.action.in_({"delete_pending", "delete_all"})))
async def cq_bulk_delete_confirm(
    callback: CallbackQuery,
    callback_data: AdminPanelCb,
    session: AsyncSession,
    live_views: LiveViews,
) -> None:
    await live_views.close(callback.message.chat.id)
    stats = await code_stats(session)
    if callback_data.action == "delete_pending":
        scope, count, what = "pending", stats.pending, "ожидающих регистрации"
    else:
        scope, count, what = "all", stats.total, "ВСЕХ"
    if count == 0:
        await callback.answer("Удалять нечего.", show_alert=True)
        return
    await callback.message.edit_text(
        f"⚠️ Удалить <code>{count}</code> {what} кодов?\n\nДействие необратимо.",
        parse_mode=ParseMode.HTML,
        reply_markup=bulk_delete_confirm_kb(scope),
    )
    await callback.answer()


@router.callback_query(BulkDeleteCb.filter())
async def cq_bulk_delete(callback: CallbackQuery, callback_data: BulkDeleteCb, session: AsyncSession) -> None:
    try:
        if callback_data.scope == "pending":
            deleted = await delete_pending_codes(session)
        else:
            deleted = await delete_all_codes(session)
    except FanCardError as e:
        await callback.answer(e.message, show_alert=True)
        return

    await callback.message.edit_text(
        f"🗑️ Удалено кодов: <code>{deleted}</code>",
        parse_mode=ParseMode.HTML,
        reply_markup=admin_main_menu(),
    )
    await callback.answer()
