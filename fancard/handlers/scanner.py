"""
Gate scanner.

Workflow:
  1. Staff taps "📷 Scanner" → a ScanSession is opened for the chat
  2. Staff sends photos of fan-card QR codes, or types codes by hand
  3. Each frame is queued; the session's consumer classifies it, writes the
     Scan Log row and answers with a green / amber / red notice
  4. "⏹ Stop" (or leaving to the main menu) closes the session

Photos are decoded off the event loop; whatever the photo contains
(registration payload, verify link or a bare code) is resolved by the scan
service, so printed cards and verify-QRs both work.
"""
import asyncio
import logging

from aiogram import Bot, F, Router, html
from aiogram.enums import ParseMode
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from aiogram.utils.markdown import hcode

from fancard.errors import DecodeError, FanCardError, InputValidationError
from fancard.keyboards import MainMenuCb, ScannerCb, menu_for, scanner_kb
from fancard.middlewares import IsStaff
from fancard.models import ScanStatus
from fancard.services import (
    LiveViews, ScanResult, ScanSessionRegistry, decode_qr_image, scan_notice,
)
from fancard.services.scan_service import ScanFrame
from fancard.states import ScannerStates
from fancard.validators import ManualCodeData, validate

logger = logging.getLogger(__name__)
router = Router(name="scanner")
router.callback_query.filter(IsStaff())
router.message.filter(IsStaff())

HISTORY_PREVIEW = 15


# ── Entry ─────────────────────────────────────────────────────────────────────

@router.callback_query(MainMenuCb.filter(F.action == "scan"))
async def cq_scanner_entry(
    callback: CallbackQuery,
    bot: Bot,
    state: FSMContext,
    scan_registry: ScanSessionRegistry,
    live_views: LiveViews,
) -> None:
    chat_id = callback.message.chat.id
    await live_views.close(chat_id)

    async def on_result(result: ScanResult) -> None:
        await bot.send_message(
            chat_id,
            scan_notice(result).as_html(),
            parse_mode=ParseMode.HTML,
            reply_markup=scanner_kb(),
        )

    async def on_error(frame: ScanFrame, error: FanCardError) -> None:
        await bot.send_message(
            chat_id,
            f"❌ Ошибка при проверке: {html.quote(error.message)}",
            parse_mode=ParseMode.HTML,
        )

    await scan_registry.open(chat_id, on_result, on_error)
    await state.set_state(ScannerStates.scanning)
    await callback.message.edit_text(
        "📷 <b>Сканер включён</b>\n\n"
        "Отправляйте фото QR-кодов фан-карт или вводите коды вручную.\n"
        "Каждый скан проверяется и записывается в журнал.",
        parse_mode=ParseMode.HTML,
        reply_markup=scanner_kb(),
    )
    await callback.answer()
    logger.info("Scanner opened in chat %d", chat_id)


# ── Frames ────────────────────────────────────────────────────────────────────

@router.message(ScannerStates.scanning, F.photo | F.document)
async def msg_scan_photo(message: Message, bot: Bot, scan_registry: ScanSessionRegistry) -> None:
    scan = scan_registry.get(message.chat.id)
    if scan is None or not scan.running:
        await message.answer("⚠️ Сканер остановлен. Откройте его заново из меню.")
        return

    if message.photo:
        file = message.photo[-1]
    elif message.document.mime_type and message.document.mime_type.startswith("image/"):
        file = message.document
    else:
        await message.answer("⚠️ Пришлите фото QR-кода или введите код текстом.")
        return

    buffer = await bot.download(file)
    try:
        payloads = await asyncio.to_thread(decode_qr_image, buffer.getvalue())
    except DecodeError as e:
        logger.debug("Undecodable image in chat %d: %s", message.chat.id, e.message)
        payloads = []

    if not payloads:
        await message.answer("🔍 QR-код на фото не найден. Попробуйте ещё раз или введите код вручную.")
        return
    for payload in payloads:
        scan.submit(payload)


@router.message(ScannerStates.scanning, F.text)
async def msg_scan_text(message: Message, scan_registry: ScanSessionRegistry) -> None:
    scan = scan_registry.get(message.chat.id)
    if scan is None or not scan.running:
        await message.answer("⚠️ Сканер остановлен. Откройте его заново из меню.")
        return
    try:
        data = validate(ManualCodeData, code=message.text)
    except InputValidationError as e:
        await message.answer(f"⚠️ {html.quote(e.message)}", parse_mode=ParseMode.HTML)
        return
    scan.submit(data.code, manual=True)


# ── Controls ──────────────────────────────────────────────────────────────────

@router.callback_query(ScannerCb.filter(F.action == "stats"))
async def cq_scanner_stats(callback: CallbackQuery, scan_registry: ScanSessionRegistry) -> None:
    scan = scan_registry.get(callback.message.chat.id)
    if scan is None:
        await callback.answer("Сканер не запущен.", show_alert=True)
        return
    valid, invalid = scan.stats()
    await callback.answer(
        f"Сканов: {valid + invalid}\n✅ Действительных: {valid}\n❌ Недействительных: {invalid}",
        show_alert=True,
    )


@router.callback_query(ScannerCb.filter(F.action == "history"))
async def cq_scanner_history(callback: CallbackQuery, scan_registry: ScanSessionRegistry) -> None:
    scan = scan_registry.get(callback.message.chat.id)
    if scan is None:
        await callback.answer("Сканер не запущен.", show_alert=True)
        return
    if not scan.results:
        await callback.answer("В этой сессии сканов ещё не было.", show_alert=True)
        return

    lines = ["🧾 <b>История сессии</b>\n"]
    for r in scan.results[:HISTORY_PREVIEW]:
        name = f" — {html.quote(r.fan_name)}" if r.fan_name else ""
        lines.append(f"{ScanStatus.EMOJI[r.status]} <code>{r.timestamp:%H:%M:%S}</code> {hcode(r.code)}{name}")
    await callback.message.answer(
        "\n".join(lines),
        parse_mode=ParseMode.HTML,
        reply_markup=scanner_kb(),
    )
    await callback.answer()


@router.callback_query(ScannerCb.filter(F.action == "stop"))
async def cq_scanner_stop(
    callback: CallbackQuery,
    state: FSMContext,
    is_admin: bool,
    scan_registry: ScanSessionRegistry,
) -> None:
    scan = await scan_registry.close(callback.message.chat.id)
    await state.clear()
    summary = ""
    if scan is not None:
        valid, invalid = scan.stats()
        summary = f"\n\nСканов: <code>{valid + invalid}</code> (✅ {valid} / ❌ {invalid})"
    await callback.message.answer(
        f"⏹ <b>Сканер остановлен.</b>{summary}",
        parse_mode=ParseMode.HTML,
        reply_markup=menu_for(is_admin, True),
    )
    await callback.answer()
    logger.info("Scanner closed in chat %d", callback.message.chat.id)
