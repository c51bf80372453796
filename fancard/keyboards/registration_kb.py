"""
Keyboards for the registrar flow and the gate scanner.
"""
from typing import List

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from fancard.keyboards.admin_kb import page_slice
from fancard.keyboards.callbacks import MainMenuCb, RegisterCb, ScannerCb
from fancard.models.models import Code


def pending_codes_kb(codes: List[Code], page: int = 0) -> InlineKeyboardMarkup:
    """Pending codes to pick from, oldest first."""
    builder = InlineKeyboardBuilder()
    chunk, page, pages = page_slice(codes, page)
    for c in chunk:
        created = c.created_at.strftime("%d.%m.%Y") if c.created_at else ""
        builder.row(
            InlineKeyboardButton(
                text=f"{c.code}  ({created})",
                callback_data=RegisterCb(action="pick", cid=c.id).pack(),
            )
        )
    if pages > 1:
        nav = []
        if page > 0:
            nav.append(InlineKeyboardButton(text="◀️", callback_data=RegisterCb(action="page", page=page - 1).pack()))
        nav.append(InlineKeyboardButton(text=f"{page + 1}/{pages}", callback_data="noop"))
        if page < pages - 1:
            nav.append(InlineKeyboardButton(text="▶️", callback_data=RegisterCb(action="page", page=page + 1).pack()))
        builder.row(*nav)
    builder.row(InlineKeyboardButton(text="🔙 Назад", callback_data=MainMenuCb(action="main").pack()))
    return builder.as_markup()


def cancel_registration_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="❌ Отмена", callback_data=RegisterCb(action="cancel").pack()))
    return builder.as_markup()


def skip_email_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="⏭ Без e-mail", callback_data=RegisterCb(action="skip_email").pack()))
    builder.row(InlineKeyboardButton(text="❌ Отмена",     callback_data=RegisterCb(action="cancel").pack()))
    return builder.as_markup()


def confirm_registration_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Зарегистрировать", callback_data=RegisterCb(action="confirm").pack()),
        InlineKeyboardButton(text="✏️ Изменить",         callback_data=RegisterCb(action="edit").pack()),
    )
    builder.row(InlineKeyboardButton(text="❌ Отмена", callback_data=RegisterCb(action="cancel").pack()))
    return builder.as_markup()


def scanner_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="📊 Статистика", callback_data=ScannerCb(action="stats").pack()),
        InlineKeyboardButton(text="🧾 История",    callback_data=ScannerCb(action="history").pack()),
    )
    builder.row(InlineKeyboardButton(text="⏹ Остановить сканер", callback_data=ScannerCb(action="stop").pack()))
    return builder.as_markup()
