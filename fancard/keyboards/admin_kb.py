"""
Keyboards for the admin panel: code list, code detail, bulk actions, export.
"""
from typing import List

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from fancard.keyboards.callbacks import AdminPanelCb, BulkDeleteCb, CodeCb, ExportCb
from fancard.models.models import Code

PAGE_SIZE = 10


def page_slice(items: list, page: int, page_size: int = PAGE_SIZE) -> tuple[list, int, int]:
    """(items on page, clamped page, page count)."""
    pages = max(1, (len(items) + page_size - 1) // page_size)
    page  = min(max(page, 0), pages - 1)
    start = page * page_size
    return items[start:start + page_size], page, pages


def code_list_kb(codes: List[Code], page: int = 0) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    chunk, page, pages = page_slice(codes, page)
    for c in chunk:
        label = f"{c.status_emoji} {c.code}"
        if c.fan_name:
            label += f" — {c.fan_name}"
        builder.row(
            InlineKeyboardButton(
                text=label,
                callback_data=CodeCb(action="view", cid=c.id, page=page).pack(),
            )
        )

    if pages > 1:
        nav = []
        if page > 0:
            nav.append(InlineKeyboardButton(text="◀️", callback_data=CodeCb(action="list", page=page - 1).pack()))
        nav.append(InlineKeyboardButton(text=f"{page + 1}/{pages}", callback_data="noop"))
        if page < pages - 1:
            nav.append(InlineKeyboardButton(text="▶️", callback_data=CodeCb(action="list", page=page + 1).pack()))
        builder.row(*nav)

    builder.row(InlineKeyboardButton(text="🔙 Назад", callback_data=AdminPanelCb(action="back").pack()))
    return builder.as_markup()


def code_detail_kb(code: Code, page: int = 0) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(
            text="🔗 Verify-QR",
            callback_data=CodeCb(action="verify_qr", cid=code.id, page=page).pack(),
        )
    )
    builder.row(
        InlineKeyboardButton(
            text="🗑️ Удалить",
            callback_data=CodeCb(action="delete_confirm", cid=code.id, page=page).pack(),
        )
    )
    builder.row(InlineKeyboardButton(text="🔙 К списку", callback_data=CodeCb(action="list", page=page).pack()))
    return builder.as_markup()


def confirm_action_kb(yes_cb: str, no_cb: str) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Да", callback_data=yes_cb),
        InlineKeyboardButton(text="❌ Нет", callback_data=no_cb),
    )
    return builder.as_markup()


def bulk_delete_confirm_kb(scope: str) -> InlineKeyboardMarkup:
    return confirm_action_kb(
        yes_cb=BulkDeleteCb(scope=scope).pack(),
        no_cb=AdminPanelCb(action="back").pack(),
    )


def export_kb(sheets_enabled: bool) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="📄 CSV-файл", callback_data=ExportCb(action="csv").pack()))
    if sheets_enabled:
        builder.row(InlineKeyboardButton(
            text="📊 Выгрузить в Google Sheets", callback_data=ExportCb(action="sheets").pack()
        ))
    builder.row(InlineKeyboardButton(text="🔙 Назад", callback_data=AdminPanelCb(action="back").pack()))
    return builder.as_markup()


def cancel_input_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="❌ Отмена", callback_data=AdminPanelCb(action="back").pack()))
    return builder.as_markup()
