"""
Main menu keyboards — role-aware (public vs. staff vs. admin).
"""
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from fancard.keyboards.callbacks import AdminPanelCb, MainMenuCb


def public_main_menu() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="🔍 Проверить карту",       callback_data=MainMenuCb(action="verify").pack()),
    )
    return builder.as_markup()


def staff_main_menu() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="🎫 Зарегистрировать карту", callback_data=MainMenuCb(action="register").pack()),
    )
    builder.row(
        InlineKeyboardButton(text="📷 Сканер на входе",        callback_data=MainMenuCb(action="scan").pack()),
    )
    builder.row(
        InlineKeyboardButton(text="🗂 Последние регистрации",  callback_data=MainMenuCb(action="registered").pack()),
    )
    builder.row(
        InlineKeyboardButton(text="🔍 Проверить карту",        callback_data=MainMenuCb(action="verify").pack()),
    )
    return builder.as_markup()


def admin_main_menu() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="➕ Сгенерировать коды",     callback_data=AdminPanelCb(action="generate").pack()),
    )
    builder.row(
        InlineKeyboardButton(text="📋 Все коды",               callback_data=AdminPanelCb(action="codes").pack()),
    )
    builder.row(
        InlineKeyboardButton(text="🎫 Регистрация",            callback_data=MainMenuCb(action="register").pack()),
        InlineKeyboardButton(text="📷 Сканер",                 callback_data=MainMenuCb(action="scan").pack()),
    )
    builder.row(
        InlineKeyboardButton(text="📤 Экспорт",                callback_data=AdminPanelCb(action="export").pack()),
        InlineKeyboardButton(text="🧾 Журнал сканов",          callback_data=AdminPanelCb(action="scans").pack()),
    )
    builder.row(
        InlineKeyboardButton(text="🗑 Удалить ожидающие",      callback_data=AdminPanelCb(action="delete_pending").pack()),
        InlineKeyboardButton(text="💣 Удалить все",            callback_data=AdminPanelCb(action="delete_all").pack()),
    )
    return builder.as_markup()


def menu_for(is_admin: bool, is_staff: bool) -> InlineKeyboardMarkup:
    if is_admin:
        return admin_main_menu()
    if is_staff:
        return staff_main_menu()
    return public_main_menu()


def back_to_main() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="🔙 Главное меню", callback_data=MainMenuCb(action="main").pack()))
    return builder.as_markup()
