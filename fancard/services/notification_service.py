"""
Staff notifications.

`scan_notice` turns a scan result into the toast-style message shown to gate
staff; its tone follows the classification. `notify_admins_registered`
pushes a short note to admins whenever a registrar binds a card.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from aiogram import Bot, html
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError
from aiogram.utils.markdown import hbold, hcode

from fancard.models.models import Code, ScanStatus

logger = logging.getLogger(__name__)


class Tone:
    SUCCESS     = "success"
    WARNING     = "warning"
    DESTRUCTIVE = "destructive"

    EMOJI = {
        SUCCESS:     "✅",
        WARNING:     "⚠️",
        DESTRUCTIVE: "❌",
    }


@dataclass(frozen=True)
class Notice:
    tone: str
    title: str
    description: str

    def as_html(self) -> str:
        """`description` is already HTML; user data in it is quoted."""
        return f"{Tone.EMOJI[self.tone]} {hbold(self.title)}\n{self.description}"


def scan_notice(result) -> Notice:
    """Notice for a ScanResult (or any object with code/status/fan_name)."""
    if result.status == ScanStatus.REGISTERED:
        return Notice(
            Tone.SUCCESS,
            "Карта действительна",
            f"Добро пожаловать, {html.quote(result.fan_name or 'болельщик')}!",
        )
    if result.status == ScanStatus.UNREGISTERED:
        return Notice(
            Tone.WARNING,
            "Карта не зарегистрирована",
            f"Код {hcode(result.code)} существует, но не привязан к болельщику.",
        )
    return Notice(
        Tone.DESTRUCTIVE,
        "Недействительный код",
        f"Код {hcode(result.code)} не распознан.",
    )


async def notify_admins_registered(
    bot: Bot,
    admin_ids: Iterable[int],
    code: Code,
    registrar_name: str,
) -> int:
    """
    Tell every admin that a card was registered.
    Returns the number of delivered messages; delivery errors are logged.
    """
    text = (
        f"🎫 <b>Новая регистрация</b>\n\n"
        f"🔖 Код: {hcode(code.code)}\n"
        f"👤 Болельщик: {html.quote(code.fan_name or '')}\n"
        f"🧾 Оформил: {html.quote(registrar_name)}"
    )
    delivered = 0
    for admin_id in admin_ids:
        try:
            await bot.send_message(chat_id=admin_id, text=text, parse_mode=ParseMode.HTML)
            delivered += 1
        except (TelegramForbiddenError, TelegramBadRequest) as e:
            logger.warning("Could not notify admin telegram_id=%d: %s", admin_id, e)
    return delivered
