"""
Scanner release middleware.

A chat's ScanSession lives only while the chat is in scan mode. After every
update the session is closed if the update took the chat out of
ScannerStates.scanning, or if it was a button press outside the scanner
keyboard (menu buttons of older messages stay clickable).
"""
import logging
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.fsm.context import FSMContext
from aiogram.types import TelegramObject, Update

from fancard.keyboards.callbacks import ScannerCb
from fancard.states import ScannerStates

logger = logging.getLogger(__name__)

_SCANNER_PREFIX = f"{ScannerCb.__prefix__}{ScannerCb.__separator__}"
_PASSIVE_DATA   = {"noop"}


def keeps_scanner(update: TelegramObject) -> bool:
    """False for button presses that navigate away from the scanner."""
    if not isinstance(update, Update) or update.callback_query is None:
        return True
    data = update.callback_query.data or ""
    return data.startswith(_SCANNER_PREFIX) or data in _PASSIVE_DATA


class ScanReleaseMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        chat     = data.get("event_chat")
        registry = data.get("scan_registry")
        running  = registry.get(chat.id) if chat is not None and registry is not None else None
        if running is None:
            return await handler(event, data)

        try:
            return await handler(event, data)
        finally:
            # A session (re)opened by this very update is left alone
            if registry.get(chat.id) is running:
                state: FSMContext | None = data.get("state")
                current = await state.get_state() if state is not None else None
                in_scan_mode = current == ScannerStates.scanning.state
                if not (in_scan_mode and keeps_scanner(event)):
                    await registry.close(chat.id)
                    if in_scan_mode:
                        await state.clear()
                    logger.info("Scanner released in chat %d", chat.id)
