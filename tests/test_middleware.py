"""
Tests — role, rate-limit and scanner-release middleware, role filters.

Middlewares are called directly with a stub handler; no dispatcher or
Telegram connection involved.
"""
from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import CallbackQuery, Chat, Message, Update, User

from fancard.keyboards import AdminPanelCb, MainMenuCb, ScannerCb
from fancard.middlewares import (
    IsAdmin, IsStaff, RateLimitMiddleware, RoleMiddleware, ScanReleaseMiddleware,
)
from fancard.middlewares.rate_limit_middleware import THROTTLE_TEXT
from fancard.services.scan_service import ScanSessionRegistry
from fancard.states import RegistrationStates, ScannerStates


async def _echo_handler(event, data):
    return data


# ─────────────────────────── RoleMiddleware ───────────────────────────────────

class TestRoleMiddleware:
    async def test_admin_is_also_staff(self) -> None:
        mw = RoleMiddleware(admin_ids=[1], staff_ids=[2])
        data = await mw(_echo_handler, object(), {"event_from_user": SimpleNamespace(id=1)})
        assert data["is_admin"] is True
        assert data["is_staff"] is True

    async def test_staff_only(self) -> None:
        mw = RoleMiddleware(admin_ids=[1], staff_ids=[2])
        data = await mw(_echo_handler, object(), {"event_from_user": SimpleNamespace(id=2)})
        assert (data["is_admin"], data["is_staff"]) == (False, True)

    async def test_public_user(self) -> None:
        mw = RoleMiddleware(admin_ids=[1], staff_ids=[2])
        data = await mw(_echo_handler, object(), {"event_from_user": SimpleNamespace(id=3)})
        assert (data["is_admin"], data["is_staff"]) == (False, False)

    async def test_no_user(self) -> None:
        mw = RoleMiddleware(admin_ids=[1])
        data = await mw(_echo_handler, object(), {})
        assert (data["is_admin"], data["is_staff"]) == (False, False)


class TestRoleFilters:
    async def test_is_admin(self) -> None:
        assert await IsAdmin()(object(), is_admin=True) is True
        assert await IsAdmin()(object()) is False

    async def test_is_staff(self) -> None:
        assert await IsStaff()(object(), is_staff=True) is True
        assert await IsStaff()(object(), is_staff=False) is False


# ─────────────────────────── RateLimitMiddleware ──────────────────────────────

class TestRateLimit:
    def test_sliding_window(self) -> None:
        rl = RateLimitMiddleware(rate=3, staff_rate=5, period=10.0)
        assert all(rl.hit(7, now=t) for t in (0.0, 1.0, 2.0))
        assert rl.hit(7, now=3.0) is False
        # first hit has left the window
        assert rl.hit(7, now=10.5) is True

    def test_users_are_independent(self) -> None:
        rl = RateLimitMiddleware(rate=1, period=10.0)
        assert rl.hit(1, now=0.0)
        assert rl.hit(2, now=0.0)
        assert not rl.hit(1, now=0.1)

    def test_staff_allowance(self) -> None:
        rl = RateLimitMiddleware(rate=1, staff_rate=3, period=10.0)
        assert all(rl.hit(7, is_staff=True, now=t) for t in (0.0, 0.1, 0.2))
        assert rl.hit(7, is_staff=True, now=0.3) is False

    async def test_throttled_message_is_answered_not_handled(self) -> None:
        rl = RateLimitMiddleware(rate=1, period=60.0)
        handler = AsyncMock(return_value="handled")
        message = SimpleNamespace(answer=AsyncMock())
        data = {
            "event_from_user": SimpleNamespace(id=5),
            "event_update": SimpleNamespace(callback_query=None, message=message),
        }

        assert await rl(handler, object(), dict(data)) == "handled"
        assert await rl(handler, object(), dict(data)) is None
        assert handler.await_count == 1
        message.answer.assert_awaited_once_with(THROTTLE_TEXT)

    async def test_updates_without_user_pass(self) -> None:
        rl = RateLimitMiddleware(rate=0)
        handler = AsyncMock(return_value="ok")
        assert await rl(handler, object(), {}) == "ok"


# ─────────────────────────── ScanReleaseMiddleware ────────────────────────────

CHAT = SimpleNamespace(id=42)


def _callback_update(data: str) -> Update:
    return Update(
        update_id=1,
        callback_query=CallbackQuery(
            id="1",
            from_user=User(id=42, is_bot=False, first_name="Staff"),
            chat_instance="ci",
            data=data,
        ),
    )


def _text_update(text: str) -> Update:
    return Update(
        update_id=1,
        message=Message(
            message_id=1,
            date=datetime.now(timezone.utc),
            chat=Chat(id=42, type="private"),
            text=text,
        ),
    )


@pytest.fixture
async def scanning(database):
    """A chat in scan mode: running session + ScannerStates.scanning."""
    registry = ScanSessionRegistry(database.session_factory)
    state = FSMContext(storage=MemoryStorage(), key=StorageKey(bot_id=1, chat_id=42, user_id=42))
    scan = await registry.open(CHAT.id)
    await state.set_state(ScannerStates.scanning)
    try:
        yield registry, state, scan
    finally:
        await registry.close_all()


def _data(registry, state) -> dict:
    return {"event_chat": CHAT, "scan_registry": registry, "state": state}


class TestScanRelease:
    async def test_leaving_scan_state_closes_session(self, scanning) -> None:
        registry, state, scan = scanning

        async def start_registration(event, data):
            await data["state"].set_state(RegistrationStates.choose_code)

        update = _callback_update(MainMenuCb(action="register").pack())
        await ScanReleaseMiddleware()(start_registration, update, _data(registry, state))

        assert not scan.running
        assert registry.get(CHAT.id) is None
        assert await state.get_state() == RegistrationStates.choose_code.state

    async def test_menu_button_without_state_change_closes_session(self, scanning) -> None:
        registry, state, scan = scanning
        update = _callback_update(AdminPanelCb(action="codes").pack())

        await ScanReleaseMiddleware()(AsyncMock(), update, _data(registry, state))

        assert not scan.running
        assert registry.get(CHAT.id) is None
        assert await state.get_state() is None

    async def test_scanner_buttons_keep_session(self, scanning) -> None:
        registry, state, scan = scanning
        update = _callback_update(ScannerCb(action="stats").pack())

        await ScanReleaseMiddleware()(AsyncMock(), update, _data(registry, state))

        assert scan.running
        assert registry.get(CHAT.id) is scan

    async def test_scanned_text_keeps_session(self, scanning) -> None:
        registry, state, scan = scanning

        await ScanReleaseMiddleware()(AsyncMock(), _text_update("FC1"), _data(registry, state))

        assert scan.running

    async def test_reopened_session_is_left_running(self, scanning) -> None:
        registry, state, scan = scanning
        reopened = {}

        async def open_scanner(event, data):
            reopened["scan"] = await registry.open(CHAT.id)
            await data["state"].set_state(ScannerStates.scanning)

        update = _callback_update(MainMenuCb(action="scan").pack())
        await ScanReleaseMiddleware()(open_scanner, update, _data(registry, state))

        assert not scan.running
        assert reopened["scan"].running
        assert registry.get(CHAT.id) is reopened["scan"]

    async def test_released_even_when_handler_fails(self, scanning) -> None:
        registry, state, scan = scanning
        update = _callback_update(AdminPanelCb(action="generate").pack())

        with pytest.raises(RuntimeError):
            await ScanReleaseMiddleware()(
                AsyncMock(side_effect=RuntimeError("boom")), update, _data(registry, state)
            )
        assert not scan.running

    async def test_chat_without_scanner_untouched(self, database) -> None:
        registry = ScanSessionRegistry(database.session_factory)
        handler = AsyncMock(return_value="ok")
        update = _callback_update(AdminPanelCb(action="codes").pack())

        assert await ScanReleaseMiddleware()(handler, update, _data(registry, None)) == "ok"
        handler.assert_awaited_once()
