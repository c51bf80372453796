"""
Tests — classification and the verify-page state machine.

Coverage:
  - classify_row / classify for registered, unregistered and unknown codes
  - VerifyFlow transitions: idle, loading, ok, notfound, error
  - Verification never writes to the Scan Log
"""
from __future__ import annotations

from sqlalchemy import func, select

from fancard.errors import TransportError
from fancard.models.models import Code, ScanLog, ScanStatus
from fancard.services.code_service import create_codes, register_code
from fancard.services.verification_service import (
    Verification,
    ViewState,
    VerifyFlow,
    classify,
    classify_row,
    session_lookup,
)


# ─────────────────────────── classify ─────────────────────────────────────────

class TestClassifyRow:
    def test_missing_row_is_invalid(self) -> None:
        v = classify_row("ZZZ", None)
        assert v.status == ScanStatus.INVALID
        assert v.code == "ZZZ"
        assert v.fan_name is None
        assert not v.exists

    def test_pending_row_is_unregistered(self) -> None:
        v = classify_row("FC1", Code(code="FC1", is_registered=False))
        assert v.status == ScanStatus.UNREGISTERED
        assert v.exists and not v.is_registered
        assert v.fan_name is None

    def test_registered_row_carries_fan(self) -> None:
        row = Code(code="FC1", is_registered=True, fan_name="Jane Doe", fan_email="j@x.io")
        v = classify_row("FC1", row)
        assert v.status == ScanStatus.REGISTERED
        assert v.fan_name == "Jane Doe"
        assert v.fan_email == "j@x.io"


class TestClassify:
    async def test_three_outcomes(self, async_session) -> None:
        codes = await create_codes(async_session, 2)
        await register_code(async_session, codes[1].code, "Jane Doe")
        await async_session.commit()

        assert (await classify(async_session, codes[0].code)).status == ScanStatus.UNREGISTERED
        registered = await classify(async_session, codes[1].code)
        assert registered.status == ScanStatus.REGISTERED
        assert registered.fan_name == "Jane Doe"
        assert (await classify(async_session, "ZZZ")).status == ScanStatus.INVALID

    async def test_classification_does_not_log(self, async_session) -> None:
        [c] = await create_codes(async_session, 1)
        await async_session.commit()

        await classify(async_session, c.code)
        await classify(async_session, "ZZZ")
        assert await async_session.scalar(select(func.count(ScanLog.id))) == 0


# ─────────────────────────── VerifyFlow ───────────────────────────────────────

def _static_lookup(result: Verification):
    async def lookup(code: str) -> Verification:
        return result
    return lookup


class TestVerifyFlow:
    def test_starts_idle_without_code(self) -> None:
        flow = VerifyFlow(_static_lookup(Verification("X", ScanStatus.INVALID)))
        assert flow.state == ViewState.IDLE

    def test_starts_loading_with_code(self) -> None:
        flow = VerifyFlow(_static_lookup(Verification("X", ScanStatus.INVALID)), initial_code=" FC1 ")
        assert flow.state == ViewState.LOADING
        assert flow.initial_code == "FC1"

    async def test_start_without_code_stays_idle(self) -> None:
        flow = VerifyFlow(_static_lookup(Verification("X", ScanStatus.INVALID)))
        assert await flow.start() == ViewState.IDLE

    async def test_registered_is_ok(self) -> None:
        result = Verification("FC1", ScanStatus.REGISTERED, fan_name="Jane Doe")
        flow = VerifyFlow(_static_lookup(result), initial_code="FC1")
        assert await flow.start() == ViewState.OK
        assert flow.result.fan_name == "Jane Doe"

    async def test_unregistered_is_ok_without_fan(self) -> None:
        flow = VerifyFlow(_static_lookup(Verification("FC1", ScanStatus.UNREGISTERED)))
        assert await flow.check("FC1") == ViewState.OK
        assert not flow.result.is_registered

    async def test_unknown_is_notfound(self) -> None:
        flow = VerifyFlow(_static_lookup(Verification("ZZZ", ScanStatus.INVALID)))
        assert await flow.check("ZZZ") == ViewState.NOTFOUND
        assert "ZZZ" in flow.message
        assert flow.result is None

    async def test_store_error_keeps_message(self) -> None:
        async def failing(code: str) -> Verification:
            raise TransportError("connection refused")

        flow = VerifyFlow(failing, initial_code="FC1")
        assert await flow.start() == ViewState.ERROR
        assert flow.message == "connection refused"

    async def test_unexpected_error_lands_in_error(self) -> None:
        async def broken(code: str) -> Verification:
            raise RuntimeError("boom")

        flow = VerifyFlow(broken)
        assert await flow.check("FC1") == ViewState.ERROR
        assert flow.message == "boom"

    async def test_blank_submission_ignored(self) -> None:
        flow = VerifyFlow(_static_lookup(Verification("X", ScanStatus.INVALID)))
        assert await flow.check("   ") == ViewState.IDLE

    async def test_resubmit_after_error_recovers(self) -> None:
        calls = []

        async def flaky(code: str) -> Verification:
            calls.append(code)
            if len(calls) == 1:
                raise TransportError("timeout")
            return Verification(code, ScanStatus.UNREGISTERED)

        flow = VerifyFlow(flaky)
        assert await flow.check("FC1") == ViewState.ERROR
        assert await flow.check("FC1") == ViewState.OK
        assert flow.message == ""

    async def test_against_store(self, async_session) -> None:
        [c] = await create_codes(async_session, 1)
        await register_code(async_session, c.code, "Jane Doe")
        await async_session.commit()

        flow = VerifyFlow(session_lookup(async_session), initial_code=c.code)
        assert await flow.start() == ViewState.OK
        assert flow.result.is_registered
