"""
Tests — bot message texts (HTML parse mode).

Fan names, e-mails, scanned text and Telegram names are free text; every
screen that shows them must quote them so Telegram can parse the message.
"""
from __future__ import annotations

from datetime import datetime, timezone

from fancard.handlers.admin.codes import _code_card
from fancard.handlers.admin.panel import dashboard_text
from fancard.handlers.common import _welcome_text
from fancard.handlers.registration import _summary
from fancard.handlers.verify import render_flow
from fancard.models.models import Code, ScanStatus
from fancard.services.code_service import CodeStats
from fancard.services.verification_service import Verification, VerifyFlow

NASTY_NAME = "Anna_Maria <b>*J*</b> & Co"
QUOTED_NAME = "Anna_Maria &lt;b&gt;*J*&lt;/b&gt; &amp; Co"


async def _flow(verification: Verification) -> VerifyFlow:
    async def lookup(code: str) -> Verification:
        return verification

    flow = VerifyFlow(lookup, initial_code=verification.code)
    await flow.start()
    return flow


# ─────────────────────────── Verify ───────────────────────────────────────────

class TestRenderFlow:
    async def test_registered_quotes_name(self) -> None:
        flow = await _flow(Verification(
            "FC1", ScanStatus.REGISTERED, fan_name=NASTY_NAME,
            registered_at=datetime(2024, 4, 5, tzinfo=timezone.utc),
        ))
        text = render_flow(flow, "https://club.example")
        assert "<b>Карта действительна</b>" in text
        assert QUOTED_NAME in text
        assert "<code>FC1</code>" in text
        assert "05.04.2024" in text
        assert "https://club.example/verify?c=FC1" in text

    async def test_not_found_quotes_scanned_text(self) -> None:
        flow = await _flow(Verification("<x>&", ScanStatus.INVALID))
        text = render_flow(flow, "https://club.example")
        assert "Недействительный код" in text
        assert "&lt;x&gt;&amp;" in text
        assert "<x>" not in text

    def test_idle_prompt(self) -> None:
        async def lookup(code: str) -> Verification:
            raise AssertionError("no lookup expected")

        assert "Введите код" in render_flow(VerifyFlow(lookup), "https://club.example")


# ─────────────────────────── Registrar ────────────────────────────────────────

class TestRegistrationSummary:
    def test_name_and_email_quoted(self) -> None:
        text = _summary({"code": "FC1", "fan_name": NASTY_NAME, "fan_email": "a_b@x.io"})
        assert QUOTED_NAME in text
        assert "a_b@x.io" in text
        assert "<code>FC1</code>" in text

    def test_missing_email_placeholder(self) -> None:
        assert "E-mail: —" in _summary({"code": "FC1", "fan_name": "Jane"})


# ─────────────────────────── Admin / common ───────────────────────────────────

class TestAdminTexts:
    def test_code_card_quotes_fan_data(self) -> None:
        code = Code(
            code="FC1",
            is_registered=True,
            fan_name=NASTY_NAME,
            fan_email="x<y@z.io",
            created_at=datetime(2024, 4, 5, 10, 0, tzinfo=timezone.utc),
            registered_at=datetime(2024, 4, 6, 11, 30, tzinfo=timezone.utc),
        )
        text = _code_card(code)
        assert QUOTED_NAME in text
        assert "x&lt;y@z.io" in text
        assert "06.04.2024 11:30" in text

    def test_dashboard_counts(self) -> None:
        text = dashboard_text(CodeStats(total=5, registered=2))
        assert "<code>5</code>" in text
        assert "<code>3</code>" in text


class TestWelcomeText:
    def test_telegram_name_quoted(self) -> None:
        for is_admin, is_staff in ((True, True), (False, True), (False, False)):
            text = _welcome_text("<Ivan_>", is_admin, is_staff)
            assert "&lt;Ivan_&gt;" in text
            assert "<Ivan_>" not in text
