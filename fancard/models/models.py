"""
ORM models for the FanCard issuance and verification system.

Domain overview
---------------
Code     — one physical NFC card: generated by an admin, registered once to a fan
ScanLog  — append-only record of every check made through the gate scanner
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fancard.models.base import Base


# Longest scanned text kept in the Scan Log; longer input is truncated
SCAN_CODE_LENGTH = 512


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

# ─────────────────────────── Constants ────────────────────────────────────────

class ScanStatus:
    REGISTERED   = "registered"     # code exists and is bound to a fan
    UNREGISTERED = "unregistered"   # code exists, no fan yet
    INVALID      = "invalid"        # no such code

    ALL = (REGISTERED, UNREGISTERED, INVALID)

    LABELS = {
        REGISTERED:   "Registered",
        UNREGISTERED: "Unregistered",
        INVALID:      "Invalid",
    }

    EMOJI = {
        REGISTERED:   "✅",
        UNREGISTERED: "⚠️",
        INVALID:      "❌",
    }


# ─────────────────────────── Models ───────────────────────────────────────────

class Code(Base):
    """A fan-card code. `code` is unique and never changes after creation."""
    __tablename__ = "codes"

    id:            Mapped[int]                = mapped_column(Integer, primary_key=True, autoincrement=True)
    code:          Mapped[str]                = mapped_column(String(64), unique=True, index=True)
    created_at:    Mapped[datetime]           = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    is_registered: Mapped[bool]               = mapped_column(Boolean, default=False, nullable=False)
    registered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    fan_name:      Mapped[Optional[str]]      = mapped_column(String(255), nullable=True)
    fan_email:     Mapped[Optional[str]]      = mapped_column(String(255), nullable=True)

    @property
    def status_label(self) -> str:
        """CSV / list label: literal Registered or Pending."""
        return "Registered" if self.is_registered else "Pending"

    @property
    def status_emoji(self) -> str:
        return "✅" if self.is_registered else "⚪️"

    def __repr__(self) -> str:
        return f"<Code {self.code} registered={self.is_registered}>"


class ScanLog(Base):
    """One verification attempt made through the scanner."""
    __tablename__ = "scan_history"

    id:         Mapped[int]           = mapped_column(Integer, primary_key=True, autoincrement=True)
    code:       Mapped[str]           = mapped_column(String(SCAN_CODE_LENGTH), index=True)
    status:     Mapped[str]           = mapped_column(String(20))          # ScanStatus.*
    fan_name:   Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    scanned_at: Mapped[datetime]      = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    @property
    def status_emoji(self) -> str:
        return ScanStatus.EMOJI.get(self.status, "❓")
