"""
Code lifecycle service — generation, lookup, registration and deletion of
fan-card codes.

All functions receive an AsyncSession parameter and are plain async
functions (no class coupling) for easy unit testing. They flush but never
commit: the caller (DatabaseMiddleware, a scan session, a test) owns the
transaction. Store failures surface as FanCard errors (see errors.py).
"""
from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fancard.errors import ConflictError, NotFoundError, store_errors
from fancard.models.models import Code
from fancard.services.change_feed import ChangeKind, CodeChange, record_change
from fancard.validators import BatchSizeData, RegistrationData, validate

logger = logging.getLogger(__name__)

CODE_PREFIX      = "FC"
SUFFIX_LENGTH    = 6
_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase   # base-36


@dataclass(frozen=True)
class CodeStats:
    total: int
    registered: int

    @property
    def pending(self) -> int:
        return self.total - self.registered


# ── Generation ────────────────────────────────────────────────────────────────

def generate_code(now_ms: Optional[int] = None) -> str:
    """
    Candidate code: prefix + epoch milliseconds + 6 random base-36 chars.
    Uniqueness is enforced by the store, not checked here.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{CODE_PREFIX}{now_ms}{suffix}".upper()


async def create_codes(session: AsyncSession, batch_size: int) -> List[Code]:
    """
    Insert `batch_size` new unregistered codes in one flush.
    The batch is all-or-nothing: on rejection the session is rolled back.
    """
    batch_size = validate(BatchSizeData, batch_size=batch_size).batch_size

    rows = [Code(code=generate_code(), is_registered=False) for _ in range(batch_size)]
    async with store_errors(session):
        session.add_all(rows)
        await session.flush()

    record_change(session, CodeChange(ChangeKind.INSERT, tuple(r.id for r in rows)))
    logger.info("Generated %d codes (%s … %s)", len(rows), rows[0].code, rows[-1].code)
    return rows


# ── Lookup ────────────────────────────────────────────────────────────────────

async def list_codes(session: AsyncSession) -> List[Code]:
    async with store_errors(session):
        result = await session.execute(
            select(Code).order_by(Code.created_at.asc(), Code.id.asc())
        )
    return list(result.scalars().all())


async def list_pending_codes(session: AsyncSession) -> List[Code]:
    """Codes a registrar can still bind to a fan, oldest first."""
    async with store_errors(session):
        result = await session.execute(
            select(Code)
            .where(Code.is_registered.is_(False))
            .order_by(Code.created_at.asc(), Code.id.asc())
        )
    return list(result.scalars().all())


async def list_registered_codes(session: AsyncSession, limit: int = 20) -> List[Code]:
    """Most recently registered cards first."""
    async with store_errors(session):
        result = await session.execute(
            select(Code)
            .where(Code.is_registered.is_(True))
            .order_by(Code.registered_at.desc(), Code.id.desc())
            .limit(limit)
        )
    return list(result.scalars().all())


async def get_code(session: AsyncSession, code: str) -> Optional[Code]:
    """Exact lookup by code value; None if the code does not exist."""
    async with store_errors(session):
        result = await session.execute(
            select(Code)
            .where(Code.code == code)
            .execution_options(populate_existing=True)
        )
    return result.scalar_one_or_none()


async def get_code_by_id(session: AsyncSession, code_id: int) -> Optional[Code]:
    async with store_errors(session):
        result = await session.execute(select(Code).where(Code.id == code_id))
    return result.scalar_one_or_none()


async def code_stats(session: AsyncSession) -> CodeStats:
    async with store_errors(session):
        total = await session.scalar(select(func.count(Code.id)))
        registered = await session.scalar(
            select(func.count(Code.id)).where(Code.is_registered.is_(True))
        )
    return CodeStats(total=total or 0, registered=registered or 0)


# ── Registration ──────────────────────────────────────────────────────────────

async def register_code(
    session: AsyncSession,
    code: str,
    fan_name: str,
    fan_email: Optional[str] = None,
) -> Code:
    """
    Bind a pending code to a fan with one conditional update.

    Raises InputValidationError before touching the store, NotFoundError if the
    code does not exist and ConflictError if it is already registered.
    """
    data = validate(RegistrationData, code=code, fan_name=fan_name, fan_email=fan_email)

    async with store_errors(session):
        result = await session.execute(
            update(Code)
            .where(Code.code == data.code, Code.is_registered.is_(False))
            .values(
                is_registered=True,
                registered_at=datetime.now(timezone.utc),
                fan_name=data.fan_name,
                fan_email=data.fan_email,
            )
            .execution_options(synchronize_session=False)
        )

    if result.rowcount != 1:
        existing = await get_code(session, data.code)
        if existing is None:
            raise NotFoundError(f"Код {data.code} не найден.")
        raise ConflictError(f"Код {data.code} уже зарегистрирован на {existing.fan_name}.")

    row = await get_code(session, data.code)
    if row is None:
        raise NotFoundError(f"Код {data.code} удалён во время регистрации.")
    record_change(session, CodeChange(ChangeKind.UPDATE, (row.id,)))
    logger.info("Code %s registered to %r", row.code, row.fan_name)
    return row


# ── Deletion ──────────────────────────────────────────────────────────────────

async def delete_code(session: AsyncSession, code_id: int) -> None:
    async with store_errors(session):
        result = await session.execute(delete(Code).where(Code.id == code_id))
    if result.rowcount == 0:
        raise NotFoundError("Код уже удалён.")
    record_change(session, CodeChange(ChangeKind.DELETE, (code_id,)))
    logger.info("Code id=%d deleted", code_id)


async def delete_pending_codes(session: AsyncSession) -> int:
    """Delete every unregistered code. Registered codes are untouched."""
    async with store_errors(session):
        result = await session.execute(
            delete(Code).where(Code.is_registered.is_(False))
        )
    count = result.rowcount or 0
    if count:
        record_change(session, CodeChange(ChangeKind.DELETE))
    logger.info("Deleted %d pending codes", count)
    return count


async def delete_all_codes(session: AsyncSession) -> int:
    async with store_errors(session):
        result = await session.execute(delete(Code))
    count = result.rowcount or 0
    if count:
        record_change(session, CodeChange(ChangeKind.DELETE))
    logger.info("Deleted all %d codes", count)
    return count
