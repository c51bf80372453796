"""
Error taxonomy for FanCard operations.

NotFound    — lookup/update target does not exist
Conflict    — precondition failed (already registered, duplicate code)
Validation  — missing/invalid input, raised before any store call
Transport   — store unreachable or request rejected
Decode      — malformed scan payload; recovered internally, never shown
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession


class FanCardError(Exception):
    """Base class; `message` is safe to show to the user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(FanCardError):
    pass


class ConflictError(FanCardError):
    pass


class InputValidationError(FanCardError):
    pass


class TransportError(FanCardError):
    pass


class DecodeError(FanCardError):
    pass


@asynccontextmanager
async def store_errors(session: AsyncSession) -> AsyncIterator[None]:
    """
    Translate SQLAlchemy failures into the FanCard taxonomy.
    The session is rolled back so the caller can keep using it.
    """
    try:
        yield
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(f"Хранилище отклонило запись: {e.orig}") from e
    except SQLAlchemyError as e:
        await session.rollback()
        raise TransportError(str(e)) from e
