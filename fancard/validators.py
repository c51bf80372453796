"""
Input validation for FSM text handlers — Pydantic v2 models.

Used to validate user-supplied text before anything reaches the code store.
Keeps validation logic out of handler code and makes it trivially testable.
"""
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator

from fancard.errors import InputValidationError

MAX_BATCH_SIZE = 100
MAX_MANUAL_CODE_LENGTH = 64

# Deliberately loose: local@domain.tld, no spaces
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class RegistrationData(BaseModel):
    """
    Registrar input validated before the conditional update.

    Attributes
    ----------
    code      : selected pending code (non-empty)
    fan_name  : fan's name (1–255 chars after stripping)
    fan_email : optional; blank is treated as "not given"
    """

    code: str
    fan_name: str
    fan_email: Optional[str] = None

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Выберите код")
        return v

    @field_validator("fan_name")
    @classmethod
    def validate_fan_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Укажите имя болельщика")
        if len(v) > 255:
            raise ValueError("Имя не должно превышать 255 символов")
        return v

    @field_validator("fan_email")
    @classmethod
    def validate_fan_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if len(v) > 255 or not _EMAIL_RE.match(v):
            raise ValueError("Некорректный e-mail")
        return v


class BatchSizeData(BaseModel):
    """Number of codes to generate in one admin action (1–100)."""

    batch_size: int

    @field_validator("batch_size", mode="before")
    @classmethod
    def validate_batch_size(cls, v) -> int:
        try:
            v = int(str(v).strip())
        except ValueError:
            raise ValueError("Введите целое число")
        if v < 1 or v > MAX_BATCH_SIZE:
            raise ValueError(f"Размер партии должен быть от 1 до {MAX_BATCH_SIZE}")
        return v


class ManualCodeData(BaseModel):
    """Code typed by hand at the gate or on the verify page — uppercased."""

    code: str

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Введите код")
        if len(v) > MAX_MANUAL_CODE_LENGTH:
            raise ValueError(f"Код не длиннее {MAX_MANUAL_CODE_LENGTH} символов")
        return v


def first_error(exc: ValidationError) -> str:
    """Human-readable message of the first validation error."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    msg = errors[0].get("msg", "")
    # pydantic prefixes custom ValueError messages
    return msg.removeprefix("Value error, ")


def validate(model: type[BaseModel], **data) -> BaseModel:
    """Build `model` or raise InputValidationError with the first message."""
    try:
        return model(**data)
    except ValidationError as e:
        raise InputValidationError(first_error(e)) from e
