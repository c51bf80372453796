"""
QR service for FanCard.

Encodes registration payloads and verify links as PNG QR codes and decodes
QR codes out of photos taken at the gate.
Uses `segno` — a pure-Python QR encoder (no native libs required) — and
`pyzbar` + Pillow for decoding.
"""
from __future__ import annotations

import io
import json
import logging
import time
from typing import List, Optional

import segno
from PIL import Image, UnidentifiedImageError

from fancard.errors import DecodeError

logger = logging.getLogger(__name__)

PAYLOAD_TYPE = "fancard"

# Club colours used on printed registration QR codes
DARK_COLOUR  = "#1f4d2f"
LIGHT_COLOUR = "#ffffff"


def registration_payload(code: str, timestamp_ms: Optional[int] = None) -> str:
    """JSON payload embedded in the registration QR: {type, code, timestamp}."""
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    return json.dumps(
        {"type": PAYLOAD_TYPE, "code": code, "timestamp": timestamp_ms},
        separators=(",", ":"),
    )


def generate_qr_png(
    data: str,
    scale: int = 8,
    border: int = 2,
    dark: str = DARK_COLOUR,
    light: str = LIGHT_COLOUR,
) -> bytes:
    """
    Render `data` as a PNG QR code.

    Parameters
    ----------
    data   : text to encode (JSON payload or verify URL)
    scale  : pixels per module
    border : quiet-zone width in modules

    Returns
    -------
    PNG bytes ready to be sent as a Telegram photo or HTTP response.
    """
    qr  = segno.make_qr(data, error="M")
    buf = io.BytesIO()
    qr.save(buf, kind="png", scale=scale, border=border, dark=dark, light=light)
    return buf.getvalue()


def decode_qr_image(image_bytes: bytes) -> List[str]:
    """
    Decode all QR symbols in a photo.
    Returns the decoded texts (possibly empty); raises DecodeError when the
    bytes are not an image at all.
    """
    # pyzbar loads the libzbar shared library on import
    from pyzbar.pyzbar import ZBarSymbol, decode

    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise DecodeError(f"Не удалось прочитать изображение: {e}") from e

    gray = image.convert("L")
    texts: List[str] = []
    for symbol in decode(gray, symbols=[ZBarSymbol.QRCODE]):
        try:
            texts.append(symbol.data.decode("utf-8"))
        except UnicodeDecodeError:
            logger.warning("Skipping QR symbol with non-UTF-8 payload")
    return texts
