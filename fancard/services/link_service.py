"""
Verify links — the URL written to NFC tags and embedded in verify QR codes.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import parse_qs, urlencode, urljoin, urlsplit

VERIFY_PATH = "/verify"
CODE_PARAM = "c"            # canonical, short
LEGACY_CODE_PARAM = "code"  # still accepted on read


def build_verify_url(code: str, base_url: str) -> str:
    """`<base>/verify?c=<code>` with the code percent-encoded."""
    url = urljoin(base_url if base_url.endswith("/") else base_url + "/", VERIFY_PATH.lstrip("/"))
    return f"{url}?{urlencode({CODE_PARAM: code})}"


def extract_code(url_or_query: str) -> Optional[str]:
    """
    Code carried by a verify URL (or bare query string); None if absent.

    When a link carries both parameters the canonical `c` wins over the
    legacy `code`: links this service builds only ever carry `c`.
    """
    query = urlsplit(url_or_query).query or url_or_query.lstrip("?")
    params = parse_qs(query)
    for name in (CODE_PARAM, LEGACY_CODE_PARAM):
        values = params.get(name)
        if values and values[0]:
            return values[0]
    return None


def is_verify_url(text: str) -> bool:
    parts = urlsplit(text.strip())
    return parts.scheme in ("http", "https") and parts.path.rstrip("/").endswith(VERIFY_PATH)
