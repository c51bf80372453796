"""
Unit tests — verify links (link_service.py).
"""
from __future__ import annotations

import pytest

from fancard.services.link_service import build_verify_url, extract_code, is_verify_url


class TestBuildVerifyUrl:
    def test_basic(self) -> None:
        assert build_verify_url("FC123", "https://club.example") == "https://club.example/verify?c=FC123"

    def test_trailing_slash_base(self) -> None:
        assert build_verify_url("FC123", "https://club.example/") == "https://club.example/verify?c=FC123"

    def test_base_sub_path_kept(self) -> None:
        assert build_verify_url("FC1", "https://club.example/cards") == "https://club.example/cards/verify?c=FC1"

    def test_code_is_percent_encoded(self) -> None:
        url = build_verify_url("A B&C", "http://localhost:8080")
        assert url == "http://localhost:8080/verify?c=A+B%26C"


class TestExtractCode:
    @pytest.mark.parametrize("code", ["FC1712345678901ABC123", "A B&C", "ключ"])
    def test_round_trip(self, code: str) -> None:
        assert extract_code(build_verify_url(code, "https://club.example")) == code

    def test_legacy_param(self) -> None:
        assert extract_code("https://club.example/verify?code=FC9") == "FC9"

    def test_canonical_param_wins(self) -> None:
        assert extract_code("https://club.example/verify?code=OLD&c=NEW") == "NEW"

    def test_bare_query_string(self) -> None:
        assert extract_code("c=FC9") == "FC9"
        assert extract_code("?code=FC9") == "FC9"

    def test_missing_param(self) -> None:
        assert extract_code("https://club.example/verify") is None
        assert extract_code("https://club.example/verify?c=") is None


class TestIsVerifyUrl:
    def test_accepts_verify_links(self) -> None:
        assert is_verify_url("https://club.example/verify?c=1")
        assert is_verify_url("http://localhost:8080/verify/?c=1")

    def test_rejects_others(self) -> None:
        assert not is_verify_url("FC123")
        assert not is_verify_url("https://club.example/stats?c=1")
        assert not is_verify_url("ftp://club.example/verify?c=1")
