"""Tests for magnet validation and extraction."""

from __future__ import annotations

import pytest

from brasilrd.domain.exceptions import MagnetValidationError
from brasilrd.infrastructure.common.magnet import (
    extract_magnet,
    is_valid_magnet,
    sanitize_link,
    validate_magnet,
)

_HASH = "0123456789ABCDEF0123456789ABCDEF01234567"
_MAGNET = f"magnet:?xt=urn:btih:{_HASH}&dn=Filme.2023.1080p"


class TestValidateMagnet:
    def test_returns_lowercase_hash(self) -> None:
        assert validate_magnet(_MAGNET) == _HASH.lower()

    @pytest.mark.parametrize(
        ("value", "message"),
        [
            ("", "Magnet link is required"),
            (None, "Magnet link is required"),
            ("http://example.com/file.torrent", "Invalid magnet link format"),
            ("magnet:?dn=Filme", "Magnet link must contain BitTorrent info hash"),
        ],
    )
    def test_rejects(self, value: str | None, message: str) -> None:
        with pytest.raises(MagnetValidationError, match=message):
            validate_magnet(value)


class TestIsValidMagnet:
    def test_valid(self) -> None:
        assert is_valid_magnet(_MAGNET)

    def test_too_short(self) -> None:
        assert not is_valid_magnet("magnet:?xt=urn:btih:abc")

    def test_none(self) -> None:
        assert not is_valid_magnet(None)


class TestExtractMagnet:
    def test_prefers_longest_named_magnet(self) -> None:
        short = f"magnet:?xt=urn:btih:{_HASH}&dn=a"
        long = f"magnet:?xt=urn:btih:{_HASH}&dn=Filme.Completo.1080p&tr=udp://t:1"
        html = f'<a href="{short}">x</a> <a href="{long}">y</a>'
        assert extract_magnet(html) == long

    def test_unescapes_html_entities(self) -> None:
        html = f'<a href="magnet:?xt=urn:btih:{_HASH}&amp;dn=Filme">x</a>'
        assert extract_magnet(html) == f"magnet:?xt=urn:btih:{_HASH}&dn=Filme"

    def test_unnamed_fallback(self) -> None:
        unnamed = f"magnet:?xt=urn:btih:{_HASH}&tr=udp://tracker.example:80"
        assert extract_magnet(f"texto {unnamed} fim") == unnamed

    def test_nothing_found(self) -> None:
        assert extract_magnet("<p>sem links</p>") is None
        assert extract_magnet("") is None


class TestSanitizeLink:
    def test_short_link_unchanged(self) -> None:
        assert sanitize_link("https://x.example") == "https://x.example"

    def test_long_link_truncated(self) -> None:
        result = sanitize_link("https://x.example/" + "a" * 100)
        assert len(result) == 50
        assert result.endswith("...")
