"""Magnet URI validation and extraction from scraped pages."""

from __future__ import annotations

import re

from brasilrd.domain.entities import extract_info_hash
from brasilrd.domain.exceptions import MagnetValidationError

_MAGNET_RE = re.compile(r"magnet:\?[^\"'\s<>]+", re.IGNORECASE)
_MIN_LENGTH = 50


def validate_magnet(magnet_uri: str | None) -> str:
    """Return the lower-cased info hash of a well-formed magnet.

    Raises:
        MagnetValidationError: missing value, missing ``magnet:?`` prefix
            or missing ``xt=urn:btih:`` component.
    """
    if not magnet_uri:
        raise MagnetValidationError("Magnet link is required")
    if not magnet_uri.startswith("magnet:?"):
        raise MagnetValidationError("Invalid magnet link format")
    if "xt=urn:btih:" not in magnet_uri.lower():
        raise MagnetValidationError("Magnet link must contain BitTorrent info hash")
    info_hash = extract_info_hash(magnet_uri)
    if not info_hash:
        raise MagnetValidationError("Magnet link must contain BitTorrent info hash")
    return info_hash


def is_valid_magnet(magnet_uri: str | None) -> bool:
    """Loose check used on scraped data: prefix, btih and minimum length."""
    if not magnet_uri or len(magnet_uri) <= _MIN_LENGTH:
        return False
    try:
        validate_magnet(magnet_uri)
    except MagnetValidationError:
        return False
    return True


def _unescape(uri: str) -> str:
    return uri.replace("&amp;", "&").replace("&#038;", "&")


def extract_magnet(text: str) -> str | None:
    """Best magnet in an HTML/text blob.

    Prefers the longest magnet that carries both a btih hash and a display
    name, then the first valid one.
    """
    found = [_unescape(m) for m in _MAGNET_RE.findall(text or "")]
    named = [m for m in found if "btih:" in m.lower() and "&dn=" in m]
    if named:
        return max(named, key=len)
    for magnet in found:
        if is_valid_magnet(magnet):
            return magnet
    return None


def sanitize_link(link: str, max_length: int = 50) -> str:
    """Shorten a link for logs."""
    if len(link) <= max_length:
        return link
    return link[: max_length - 3] + "..."
