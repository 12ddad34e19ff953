"""Release name parsing: quality tier, audio language, size and seeders."""

from __future__ import annotations

import re
from collections.abc import Iterable

from guessit import guessit
from guessit.api import GuessitException

from brasilrd.domain.entities import QualityTier

# --- Quality detection ---

# (pattern, tier, confidence) in descending specificity.  Dotted forms
# (".1080p.") come from scene release names and are the most reliable.
_QUALITY_PATTERNS: tuple[tuple[re.Pattern[str], QualityTier, int], ...] = tuple(
    (re.compile(p, re.IGNORECASE), tier, conf)
    for p, tier, conf in (
        (r"\.2160p\.", QualityTier.UHD_2160P, 100),
        (r"\.4k\.", QualityTier.UHD_2160P, 100),
        (r"\b2160p\b", QualityTier.UHD_2160P, 98),
        (r"\b4k\b", QualityTier.UHD_2160P, 98),
        (r"2160p", QualityTier.UHD_2160P, 95),
        (r"\buhd\b", QualityTier.UHD_2160P, 90),
        (r"\bultra.hd\b", QualityTier.UHD_2160P, 90),
        (r"\.1080p\.", QualityTier.FHD_1080P, 100),
        (r"\b1080p\b", QualityTier.FHD_1080P, 98),
        (r"1080p", QualityTier.FHD_1080P, 95),
        (r"\bfhd\b", QualityTier.FHD_1080P, 90),
        (r"\bfull.hd\b", QualityTier.FHD_1080P, 90),
        (r"\.720p\.", QualityTier.HD_720P, 100),
        (r"\b720p\b", QualityTier.HD_720P, 98),
        (r"720p", QualityTier.HD_720P, 95),
        (r"\bhd.rip\b", QualityTier.HD_720P, 85),
        (r"\.480p\.", QualityTier.SD_480P, 100),
        (r"\b480p\b", QualityTier.SD_480P, 98),
        (r"\.hd\.", QualityTier.HD, 90),
        (r"\bhd\b", QualityTier.HD, 80),
        (r"\bhigh.def\b", QualityTier.HD, 80),
        (r"\.web-dl\.", QualityTier.FHD_1080P, 95),
        (r"\.remux\.", QualityTier.UHD_2160P, 95),
        (r"\.bluray\.", QualityTier.FHD_1080P, 90),
        (r"\.blu-ray\.", QualityTier.FHD_1080P, 90),
        (r"\.webrip\.", QualityTier.FHD_1080P, 85),
        (r"\.brrip\.", QualityTier.FHD_1080P, 85),
        (r"\.bdrip\.", QualityTier.FHD_1080P, 85),
        (r"\.hdtv\.", QualityTier.HD_720P, 80),
    )
)

_EXACT_TOKENS: tuple[tuple[re.Pattern[str], QualityTier], ...] = (
    (re.compile(r"2160p|\b4k\b", re.IGNORECASE), QualityTier.UHD_2160P),
    (re.compile(r"1080p", re.IGNORECASE), QualityTier.FHD_1080P),
    (re.compile(r"720p", re.IGNORECASE), QualityTier.HD_720P),
    (re.compile(r"480p", re.IGNORECASE), QualityTier.SD_480P),
)

_INFER_1080_RE = re.compile(r"remux|web-?dl|blu-?ray", re.IGNORECASE)
_INFER_720_RE = re.compile(r"hdtv", re.IGNORECASE)
_INFER_SD_RE = re.compile(
    r"\b(?:cam|hdcam|camrip|ts|hdts|telesync|scr|screener)\b", re.IGNORECASE
)

DEFAULT_ALLOWED_QUALITIES: frozenset[QualityTier] = frozenset(
    {
        QualityTier.UHD_2160P,
        QualityTier.FHD_1080P,
        QualityTier.HD_720P,
        QualityTier.HD,
    }
)

# --- Language ---

_DUAL_RE = re.compile(r"\bdual\b", re.IGNORECASE)
_DUBBED_RE = re.compile(r"\b(?:dublado|nacional)\b", re.IGNORECASE)
_SUBBED_RE = re.compile(r"\blegendado\b", re.IGNORECASE)

_LANGUAGE_LABELS: dict[str, str] = {
    "pt-BR": "PT-BR",
    "pt-BR,en": "Dual audio PT-BR / EN",
    "pt": "PT (legendado)",
    "en": "EN",
    "dual": "Dual audio",
    "multi": "Multi audio",
}

# --- Size ---

_SIZE_RE = re.compile(
    r"(\d+(?:[.,]\d+)?)\s*(TB|TiB|GB|GiB|G|MB|MiB|M)\b", re.IGNORECASE
)
_UNIT_BYTES: dict[str, int] = {
    "tb": 1024**4,
    "tib": 1024**4,
    "gb": 1024**3,
    "gib": 1024**3,
    "g": 1024**3,
    "mb": 1024**2,
    "mib": 1024**2,
    "m": 1024**2,
}
DEFAULT_SIZE_BYTES = int(1.5 * 1024**3)

# --- Seeder estimation (sources without swarm stats) ---

_PROVIDER_SEED_BASE: dict[str, int] = {
    "bludv": 80,
    "starck-filmes": 60,
    "baixafilmestorrent": 50,
    "indexer": 70,
}
_TIER_SEED_MULTIPLIER: dict[QualityTier, float] = {
    QualityTier.UHD_2160P: 1.5,
    QualityTier.FHD_1080P: 1.3,
    QualityTier.HD_720P: 1.0,
    QualityTier.HD: 1.1,
}


# --- Public API ---


def detect_quality(name: str) -> QualityTier:
    """Infer the quality tier of a release *name*.

    A pattern with confidence >= 95 wins immediately.  Otherwise an explicit
    resolution token wins, then the best remaining pattern hit (>= 80),
    then source-format inference.  Defaults to ``HD``.
    """
    best: tuple[QualityTier, int] | None = None
    for pattern, tier, confidence in _QUALITY_PATTERNS:
        if pattern.search(name) is None:
            continue
        if confidence >= 95:
            return tier
        if best is None or confidence > best[1]:
            best = (tier, confidence)

    for pattern, tier in _EXACT_TOKENS:
        if pattern.search(name):
            return tier

    if best is not None and best[1] >= 80:
        return best[0]

    if _INFER_1080_RE.search(name):
        return QualityTier.FHD_1080P
    if _INFER_720_RE.search(name):
        return QualityTier.HD_720P
    if _INFER_SD_RE.search(name):
        return QualityTier.SD
    return QualityTier.HD


def parse_quality_label(label: str | None) -> QualityTier | None:
    """Map a free-form quality label ("4K", "1080p", "SD") to a tier."""
    if not label:
        return None
    value = label.strip()
    if value.upper() in ("4K", "UHD"):
        return QualityTier.UHD_2160P
    for tier in QualityTier:
        if tier.value.lower() == value.lower():
            return tier
    return None


def is_allowed_quality(
    tier: QualityTier, allowed: Iterable[QualityTier] = DEFAULT_ALLOWED_QUALITIES
) -> bool:
    return tier in frozenset(allowed)


def detect_language(name: str) -> str:
    """Audio language code of a Brazilian release name."""
    if _DUAL_RE.search(name):
        return "pt-BR,en"
    if _DUBBED_RE.search(name):
        return "pt-BR"
    if _SUBBED_RE.search(name):
        return "pt"
    return "pt-BR"


def format_language(code: str) -> str:
    """Human-readable label for a language code from ``detect_language``."""
    return _LANGUAGE_LABELS.get(code, code.upper() if code else "PT-BR")


def parse_size(text: str | None, default: int = DEFAULT_SIZE_BYTES) -> int:
    """Extract a byte size from strings like ``"4.5 GB"`` or ``"700MB"``."""
    if not text:
        return default
    match = _SIZE_RE.search(text)
    if match is None:
        return default
    value = float(match.group(1).replace(",", "."))
    return int(value * _UNIT_BYTES[match.group(2).lower()])


def format_size(size_bytes: int) -> str:
    if size_bytes >= 1024**3:
        return f"{size_bytes / 1024**3:.2f} GB"
    return f"{size_bytes / 1024**2:.0f} MB"


def estimate_seeders(provider: str, tier: QualityTier) -> int:
    """Plausible seeder count for sources that do not report swarm stats."""
    base = _PROVIDER_SEED_BASE.get(provider, 30)
    return round(base * _TIER_SEED_MULTIPLIER.get(tier, 1.0))


def clean_release_title(name: str) -> str:
    """Human title of a release name, without quality/codec/group tokens.

    Falls back to the raw name when guessit cannot find a title.
    """
    try:
        info = guessit(name)
    except GuessitException:
        return name.strip()
    title = info.get("title")
    if not title:
        return name.strip()
    year = info.get("year")
    return f"{title} ({year})" if year else str(title)
