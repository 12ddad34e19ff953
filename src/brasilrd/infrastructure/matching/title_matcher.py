"""Title matching for torrent search results.

Pure transformation logic without I/O or framework dependencies.
Compares release titles against the searched title to drop clearly wrong
results (other titles, promotional uploads, wrong seasons).  Matching is
deliberately heuristic: patterns at three specificity levels plus a
word-ratio fallback for longer titles.

Secondary keyword similarity uses **rapidfuzz** (C++ backend).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from rapidfuzz import fuzz
from rapidfuzz.distance import Levenshtein
from unidecode import unidecode as _unidecode

from brasilrd.domain.entities import TitleMatch

# Anything that is not a letter/digit/whitespace, plus "_" which \w keeps.
_PUNCT_RE = re.compile(r"[^\w\s]|_")

# Articles and conjunctions (Portuguese + English) ignored for matching.
_STOP_WORDS_RE = re.compile(r"\b(?:o|a|os|as|the|and|de|da|do|das|dos)\b")

_PROMO_RE = re.compile(
    r"\b(?:promo|trailer|sample|1xbet|bet|propaganda|apostas|casino|bonus|"
    r"aviator|blaze|spam|advertisement|publicidade)\b"
)

_SXXEYY_RE = re.compile(r"s\d+e\d+", re.IGNORECASE)

# Words that never identify a title (used by the keyword similarity filter).
_COMMON_WORDS = frozenset(
    {
        "um", "uma", "uns", "umas", "em", "no", "na", "nos", "nas", "por",
        "para", "com", "sem", "sob", "sobre", "ano", "anos", "temporada",
        "season", "episodio", "episode", "parte", "part", "filme", "movie",
        "serie", "series", "tv", "complete", "completa", "dual", "dublado",
        "the", "and", "of", "in", "on", "at", "to", "for", "with", "by", "from",
    }
)  # fmt: skip


@dataclass(frozen=True)
class MatchPatterns:
    """Compiled patterns for one normalised query."""

    query: str
    phrase: tuple[re.Pattern[str], ...]
    words: tuple[str, ...]


def normalize_title(text: str) -> str:
    """Lowercase, strip diacritics, drop punctuation and stop words."""
    text = _unidecode(text.lower())
    text = _PUNCT_RE.sub(" ", text)
    text = " ".join(text.split())
    text = _STOP_WORDS_RE.sub("", text)
    return " ".join(text.split())


def is_promotional(title: str) -> bool:
    """True if *title* carries an ad/spam marker."""
    return _PROMO_RE.search(normalize_title(title)) is not None


def _word_pattern(words: list[str]) -> re.Pattern[str]:
    return re.compile(r"\b" + r"\s+".join(re.escape(w) for w in words) + r"\b")


def build_match_patterns(normalized_query: str) -> MatchPatterns:
    """Build phrase and word patterns for a normalised query.

    Level 1 is the full phrase, level 2 the leading (up to four) significant
    words plus every other significant word.  Level 3 keeps the significant
    words themselves for the word-ratio test.
    """
    words = [w for w in normalized_query.split() if len(w) > 2]
    if not words:
        return MatchPatterns(query=normalized_query, phrase=(), words=())

    phrase: list[re.Pattern[str]] = [_word_pattern(normalized_query.split())]
    if len(words) > 1:
        phrase.append(_word_pattern(words[:4]))
    if len(words) >= 3:
        phrase.append(_word_pattern(words[::2]))

    return MatchPatterns(
        query=normalized_query, phrase=tuple(phrase), words=tuple(words)
    )


def _pattern_length(pattern: re.Pattern[str]) -> int:
    """Length of the literal text a phrase pattern matches."""
    body = pattern.pattern[2:-2]  # strip the \b anchors
    return len(re.sub(r"\\s\+", " ", body).replace("\\", ""))


def match_title(title: str, patterns: MatchPatterns) -> TitleMatch:
    """Match a release *title* against precompiled query *patterns*."""
    if is_promotional(title):
        return TitleMatch(matches=False, match_type="promotional")

    query = patterns.query
    result = normalize_title(title)
    if not query or not result:
        return TitleMatch(matches=False)

    if result == query:
        return TitleMatch(matches=True, confidence=1.0, match_type="exact")

    for pattern in patterns.phrase:
        if pattern.search(result) is None:
            continue
        matched = _pattern_length(pattern)
        coverage = min(matched / len(query), 1.0)
        if matched > len(query) * 0.8:
            return TitleMatch(True, max(coverage, 0.95), "exact")
        return TitleMatch(True, max(coverage, 0.8), "partial")

    query_words = list(patterns.words)
    result_words = [w for w in result.split() if len(w) > 2]

    if len(query_words) >= 3:
        matching = [w for w in query_words if w in result_words]
        if len(matching) == len(query_words):
            return TitleMatch(True, 1.0, "keyword")
        conflicting = [w for w in result_words if w not in query_words and len(w) > 3]
        ratio = len(matching) / len(query_words)
        if ratio >= 0.9 and not conflicting:
            return TitleMatch(True, max(ratio, 0.9), "keyword")
    elif len(query_words) == 2:
        if all(w in result_words for w in query_words):
            return TitleMatch(True, 1.0, "keyword")

    return TitleMatch(matches=False)


def matches_season(title: str, season: int) -> bool:
    """True if *title* carries a marker for *season* (S01, Temporada 1, 1a Temp)."""
    normalized = _unidecode(title.lower())
    pattern = re.compile(
        rf"\b(?:s|season|temporada)[\s._-]*0*{season}(?!\d)"
        rf"|\b0*{season}\s*[ao]?\s*temp"
    )
    return pattern.search(normalized) is not None


def has_episode_marker(title: str) -> bool:
    return _SXXEYY_RE.search(title) is not None


def season_query_variants(query: str, season: int | None) -> list[str]:
    """Expand a base query into season-specific search strings (pt + en)."""
    if season is None:
        return [query]
    clean = strip_season_suffix(query)
    variants = [
        query,
        f"{clean} Temporada {season}",
        f"{clean} Season {season}",
        f"{clean} S{season:02d}",
    ]
    return list(dict.fromkeys(variants))


def strip_season_suffix(query: str) -> str:
    """Remove a trailing "Temporada N" / "Season N" from a search query."""
    stripped = re.sub(r"\s*(?:temporada|season)\s*\d+\s*$", "", query, flags=re.I)
    return stripped.strip() or query


# ---------------------------------------------------------------------------
# Secondary keyword similarity
# ---------------------------------------------------------------------------


def _title_keywords(normalized: str) -> list[str]:
    return [
        w
        for w in normalized.split()
        if len(w) > 2 and w not in _COMMON_WORDS and not w.isdigit()
    ]


def _keywords_similar(a: str, b: str) -> bool:
    if a == b or a in b or b in a:
        return True
    if len(a) <= 6 and len(b) <= 6:
        return Levenshtein.distance(a, b) <= 1
    return False


def is_similar_title(candidate_title: str, reference_title: str) -> bool:
    """Looser second-pass filter comparing title keywords.

    Accepts substring containment, enough matching keywords (60%, or two
    keywords for references of three or more), or an overall similarity
    ratio of at least 0.6 when either side has no keywords.
    """
    cand = normalize_title(candidate_title)
    ref = normalize_title(reference_title)
    if not cand or not ref:
        return False
    if ref in cand or cand in ref:
        return True

    ref_keywords = _title_keywords(ref)
    cand_keywords = _title_keywords(cand)
    if not ref_keywords or not cand_keywords:
        return fuzz.ratio(ref, cand) >= 60

    matching = [k for k in ref_keywords if any(_keywords_similar(k, c) for c in cand_keywords)]
    threshold = max(1, int(len(ref_keywords) * 0.6))
    if len(matching) >= threshold:
        return True
    return len(matching) >= 2 and len(ref_keywords) >= 3
