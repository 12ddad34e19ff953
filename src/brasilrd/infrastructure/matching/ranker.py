"""Candidate filtering, scoring and best-of-each-tier selection."""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import replace

import structlog

from brasilrd.domain.entities import TIER_ORDER, Candidate, QualityTier
from brasilrd.infrastructure.config.schema import MatchingConfig

from .release_parser import is_allowed_quality
from .title_matcher import (
    build_match_patterns,
    has_episode_marker,
    match_title,
    matches_season,
    normalize_title,
)

log = structlog.get_logger(__name__)

_DUAL_RE = re.compile(r"dual|dublado", re.IGNORECASE)
_SOURCE_RE = re.compile(r"bluray|blu-ray|web-?dl", re.IGNORECASE)


def dedupe_by_hash(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Drop candidates whose info hash was already seen (first one wins).

    Candidates without a parseable hash are dropped as well.
    """
    seen: set[str] = set()
    unique: list[Candidate] = []
    for candidate in candidates:
        info_hash = candidate.info_hash
        if not info_hash or info_hash in seen:
            continue
        seen.add(info_hash)
        unique.append(candidate)
    return unique


class CandidateRanker:
    """Title + quality filter and relevance ranking.

    Score formula: tier weight + confidence * 200 + marker bonuses +
    min(seeders * seeders_weight, seeders_cap).  All weights come from
    MatchingConfig.
    """

    def __init__(self, config: MatchingConfig) -> None:
        self._allowed = frozenset(config.allowed_qualities)
        self._per_tier = config.per_tier
        self._max_results = config.max_results
        self._dual_bonus = config.dual_audio_bonus
        self._source_bonus = config.source_bonus
        self._episode_bonus = config.episode_marker_bonus
        self._seeders_weight = config.seeders_weight
        self._seeders_cap = config.seeders_cap

    def relevance(self, candidate: Candidate, confidence: float) -> int:
        """Relevance score of a candidate that passed title matching."""
        score = candidate.quality.ranking_weight + confidence * 200
        if _DUAL_RE.search(candidate.title):
            score += self._dual_bonus
        if _SOURCE_RE.search(candidate.title):
            score += self._source_bonus
        if has_episode_marker(candidate.title):
            score += self._episode_bonus
        score += min(candidate.seeders * self._seeders_weight, self._seeders_cap)
        return round(score)

    def filter(
        self,
        candidates: Iterable[Candidate],
        title: str,
        *,
        target_season: int | None = None,
    ) -> list[Candidate]:
        """Keep candidates matching *title*, the allow-list and the season.

        Returned candidates carry ``confidence`` and ``relevance_score``.
        """
        patterns = build_match_patterns(normalize_title(title))
        kept: list[Candidate] = []
        for candidate in candidates:
            match = match_title(candidate.title, patterns)
            if not match.matches:
                log.debug(
                    "candidate_filtered",
                    title=candidate.title,
                    reason="title_mismatch",
                    match_type=match.match_type,
                )
                continue
            if not is_allowed_quality(candidate.quality, self._allowed):
                log.debug(
                    "candidate_filtered",
                    title=candidate.title,
                    reason="quality_not_allowed",
                    quality=candidate.quality.value,
                )
                continue
            if target_season is not None and not matches_season(
                candidate.title, target_season
            ):
                log.debug(
                    "candidate_filtered",
                    title=candidate.title,
                    reason="season_mismatch",
                    season=target_season,
                )
                continue
            kept.append(
                replace(
                    candidate,
                    confidence=match.confidence,
                    relevance_score=self.relevance(candidate, match.confidence),
                )
            )
        return kept

    def select(self, candidates: Iterable[Candidate]) -> list[Candidate]:
        """Best ``per_tier`` of each tier, tiers in priority order, capped."""
        groups: dict[QualityTier, list[Candidate]] = defaultdict(list)
        for candidate in candidates:
            groups[candidate.quality].append(candidate)

        selected: list[Candidate] = []
        for tier in TIER_ORDER:
            group = sorted(
                groups.get(tier, []),
                key=lambda c: (c.confidence, c.relevance_score, c.seeders, c.size_bytes),
                reverse=True,
            )
            selected.extend(group[: self._per_tier])
        return selected[: self._max_results]

    def rank(
        self,
        candidates: Iterable[Candidate],
        title: str,
        *,
        target_season: int | None = None,
    ) -> list[Candidate]:
        """Dedupe, filter and select in one pass."""
        raw = list(candidates)
        unique = dedupe_by_hash(raw)
        passed = self.filter(unique, title, target_season=target_season)
        ranked = self.select(passed)

        tiers: dict[str, int] = defaultdict(int)
        for c in ranked:
            tiers[c.quality.value] += 1
        log.info(
            "candidates_ranked",
            title=title,
            season=target_season,
            raw=len(raw),
            unique=len(unique),
            passed=len(passed),
            selected=len(ranked),
            tiers=dict(tiers),
        )
        return ranked
