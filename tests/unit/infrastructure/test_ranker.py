"""Tests for candidate dedupe, filtering and per-tier selection."""

from __future__ import annotations

from brasilrd.domain.entities import Candidate, QualityTier
from brasilrd.infrastructure.config.schema import MatchingConfig
from brasilrd.infrastructure.matching.ranker import CandidateRanker, dedupe_by_hash

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _hash(n: int) -> str:
    return f"{n:040x}"


def _make_candidate(
    title: str,
    n: int = 1,
    *,
    quality: QualityTier = QualityTier.FHD_1080P,
    seeders: int = 0,
) -> Candidate:
    return Candidate(
        title=title,
        magnet_uri=f"magnet:?xt=urn:btih:{_hash(n)}&dn=x",
        provider="bludv",
        quality=quality,
        seeders=seeders,
    )


def _make_ranker(**overrides: object) -> CandidateRanker:
    return CandidateRanker(MatchingConfig(**overrides))


# ---------------------------------------------------------------------------
# dedupe_by_hash
# ---------------------------------------------------------------------------


class TestDedupeByHash:
    def test_first_occurrence_wins(self) -> None:
        a = _make_candidate("Filme A", 1)
        b = _make_candidate("Filme B", 1)
        c = _make_candidate("Filme C", 2)
        assert dedupe_by_hash([a, b, c]) == [a, c]

    def test_hash_comparison_ignores_case(self) -> None:
        upper = Candidate(
            title="x", magnet_uri=f"magnet:?xt=urn:btih:{'A' * 40}", provider="p"
        )
        lower = Candidate(
            title="y", magnet_uri=f"magnet:?xt=urn:btih:{'a' * 40}", provider="p"
        )
        assert dedupe_by_hash([upper, lower]) == [upper]

    def test_drops_candidates_without_hash(self) -> None:
        broken = Candidate(title="x", magnet_uri="magnet:?dn=x", provider="p")
        assert dedupe_by_hash([broken]) == []

    def test_idempotent(self) -> None:
        items = [_make_candidate("F", i % 3) for i in range(9)]
        once = dedupe_by_hash(items)
        assert dedupe_by_hash(once) == once
        assert len(once) == 3


# ---------------------------------------------------------------------------
# filter
# ---------------------------------------------------------------------------


class TestFilter:
    def test_wrong_season_rejected_right_season_kept(self) -> None:
        ranker = _make_ranker()
        wrong = _make_candidate("Breaking Bad S02 1080p", 1)
        right = _make_candidate("Breaking Bad 1ª Temporada Dublado 1080p", 2)

        kept = ranker.filter([wrong, right], "Breaking Bad", target_season=1)

        assert [c.title for c in kept] == [right.title]
        assert kept[0].quality is QualityTier.FHD_1080P

    def test_other_titles_rejected(self) -> None:
        ranker = _make_ranker()
        kept = ranker.filter(
            [_make_candidate("Better Call Saul S01 1080p")], "Breaking Bad"
        )
        assert kept == []

    def test_quality_outside_allow_list_rejected(self) -> None:
        ranker = _make_ranker()
        kept = ranker.filter(
            [_make_candidate("Breaking Bad CAM", quality=QualityTier.SD)],
            "Breaking Bad",
        )
        assert kept == []

    def test_promotional_rejected(self) -> None:
        ranker = _make_ranker()
        kept = ranker.filter([_make_candidate("Breaking Bad 1xbet")], "Breaking Bad")
        assert kept == []

    def test_sets_confidence_and_relevance(self) -> None:
        ranker = _make_ranker()
        (kept,) = ranker.filter([_make_candidate("Breaking Bad 1080p")], "Breaking Bad")
        assert kept.confidence == 1.0
        assert kept.relevance_score == 500


class TestRelevance:
    def test_bonuses(self) -> None:
        ranker = _make_ranker()
        plain = _make_candidate("Filme 1080p")
        dual = _make_candidate("Filme 1080p DUAL")
        source = _make_candidate("Filme 1080p WEB-DL")
        assert ranker.relevance(plain, 1.0) == 500
        assert ranker.relevance(dual, 1.0) == 525
        assert ranker.relevance(source, 1.0) == 520

    def test_seeders_capped(self) -> None:
        ranker = _make_ranker()
        few = _make_candidate("Filme 1080p", seeders=10)
        many = _make_candidate("Filme 1080p", seeders=10_000)
        assert ranker.relevance(few, 1.0) == 505
        assert ranker.relevance(many, 1.0) == 550


# ---------------------------------------------------------------------------
# select / rank
# ---------------------------------------------------------------------------


class TestSelect:
    def test_tiers_in_priority_order(self) -> None:
        ranker = _make_ranker()
        hd = _make_candidate("Breaking Bad 720p", 1, quality=QualityTier.HD_720P)
        uhd = _make_candidate("Breaking Bad 2160p", 2, quality=QualityTier.UHD_2160P)
        fhd = _make_candidate("Breaking Bad 1080p", 3, quality=QualityTier.FHD_1080P)

        ranked = ranker.rank([hd, uhd, fhd], "Breaking Bad")

        assert [c.quality for c in ranked] == [
            QualityTier.UHD_2160P,
            QualityTier.FHD_1080P,
            QualityTier.HD_720P,
        ]

    def test_per_tier_limit_keeps_best(self) -> None:
        ranker = _make_ranker(per_tier=2)
        items = [
            _make_candidate("Breaking Bad 1080p", i, seeders=s)
            for i, s in enumerate([1, 80, 10, 40], start=1)
        ]

        ranked = ranker.rank(items, "Breaking Bad")

        assert [c.seeders for c in ranked] == [80, 40]

    def test_max_results_cap(self) -> None:
        ranker = _make_ranker(per_tier=3, max_results=4)
        items = [
            _make_candidate("Breaking Bad 2160p", i, quality=QualityTier.UHD_2160P)
            for i in range(1, 4)
        ] + [
            _make_candidate("Breaking Bad 1080p", i, quality=QualityTier.FHD_1080P)
            for i in range(4, 7)
        ]

        ranked = ranker.rank(items, "Breaking Bad")

        assert len(ranked) == 4
        assert [c.quality for c in ranked].count(QualityTier.UHD_2160P) == 3

    def test_rank_dedupes(self) -> None:
        ranker = _make_ranker()
        a = _make_candidate("Breaking Bad 1080p", 1, seeders=5)
        b = _make_candidate("Breaking Bad 1080p DUAL", 1, seeders=50)
        ranked = ranker.rank([a, b], "Breaking Bad")
        assert len(ranked) == 1
        assert ranked[0].seeders == 5

    def test_empty(self) -> None:
        assert _make_ranker().rank([], "Breaking Bad") == []
