"""Tests for title normalisation and matching."""

from __future__ import annotations

import pytest

from brasilrd.infrastructure.matching.title_matcher import (
    build_match_patterns,
    has_episode_marker,
    is_promotional,
    is_similar_title,
    match_title,
    matches_season,
    normalize_title,
    season_query_variants,
    strip_season_suffix,
)


def _match(title: str, query: str):
    return match_title(title, build_match_patterns(normalize_title(query)))


# ---------------------------------------------------------------------------
# normalize_title
# ---------------------------------------------------------------------------


class TestNormalizeTitle:
    def test_strips_accents_and_stop_words(self) -> None:
        assert normalize_title("O Poderoso Chefão") == "poderoso chefao"

    def test_replaces_punctuation(self) -> None:
        assert normalize_title("Breaking.Bad_S01-1080p") == "breaking bad s01 1080p"

    def test_collapses_whitespace(self) -> None:
        assert normalize_title("  Cidade   de  Deus ") == "cidade deus"

    def test_english_articles(self) -> None:
        assert normalize_title("The Lord of the Rings") == "lord of rings"


class TestPromotional:
    @pytest.mark.parametrize(
        "title",
        ["Filme 1xbet", "Aposte no Aviator", "Trailer Oficial", "PROMO casino bonus"],
    )
    def test_promotional(self, title: str) -> None:
        assert is_promotional(title)

    def test_alphabet_is_not_bet(self) -> None:
        assert not is_promotional("Alphabet City 1080p")


# ---------------------------------------------------------------------------
# match_title
# ---------------------------------------------------------------------------


class TestMatchTitle:
    def test_exact(self) -> None:
        m = _match("Breaking Bad", "Breaking Bad")
        assert m.matches
        assert m.confidence == 1.0
        assert m.match_type == "exact"

    def test_phrase_in_release_name(self) -> None:
        m = _match("Breaking.Bad.S01.1080p.WEB-DL.DUAL", "Breaking Bad")
        assert m.matches
        assert m.confidence >= 0.95

    def test_promotional_never_matches(self) -> None:
        m = _match("Breaking Bad 1xbet", "Breaking Bad")
        assert not m.matches
        assert m.match_type == "promotional"

    def test_other_title_rejected(self) -> None:
        assert not _match("Better Call Saul S01 1080p", "Breaking Bad").matches

    def test_keyword_order_independent(self) -> None:
        m = _match(
            "Sociedade do Anel - Senhor dos Aneis 1080p",
            "O Senhor dos Aneis A Sociedade do Anel",
        )
        assert m.matches
        assert m.match_type in ("keyword", "partial", "exact")

    def test_two_word_query_needs_both_words(self) -> None:
        assert not _match("Breaking News 2020", "Breaking Bad").matches

    def test_empty_query(self) -> None:
        assert not _match("Anything", "").matches

    def test_accents_ignored(self) -> None:
        assert _match("Cidade de Deus 2002 1080p", "Cidade de Deus").matches
        assert _match("Tropa de Elite 2 Dublado", "Tropa de Elite").matches


# ---------------------------------------------------------------------------
# Seasons and episodes
# ---------------------------------------------------------------------------


class TestMatchesSeason:
    @pytest.mark.parametrize(
        "title",
        [
            "Breaking Bad S01 1080p",
            "Breaking.Bad.S01E03.720p",
            "Breaking Bad 1ª Temporada Completa",
            "Breaking Bad Temporada 1 Dublado",
            "Breaking Bad Season 1",
        ],
    )
    def test_season_one_markers(self, title: str) -> None:
        assert matches_season(title, 1)

    def test_other_season_rejected(self) -> None:
        assert not matches_season("Breaking Bad S02 1080p", 1)

    def test_season_ten_is_not_season_one(self) -> None:
        assert not matches_season("Grey's Anatomy Temporada 10", 1)

    def test_no_marker(self) -> None:
        assert not matches_season("Breaking Bad Completa", 1)


class TestEpisodeMarker:
    def test_has_marker(self) -> None:
        assert has_episode_marker("Show.S02E10.1080p")

    def test_no_marker(self) -> None:
        assert not has_episode_marker("Show Temporada 2")


class TestQueryVariants:
    def test_no_season(self) -> None:
        assert season_query_variants("Breaking Bad", None) == ["Breaking Bad"]

    def test_season_variants(self) -> None:
        assert season_query_variants("Breaking Bad", 2) == [
            "Breaking Bad",
            "Breaking Bad Temporada 2",
            "Breaking Bad Season 2",
            "Breaking Bad S02",
        ]

    def test_variants_from_season_query_are_unique(self) -> None:
        variants = season_query_variants("Breaking Bad Temporada 2", 2)
        assert variants[0] == "Breaking Bad Temporada 2"
        assert len(variants) == len(set(variants))
        assert "Breaking Bad S02" in variants

    def test_strip_season_suffix(self) -> None:
        assert strip_season_suffix("Breaking Bad Temporada 2") == "Breaking Bad"
        assert strip_season_suffix("Dark Season 3") == "Dark"
        assert strip_season_suffix("Temporada 2") == "Temporada 2"


# ---------------------------------------------------------------------------
# is_similar_title
# ---------------------------------------------------------------------------


class TestIsSimilarTitle:
    def test_substring(self) -> None:
        assert is_similar_title("The Matrix Reloaded", "Matrix")

    def test_keyword_overlap(self) -> None:
        assert is_similar_title("Velozes e Furiosos 9", "Velozes Furiosos")

    def test_typo_tolerated(self) -> None:
        assert is_similar_title("Duna Parte 2", "Dune")

    def test_unrelated(self) -> None:
        assert not is_similar_title("Toy Story", "Breaking Bad")

    def test_empty(self) -> None:
        assert not is_similar_title("", "Matrix")
