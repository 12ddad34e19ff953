"""Pure heuristics: title matching, quality detection, ranking, episodes."""

from .episode_parser import (
    filter_promotional,
    find_episode_file,
    is_promotional_file,
    largest_main_file,
    parse_episode,
    sanitize_filename,
    sort_by_episode,
    video_files,
)
from .ranker import CandidateRanker, dedupe_by_hash
from .release_parser import (
    detect_language,
    detect_quality,
    estimate_seeders,
    format_language,
    parse_size,
)
from .stream_sorter import StreamSorter
from .title_matcher import (
    build_match_patterns,
    is_similar_title,
    match_title,
    matches_season,
    normalize_title,
    season_query_variants,
)

__all__ = [
    "CandidateRanker",
    "StreamSorter",
    "build_match_patterns",
    "dedupe_by_hash",
    "detect_language",
    "detect_quality",
    "estimate_seeders",
    "filter_promotional",
    "find_episode_file",
    "format_language",
    "is_promotional_file",
    "is_similar_title",
    "largest_main_file",
    "match_title",
    "matches_season",
    "normalize_title",
    "parse_episode",
    "parse_size",
    "sanitize_filename",
    "season_query_variants",
    "sort_by_episode",
    "video_files",
]
