"""Season/episode extraction and file selection inside season torrents.

Pure functions over filenames and ``TorrentFile`` tuples.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import PurePosixPath

from brasilrd.domain.entities import EpisodeRef, TorrentFile

VIDEO_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".mp4", ".mkv", ".avi", ".mov", ".wmv", ".flv", ".webm", ".m4v",
        ".mpg", ".mpeg", ".3gp", ".ts", ".mts", ".m2ts", ".vob",
    }
)  # fmt: skip

_PROMO_FILE_RE = re.compile(
    r"promo|1xbet|\bbet\b|propaganda|publicidade|advertisement|sample|trailer|"
    r"teaser|preview|torrentdosfilmes",
    re.IGNORECASE,
)

# Ordered: the first pattern that yields a positive pair wins.
# Single-group patterns imply season 1.
_EPISODE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(\d+)x(\d+)", re.IGNORECASE),
    re.compile(r"s(\d+)e(\d+)", re.IGNORECASE),
    re.compile(r"season[\s._-]?(\d+)[\s._-]?episode[\s._-]?(\d+)", re.IGNORECASE),
    re.compile(r"ep[\s._-]?(\d+)", re.IGNORECASE),
    re.compile(r"(\d+)(?:\s*-\s*|\s*)(\d+)"),
    re.compile(r"^(\d+)$"),
)

_INVALID_FILENAME_RE = re.compile(r'[<>:"/\\|?*]')


def parse_episode(filename: str) -> EpisodeRef | None:
    """Extract the season/episode pair from a file path or name."""
    name = PurePosixPath(filename.replace("\\", "/")).name
    stem = name.rsplit(".", 1)[0] if "." in name else name

    for pattern in _EPISODE_PATTERNS:
        match = pattern.search(stem)
        if match is None:
            continue
        groups = match.groups()
        if len(groups) == 2:
            season, episode = int(groups[0]), int(groups[1])
        else:
            season, episode = 1, int(groups[0])
        if season > 0 and episode > 0:
            return EpisodeRef(season=season, episode=episode)
    return None


def is_video_file(path: str) -> bool:
    return PurePosixPath(path.lower()).suffix in VIDEO_EXTENSIONS


def is_promotional_file(path: str) -> bool:
    return _PROMO_FILE_RE.search(PurePosixPath(path).name) is not None


def filter_promotional(files: Iterable[TorrentFile]) -> list[TorrentFile]:
    """Drop files whose name matches a promotional keyword."""
    return [f for f in files if not is_promotional_file(f.path)]


def video_files(files: Iterable[TorrentFile]) -> list[TorrentFile]:
    """Non-promotional video files, in input order."""
    return [f for f in filter_promotional(files) if is_video_file(f.path)]


def sort_by_episode(files: Iterable[TorrentFile]) -> list[TorrentFile]:
    """Sort files by parsed (season, episode); unparseable files go last."""

    def _key(f: TorrentFile) -> tuple[int, int, int, str]:
        ref = parse_episode(f.path)
        if ref is None:
            return (1, 0, 0, f.path)
        return (0, ref.season, ref.episode, f.path)

    return sorted(files, key=_key)


def find_episode_file(
    files: Iterable[TorrentFile], season: int, episode: int
) -> TorrentFile | None:
    """File whose parsed season AND episode equal the target, or None."""
    for f in files:
        ref = parse_episode(f.path)
        if ref is not None and ref.season == season and ref.episode == episode:
            return f
    return None


def largest_main_file(files: Iterable[TorrentFile]) -> TorrentFile | None:
    """Largest non-promotional video file (main feature of a movie torrent)."""
    candidates = video_files(files)
    if not candidates:
        return None
    return max(candidates, key=lambda f: f.bytes)


def sanitize_filename(name: str, max_length: int = 255) -> str:
    return _INVALID_FILENAME_RE.sub("_", name)[:max_length]
