"""Final ordering of resolved streams.

Order: quality tier priority (best first), then downloaded before anything
else, then name as a stable tie-breaker.
"""

from __future__ import annotations

from collections.abc import Iterable

from brasilrd.domain.entities import StreamResult, TorrentStatus
from brasilrd.infrastructure.config.schema import StreamsConfig


class StreamSorter:
    """Sort, filter and cap stream lists. Limits come from StreamsConfig."""

    def __init__(self, config: StreamsConfig) -> None:
        self._max_streams = config.max_streams

    @staticmethod
    def sort_key(stream: StreamResult) -> tuple[int, int, str]:
        ready = 0 if stream.status is TorrentStatus.DOWNLOADED else 1
        return (-stream.quality.priority, ready, stream.name)

    def sort(self, streams: Iterable[StreamResult]) -> list[StreamResult]:
        """Sort descending by tier, downloaded first. Returns a new list."""
        return sorted(streams, key=self.sort_key)

    @staticmethod
    def playable(streams: Iterable[StreamResult]) -> list[StreamResult]:
        """Drop errored streams and downloaded streams without a URL.

        Queued/downloading entries are kept without a URL so the caller can
        show progress.
        """
        return [
            s
            for s in streams
            if s.status is not TorrentStatus.ERROR
            and (s.play_url or not s.is_downloaded)
        ]

    def finalize(self, streams: Iterable[StreamResult]) -> list[StreamResult]:
        """Playable streams, sorted, deduplicated and capped.

        Duplicates share a play URL or, for URL-less entries, a grouping key.
        """
        seen: set[str] = set()
        unique: list[StreamResult] = []
        for stream in self.sort(self.playable(streams)):
            key = stream.play_url or stream.grouping_key
            if key in seen:
                continue
            seen.add(key)
            unique.append(stream)
        return unique[: self._max_streams]
