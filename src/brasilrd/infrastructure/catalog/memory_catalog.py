"""In-memory curated magnet catalog (implements ``CatalogPort``)."""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import structlog

from brasilrd.domain.entities import CuratedMagnet, StreamQuery
from brasilrd.domain.exceptions import CatalogValidationError

log = structlog.get_logger(__name__)

VALID_QUALITIES: tuple[str, ...] = ("4K", "1080p", "720p", "SD")
_QUALITY_SCORE: dict[str, int] = {"4K": 4, "1080p": 3, "720p": 2, "SD": 1}
_IMDB_BASE_RE = re.compile(r"^tt\d+$")

ChangeListener = Callable[[str], Any]


def base_imdb_id(full_id: str) -> str:
    """``tt123:1:2`` -> ``tt123``; anything that is not an IMDb id is kept."""
    base = (full_id or "").split(":", 1)[0]
    return base if _IMDB_BASE_RE.match(base) else full_id


def validate_curated_magnet(magnet: CuratedMagnet) -> None:
    """Raise CatalogValidationError for an incomplete or malformed entry."""
    missing = [
        name
        for name in ("imdb_id", "title", "magnet", "quality")
        if not getattr(magnet, name)
    ]
    if missing:
        raise CatalogValidationError(f"Missing required fields: {', '.join(missing)}")
    if not magnet.magnet.startswith("magnet:?"):
        raise CatalogValidationError("Invalid magnet link format")
    if not magnet.imdb_id.startswith("tt"):
        raise CatalogValidationError("Invalid IMDb ID format")
    if magnet.quality not in VALID_QUALITIES:
        raise CatalogValidationError(
            f"Invalid quality: {magnet.quality}. "
            f"Must be one of: {', '.join(VALID_QUALITIES)}"
        )
    if magnet.seeds < 0:
        raise CatalogValidationError("Seeds count cannot be negative")


def _sort_key(magnet: CuratedMagnet) -> tuple[int, int, str]:
    return (-_QUALITY_SCORE.get(magnet.quality, 0), -magnet.seeds, magnet.title)


class CuratedCatalog:
    """Hand-picked magnets grouped by base IMDb id.

    Every successful add/update/remove notifies the ``on_change`` listeners
    with the affected base id, so result caches can be invalidated.
    """

    def __init__(self, magnets: Iterable[CuratedMagnet] = ()) -> None:
        self._magnets: dict[str, list[CuratedMagnet]] = {}
        self._listeners: list[ChangeListener] = []
        for magnet in magnets:
            self.add(magnet)

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _notify(self, imdb_id: str) -> None:
        for listener in self._listeners:
            listener(imdb_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, magnet: CuratedMagnet) -> bool:
        """Insert or replace (same magnet URI) an entry.

        Returns True when inserted, False when an existing entry was updated.

        Raises:
            CatalogValidationError: the entry is incomplete or malformed.
        """
        validate_curated_magnet(magnet)
        imdb_id = base_imdb_id(magnet.imdb_id)
        normalized = CuratedMagnet(
            imdb_id=imdb_id,
            title=magnet.title,
            magnet=magnet.magnet,
            quality=magnet.quality,
            seeds=magnet.seeds,
            added_at=magnet.added_at,
            category=magnet.category,
            language=magnet.language,
        )
        entries = self._magnets.setdefault(imdb_id, [])
        for i, existing in enumerate(entries):
            if existing.magnet == magnet.magnet:
                entries[i] = normalized
                log.info("curated_magnet_updated", imdb_id=imdb_id, title=magnet.title)
                self._notify(imdb_id)
                return False

        entries.append(normalized)
        log.info(
            "curated_magnet_added",
            imdb_id=imdb_id,
            title=magnet.title,
            quality=magnet.quality,
        )
        self._notify(imdb_id)
        return True

    def remove(self, imdb_id: str, magnet_uri: str) -> bool:
        base = base_imdb_id(imdb_id)
        entries = self._magnets.get(base)
        if not entries:
            log.debug("curated_magnet_missing", imdb_id=base)
            return False

        remaining = [m for m in entries if m.magnet != magnet_uri]
        if len(remaining) == len(entries):
            log.debug("curated_magnet_missing", imdb_id=base)
            return False

        if remaining:
            self._magnets[base] = remaining
        else:
            del self._magnets[base]
        log.info("curated_magnet_removed", imdb_id=base, remaining=len(remaining))
        self._notify(base)
        return True

    # ------------------------------------------------------------------
    # Queries (CatalogPort)
    # ------------------------------------------------------------------

    def find_magnets(self, query: StreamQuery) -> list[CuratedMagnet]:
        """Entries for the query's base id, else a title-substring fallback."""
        results = list(self._magnets.get(query.base_id, ()))
        if not results and query.title_hint:
            needle = query.title_hint.lower()
            results = [m for m in self.all() if needle in m.title.lower()]
        log.debug(
            "curated_magnets_found",
            content_id=query.content_id,
            count=len(results),
        )
        return sorted(results, key=_sort_key)

    def all(self) -> list[CuratedMagnet]:
        return [m for entries in self._magnets.values() for m in entries]

    def stats(self) -> dict[str, Any]:
        by_quality: dict[str, int] = {}
        for magnet in self.all():
            by_quality[magnet.quality] = by_quality.get(magnet.quality, 0) + 1
        return {
            "titles": len(self._magnets),
            "magnets": sum(by_quality.values()),
            "by_quality": by_quality,
        }

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._magnets.values())

    # ------------------------------------------------------------------
    # Seed file
    # ------------------------------------------------------------------

    def load_json(self, path: Path) -> int:
        """Load ``{"magnets": [...]}`` from *path*; invalid entries are skipped.

        Returns the number of entries loaded.
        """
        if not path.exists():
            log.info("curated_seed_missing", path=str(path))
            return 0

        data = json.loads(path.read_text(encoding="utf-8"))
        raw_entries = data.get("magnets") if isinstance(data, dict) else None
        if not isinstance(raw_entries, list):
            log.warning("curated_seed_invalid", path=str(path))
            return 0

        loaded = 0
        for raw in raw_entries:
            try:
                self.add(
                    CuratedMagnet(
                        imdb_id=str(raw.get("imdbId") or raw.get("imdb_id") or ""),
                        title=str(raw.get("title") or ""),
                        magnet=str(raw.get("magnet") or ""),
                        quality=str(raw.get("quality") or ""),
                        seeds=int(raw.get("seeds") or 0),
                        added_at=str(raw.get("addedAt") or raw.get("added_at") or ""),
                        category=str(raw.get("category") or "movie"),
                        language=str(raw.get("language") or "pt-BR"),
                    )
                )
                loaded += 1
            except (CatalogValidationError, AttributeError, TypeError, ValueError) as e:
                log.warning(
                    "curated_seed_entry_skipped",
                    title=raw.get("title") if isinstance(raw, dict) else None,
                    error=str(e),
                )
        log.info("curated_seed_loaded", path=str(path), loaded=loaded, total=len(raw_entries))
        return loaded
