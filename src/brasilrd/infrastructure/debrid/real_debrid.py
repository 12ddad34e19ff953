"""Real-Debrid REST client (async httpx implementation of ``DebridPort``)."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from typing import Any, Literal

import httpx
import structlog

from brasilrd.domain.entities import (
    ProcessedTorrent,
    ResolvedTorrent,
    TorrentFile,
    TorrentStatus,
    extract_info_hash,
)
from brasilrd.domain.exceptions import (
    DebridAuthError,
    DebridError,
    DebridPermissionError,
    DebridRateLimitedError,
    DebridRequestError,
    DebridTransientError,
    TorrentIdValidationError,
    ValidationError,
)
from brasilrd.infrastructure.common.magnet import sanitize_link, validate_magnet
from brasilrd.infrastructure.common.retry_transport import RetryTransport
from brasilrd.infrastructure.config.schema import DebridConfig

log = structlog.get_logger(__name__)

_SUCCESS_STATUS = frozenset({200, 201, 202, 204})


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.reason_phrase or f"HTTP {resp.status_code}"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return resp.reason_phrase or f"HTTP {resp.status_code}"


def _raise_for_status(resp: httpx.Response) -> None:
    """Translate a non-success response into the typed error hierarchy."""
    status = resp.status_code
    if status in _SUCCESS_STATUS:
        return
    if status == 401:
        raise DebridAuthError(
            "authentication failed: Invalid or expired token", status_code=status
        )
    if status == 403:
        raise DebridPermissionError(
            "permission denied: Account locked or insufficient privileges",
            status_code=status,
        )
    if status == 429:
        raise DebridRateLimitedError(
            "rate limit exceeded: Too many requests", status_code=status
        )
    if status >= 500:
        raise DebridTransientError(
            f"service unavailable: {_error_message(resp)}", status_code=status
        )
    raise DebridRequestError(
        f"API error: {_error_message(resp)}", status_code=status
    )


def _validate_torrent_id(torrent_id: str) -> None:
    if not torrent_id or not torrent_id.strip():
        raise TorrentIdValidationError("Torrent ID is required")


def _parse_file(raw: dict[str, Any]) -> TorrentFile:
    return TorrentFile(
        id=int(raw.get("id", 0)),
        path=str(raw.get("path") or ""),
        bytes=int(raw.get("bytes") or 0),
        selected=bool(raw.get("selected")),
    )


def parse_torrent_info(data: dict[str, Any]) -> ResolvedTorrent:
    """Map a ``/torrents/info`` (or ``/torrents`` list item) payload."""
    return ResolvedTorrent(
        external_id=str(data.get("id") or ""),
        info_hash=str(data.get("hash") or "").lower(),
        status=TorrentStatus.from_api(data.get("status")),
        progress=float(data.get("progress") or 0.0),
        filename=str(data.get("filename") or ""),
        files=tuple(
            _parse_file(f) for f in data.get("files") or () if isinstance(f, dict)
        ),
        links=tuple(str(link) for link in data.get("links") or ()),
    )


class RealDebridClient:
    """Async client bound to one Real-Debrid API token.

    Implements ``DebridPort`` from domain.ports.debrid. Transient failures
    (429, 5xx, timeouts, connection errors) are retried by ``RetryTransport``
    before they surface as ``DebridTransientError``.
    """

    def __init__(
        self,
        api_key: str,
        *,
        config: DebridConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ValidationError("Real-Debrid API key is required")
        self._config = config or DebridConfig()
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout_seconds,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=RetryTransport(
                transport or httpx.AsyncHTTPTransport(),
                max_attempts=self._config.max_retries,
                backoff_base=self._config.base_delay_seconds,
            ),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RealDebridClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            log.warning(
                "debrid_network_error",
                operation=operation,
                error=str(exc) or type(exc).__name__,
            )
            raise DebridTransientError(
                f"network error: {type(exc).__name__}"
            ) from exc

        if resp.status_code not in _SUCCESS_STATUS:
            log.warning(
                "debrid_api_error",
                operation=operation,
                status=resp.status_code,
                error=_error_message(resp),
            )
        _raise_for_status(resp)
        return resp

    @staticmethod
    def _json(resp: httpx.Response, operation: str) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise DebridRequestError(
                f"invalid JSON from {operation}", status_code=resp.status_code
            ) from exc

    # ------------------------------------------------------------------
    # Public API (DebridPort)
    # ------------------------------------------------------------------

    async def add_magnet(self, magnet_uri: str) -> str:
        """Submit a magnet; returns the torrent id.

        Raises:
            MagnetValidationError: before any request when the magnet is
                malformed.
        """
        info_hash = validate_magnet(magnet_uri)
        resp = await self._request(
            "POST",
            "/torrents/addMagnet",
            operation="add_magnet",
            data={"magnet": magnet_uri},
        )
        data = self._json(resp, "add_magnet")
        torrent_id = data.get("id") if isinstance(data, dict) else None
        if not torrent_id:
            raise DebridRequestError(
                "Invalid response format from addMagnet endpoint",
                status_code=resp.status_code,
            )
        log.info("debrid_magnet_added", torrent_id=torrent_id, info_hash=info_hash)
        return str(torrent_id)

    async def get_torrent_info(self, torrent_id: str) -> ResolvedTorrent:
        _validate_torrent_id(torrent_id)
        resp = await self._request(
            "GET", f"/torrents/info/{torrent_id}", operation="get_torrent_info"
        )
        data = self._json(resp, "get_torrent_info")
        if not isinstance(data, dict):
            raise DebridRequestError("Invalid torrent info payload")
        info = parse_torrent_info(data)
        log.debug(
            "debrid_torrent_info",
            torrent_id=torrent_id,
            status=info.status.value,
            progress=info.progress,
            files=len(info.files),
        )
        return info

    async def select_files(
        self,
        torrent_id: str,
        file_ids: Sequence[int] | Literal["all"] = "all",
    ) -> None:
        _validate_torrent_id(torrent_id)
        files = file_ids if file_ids == "all" else ",".join(str(i) for i in file_ids)
        resp = await self._request(
            "POST",
            f"/torrents/selectFiles/{torrent_id}",
            operation="select_files",
            data={"files": files},
        )
        log.info(
            "debrid_files_selected",
            torrent_id=torrent_id,
            files=files,
            action="already_selected" if resp.status_code == 202 else "selected",
        )

    async def unrestrict_link(self, link: str) -> str:
        if not link or not link.strip():
            raise ValidationError("Link cannot be empty")
        resp = await self._request(
            "POST", "/unrestrict/link", operation="unrestrict_link", data={"link": link}
        )
        data = self._json(resp, "unrestrict_link")
        download = data.get("download") if isinstance(data, dict) else None
        if not download:
            raise DebridRequestError(
                "No download link returned from unrestrict endpoint",
                status_code=resp.status_code,
            )
        log.debug(
            "debrid_link_unrestricted",
            link=sanitize_link(link),
            download=sanitize_link(download),
        )
        return str(download)

    async def find_existing_torrent(self, info_hash: str) -> ResolvedTorrent | None:
        """Scan the account's torrent list for *info_hash* (case-insensitive)."""
        wanted = info_hash.lower()
        try:
            resp = await self._request(
                "GET",
                "/torrents",
                operation="find_existing_torrent",
                params={"limit": self._config.existing_torrents_limit},
            )
            data = self._json(resp, "find_existing_torrent")
        except DebridError as exc:
            log.warning("debrid_lookup_failed", info_hash=wanted, error=str(exc))
            return None

        torrents = data if isinstance(data, list) else []
        for raw in torrents:
            if isinstance(raw, dict) and str(raw.get("hash") or "").lower() == wanted:
                existing = parse_torrent_info(raw)
                log.info(
                    "debrid_existing_torrent_found",
                    torrent_id=existing.external_id,
                    info_hash=wanted,
                    status=existing.status.value,
                )
                return existing

        log.debug("debrid_existing_torrent_missing", info_hash=wanted, total=len(torrents))
        return None

    async def get_stream_link_for_file(
        self, torrent_id: str, file_id: int
    ) -> str | None:
        """Direct link for one selected file; None when not available.

        The n-th selected file maps to the n-th entry of ``links``.
        """
        _validate_torrent_id(torrent_id)
        try:
            info = await self.get_torrent_info(torrent_id)
            if not info.is_ready or not info.links:
                log.debug(
                    "debrid_torrent_not_streamable",
                    torrent_id=torrent_id,
                    status=info.status.value,
                    links=len(info.links),
                )
                return None

            selected = info.selected_files
            index = next(
                (i for i, f in enumerate(selected) if f.id == file_id), None
            )
            if index is None or index >= len(info.links):
                log.debug(
                    "debrid_file_not_linked",
                    torrent_id=torrent_id,
                    file_id=file_id,
                    selected=[f.id for f in selected],
                    links=len(info.links),
                )
                return None

            return await self.unrestrict_link(info.links[index])
        except DebridError as exc:
            log.error(
                "debrid_file_link_failed",
                torrent_id=torrent_id,
                file_id=file_id,
                error=str(exc),
            )
            return None

    async def process_torrent(self, magnet_uri: str) -> ProcessedTorrent:
        """Reuse a torrent already on the account, else add it and select all.

        Never raises for debrid failures; they yield ``status=error``.
        """
        info_hash = extract_info_hash(magnet_uri) or "unknown"
        try:
            validate_magnet(magnet_uri)
            existing = await self.find_existing_torrent(info_hash)
            if existing is not None:
                return ProcessedTorrent(
                    added=True,
                    ready=existing.is_ready,
                    status=existing.status,
                    external_id=existing.external_id,
                    progress=existing.progress,
                )

            torrent_id = await self.add_magnet(magnet_uri)
            await self.select_files(torrent_id, "all")
            info = await self.get_torrent_info(torrent_id)
            return ProcessedTorrent(
                added=True,
                ready=info.is_ready,
                status=info.status,
                external_id=torrent_id,
                progress=info.progress,
            )
        except (DebridError, ValidationError) as exc:
            log.error("debrid_process_failed", info_hash=info_hash, error=str(exc))
            return ProcessedTorrent(added=False, ready=False, status=TorrentStatus.ERROR)

    async def wait_until_downloaded(
        self,
        torrent_id: str,
        *,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> ResolvedTorrent:
        """Poll until the torrent is downloaded, errored or *timeout* elapses.

        Returns the last snapshot; callers check ``is_ready``.
        """
        timeout = self._config.download_timeout_seconds if timeout is None else timeout
        poll_interval = (
            self._config.poll_interval_seconds if poll_interval is None else poll_interval
        )
        deadline = time.monotonic() + timeout
        while True:
            info = await self.get_torrent_info(torrent_id)
            if info.status in (TorrentStatus.DOWNLOADED, TorrentStatus.ERROR):
                return info
            if time.monotonic() + poll_interval > deadline:
                log.warning(
                    "debrid_wait_timeout",
                    torrent_id=torrent_id,
                    status=info.status.value,
                    progress=info.progress,
                )
                return info
            await asyncio.sleep(poll_interval)
