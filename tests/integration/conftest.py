"""Shared fixtures for integration tests.

These tests use real infrastructure components (DiskcacheAdapter,
load_config, build_services) with mocked HTTP via respx.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from brasilrd.infrastructure.cache.diskcache_adapter import DiskcacheAdapter


@pytest.fixture()
async def diskcache(tmp_path: Path) -> DiskcacheAdapter:
    """Real DiskcacheAdapter backed by tmp_path (auto-cleaned)."""
    adapter = DiskcacheAdapter(
        directory=tmp_path / "cache",
        ttl_seconds=3600,
        max_concurrent=5,
    )
    async with adapter:
        yield adapter


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host BRASILRD_* / CACHE_* variables out of config tests."""
    for name in list(os.environ):
        if name.startswith(("BRASILRD_", "CACHE_")):
            monkeypatch.delenv(name, raising=False)
