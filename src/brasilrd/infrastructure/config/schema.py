"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from brasilrd.domain.entities import QualityTier

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
CacheBackendName = Literal["memory", "diskcache", "redis"]
SourceKind = Literal["html", "wordpress"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CacheConfig(BaseSettings):
    """Cache configuration (backend-agnostic)."""

    backend: CacheBackendName = Field(
        default="memory",
        description="Cache backend: 'memory', 'diskcache' (SQLite) or 'redis'",
    )

    # Diskcache settings
    directory: Path = Field(
        default=Path("./.cache/brasilrd"),
        alias="dir",
        description="Diskcache SQLite DB path",
    )

    # Redis settings
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (only when backend=redis)",
    )

    # Shared settings
    ttl_seconds: int = Field(
        default=3600,
        description="Default TTL for cache entries (seconds)",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )
    sweep_interval_seconds: float = Field(
        default=300.0,
        description="Interval of the expired-entry sweep (memory backend only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",  # Env vars: CACHE_BACKEND, CACHE_REDIS_URL, ...
        case_sensitive=False,
        populate_by_name=True,
    )


class DebridConfig(BaseModel):
    """Real-Debrid REST client settings."""

    base_url: str = Field(
        default="https://api.real-debrid.com/rest/1.0",
        description="Real-Debrid REST API base URL.",
    )
    timeout_seconds: float = Field(
        default=10.0,
        description="Per-request timeout in seconds.",
    )
    max_retries: int = Field(
        default=3,
        description="Total attempts for retryable failures (429/5xx/network).",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        description="Backoff base: delay = base * 2^(attempt-1).",
    )
    existing_torrents_limit: int = Field(
        default=5000,
        description="Page size when scanning the account for a known hash.",
    )
    download_timeout_seconds: float = Field(
        default=1800.0,
        description="Max time to wait for a torrent to finish downloading.",
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        description="Interval between status polls while waiting.",
    )


class SiteConfig(BaseModel):
    """A scraped torrent site (HTML search page or WordPress posts API)."""

    name: str
    kind: SourceKind = "html"
    base_url: str
    search_path: str = "/?s="
    item_selector: str = ".post"
    title_selector: str = "h2 a"
    link_selector: str = "a"
    priority: int = 1
    timeout_seconds: float = 8.0
    enabled: bool = True


class IndexerConfig(BaseModel):
    """Aggregating indexer API with mirror failover."""

    enabled: bool = True
    mirrors: list[str] = Field(
        default=[
            "https://torrent-indexer.darklyn.org",
            "https://torrent-indexer.br-sp1.darklyn.org",
            "https://torrent-indexer.br-pb1.darklyn.org",
            "https://torrent-indexer.us-sc1.darklyn.org",
        ],
        description="Ordered mirror base URLs (failover is sticky).",
    )
    indexer: str = Field(
        default="search",
        description="Indexer name ('search' queries all sites).",
    )
    timeout_seconds: float = Field(default=15.0, description="Request timeout.")
    limit: int = Field(default=20, description="Max results kept per search.")
    failover_delay_seconds: float = Field(
        default=1.0,
        description="Pause before retrying on the next mirror.",
    )
    priority: int = 5


def _default_sites() -> list[SiteConfig]:
    return [
        SiteConfig(
            name="starck-filmes",
            base_url="https://www.starckfilmes-v3.com",
            item_selector=".item",
            title_selector="h3 a",
            priority=3,
            timeout_seconds=8.0,
        ),
        SiteConfig(
            name="baixafilmestorrent",
            base_url="https://baixafilmestorrent.com",
            item_selector=".post",
            title_selector="h2 a",
            priority=2,
            timeout_seconds=8.0,
        ),
        SiteConfig(
            name="bludv",
            kind="wordpress",
            base_url="https://bludv.net",
            item_selector=".post",
            title_selector="div.title a",
            priority=4,
            timeout_seconds=10.0,
        ),
    ]


class SourcesConfig(BaseModel):
    """Search source fan-out configuration."""

    sites: list[SiteConfig] = Field(default_factory=_default_sites)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    max_concurrent_sources: int = Field(
        default=8,
        description="Max parallel adapter searches.",
    )
    search_timeout_seconds: float = Field(
        default=20.0,
        description="Upper bound for one adapter search, detail pages included.",
    )
    max_detail_pages: int = Field(
        default=4,
        description="Max parallel detail page fetches per HTML source.",
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
        ),
        description="User-Agent for scraped sites.",
    )


class MatchingConfig(BaseModel):
    """Title/quality matching and candidate selection."""

    allowed_qualities: list[QualityTier] = Field(
        default=[
            QualityTier.UHD_2160P,
            QualityTier.FHD_1080P,
            QualityTier.HD_720P,
            QualityTier.HD,
        ],
        description="Quality tiers a candidate must belong to.",
    )
    per_tier: int = Field(
        default=3,
        description="Candidates kept per quality tier.",
    )
    max_results: int = Field(
        default=12,
        description="Cap on the ranked candidate list.",
    )
    dual_audio_bonus: int = Field(default=25, description="Dual/dubbed bonus.")
    source_bonus: int = Field(default=20, description="BluRay/WEB-DL bonus.")
    episode_marker_bonus: int = Field(default=15, description="SxxEyy bonus.")
    seeders_weight: float = Field(default=0.5, description="Points per seeder.")
    seeders_cap: int = Field(default=50, description="Max seeder points.")


class StreamsConfig(BaseModel):
    """Orchestrator and result cache behaviour."""

    max_streams: int = Field(default=15, description="Cap on returned streams.")
    max_concurrent_torrents: int = Field(
        default=2,
        description="Debrid resolutions per batch (account backpressure).",
    )
    batch_delay_seconds: float = Field(
        default=1.0,
        description="Pause between resolution batches.",
    )
    downloaded_ttl_seconds: int = Field(
        default=86_400,
        description="Stream list TTL when every stream is downloaded.",
    )
    downloading_ttl_seconds: int = Field(
        default=300,
        description="Stream list TTL when any stream is still downloading.",
    )
    error_ttl_seconds: int = Field(
        default=120,
        description="Stream list TTL for empty or failed results.",
    )
    season_ttl_seconds: int = Field(
        default=3600,
        description="Lifetime of a resolved season file list.",
    )
    torrent_ttl_seconds: int = Field(
        default=3600,
        description="Lifetime of a resolved torrent snapshot.",
    )
    addon_name: str = Field(
        default="Brasil RD",
        description="Prefix of the descriptive stream name.",
    )


class CatalogConfig(BaseModel):
    """Curated magnet catalog."""

    seed_path: Optional[Path] = Field(
        default=None,
        description="Optional JSON file with curated magnets to preload.",
    )


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/cache/debrid/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < overrides) in load.py.
    """

    # General
    app_name: str = Field(default="brasilrd", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Default HTTP timeout in seconds.",
    )
    http_user_agent: str = Field(
        default="Brasil-RD-Addon/1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for API requests (indexer, debrid).",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    cache: CacheConfig = Field(default_factory=CacheConfig)
    debrid: DebridConfig = Field(default_factory=DebridConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    streams: StreamsConfig = Field(default_factory=StreamsConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": self.cache.model_dump(mode="json", by_alias=True),
            "debrid": self.debrid.model_dump(mode="json"),
            "sources": self.sources.model_dump(mode="json"),
            "matching": self.matching.model_dump(mode="json"),
            "streams": self.streams.model_dump(mode="json"),
            "catalog": self.catalog.model_dump(mode="json"),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read BRASILRD_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - BRASILRD_LOG_LEVEL
    - BRASILRD_CACHE_BACKEND
    - BRASILRD_DEBRID_TIMEOUT_SECONDS
    - BRASILRD_MAX_STREAMS
    """

    model_config = SettingsConfigDict(
        env_prefix="BRASILRD_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_backend: Optional[CacheBackendName] = None
    cache_dir: Optional[Path] = None
    cache_redis_url: Optional[str] = None

    debrid_timeout_seconds: Optional[float] = None
    debrid_max_retries: Optional[int] = None

    max_streams: Optional[int] = None
    max_concurrent_torrents: Optional[int] = None

    catalog_seed_path: Optional[Path] = None

    @field_validator("cache_dir", "catalog_seed_path", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
