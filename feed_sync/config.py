"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- ApiConfig: Remote content API location and HTTP behavior
- FeedConfig: Page size, novelty buckets and default ordering
- BookmarkConfig: Durable bookmark storage location
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any

import yaml


@dataclass
class ApiConfig:
    """Configuration for the remote content API.

    Attributes:
        base_url: Explicit API base URL; overrides everything else when set
        environment: "production" or "development", selects the default URL
        production_url: Hosted backend used in production
        development_url: Local backend used during development
        base_url_env: Environment variable consulted before the defaults
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts for failed requests
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    base_url: str | None = None
    environment: str = "development"
    production_url: str = "https://ai-safety-feed-backend.onrender.com"
    development_url: str = "http://localhost:3000"
    base_url_env: str = "FEED_SYNC_API_URL"
    timeout_seconds: float = 20.0
    retries: int = 2
    trust_env: bool = True
    user_agent: str = "feed-sync/0.1"


@dataclass
class FeedConfig:
    """Configuration for the paginated feed.

    Attributes:
        page_size: Number of items requested per page
        novelty_buckets: Allowed minimum-novelty thresholds
        default_sort: Initial sort order ("date" or "random")
    """

    page_size: int = 50
    novelty_buckets: list[int] = field(default_factory=lambda: [20, 40, 60, 80])
    default_sort: str = "date"


@dataclass
class BookmarkConfig:
    """Configuration for bookmark persistence.

    Attributes:
        storage_dir: Directory holding the durable key files
        key: Name of the key holding the bookmarked identifiers
    """

    storage_dir: str = "~/.feed_sync"
    key: str = "bookmarkedArticles"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        log_dir: Directory for the log file; defaults to the bookmark storage dir
    """

    level: str = "WARNING"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "feed_sync.jsonl"
    log_dir: str | None = None


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    api: ApiConfig = field(default_factory=ApiConfig)
    feed: FeedConfig = field(default_factory=FeedConfig)
    bookmarks: BookmarkConfig = field(default_factory=BookmarkConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "api": {
            "base_url": cfg.api.base_url,
            "environment": cfg.api.environment,
            "production_url": cfg.api.production_url,
            "development_url": cfg.api.development_url,
            "base_url_env": cfg.api.base_url_env,
            "timeout_seconds": cfg.api.timeout_seconds,
            "retries": cfg.api.retries,
            "trust_env": cfg.api.trust_env,
            "user_agent": cfg.api.user_agent,
        },
        "feed": {
            "page_size": cfg.feed.page_size,
            "novelty_buckets": list(cfg.feed.novelty_buckets),
            "default_sort": cfg.feed.default_sort,
        },
        "bookmarks": {
            "storage_dir": cfg.bookmarks.storage_dir,
            "key": cfg.bookmarks.key,
        },
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "filename": cfg.logging.filename,
            "log_dir": cfg.logging.log_dir,
        },
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        api=ApiConfig(**data["api"]),
        feed=FeedConfig(**data["feed"]),
        bookmarks=BookmarkConfig(**data["bookmarks"]),
        logging=LoggingConfig(**data["logging"]),
    )


def get_api_base_url(cfg: ApiConfig) -> str:
    """Resolve the API base URL from inline config, environment, or defaults."""
    if cfg.base_url:
        return cfg.base_url.rstrip("/")
    from_env = os.getenv(cfg.base_url_env)
    if from_env:
        return from_env.rstrip("/")
    if cfg.environment == "production":
        return cfg.production_url.rstrip("/")
    return cfg.development_url.rstrip("/")
