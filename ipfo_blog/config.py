"""Configuration loading for the blog pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from xml.etree import ElementTree as ET

logger = logging.getLogger(__name__)

DEFAULT_SHEET_URL = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vTjaqBX7gq1Mg0lxaLyw5rO2Bo1jbaxMveEopOadoSUxHFIlJii__6pMTaWTnDkUDeLoTivvmP_dE31"
    "/pub?gid=0&single=true&output=csv"
)
DEFAULT_CACHE_KEY = "ipfo_blog_posts"
DEFAULT_PLACEHOLDER_IMAGE = "https://placehold.co/400x250/1e40af/ffffff?text=IPFO"


@dataclass
class SourceConfig:
    url: str = DEFAULT_SHEET_URL
    timeout: float = 10.0


@dataclass
class CacheConfig:
    key: str = DEFAULT_CACHE_KEY
    ttl_seconds: float = 5 * 60


@dataclass
class ListingConfig:
    page_size: int = 9
    search_debounce_ms: int = 300
    related_limit: int = 3


@dataclass
class DefaultsConfig:
    """Fallback values applied to spreadsheet rows with empty cells."""

    author: str = "IPFO Team"
    category: str = "General"
    image: str = DEFAULT_PLACEHOLDER_IMAGE
    article_base: str = "blog-article.html"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class DatabaseConfig:
    connection_string: str = "sqlite://"


@dataclass
class AppConfig:
    source: SourceConfig = field(default_factory=SourceConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    listing: ListingConfig = field(default_factory=ListingConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def _resolve_sqlite_url(base_path: Path, url: str) -> str:
    """Anchor relative SQLite file URLs at the config file location."""
    prefix = "sqlite:///"
    if not url.startswith(prefix):
        return url
    location = url[len(prefix):]
    if not location or location == ":memory:" or location.startswith("/"):
        return url
    return prefix + _resolve_path(base_path, location)


def _positive(value: float, name: str) -> float:
    if value <= 0:
        raise ValueError(f"<{name}> must be positive.")
    return value


def parse_app_config(path: Optional[str]) -> AppConfig:
    """Parse the application configuration XML, or return defaults for no path."""
    if not path:
        logger.info("No configuration file given; using defaults")
        return AppConfig()

    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    try:
        root = ET.parse(config_path).getroot()
    except ET.ParseError as exc:
        raise ValueError(f"Config file is not valid XML: {exc}") from exc

    source = SourceConfig()
    source_node = root.find("source")
    if source_node is not None:
        url = (source_node.findtext("url") or "").strip()
        if url:
            source.url = url
        source.timeout = _positive(
            float(source_node.findtext("timeout", "10")), "timeout"
        )

    cache = CacheConfig()
    cache_node = root.find("cache")
    if cache_node is not None:
        cache.key = (cache_node.findtext("key") or "").strip() or DEFAULT_CACHE_KEY
        cache.ttl_seconds = _positive(
            float(cache_node.findtext("ttl-seconds", "300")), "ttl-seconds"
        )

    listing = ListingConfig()
    listing_node = root.find("listing")
    if listing_node is not None:
        listing.page_size = int(
            _positive(int(listing_node.findtext("page-size", "9")), "page-size")
        )
        listing.search_debounce_ms = int(
            listing_node.findtext("search-debounce-ms", "300")
        )
        if listing.search_debounce_ms < 0:
            raise ValueError("<search-debounce-ms> must not be negative.")
        listing.related_limit = int(listing_node.findtext("related-limit", "3"))

    defaults = DefaultsConfig()
    defaults_node = root.find("defaults")
    if defaults_node is not None:
        defaults.author = defaults_node.findtext("author", defaults.author).strip()
        defaults.category = defaults_node.findtext(
            "category", defaults.category
        ).strip()
        defaults.image = defaults_node.findtext("image", defaults.image).strip()
        defaults.article_base = defaults_node.findtext(
            "article-base", defaults.article_base
        ).strip()

    logging_config = LoggingConfig()
    log_node = root.find("logging")
    if log_node is not None:
        logging_config.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            logging_config.file = _resolve_path(config_path, log_file)

    database = DatabaseConfig()
    db_node = root.find("database")
    if db_node is not None:
        connection_string = (db_node.findtext("connection-string") or "").strip()
        if connection_string:
            database.connection_string = _resolve_sqlite_url(
                config_path, connection_string
            )

    return AppConfig(
        source=source,
        cache=cache,
        listing=listing,
        defaults=defaults,
        logging=logging_config,
        database=database,
    )
