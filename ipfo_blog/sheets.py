"""Spreadsheet ingestion and post normalization."""

from __future__ import annotations

import concurrent.futures
import csv
import io
import logging
import threading
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional
from urllib.parse import quote

import requests

from .cache import CacheStore
from .config import DEFAULT_CACHE_KEY, DefaultsConfig
from .models import Err, ErrorKind, Ok, Post, Result

logger = logging.getLogger(__name__)

_DATE_FORMATS = ("%m/%d/%Y", "%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%d %b %Y")


class SourceUnavailable(RuntimeError):
    """Raised when the spreadsheet cannot be fetched or parsed."""


def fetch_sheet_text(url: str, timeout: float = 10.0) -> str:
    """Download the published spreadsheet as CSV text."""
    logger.info("Fetching blog posts from %s", url)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise SourceUnavailable(f"Failed to fetch spreadsheet: {exc}") from exc

    try:
        text = response.content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SourceUnavailable(f"Spreadsheet is not valid UTF-8: {exc}") from exc

    if not text.strip():
        raise SourceUnavailable("Spreadsheet response was empty.")
    return text


def parse_rows(text: str) -> List[Dict[str, str]]:
    """Split CSV text into row maps keyed by the trimmed header names."""
    try:
        reader = csv.reader(io.StringIO(text, newline=""), strict=True)
        rows = list(reader)
    except csv.Error as exc:
        raise SourceUnavailable(f"Spreadsheet is not valid CSV: {exc}") from exc

    if not rows:
        raise SourceUnavailable("Spreadsheet has no header row.")

    header = [name.strip() for name in rows[0]]
    records: List[Dict[str, str]] = []
    for values in rows[1:]:
        if not any(value.strip() for value in values):
            continue
        records.append(
            {name: value for name, value in zip(header, values) if name}
        )
    logger.debug("Parsed %d non-blank rows with columns %s", len(records), header)
    return records


def parse_date(value: str) -> Optional[date]:
    """Parse the date formats a spreadsheet cell commonly holds."""
    value = value.strip()
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def build_link(post_id: str, article_base: str) -> str:
    return f"{article_base}?id={quote(post_id, safe='')}"


def _cell(row: Mapping[str, Optional[str]], name: str) -> str:
    return (row.get(name) or "").strip()


def row_to_post(
    row: Mapping[str, Optional[str]],
    defaults: DefaultsConfig,
    today: Optional[date] = None,
) -> Optional[Post]:
    """Map one row onto a Post, or None when the row has no ID."""
    post_id = _cell(row, "ID")
    if not post_id:
        return None

    raw_date = _cell(row, "Date")
    parsed = parse_date(raw_date)
    if parsed is None:
        if raw_date:
            logger.debug("Unparseable date %r for post %s; using today", raw_date, post_id)
        parsed = today or date.today()

    return Post(
        id=post_id,
        title=_cell(row, "Title"),
        excerpt=_cell(row, "Excerpt"),
        content=_cell(row, "Content"),
        category=_cell(row, "Category") or defaults.category,
        author=_cell(row, "Author") or defaults.author,
        date=parsed.isoformat(),
        image=_cell(row, "Image") or defaults.image,
        link=build_link(post_id, defaults.article_base),
    )


def normalize_rows(
    rows: Iterable[Mapping[str, Optional[str]]],
    defaults: DefaultsConfig,
    today: Optional[date] = None,
) -> List[Post]:
    posts: List[Post] = []
    dropped = 0
    for row in rows:
        post = row_to_post(row, defaults, today=today)
        if post is None:
            dropped += 1
            continue
        posts.append(post)
    if dropped:
        logger.info("Dropped %d rows without an ID", dropped)
    return posts


def sort_posts(posts: Iterable[Post]) -> List[Post]:
    """Newest first; posts with unparseable dates go last in source order."""
    dated = []
    undated = []
    for post in posts:
        parsed = parse_date(post.date)
        if parsed is None:
            undated.append(post)
        else:
            dated.append((parsed, post))
    dated.sort(key=lambda item: item[0], reverse=True)
    return [post for _, post in dated] + undated


class PostLoader:
    """Cache-first loader that guarantees one fetch per cache window.

    Concurrent callers that miss the cache share the in-flight
    ``Future`` of the first caller instead of fetching again.
    """

    def __init__(
        self,
        cache: CacheStore,
        url: str,
        defaults: Optional[DefaultsConfig] = None,
        cache_key: str = DEFAULT_CACHE_KEY,
        timeout: float = 10.0,
        fetcher: Optional[Callable[[str, float], str]] = None,
    ) -> None:
        self.cache = cache
        self.url = url
        self.defaults = defaults or DefaultsConfig()
        self.cache_key = cache_key
        self.timeout = timeout
        self.fetcher = fetcher or fetch_sheet_text
        self._lock = threading.Lock()
        self._in_flight: Dict[str, concurrent.futures.Future] = {}

    def load(self) -> Result[List[Post]]:
        cached = self.cache.read(self.cache_key)
        if isinstance(cached, Ok):
            logger.info("Loading blog posts from cache")
            return cached

        with self._lock:
            future = self._in_flight.get(self.cache_key)
            owner = future is None
            if owner:
                future = concurrent.futures.Future()
                self._in_flight[self.cache_key] = future

        if not owner:
            logger.debug("Awaiting in-flight load for %s", self.cache_key)
            return future.result()

        try:
            result = self._ingest()
            future.set_result(result)
        except BaseException as exc:
            future.set_exception(exc)
            raise
        finally:
            with self._lock:
                self._in_flight.pop(self.cache_key, None)
        return result

    def _ingest(self) -> Result[List[Post]]:
        # Another loader may have filled the cache while this one waited.
        cached = self.cache.read(self.cache_key)
        if isinstance(cached, Ok):
            return cached

        try:
            text = self.fetcher(self.url, self.timeout)
            rows = parse_rows(text)
        except SourceUnavailable as exc:
            logger.error("Error loading posts: %s", exc)
            return Err(ErrorKind.SOURCE_UNAVAILABLE, str(exc))

        posts = sort_posts(normalize_rows(rows, self.defaults))
        logger.info("Ingested %d posts", len(posts))
        self.cache.put(self.cache_key, posts)
        return Ok(posts)
