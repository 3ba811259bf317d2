"""TTL-bounded post cache scoped to one browsing session."""

from __future__ import annotations

import json
import logging
import math
import threading
import time
from typing import Callable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import db
from .models import CacheEntry, Err, ErrorKind, Ok, Post, Result

logger = logging.getLogger(__name__)


class CacheCorrupt(ValueError):
    """Raised when a stored entry cannot be turned back into posts."""


def now_ms() -> int:
    return int(time.time() * 1000)


def encode_entry(entry: CacheEntry) -> str:
    return json.dumps(
        {
            "data": [post.to_dict() for post in entry.data],
            "timestamp": entry.timestamp,
        },
        ensure_ascii=False,
    )


def decode_entry(raw: str) -> CacheEntry:
    """Parse a stored payload, raising ``CacheCorrupt`` on any malformation."""
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise CacheCorrupt(f"Cache entry is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise CacheCorrupt("Cache entry must be a JSON object.")

    data = payload.get("data")
    timestamp = payload.get("timestamp")
    if not isinstance(data, list):
        raise CacheCorrupt("Cache entry 'data' must be a list.")
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise CacheCorrupt("Cache entry 'timestamp' must be a number.")
    if isinstance(timestamp, float) and not math.isfinite(timestamp):
        raise CacheCorrupt("Cache entry 'timestamp' must be finite.")

    posts: List[Post] = []
    for item in data:
        if not isinstance(item, dict):
            raise CacheCorrupt("Cache entry posts must be objects.")
        try:
            posts.append(Post.from_dict(item))
        except (KeyError, TypeError) as exc:
            raise CacheCorrupt(f"Cache entry post is malformed: {exc}") from exc

    return CacheEntry(data=posts, timestamp=int(timestamp))


class CacheStore:
    """Key/value persistence of post lists with staleness checks.

    Entries live in the ``session_cache`` table, keyed by the browsing
    session id, and are considered valid while
    ``now - timestamp <= ttl``. Reads and writes never raise.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        session_id: str,
        ttl_seconds: float = 300,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.session_factory = session_factory
        self.session_id = session_id
        self.ttl_ms = int(ttl_seconds * 1000)
        self.clock = clock
        self._lock = threading.Lock()

    def read(self, key: str) -> Result[List[Post]]:
        try:
            with self._lock, self.session_factory() as session:
                raw = db.get_payload(session, self.session_id, key)
        except SQLAlchemyError as exc:
            logger.error("Cache read error for %s: %s", key, exc)
            return Err(ErrorKind.CACHE_MISS, str(exc))

        if raw is None:
            return Err(ErrorKind.CACHE_MISS)

        try:
            entry = decode_entry(raw)
        except CacheCorrupt as exc:
            logger.warning("Discarding corrupt cache entry %s: %s", key, exc)
            return Err(ErrorKind.CACHE_CORRUPT, str(exc))

        age = self.clock() - entry.timestamp
        if age > self.ttl_ms:
            logger.debug("Cache entry %s expired (%d ms old)", key, age)
            return Err(ErrorKind.CACHE_EXPIRED)

        return Ok(entry.data)

    def get(self, key: str) -> Optional[List[Post]]:
        result = self.read(key)
        return result.value if isinstance(result, Ok) else None

    def put(self, key: str, posts: Sequence[Post]) -> Result[None]:
        entry = CacheEntry(data=list(posts), timestamp=self.clock())
        try:
            with self._lock, self.session_factory() as session:
                db.put_payload(session, self.session_id, key, encode_entry(entry))
        except SQLAlchemyError as exc:
            logger.error("Cache write error for %s: %s", key, exc)
            return Err(ErrorKind.CACHE_WRITE_FAILED, str(exc))
        logger.debug("Cached %d posts under %s", len(entry.data), key)
        return Ok(None)

    def clear(self) -> int:
        """Drop every entry of this browsing session."""
        try:
            with self._lock, self.session_factory() as session:
                removed = db.delete_session(session, self.session_id)
        except SQLAlchemyError as exc:
            logger.error("Cache clear error for session %s: %s", self.session_id, exc)
            return 0
        logger.debug("Cleared %d cache entries for session %s", removed, self.session_id)
        return removed
