"""Per-visitor blog state: loaded posts, active filter, search and page."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from . import db
from .articles import ArticleResolver, read_time_minutes
from .cache import CacheStore
from .config import AppConfig
from .models import (
    ALL_CATEGORIES,
    ArticleView,
    Err,
    ErrorKind,
    ListingView,
    Ok,
    Post,
    QueryState,
    Result,
)
from .query import apply_query, category_counts, paginate
from .sheets import PostLoader

logger = logging.getLogger(__name__)


class Debouncer:
    """Run a callable once calls have paused for ``wait`` seconds.

    Every call bumps a generation counter; a timer only fires the pending
    call when its generation is still the latest one.
    """

    def __init__(self, wait: float) -> None:
        self.wait = wait
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[Callable[[], Any]] = None
        self._generation = 0

    def call(self, func: Callable[..., Any], *args: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = lambda: func(*args)
            self._timer = threading.Timer(self.wait, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            pending, self._pending, self._timer = self._pending, None, None
        if pending is not None:
            pending()

    def flush(self) -> None:
        """Run the pending call now, if there is one."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            pending, self._pending, self._timer = self._pending, None, None
        if pending is not None:
            pending()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending, self._timer = None, None

    @property
    def pending(self) -> bool:
        return self._pending is not None


class BlogSession:
    """Owns the post set and query state of a single browsing session.

    Listing and detail views are derived from ``all_posts`` without ever
    mutating it; ``all_posts`` is only replaced by :meth:`load`.
    """

    def __init__(
        self,
        loader: PostLoader,
        page_size: int = 9,
        related_limit: int = 3,
        search_debounce: float = 0.3,
    ) -> None:
        self.loader = loader
        self.resolver = ArticleResolver(loader)
        self.page_size = page_size
        self.related_limit = related_limit
        self.state = QueryState()
        self.all_posts: List[Post] = []
        self.category_counts: Dict[str, int] = {}
        self.error: Optional[Err] = None
        self._debouncer = Debouncer(search_debounce)
        # Search timers run on their own thread.
        self._state_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        session_id: Optional[str] = None,
        session_factory: Optional[sessionmaker[Session]] = None,
        fetcher: Optional[Callable[[str, float], str]] = None,
    ) -> "BlogSession":
        if session_factory is None:
            engine = db.init_engine(config.database.connection_string)
            session_factory = db.get_session_factory(engine)
        cache = CacheStore(
            session_factory,
            session_id or uuid.uuid4().hex,
            ttl_seconds=config.cache.ttl_seconds,
        )
        loader = PostLoader(
            cache,
            config.source.url,
            defaults=config.defaults,
            cache_key=config.cache.key,
            timeout=config.source.timeout,
            fetcher=fetcher,
        )
        return cls(
            loader,
            page_size=config.listing.page_size,
            related_limit=config.listing.related_limit,
            search_debounce=config.listing.search_debounce_ms / 1000,
        )

    def __enter__(self) -> "BlogSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def load(self) -> Result[List[Post]]:
        result = self.loader.load()
        if isinstance(result, Err):
            self.error = result
            self.all_posts = []
        else:
            self.error = None
            self.all_posts = result.value
        self.category_counts = category_counts(self.all_posts)
        with self._state_lock:
            self.state.page = 1
        return result

    def set_filter(self, category: str) -> None:
        with self._state_lock:
            self.state.category_filter = category or ALL_CATEGORIES
            self.state.page = 1

    def set_search(self, query: str) -> None:
        with self._state_lock:
            self.state.search_query = query
            self.state.page = 1

    def search_input(self, query: str) -> None:
        """Debounced :meth:`set_search`; each keystroke restarts the wait."""
        self._debouncer.call(self.set_search, query)

    def flush_search(self) -> None:
        self._debouncer.flush()

    def load_more(self) -> None:
        with self._state_lock:
            self.state.page += 1

    def results(self) -> List[Post]:
        with self._state_lock:
            state = QueryState(**vars(self.state))
        return apply_query(self.all_posts, state)

    def listing(self) -> ListingView:
        """Cumulative "load more" window over the current results."""
        with self._state_lock:
            state = QueryState(**vars(self.state))
        results = apply_query(self.all_posts, state)
        window = paginate(results, 1, state.page * self.page_size)
        return ListingView(
            posts=window.items,
            has_more=window.has_more,
            shown=window.shown,
            total=window.total,
            state=state,
            category_counts=dict(self.category_counts),
        )

    def article(self, article_id: Optional[str]) -> Result[ArticleView]:
        resolved = self.resolver.resolve(article_id)
        if isinstance(resolved, Err):
            if resolved.kind is ErrorKind.SOURCE_UNAVAILABLE:
                logger.error("Error loading article: %s", resolved.message)
            return resolved

        post = resolved.value
        related = self.resolver.related(post.category, post.id, self.related_limit)
        return Ok(
            ArticleView(
                post=post,
                related=related,
                read_time=read_time_minutes(post.content),
            )
        )

    def close(self) -> None:
        """End the browsing session and forget its cached posts."""
        self._debouncer.cancel()
        self.loader.cache.clear()
