"""Shared data models for ipfo_blog."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Generic, List, TypeVar, Union

T = TypeVar("T")

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class Post:
    """Normalized article record derived from one spreadsheet row."""

    id: str
    title: str
    excerpt: str
    content: str
    category: str
    author: str
    date: str
    image: str
    link: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Post":
        """Rebuild a post from its serialised form.

        Raises ``KeyError`` when a field is missing and ``TypeError`` when a
        value is not a string, so callers can treat either as corruption.
        """
        values = {}
        for item in fields(cls):
            value = payload[item.name]
            if not isinstance(value, str):
                raise TypeError(f"Post field '{item.name}' must be a string")
            values[item.name] = value
        return cls(**values)


@dataclass
class CacheEntry:
    """Serialised post set plus the epoch-millisecond time it was stored."""

    data: List[Post]
    timestamp: int


@dataclass
class QueryState:
    category_filter: str = ALL_CATEGORIES
    search_query: str = ""
    page: int = 1


@dataclass
class Page:
    """One pagination window over an ordered post list."""

    items: List[Post]
    page: int
    page_size: int
    total: int
    shown: int
    has_more: bool


@dataclass
class ListingView:
    """Everything a listing renderer needs."""

    posts: List[Post]
    has_more: bool
    shown: int
    total: int
    state: QueryState
    category_counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class ArticleView:
    """A resolved article with its related posts."""

    post: Post
    related: List[Post]
    read_time: int


class ErrorKind(str, Enum):
    SOURCE_UNAVAILABLE = "source_unavailable"
    CACHE_MISS = "cache_miss"
    CACHE_EXPIRED = "cache_expired"
    CACHE_CORRUPT = "cache_corrupt"
    CACHE_WRITE_FAILED = "cache_write_failed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str = ""

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
