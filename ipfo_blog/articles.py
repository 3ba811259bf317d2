"""Single-article resolution and related-post lookup."""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from .models import Err, ErrorKind, Ok, Post, Result
from .sheets import PostLoader

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200


def strip_markup(raw_value: str) -> str:
    """Return the text content of an HTML fragment."""
    soup = BeautifulSoup(raw_value, "html.parser")
    return soup.get_text(separator=" ")


def read_time_minutes(content: str) -> int:
    """Estimated reading time, never below one minute."""
    words = len(strip_markup(content).split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def article_id_from_url(url: str) -> Optional[str]:
    """Read the ``id`` parameter of a detail-page URL such as ``blog-article.html?id=42``."""
    values = parse_qs(urlparse(url).query).get("id")
    if not values:
        return None
    return values[0].strip() or None


def find_post(posts: Iterable[Post], article_id: Optional[str]) -> Result[Post]:
    if not article_id:
        return Err(ErrorKind.NOT_FOUND, "No article id supplied.")
    for post in posts:
        if post.id == article_id:
            return Ok(post)
    logger.error("Article not found with ID: %s", article_id)
    return Err(ErrorKind.NOT_FOUND, f"Article not found: {article_id}")


def related_posts(
    posts: Iterable[Post], category: str, exclude_id: str, limit: int = 3
) -> List[Post]:
    """Posts sharing ``category`` other than ``exclude_id``, in load order."""
    related: List[Post] = []
    if limit <= 0:
        return related
    for post in posts:
        if post.category == category and post.id != exclude_id:
            related.append(post)
            if len(related) >= limit:
                break
    return related


class ArticleResolver:
    """Resolves articles against the posts returned by a loader."""

    def __init__(self, loader: PostLoader) -> None:
        self.loader = loader

    def resolve(self, article_id: Optional[str]) -> Result[Post]:
        if not article_id:
            return Err(ErrorKind.NOT_FOUND, "No article id supplied.")
        loaded = self.loader.load()
        if isinstance(loaded, Err):
            return loaded
        return find_post(loaded.value, article_id)

    def related(self, category: str, exclude_id: str, limit: int = 3) -> List[Post]:
        loaded = self.loader.load()
        if isinstance(loaded, Err):
            return []
        return related_posts(loaded.value, category, exclude_id, limit)
