"""Filtering, search and pagination over the loaded post set."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Sequence

from .models import ALL_CATEGORIES, Page, Post, QueryState

DEFAULT_PAGE_SIZE = 9


def filter_by_category(posts: Iterable[Post], category: str) -> List[Post]:
    """Keep posts in ``category`` (exact match); ``"all"`` keeps everything."""
    if category == ALL_CATEGORIES:
        return list(posts)
    return [post for post in posts if post.category == category]


def matches(post: Post, needle: str) -> bool:
    return any(
        needle in value.lower()
        for value in (post.title, post.excerpt, post.category, post.author)
    )


def search(posts: Iterable[Post], query: str) -> List[Post]:
    """Case-insensitive substring search over title, excerpt, category and author."""
    needle = query.strip().lower()
    if not needle:
        return list(posts)
    return [post for post in posts if matches(post, needle)]


def apply_query(posts: Iterable[Post], state: QueryState) -> List[Post]:
    return search(filter_by_category(posts, state.category_filter), state.search_query)


def paginate(
    posts: Sequence[Post], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
) -> Page:
    if page < 1:
        raise ValueError("page must be 1 or greater.")
    if page_size < 1:
        raise ValueError("page_size must be positive.")

    total = len(posts)
    end = page * page_size
    return Page(
        items=list(posts[(page - 1) * page_size : end]),
        page=page,
        page_size=page_size,
        total=total,
        shown=min(end, total),
        has_more=end < total,
    )


def category_counts(posts: Iterable[Post]) -> Dict[str, int]:
    """Count posts per category, ordered by first appearance."""
    return dict(Counter(post.category for post in posts))
