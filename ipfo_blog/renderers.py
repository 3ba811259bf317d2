"""HTML rendering of listing and article views."""

from __future__ import annotations

from typing import Dict
from urllib.parse import quote

from .models import ArticleView, ErrorKind, ListingView
from .templating import get_environment

SITE_NAME = "IPFO"


def share_links(url: str, title: str) -> Dict[str, str]:
    """Social share targets for an article page."""
    encoded_url = quote(url, safe="")
    encoded_title = quote(title, safe="")
    return {
        "twitter": f"https://twitter.com/intent/tweet?text={encoded_title}&url={encoded_url}",
        "linkedin": f"https://www.linkedin.com/sharing/share-offsite/?url={encoded_url}",
        "facebook": f"https://www.facebook.com/sharer/sharer.php?u={encoded_url}",
        "whatsapp": f"https://wa.me/?text={encoded_title}%20{encoded_url}",
        "email": (
            f"mailto:?subject={encoded_title}"
            f"&body={quote('Check out this article: ', safe='')}{encoded_url}"
        ),
    }


def build_listing_html(view: ListingView) -> str:
    template = get_environment().get_template("listing.html.j2")
    return template.render(view=view, site_name=SITE_NAME)


def build_article_html(view: ArticleView, page_url: str | None = None) -> str:
    template = get_environment().get_template("article.html.j2")
    return template.render(
        view=view,
        site_name=SITE_NAME,
        share=share_links(page_url or view.post.link, view.post.title),
    )


def build_error_html(kind: ErrorKind) -> str:
    """Empty state for listings, error state for detail pages."""
    template = get_environment().get_template("error.html.j2")
    return template.render(kind=kind.value, site_name=SITE_NAME)
