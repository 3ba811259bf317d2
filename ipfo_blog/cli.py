"""Command-line interface for the ipfo_blog pipeline."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import pprint
import sys
from pathlib import Path
from typing import List, Optional

from .articles import article_id_from_url
from .config import parse_app_config
from .models import ALL_CATEGORIES, Err
from .renderers import build_article_html, build_error_html, build_listing_html
from .session import BlogSession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="List and read articles from the published blog spreadsheet."
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the configuration XML file. Defaults are used when omitted.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )
    parser.add_argument(
        "--session",
        default="cli",
        help="Browsing session id the cached posts are scoped to.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    listing = commands.add_parser("list", help="Show the filtered article listing.")
    listing.add_argument("--category", default=ALL_CATEGORIES)
    listing.add_argument("--search", default="")
    listing.add_argument(
        "--page",
        type=int,
        default=1,
        help="Number of 'load more' pages to show.",
    )
    listing.add_argument("--format", choices=("json", "html"), default="json")

    article = commands.add_parser("article", help="Show one article.")
    article.add_argument("article", help="Article id or detail-page URL (?id=...).")
    article.add_argument("--format", choices=("json", "html"), default="json")

    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Send log records to stderr, and to ``log_file`` when given.

    Stdout is reserved for the rendered listing or article.
    """
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(log_level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logger.debug("Logging at %s to %s", level_name.upper(), log_file or "stderr")


def _run_list(session: BlogSession, args: argparse.Namespace) -> int:
    if args.page < 1:
        raise ValueError("--page must be 1 or greater.")

    loaded = session.load()
    if isinstance(loaded, Err):
        print(build_error_html(loaded.kind) if args.format == "html" else json.dumps(
            {"error": loaded.kind.value, "message": loaded.message}
        ))
        return 1

    session.set_filter(args.category)
    session.set_search(args.search)
    for _ in range(args.page - 1):
        session.load_more()

    view = session.listing()
    if args.format == "html":
        print(build_listing_html(view))
    else:
        print(
            json.dumps(
                {
                    "posts": [post.to_dict() for post in view.posts],
                    "has_more": view.has_more,
                    "shown": view.shown,
                    "total": view.total,
                    "categories": view.category_counts,
                },
                indent=2,
                ensure_ascii=False,
            )
        )
    return 0


def _run_article(session: BlogSession, args: argparse.Namespace) -> int:
    target = args.article
    article_id = article_id_from_url(target) if "?" in target else target.strip()

    result = session.article(article_id)
    if isinstance(result, Err):
        print(build_error_html(result.kind) if args.format == "html" else json.dumps(
            {"error": result.kind.value, "message": result.message}
        ))
        return 1

    view = result.value
    if args.format == "html":
        print(build_article_html(view, page_url=target if "?" in target else None))
    else:
        print(
            json.dumps(
                {
                    "post": view.post.to_dict(),
                    "related": [post.to_dict() for post in view.related],
                    "read_time": view.read_time,
                },
                indent=2,
                ensure_ascii=False,
            )
        )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = parse_app_config(args.config)

        log_level = args.log_level or app_config.logging.level
        log_file = args.log_file or app_config.logging.file
        configure_logging(log_level, log_file)

        logger.debug("Active Configuration:\n%s", pprint.pformat(dataclasses.asdict(app_config)))

        session = BlogSession.from_config(app_config, session_id=args.session)
        if args.command == "list":
            return _run_list(session, args)
        return _run_article(session, args)
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1
