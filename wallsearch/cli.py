#!/usr/bin/env python
"""Run one wallpaper search from the command line.
Usage:
  wallsearch "nature" --device mobile --sort popular --page 2
  wallsearch --url "/search?q=space&premium=true"
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from wallsearch.common.config import settings
from wallsearch.common.logger import LogContext, setup_logging
from wallsearch.search.query import SearchQuery, SortBy, parse_query_string
from wallsearch.ui.page import PageView, SearchPage

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wallsearch", description="Search wallpapers")
    parser.add_argument("query", nargs="?", default="", help="Search text")
    parser.add_argument("--url", help="Shareable search URL or query string; overrides other filters")
    parser.add_argument("--category", default="", help="Category slug")
    parser.add_argument("--device", default="", help="Device type (desktop, mobile, tablet)")
    parser.add_argument("--res", default="", help="Resolution, e.g. 3840x2160")
    parser.add_argument("--video", action="store_true", help="Live/video wallpapers only")
    parser.add_argument("--premium", action="store_true", help="Include premium wallpapers")
    parser.add_argument(
        "--sort",
        default=SortBy.NEWEST.value,
        choices=[s.value for s in SortBy],
        help="Sort order",
    )
    parser.add_argument("--page", type=int, default=1, help="Result page (1-based)")
    parser.add_argument("--categories", action="store_true", help="List active categories and exit")
    parser.add_argument("--json", action="store_true", help="Print the raw result page as JSON")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


def query_from_args(args: argparse.Namespace) -> SearchQuery:
    if args.url:
        return parse_query_string(args.url)
    return SearchQuery(
        text=args.query,
        category=args.category,
        device_type=args.device,
        resolution=args.res,
        video_only=args.video,
        include_premium=args.premium,
        sort_by=SortBy.parse(args.sort),
        page=max(1, args.page),
    )


def format_view(view: PageView) -> str:
    lines = [view.title, view.summary]
    if view.error:
        lines.append(f"Search failed: {view.error}")
    if view.empty_state is not None:
        lines.append(view.empty_state.title)
        lines.append(f"{view.empty_state.message} {', '.join(view.empty_state.suggestions)}")
        return "\n".join(lines)

    if view.grid is not None:
        for item in view.grid.items:
            title = item.summary.title or "(untitled)"
            lines.append(f"{item.index + 1:3d}. {title} [{item.summary.id}] {item.src}")

    if view.pagination is not None:
        p = view.pagination
        pages = " ".join(f"[{n}]" if n == p.current_page else str(n) for n in p.pages)
        lines.append(
            f"Pages: {pages}  (prev: {'yes' if p.has_previous else 'no'}, "
            f"next: {'yes' if p.has_next else 'no'})"
        )
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    query = query_from_args(args)
    page = SearchPage.create(initial=query.to_query_string())
    try:
        if args.categories:
            for category in await page.load_categories():
                print(f"{category.slug or category.id}\t{category.name}")
            return 0

        with LogContext(logger, query_key=query.cache_key):
            logger.info(f"Searching {page.store.url}")
            outcome = await page.refresh()

        if args.json:
            payload = outcome.page.model_dump(mode="json") if outcome.page else None
            print(json.dumps({"status": outcome.status.value, "error": outcome.error, "data": payload}, indent=2))
        else:
            print(format_view(page.view()))
        return 1 if outcome.failed else 0
    finally:
        await page.close()
        await page.orchestrator.client.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        settings.log_level = args.log_level
    setup_logging(settings)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
