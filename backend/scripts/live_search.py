from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import get_args

from dotenv import load_dotenv
from pydantic import ValidationError

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from backend.app.logging_config import configure_logging
from backend.app.models.search import SearchOrder, SearchQuery, VideoDurationFilter
from backend.app.services.search_pipeline import run_search
from backend.app.services.youtube_api import DEFAULT_BASE_URL, YouTubeDataClient, YouTubeServiceError


def validate_api_key(api_key: str) -> None:
    if not api_key:
        raise RuntimeError("YOUTUBE_API_KEY is required")
    # Most Google API keys begin with AIza and are 39 characters long.
    if not api_key.startswith("AIza") or len(api_key) < 35:
        raise RuntimeError("YOUTUBE_API_KEY format looks invalid (expected prefix 'AIza').")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run one filtered YouTube search and print the JSON response.")
    parser.add_argument("keyword")
    parser.add_argument("--max-results", type=int, default=25)
    parser.add_argument("--order", choices=get_args(SearchOrder), default="relevance")
    parser.add_argument("--video-duration", choices=get_args(VideoDurationFilter), default=None)
    parser.add_argument("--published-after", default=None)
    parser.add_argument("--published-before", default=None)
    parser.add_argument("--page-token", default=None)
    parser.add_argument("--min-views", type=int, default=None)
    parser.add_argument("--max-views", type=int, default=None)
    parser.add_argument("--min-subscribers", type=int, default=None)
    parser.add_argument("--max-subscribers", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    return parser


def build_query(args: argparse.Namespace) -> SearchQuery:
    return SearchQuery(
        keyword=args.keyword,
        max_results=args.max_results,
        order=args.order,
        video_duration=args.video_duration,
        published_after=args.published_after,
        published_before=args.published_before,
        page_token=args.page_token,
        min_view_count=args.min_views,
        max_view_count=args.max_views,
        min_subscriber_count=args.min_subscribers,
        max_subscriber_count=args.max_subscribers,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()
    configure_logging(args.log_level)

    try:
        query = build_query(args)
    except ValidationError as exc:
        print(f"Invalid search arguments:\n{exc}", file=sys.stderr)
        return 2

    api_key = os.getenv("YOUTUBE_API_KEY", "").strip()
    validate_api_key(api_key)

    client = YouTubeDataClient(api_key, base_url=os.getenv("YOUTUBE_API_BASE_URL") or DEFAULT_BASE_URL)

    try:
        result = asyncio.run(run_search(client, query))
    except YouTubeServiceError as exc:
        print(json.dumps({"error": "SEARCH_FAILED", "message": str(exc)}, indent=2))
        return 1

    print(json.dumps(result.to_payload(), indent=2, ensure_ascii=False))
    print(f"{len(result.videos)} videos, totalResults={result.total_results}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
