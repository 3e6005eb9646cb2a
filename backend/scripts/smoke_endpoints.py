from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from unittest.mock import patch

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import backend.main as main_module
from backend.app.models.search import ChannelStats, RawSearchHit, SearchPage, SearchQuery, VideoStats


class SmokeClient:
    """Offline stand-in for YouTubeDataClient with two canned search pages."""

    def __init__(self) -> None:
        self.calls = {"search": 0, "videos": 0, "channels": 0}

    async def search(self, query, max_results, page_token=None) -> SearchPage:
        self.calls["search"] += 1
        if page_token is None:
            return SearchPage(
                hits=[
                    make_hit("smoke1", "Smoke test tutorial"),
                    make_hit("smoke2", "Unrelated clip"),
                ],
                total_results=1000,
                next_page_token="PAGE_2",
            )
        return SearchPage(
            hits=[make_hit("smoke3", "Another smoke test walkthrough")],
            total_results=990,
            prev_page_token="PAGE_1",
        )

    async def video_details(self, video_ids: list[str]) -> dict[str, VideoStats]:
        self.calls["videos"] += 1
        return {
            video_id: VideoStats(video_id=video_id, view_count=5000, like_count=10, comment_count=2, duration="PT45S")
            for video_id in video_ids
        }

    async def channel_details(self, channel_ids: list[str]) -> dict[str, ChannelStats]:
        self.calls["channels"] += 1
        return {
            channel_id: ChannelStats(channel_id=channel_id, title="Smoke Channel", subscriber_count=321)
            for channel_id in channel_ids
        }


def make_hit(video_id: str, title: str) -> RawSearchHit:
    return RawSearchHit(
        video_id=video_id,
        channel_id="UC_SMOKE",
        title=title,
        channel_title="Smoke Channel",
        published_at="2025-01-01T00:00:00Z",
        thumbnail_url=f"https://img/{video_id}.jpg",
    )


def assert_true(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def test_health() -> None:
    payload = main_module.health()
    assert_true(payload.get("ok") is True, "/health should return ok=true")


def test_search_post() -> None:
    client = SmokeClient()
    with patch.object(main_module, "get_youtube_client", return_value=client):
        payload = asyncio.run(main_module.search_videos(SearchQuery(keyword="smoke test", max_results=5)))

    ids = [video["videoId"] for video in payload.get("videos", [])]
    assert_true(ids == ["smoke1", "smoke3"], "/api/youtube/search should keep title matches across pages")
    assert_true(payload.get("totalResults") == 990, "/api/youtube/search should report the last page total")
    assert_true(client.calls["videos"] == 0, "title-only search should not fetch statistics")


def test_search_get_with_filters() -> None:
    client = SmokeClient()
    with patch.object(main_module, "get_youtube_client", return_value=client):
        payload = asyncio.run(
            main_module.search_videos_get(keyword="smoke", max_results=1, video_duration="shorts", min_view_count=1000)
        )

    videos = payload.get("videos", [])
    assert_true(len(videos) == 1, "filtered GET search should return one video")
    assert_true(videos[0].get("subscriberCount") == 321, "filtered search should carry channel statistics")
    assert_true(client.calls["search"] == 1, "a full first page should not trigger another fetch")


def test_video_and_channel_lookup() -> None:
    client = SmokeClient()
    with patch.object(main_module, "get_youtube_client", return_value=client):
        videos = asyncio.run(main_module.video_details(ids="smoke1,smoke2"))
        channel = asyncio.run(main_module.channel_details("UC_SMOKE"))

    assert_true(len(videos.get("items", [])) == 2, "/api/youtube/videos should return one item per id")
    assert_true(channel.get("subscriberCount") == 321, "/api/youtube/channels should return subscriber count")


def run() -> int:
    checks = [
        ("health", test_health),
        ("search post", test_search_post),
        ("search get with filters", test_search_get_with_filters),
        ("video + channel lookup", test_video_and_channel_lookup),
    ]
    failures = []

    for check_name, check_fn in checks:
        try:
            check_fn()
            print(f"[PASS] {check_name}")
        except Exception as exc:  # pragma: no cover - smoke script output path
            failures.append((check_name, str(exc)))
            print(f"[FAIL] {check_name}: {exc}")

    if failures:
        print(f"\nSmoke checks failed: {len(failures)}")
        for check_name, message in failures:
            print(f"- {check_name}: {message}")
        return 1

    print("\nAll smoke checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
