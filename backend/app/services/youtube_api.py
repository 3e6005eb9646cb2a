import asyncio
import logging
from typing import Any

import requests

try:
    from backend.app.models.search import ChannelStats, RawSearchHit, SearchPage, SearchQuery, VideoStats
except ModuleNotFoundError:
    from app.models.search import ChannelStats, RawSearchHit, SearchPage, SearchQuery, VideoStats


LOGGER = logging.getLogger("yt_search.youtube_api")

DEFAULT_BASE_URL = "https://www.googleapis.com/youtube/v3"
DEFAULT_TIMEOUT_SECONDS = 10
PLACEHOLDER_API_KEY = "your-youtube-api-key-here"
MISSING_BODY_PLACEHOLDER = "Unknown error"

# Hard upstream limit on ids per videos.list / channels.list call.
MAX_IDS_PER_CALL = 50


class YouTubeServiceError(Exception):
    pass


class YouTubeConfigError(YouTubeServiceError):
    pass


class YouTubeApiError(YouTubeServiceError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"YouTube API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class YouTubeQuotaExceededError(YouTubeApiError):
    pass


class YouTubeTimeoutError(YouTubeServiceError):
    pass


class YouTubeUnavailableError(YouTubeServiceError):
    pass


def is_quota_exceeded_body(status_code: int, body: str) -> bool:
    lowered = body.lower()
    return status_code in {403, 429} and (
        "quotaexceeded" in lowered or "quota exceeded" in lowered or "youtube.quota" in lowered
    )


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_count(value: Any) -> int:
    # Statistics come back as decimal strings ("12345"); hidden counts are absent.
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return 0


def parse_search_page(payload: dict[str, Any]) -> SearchPage:
    hits = []
    for item in _as_list(payload.get("items")):
        item = _as_dict(item)
        video_id = _as_str(_as_dict(item.get("id")).get("videoId"))
        if not video_id:
            continue
        snippet = _as_dict(item.get("snippet"))
        thumbnails = _as_dict(snippet.get("thumbnails"))
        hits.append(
            RawSearchHit(
                video_id=video_id,
                channel_id=_as_str(snippet.get("channelId")),
                title=_as_str(snippet.get("title")),
                description=_as_str(snippet.get("description")),
                thumbnail_url=_as_str(_as_dict(thumbnails.get("default")).get("url")),
                channel_title=_as_str(snippet.get("channelTitle")),
                published_at=_as_str(snippet.get("publishedAt")),
            )
        )

    next_token = payload.get("nextPageToken")
    prev_token = payload.get("prevPageToken")
    return SearchPage(
        hits=hits,
        total_results=_as_count(_as_dict(payload.get("pageInfo")).get("totalResults")),
        next_page_token=next_token if isinstance(next_token, str) and next_token else None,
        prev_page_token=prev_token if isinstance(prev_token, str) and prev_token else None,
    )


def parse_video_stats(payload: dict[str, Any]) -> dict[str, VideoStats]:
    stats: dict[str, VideoStats] = {}
    for item in _as_list(payload.get("items")):
        item = _as_dict(item)
        video_id = _as_str(item.get("id"))
        if not video_id:
            continue
        statistics = _as_dict(item.get("statistics"))
        duration = _as_str(_as_dict(item.get("contentDetails")).get("duration"))
        stats[video_id] = VideoStats(
            video_id=video_id,
            view_count=_as_count(statistics.get("viewCount")),
            like_count=_as_count(statistics.get("likeCount")),
            comment_count=_as_count(statistics.get("commentCount")),
            duration=duration or None,
        )
    return stats


def parse_channel_stats(payload: dict[str, Any]) -> dict[str, ChannelStats]:
    stats: dict[str, ChannelStats] = {}
    for item in _as_list(payload.get("items")):
        item = _as_dict(item)
        channel_id = _as_str(item.get("id"))
        if not channel_id:
            continue
        stats[channel_id] = ChannelStats(
            channel_id=channel_id,
            title=_as_str(_as_dict(item.get("snippet")).get("title")),
            subscriber_count=_as_count(_as_dict(item.get("statistics")).get("subscriberCount")),
        )
    return stats


def build_search_params(query: SearchQuery, max_results: int, page_token: str | None) -> dict[str, Any]:
    params: dict[str, Any] = {
        "part": "snippet",
        "q": query.keyword,
        "type": "video",
        "maxResults": max_results,
        "order": query.order,
    }
    if query.published_after:
        params["publishedAfter"] = query.published_after
    if query.published_before:
        params["publishedBefore"] = query.published_before
    if query.video_duration:
        # The platform has no sub-minute class; "short" (<4 min) is the closest superset.
        params["videoDuration"] = "short" if query.shorts_only else query.video_duration
    if query.video_definition:
        params["videoDefinition"] = query.video_definition
    if query.video_license:
        params["videoLicense"] = query.video_license
    if page_token:
        params["pageToken"] = page_token
    return params


class YouTubeDataClient:
    """
    Read-only client for the three YouTube Data API v3 list endpoints.

    Every call is a single GET with a fixed timeout and no retries. The blocking
    `requests` call runs in a worker thread so callers can await it and fan out
    with `asyncio.gather`.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _require_api_key(self) -> str:
        if not self.api_key or self.api_key == PLACEHOLDER_API_KEY:
            raise YouTubeConfigError(
                "YouTube API key is not configured. Set YOUTUBE_API_KEY in the environment or backend/.env"
            )
        return self.api_key

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        merged = params.copy()
        merged["key"] = self._require_api_key()
        url = f"{self.base_url}/{path}"

        try:
            response = requests.get(url, params=merged, timeout=self.timeout)
        except requests.Timeout as exc:
            LOGGER.warning("youtube request timed out path=%s timeout=%s", path, self.timeout)
            raise YouTubeTimeoutError(
                f"YouTube API request to /{path} timed out after {self.timeout}s"
            ) from exc
        except requests.RequestException as exc:
            LOGGER.warning("youtube request failed path=%s error=%s", path, type(exc).__name__)
            raise YouTubeUnavailableError(f"YouTube API is unreachable: {exc}") from exc

        if not 200 <= response.status_code < 300:
            body = response.text or MISSING_BODY_PLACEHOLDER
            LOGGER.warning("youtube request rejected path=%s status=%s", path, response.status_code)
            if is_quota_exceeded_body(response.status_code, body):
                raise YouTubeQuotaExceededError(response.status_code, body)
            raise YouTubeApiError(response.status_code, body)

        try:
            payload = response.json()
        except ValueError as exc:
            raise YouTubeUnavailableError(f"YouTube API returned a non-JSON body for /{path}") from exc
        if not isinstance(payload, dict):
            raise YouTubeUnavailableError(f"YouTube API returned an unexpected body for /{path}")
        return payload

    async def _get_async(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        return await asyncio.to_thread(self._get, path, params)

    async def search(
        self,
        query: SearchQuery,
        max_results: int,
        page_token: str | None = None,
    ) -> SearchPage:
        payload = await self._get_async("search", build_search_params(query, max_results, page_token))
        page = parse_search_page(payload)
        LOGGER.debug(
            "search page fetched requested=%s hits=%s has_next=%s",
            max_results,
            len(page.hits),
            page.next_page_token is not None,
        )
        return page

    async def video_details(self, video_ids: list[str]) -> dict[str, VideoStats]:
        if not video_ids:
            return {}
        payload = await self._get_async(
            "videos",
            {
                "part": "snippet,statistics,contentDetails",
                "id": ",".join(video_ids),
            },
        )
        return parse_video_stats(payload)

    async def channel_details(self, channel_ids: list[str]) -> dict[str, ChannelStats]:
        if not channel_ids:
            return {}
        payload = await self._get_async(
            "channels",
            {
                "part": "snippet,statistics",
                "id": ",".join(channel_ids),
            },
        )
        return parse_channel_stats(payload)
