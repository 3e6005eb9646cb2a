import asyncio
import logging

from pydantic import BaseModel, Field

try:
    from backend.app.models.search import ChannelStats, RawSearchHit, VideoStats
    from backend.app.services.youtube_api import MAX_IDS_PER_CALL, YouTubeDataClient
except ModuleNotFoundError:
    from app.models.search import ChannelStats, RawSearchHit, VideoStats
    from app.services.youtube_api import MAX_IDS_PER_CALL, YouTubeDataClient


LOGGER = logging.getLogger("yt_search.enrichment")


class JoinedStats(BaseModel):
    videos: dict[str, VideoStats] = Field(default_factory=dict)
    channels: dict[str, ChannelStats] = Field(default_factory=dict)


def chunked(lst, n):
    for i in range(0, len(lst), n):
        yield lst[i:i + n]


def distinct(values: list[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


def merge_maps(parts: list[dict]) -> dict:
    merged = {}
    for part in parts:
        merged.update(part)
    return merged


async def fetch_video_stats(client: YouTubeDataClient, video_ids: list[str]) -> dict[str, VideoStats]:
    parts = await asyncio.gather(
        *(client.video_details(batch) for batch in chunked(video_ids, MAX_IDS_PER_CALL))
    )
    return merge_maps(list(parts))


async def fetch_channel_stats(client: YouTubeDataClient, channel_ids: list[str]) -> dict[str, ChannelStats]:
    parts = await asyncio.gather(
        *(client.channel_details(batch) for batch in chunked(channel_ids, MAX_IDS_PER_CALL))
    )
    return merge_maps(list(parts))


async def join_stats(client: YouTubeDataClient, hits: list[RawSearchHit]) -> JoinedStats:
    """
    Fetch video and channel statistics for a batch of hits concurrently.

    Waits for every batch; the first failing call propagates and no partial
    result is returned.
    """
    video_ids = distinct([hit.video_id for hit in hits])
    channel_ids = distinct([hit.channel_id for hit in hits])
    if not video_ids and not channel_ids:
        return JoinedStats()

    videos, channels = await asyncio.gather(
        fetch_video_stats(client, video_ids),
        fetch_channel_stats(client, channel_ids),
    )
    LOGGER.debug(
        "stats joined videos=%s/%s channels=%s/%s",
        len(videos),
        len(video_ids),
        len(channels),
        len(channel_ids),
    )
    return JoinedStats(videos=videos, channels=channels)
