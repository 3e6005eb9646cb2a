import pytest

from backend.app.models.search import ChannelStats, VideoStats
from backend.app.services.enrichment import join_stats
from backend.app.services.youtube_api import YouTubeApiError
from backend.tests.fakes import FakeYouTubeClient, make_hit


@pytest.mark.asyncio
async def test_channel_ids_are_batched_by_fifty():
    hits = [make_hit(f"v{i}", "cat", channel_id=f"UC_{i}") for i in range(120)]
    channels = {f"UC_{i}": ChannelStats(channel_id=f"UC_{i}", subscriber_count=i) for i in range(120)}
    client = FakeYouTubeClient(channel_stats=channels)

    joined = await join_stats(client, hits)

    assert [len(batch) for batch in client.channel_calls] == [50, 50, 20]
    assert len(joined.channels) == 120
    assert joined.channels["UC_119"].subscriber_count == 119


@pytest.mark.asyncio
async def test_ids_are_deduplicated_before_fetching():
    hits = [
        make_hit("v1", "cat", channel_id="UC_A"),
        make_hit("v2", "cat", channel_id="UC_A"),
        make_hit("v1", "cat again", channel_id="UC_B"),
    ]
    client = FakeYouTubeClient(
        video_stats={"v1": VideoStats(video_id="v1", view_count=10)},
        channel_stats={"UC_A": ChannelStats(channel_id="UC_A", subscriber_count=5)},
    )

    joined = await join_stats(client, hits)

    assert client.video_calls == [["v1", "v2"]]
    assert client.channel_calls == [["UC_A", "UC_B"]]
    assert set(joined.videos) == {"v1"}
    assert set(joined.channels) == {"UC_A"}


@pytest.mark.asyncio
async def test_no_hits_means_no_calls():
    client = FakeYouTubeClient()

    joined = await join_stats(client, [])

    assert joined.videos == {}
    assert joined.channels == {}
    assert client.video_calls == []
    assert client.channel_calls == []


@pytest.mark.asyncio
async def test_failed_batch_fails_the_join():
    class FailingChannelsClient(FakeYouTubeClient):
        async def channel_details(self, channel_ids):
            await super().channel_details(channel_ids)
            if len(self.channel_calls) == 2:
                raise YouTubeApiError(500, "backend error")
            return {}

    hits = [make_hit(f"v{i}", "cat", channel_id=f"UC_{i}") for i in range(60)]

    with pytest.raises(YouTubeApiError):
        await join_stats(FailingChannelsClient(), hits)
