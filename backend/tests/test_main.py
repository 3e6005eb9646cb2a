import pytest
from fastapi.testclient import TestClient

import backend.app.services.youtube_api as youtube_api
import backend.main as main_module
from backend.app.models.search import ChannelStats, SearchPage, VideoStats
from backend.app.services.youtube_api import YouTubeApiError
from backend.tests.fakes import FakeYouTubeClient, make_hit


@pytest.fixture
def http_client():
    with TestClient(main_module.app) as client:
        yield client


def use_fake_client(monkeypatch, fake: FakeYouTubeClient) -> FakeYouTubeClient:
    monkeypatch.setattr(main_module, "get_youtube_client", lambda: fake)
    return fake


def test_health(http_client):
    response = http_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert response.headers.get("X-Request-ID")


def test_request_id_is_echoed(http_client):
    response = http_client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_post_search_returns_camel_case_payload(http_client, monkeypatch):
    use_fake_client(
        monkeypatch,
        FakeYouTubeClient(
            pages={
                None: SearchPage(
                    hits=[make_hit("a", "Golang tutorial basics"), make_hit("b", "Cooking show")],
                    total_results=4321,
                    next_page_token="NEXT",
                )
            }
        ),
    )

    response = http_client.post("/api/youtube/search", json={"keyword": "golang tutorial", "maxResults": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["totalResults"] == 4321
    assert body["nextPageToken"] == "NEXT"
    assert "prevPageToken" not in body
    video = body["videos"][0]
    assert video["videoId"] == "a"
    assert video["thumbnailUrl"] == "https://img/a.jpg"
    assert video["channelTitle"] == "Test Channel"
    assert "viewCount" not in video


def test_get_search_with_filters_includes_statistics(http_client, monkeypatch):
    fake = use_fake_client(
        monkeypatch,
        FakeYouTubeClient(
            pages={None: SearchPage(hits=[make_hit("a", "cat", channel_id="UC_1")], total_results=10)},
            video_stats={"a": VideoStats(video_id="a", view_count=2000, like_count=5, duration="PT40S")},
            channel_stats={"UC_1": ChannelStats(channel_id="UC_1", subscriber_count=777)},
        ),
    )

    response = http_client.get(
        "/api/youtube/search",
        params={
            "keyword": "cat",
            "maxResults": 5,
            "videoDuration": "shorts",
            "minViewCount": 1000,
            "minSubscriberCount": 100,
        },
    )

    assert response.status_code == 200
    video = response.json()["videos"][0]
    assert video["viewCount"] == 2000
    assert video["likeCount"] == 5
    assert video["commentCount"] == 0
    assert video["duration"] == "PT40S"
    assert video["subscriberCount"] == 777
    assert fake.search_calls == [(50, None)]


def test_get_search_defaults_max_results(http_client, monkeypatch):
    fake = use_fake_client(monkeypatch, FakeYouTubeClient())

    response = http_client.get("/api/youtube/search", params={"keyword": "cat"})

    assert response.status_code == 200
    assert response.json() == {"videos": [], "totalResults": 0}
    assert fake.search_calls == [(50, None)]


def test_post_search_treats_null_max_results_and_order_as_defaults(http_client, monkeypatch):
    fake = use_fake_client(monkeypatch, FakeYouTubeClient())

    response = http_client.post("/api/youtube/search", json={"keyword": "cat", "maxResults": None, "order": None})

    assert response.status_code == 200
    assert fake.search_calls == [(50, None)]


def test_upstream_failure_is_reported_as_search_failed(http_client, monkeypatch):
    use_fake_client(monkeypatch, FakeYouTubeClient(error=YouTubeApiError(403, "forbidden")))

    response = http_client.post("/api/youtube/search", json={"keyword": "cat"})

    assert response.status_code == 400
    assert response.json() == {"error": "SEARCH_FAILED", "message": "YouTube API error (403): forbidden"}


def test_unexpected_failure_is_reported_as_search_failed(http_client, monkeypatch):
    use_fake_client(monkeypatch, FakeYouTubeClient(error=KeyError("boom")))

    response = http_client.get("/api/youtube/search", params={"keyword": "cat"})

    assert response.status_code == 400
    assert response.json()["error"] == "SEARCH_FAILED"


def test_missing_api_key_is_a_search_failure(http_client, monkeypatch):
    monkeypatch.setattr(main_module, "YOUTUBE_API_KEY", None)
    monkeypatch.setattr(youtube_api.requests, "get", lambda *args, **kwargs: pytest.fail("unexpected call"))

    response = http_client.post("/api/youtube/search", json={"keyword": "cat"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "SEARCH_FAILED"
    assert "YOUTUBE_API_KEY" in body["message"]


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"keyword": "cat", "maxResults": 0},
        {"keyword": "cat", "order": "popularity"},
        {"keyword": "cat", "minViewCount": -1},
        {"keyword": "cat", "videoDuration": "tiny"},
    ],
)
def test_invalid_post_body_is_rejected(http_client, monkeypatch, payload):
    fake = use_fake_client(monkeypatch, FakeYouTubeClient())

    response = http_client.post("/api/youtube/search", json=payload)

    assert response.status_code == 422
    assert fake.search_calls == []


def test_invalid_get_parameters_are_rejected(http_client, monkeypatch):
    fake = use_fake_client(monkeypatch, FakeYouTubeClient())

    missing_keyword = http_client.get("/api/youtube/search")
    zero_results = http_client.get("/api/youtube/search", params={"keyword": "cat", "maxResults": 0})

    assert missing_keyword.status_code == 422
    assert zero_results.status_code == 422
    assert fake.search_calls == []


def test_video_details_lookup(http_client, monkeypatch):
    fake = use_fake_client(
        monkeypatch,
        FakeYouTubeClient(
            video_stats={
                "a": VideoStats(video_id="a", view_count=1, duration="PT1M"),
                "b": VideoStats(video_id="b", view_count=2),
            }
        ),
    )

    response = http_client.get("/api/youtube/videos", params={"ids": "a, b,a,missing"})

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["videoId"] for item in items] == ["a", "b"]
    assert items[0]["duration"] == "PT1M"
    assert fake.video_calls == [["a", "b", "missing"]]


def test_video_details_requires_ids(http_client):
    response = http_client.get("/api/youtube/videos", params={"ids": " , "})

    assert response.status_code == 400
    assert response.json()["error"] == "LOOKUP_FAILED"


def test_channel_details_lookup(http_client, monkeypatch):
    use_fake_client(
        monkeypatch,
        FakeYouTubeClient(channel_stats={"UC_1": ChannelStats(channel_id="UC_1", title="One", subscriber_count=9)}),
    )

    found = http_client.get("/api/youtube/channels/UC_1")
    missing = http_client.get("/api/youtube/channels/UC_404")

    assert found.status_code == 200
    assert found.json() == {"channelId": "UC_1", "title": "One", "subscriberCount": 9}
    assert missing.status_code == 404


def test_cors_allows_local_dev_origins(http_client):
    response = http_client.options(
        "/api/youtube/search",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"


def test_parse_cors_origins(monkeypatch):
    monkeypatch.delenv("CORS_ALLOWED_ORIGINS", raising=False)
    assert main_module.parse_cors_origins() == ([], main_module.LOCAL_ORIGIN_REGEX, True)

    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "*")
    assert main_module.parse_cors_origins() == (["*"], None, False)

    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://a.example, https://b.example")
    assert main_module.parse_cors_origins() == (["https://a.example", "https://b.example"], None, True)
