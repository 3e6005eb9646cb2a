import logging

try:
    from backend.app.models.search import SearchPage, SearchQuery, SearchResult, VideoResult
    from backend.app.services.enrichment import join_stats
    from backend.app.services.search_filters import filter_hits
    from backend.app.services.youtube_api import YouTubeDataClient
except ModuleNotFoundError:
    from app.models.search import SearchPage, SearchQuery, SearchResult, VideoResult
    from app.services.enrichment import join_stats
    from app.services.search_filters import filter_hits
    from app.services.youtube_api import YouTubeDataClient


LOGGER = logging.getLogger("yt_search.pipeline")

# Upstream search.list page-size ceiling.
MAX_PAGE_SIZE = 50

# Over-fetch factors for the first page; more filtering discards more candidates.
TITLE_ONLY_MULTIPLIER = 3
COUNT_FILTER_MULTIPLIER = 5
SHORTS_MULTIPLIER = 10

# Extra pages allowed after the first one.
MAX_EXTRA_PAGES_WHEN_EMPTY = 5
MAX_EXTRA_PAGES = 3


def fetch_multiplier(query: SearchQuery) -> int:
    if query.shorts_only:
        return SHORTS_MULTIPLIER
    if query.has_count_filters:
        return COUNT_FILTER_MULTIPLIER
    return TITLE_ONLY_MULTIPLIER


def initial_fetch_count(query: SearchQuery) -> int:
    return min(query.max_results * fetch_multiplier(query), MAX_PAGE_SIZE)


def extra_page_budget(found: int) -> int:
    return MAX_EXTRA_PAGES_WHEN_EMPTY if found == 0 else MAX_EXTRA_PAGES


async def filter_page(
    client: YouTubeDataClient,
    page: SearchPage,
    query: SearchQuery,
    target_count: int,
) -> list[VideoResult]:
    if not page.hits or target_count <= 0:
        return []
    if not query.needs_enrichment:
        return filter_hits(page.hits, query, target_count)
    stats = await join_stats(client, page.hits)
    return filter_hits(page.hits, query, target_count, stats.videos, stats.channels)


def append_new(accumulated: list[VideoResult], found: list[VideoResult]) -> list[VideoResult]:
    seen = {video.video_id for video in accumulated}
    merged = list(accumulated)
    for video in found:
        if video.video_id in seen:
            continue
        seen.add(video.video_id)
        merged.append(video)
    return merged


async def collect(
    client: YouTubeDataClient,
    query: SearchQuery,
    page: SearchPage,
    accumulated: list[VideoResult],
    extra_pages_used: int,
) -> tuple[list[VideoResult], SearchPage]:
    """
    Filter `page` into `accumulated`, then keep pulling follow-up pages while
    the target is unmet, a next-page token exists, and the page budget allows.

    Returns the accumulated results and the last upstream page fetched.
    """
    target = query.max_results
    found = await filter_page(client, page, query, target)
    accumulated = append_new(accumulated, found)[:target]

    if len(accumulated) >= target:
        return accumulated, page
    if page.next_page_token is None:
        LOGGER.debug("search exhausted found=%s target=%s", len(accumulated), target)
        return accumulated, page
    if extra_pages_used >= extra_page_budget(len(accumulated)):
        LOGGER.info(
            "search page budget spent found=%s target=%s extra_pages=%s",
            len(accumulated),
            target,
            extra_pages_used,
        )
        return accumulated, page

    LOGGER.debug(
        "fetching more results found=%s target=%s extra_page=%s",
        len(accumulated),
        target,
        extra_pages_used + 1,
    )
    next_page = await client.search(query, MAX_PAGE_SIZE, page.next_page_token)
    return await collect(client, query, next_page, accumulated, extra_pages_used + 1)


async def run_search(client: YouTubeDataClient, query: SearchQuery) -> SearchResult:
    first_page = await client.search(query, initial_fetch_count(query), query.page_token)
    videos, last_page = await collect(client, query, first_page, [], 0)
    LOGGER.info(
        "search finished keyword=%r found=%s target=%s enriched=%s",
        query.keyword,
        len(videos),
        query.max_results,
        query.needs_enrichment,
    )
    return SearchResult(
        videos=videos,
        total_results=last_page.total_results,
        next_page_token=last_page.next_page_token,
        prev_page_token=last_page.prev_page_token,
    )
