try:
    from backend.app.models.search import ChannelStats, RawSearchHit, SearchQuery, VideoResult, VideoStats
except ModuleNotFoundError:
    from app.models.search import ChannelStats, RawSearchHit, SearchQuery, VideoResult, VideoStats


SHORTS_MAX_SECONDS = 60
DURATION_UNIT_SECONDS = {"H": 3600, "M": 60, "S": 1}


# ---------------------------
# Duration tokens
# ---------------------------

def parse_duration_seconds(duration: str | None) -> int | None:
    """
    Total seconds for a compact duration token such as PT1H2M30S.

    None or blank input is unparseable (None). Anything else yields an int:
    P and T are skipped, a unit letter with no digits before it counts as 0,
    and stray characters are ignored.
    """
    if duration is None or not duration.strip():
        return None

    total = 0
    digits = ""
    for char in duration:
        if char in DURATION_UNIT_SECONDS:
            total += int(digits or 0) * DURATION_UNIT_SECONDS[char]
            digits = ""
        elif "0" <= char <= "9":
            digits += char
    return total


# ---------------------------
# Title matching
# ---------------------------

def query_words(keyword: str) -> list[str]:
    return keyword.lower().split()


def title_matches(title: str, keyword: str) -> bool:
    """
    Graduated keyword match against a title, case-insensitive substring based:
    - 1 word: the word must appear
    - 2 words: both must appear
    - 3+ words: the whole phrase appears, or floor(n * 2/3) + 1 of the words do
    - no words: the trimmed keyword must appear as-is
    """
    title_lower = title.lower()
    phrase = keyword.lower().strip()
    words = query_words(keyword)

    if not words:
        return phrase in title_lower
    if len(words) == 1:
        return words[0] in title_lower
    if len(words) == 2:
        return all(word in title_lower for word in words)

    if phrase in title_lower:
        return True
    matched = sum(1 for word in words if word in title_lower)
    required = len(words) * 2 // 3 + 1
    return matched >= required


# ---------------------------
# Filter engine
# ---------------------------

def in_range(value: int, lower: int | None, upper: int | None) -> bool:
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


def passes_filters(
    hit: RawSearchHit,
    query: SearchQuery,
    video_stats: VideoStats | None,
    subscriber_count: int,
) -> bool:
    if not title_matches(hit.title, query.keyword):
        return False

    if query.shorts_only:
        seconds = parse_duration_seconds(video_stats.duration if video_stats else None)
        if seconds is None or seconds >= SHORTS_MAX_SECONDS:
            return False

    view_count = video_stats.view_count if video_stats else 0
    if not in_range(view_count, query.min_view_count, query.max_view_count):
        return False

    return in_range(subscriber_count, query.min_subscriber_count, query.max_subscriber_count)


def filter_hits(
    hits: list[RawSearchHit],
    query: SearchQuery,
    target_count: int,
    video_stats: dict[str, VideoStats] | None = None,
    channel_stats: dict[str, ChannelStats] | None = None,
) -> list[VideoResult]:
    """
    Apply title, shorts, view-count and subscriber-count predicates in that
    order and keep at most `target_count` survivors in upstream order.

    Stats maps are None when enrichment did not run; output records then
    carry no statistics fields.
    """
    enriched = video_stats is not None or channel_stats is not None
    video_stats = video_stats or {}
    channel_stats = channel_stats or {}

    results: list[VideoResult] = []
    for hit in hits:
        if len(results) >= target_count:
            break
        stats = video_stats.get(hit.video_id)
        channel = channel_stats.get(hit.channel_id)
        subscriber_count = channel.subscriber_count if channel else 0
        if not passes_filters(hit, query, stats, subscriber_count):
            continue
        if enriched:
            results.append(
                VideoResult.from_hit(
                    hit,
                    stats or VideoStats(video_id=hit.video_id),
                    subscriber_count=subscriber_count,
                )
            )
        else:
            results.append(VideoResult.from_hit(hit))
    return results
