from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


SearchOrder = Literal["relevance", "date", "rating", "title", "videoCount", "viewCount"]
VideoDurationFilter = Literal["any", "short", "medium", "long", "shorts"]
VideoDefinition = Literal["any", "high", "standard"]
VideoLicense = Literal["any", "creativeCommon", "youtube"]

DEFAULT_MAX_RESULTS = 25


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SearchQuery(CamelModel):
    keyword: str
    max_results: int = Field(default=DEFAULT_MAX_RESULTS, gt=0)
    order: SearchOrder = "relevance"
    published_after: str | None = None
    published_before: str | None = None
    video_duration: VideoDurationFilter | None = None
    video_definition: VideoDefinition | None = None
    video_license: VideoLicense | None = None
    page_token: str | None = None

    # Client-side filters; inverted ranges are not rejected, they just match nothing.
    min_view_count: int | None = Field(default=None, ge=0)
    max_view_count: int | None = Field(default=None, ge=0)
    min_subscriber_count: int | None = Field(default=None, ge=0)
    max_subscriber_count: int | None = Field(default=None, ge=0)

    @field_validator("max_results", mode="before")
    @classmethod
    def _default_max_results(cls, value):
        return DEFAULT_MAX_RESULTS if value is None else value

    @field_validator("order", mode="before")
    @classmethod
    def _default_order(cls, value):
        return "relevance" if value is None else value

    @property
    def shorts_only(self) -> bool:
        return self.video_duration == "shorts"

    @property
    def has_count_filters(self) -> bool:
        return any(
            bound is not None
            for bound in (
                self.min_view_count,
                self.max_view_count,
                self.min_subscriber_count,
                self.max_subscriber_count,
            )
        )

    @property
    def needs_enrichment(self) -> bool:
        return self.has_count_filters or self.shorts_only


class RawSearchHit(BaseModel):
    video_id: str
    channel_id: str = ""
    title: str = ""
    description: str = ""
    thumbnail_url: str = ""
    channel_title: str = ""
    published_at: str = ""


class SearchPage(BaseModel):
    """One upstream search.list response, reduced to what the pipeline reads."""

    hits: list[RawSearchHit] = Field(default_factory=list)
    total_results: int = 0
    next_page_token: str | None = None
    prev_page_token: str | None = None


class VideoStats(CamelModel):
    video_id: str
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    duration: str | None = None


class ChannelStats(CamelModel):
    channel_id: str
    title: str = ""
    subscriber_count: int = 0


class VideoResult(CamelModel):
    video_id: str
    title: str
    description: str
    thumbnail_url: str
    channel_id: str
    channel_title: str
    published_at: str
    view_count: int | None = None
    like_count: int | None = None
    comment_count: int | None = None
    duration: str | None = None
    subscriber_count: int | None = None

    @classmethod
    def from_hit(
        cls,
        hit: RawSearchHit,
        video_stats: VideoStats | None = None,
        subscriber_count: int | None = None,
    ) -> "VideoResult":
        stats_fields = {}
        if video_stats is not None:
            stats_fields = {
                "view_count": video_stats.view_count,
                "like_count": video_stats.like_count,
                "comment_count": video_stats.comment_count,
                "duration": video_stats.duration,
            }
        return cls(
            video_id=hit.video_id,
            title=hit.title,
            description=hit.description,
            thumbnail_url=hit.thumbnail_url,
            channel_id=hit.channel_id,
            channel_title=hit.channel_title,
            published_at=hit.published_at,
            subscriber_count=subscriber_count,
            **stats_fields,
        )


class SearchResult(CamelModel):
    videos: list[VideoResult] = Field(default_factory=list)
    # Reported by the last upstream page consulted, not a count of `videos`.
    total_results: int = 0
    next_page_token: str | None = None
    prev_page_token: str | None = None
