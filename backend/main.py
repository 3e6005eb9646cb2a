import os
from time import perf_counter
from typing import Annotated, Any
from uuid import uuid4

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from structlog.contextvars import bind_contextvars, reset_contextvars

try:
    from backend.app.logging_config import configure_logging
    from backend.app.models.search import (
        SearchOrder,
        SearchQuery,
        VideoDefinition,
        VideoDurationFilter,
        VideoLicense,
    )
    from backend.app.services.enrichment import distinct, fetch_channel_stats, fetch_video_stats
    from backend.app.services.search_pipeline import run_search
    from backend.app.services.youtube_api import (
        DEFAULT_BASE_URL,
        DEFAULT_TIMEOUT_SECONDS,
        YouTubeDataClient,
        YouTubeServiceError,
    )
except ModuleNotFoundError:
    from app.logging_config import configure_logging
    from app.models.search import (
        SearchOrder,
        SearchQuery,
        VideoDefinition,
        VideoDurationFilter,
        VideoLicense,
    )
    from app.services.enrichment import distinct, fetch_channel_stats, fetch_video_stats
    from app.services.search_pipeline import run_search
    from app.services.youtube_api import (
        DEFAULT_BASE_URL,
        DEFAULT_TIMEOUT_SECONDS,
        YouTubeDataClient,
        YouTubeServiceError,
    )


# ---------------------------
# App setup
# ---------------------------

load_dotenv()

YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY")
YOUTUBE_API_BASE_URL = os.getenv("YOUTUBE_API_BASE_URL") or DEFAULT_BASE_URL
YOUTUBE_API_TIMEOUT_SECONDS = float(os.getenv("YOUTUBE_API_TIMEOUT_SECONDS") or DEFAULT_TIMEOUT_SECONDS)
LOG_LEVEL = os.getenv("LOG_LEVEL") or "INFO"

LOCAL_ORIGIN_REGEX = r"http://(localhost|127\.0\.0\.1)(:\d+)?"

configure_logging(LOG_LEVEL)
logger = structlog.get_logger("yt_search.http")


def parse_cors_origins() -> tuple[list[str], str | None, bool]:
    """
    Returns (origins, origin_regex, allow_credentials).

    Unset means any localhost / 127.0.0.1 port, with credentials.
    """
    raw = (os.getenv("CORS_ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return [], LOCAL_ORIGIN_REGEX, True
    if raw == "*":
        return ["*"], None, False
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        return [], LOCAL_ORIGIN_REGEX, True
    return origins, None, True


def get_youtube_client() -> YouTubeDataClient:
    return YouTubeDataClient(
        api_key=YOUTUBE_API_KEY,
        base_url=YOUTUBE_API_BASE_URL,
        timeout=YOUTUBE_API_TIMEOUT_SECONDS,
    )


app = FastAPI(title="YouTube Search API")

cors_origins, cors_origin_regex, cors_credentials = parse_cors_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_origin_regex=cors_origin_regex,
    allow_credentials=cors_credentials,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Authorization"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    incoming_request_id = (request.headers.get("X-Request-ID") or "").strip()
    request_id = incoming_request_id or str(uuid4())
    context_tokens = bind_contextvars(
        http_request_id=request_id,
        http_method=request.method,
        http_path=request.url.path,
    )
    started_at = perf_counter()
    logger.debug("http.request.start")
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "http.request.finish",
            status_code=response.status_code,
            duration_ms=int((perf_counter() - started_at) * 1000),
        )
        return response
    finally:
        reset_contextvars(**context_tokens)


def failure_response(error_code: str, exc: Exception, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error_code, "message": str(exc) or "Unknown error occurred"},
    )


async def execute_search(query: SearchQuery) -> Any:
    try:
        result = await run_search(get_youtube_client(), query)
    except YouTubeServiceError as exc:
        logger.warning("search.failed", error_type=type(exc).__name__, message=str(exc))
        return failure_response("SEARCH_FAILED", exc)
    except Exception as exc:
        logger.exception("search.crashed", error_type=type(exc).__name__)
        return failure_response("SEARCH_FAILED", exc)
    return result.to_payload()


# ---------------------------
# Routes
# ---------------------------

@app.get("/health")
def health():
    return {"ok": True}


@app.post("/api/youtube/search")
async def search_videos(payload: SearchQuery):
    return await execute_search(payload)


@app.get("/api/youtube/search")
async def search_videos_get(
    keyword: str,
    max_results: Annotated[int | None, Query(alias="maxResults")] = None,
    order: SearchOrder | None = None,
    published_after: Annotated[str | None, Query(alias="publishedAfter")] = None,
    published_before: Annotated[str | None, Query(alias="publishedBefore")] = None,
    video_duration: Annotated[VideoDurationFilter | None, Query(alias="videoDuration")] = None,
    video_definition: Annotated[VideoDefinition | None, Query(alias="videoDefinition")] = None,
    video_license: Annotated[VideoLicense | None, Query(alias="videoLicense")] = None,
    page_token: Annotated[str | None, Query(alias="pageToken")] = None,
    min_view_count: Annotated[int | None, Query(alias="minViewCount")] = None,
    max_view_count: Annotated[int | None, Query(alias="maxViewCount")] = None,
    min_subscriber_count: Annotated[int | None, Query(alias="minSubscriberCount")] = None,
    max_subscriber_count: Annotated[int | None, Query(alias="maxSubscriberCount")] = None,
):
    fields = {
        "keyword": keyword,
        "max_results": max_results,
        "order": order,
        "published_after": published_after,
        "published_before": published_before,
        "video_duration": video_duration,
        "video_definition": video_definition,
        "video_license": video_license,
        "page_token": page_token,
        "min_view_count": min_view_count,
        "max_view_count": max_view_count,
        "min_subscriber_count": min_subscriber_count,
        "max_subscriber_count": max_subscriber_count,
    }
    # Unset parameters fall back to the model defaults.
    try:
        query = SearchQuery(**{name: value for name, value in fields.items() if value is not None})
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc
    return await execute_search(query)


@app.get("/api/youtube/videos")
async def video_details(ids: str = ""):
    video_ids = distinct([video_id.strip() for video_id in ids.split(",")])
    if not video_ids:
        return failure_response("LOOKUP_FAILED", ValueError("ids must contain at least one video id"))
    try:
        stats = await fetch_video_stats(get_youtube_client(), video_ids)
    except YouTubeServiceError as exc:
        logger.warning("video_details.failed", error_type=type(exc).__name__, message=str(exc))
        return failure_response("LOOKUP_FAILED", exc)
    items = [stats[video_id].to_payload() for video_id in video_ids if video_id in stats]
    return {"items": items}


@app.get("/api/youtube/channels/{channel_id}")
async def channel_details(channel_id: str):
    try:
        channels = await fetch_channel_stats(get_youtube_client(), [channel_id])
    except YouTubeServiceError as exc:
        logger.warning("channel_details.failed", error_type=type(exc).__name__, message=str(exc))
        return failure_response("LOOKUP_FAILED", exc)
    channel = channels.get(channel_id)
    if channel is None:
        return JSONResponse(status_code=404, content={"detail": "Channel not found."})
    return channel.to_payload()
