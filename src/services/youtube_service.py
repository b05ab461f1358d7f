"""YouTube Data API search service with details and caption enrichment."""

import asyncio
import logging
from typing import List, Dict, Optional

from models.video import VideoRecord, utc_now_iso
from services.caption_service import CaptionService
from utils.duration import parse_duration
from utils.http import HttpFetcher, LOOKUP_TIMEOUT, SEARCH_TIMEOUT
from utils.retry import MalformedResponseError

logger = logging.getLogger(__name__)

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"

MAX_SEARCH_RESULTS = 50
SEARCH_ATTEMPTS = 3


def _parse_count(value) -> Optional[int]:
    """Statistics arrive as numeric strings; anything unparseable is unset."""
    if value is None:
        return None
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count >= 0 else None


def select_thumbnail(thumbnails: Dict) -> Optional[str]:
    """Prefer the high resolution thumbnail, then medium."""
    for variant in ("high", "medium"):
        thumb = thumbnails.get(variant)
        if thumb and thumb.get("url"):
            return thumb["url"]
    return None


def format_video_data(search_item: Dict, details: Optional[Dict]) -> VideoRecord:
    """Build a VideoRecord from a search item and its (optional) detail entry."""
    snippet = search_item.get("snippet") or {}

    duration = view_count = like_count = None
    if details:
        content_details = details.get("contentDetails") or {}
        if content_details.get("duration"):
            duration = parse_duration(content_details["duration"])

        statistics = details.get("statistics") or {}
        view_count = _parse_count(statistics.get("viewCount"))
        like_count = _parse_count(statistics.get("likeCount"))

    return VideoRecord(
        id=search_item["id"]["videoId"],
        title=snippet.get("title", ""),
        description=snippet.get("description"),
        channel_title=snippet.get("channelTitle"),
        published_at=snippet.get("publishedAt"),
        thumbnail_url=select_thumbnail(snippet.get("thumbnails") or {}),
        duration=duration,
        view_count=view_count,
        like_count=like_count,
        cached_at=utc_now_iso(),
    )


class YouTubeService:
    """Service for searching YouTube videos through the Data API."""

    def __init__(
        self,
        api_key: str,
        fetcher: Optional[HttpFetcher] = None,
        caption_service: Optional[CaptionService] = None,
        relevance_language: str = "en",
        region_code: str = "US",
    ):
        """Initialize YouTube search service."""
        self.api_key = api_key
        self.fetcher = fetcher or HttpFetcher()
        self.caption_service = caption_service or CaptionService(api_key, self.fetcher)
        self.relevance_language = relevance_language
        self.region_code = region_code

    def search_items(self, query: str, max_results: int) -> List[Dict]:
        """Run the search call (with retry) and return the raw items in ranking order."""
        params = {
            "part": "snippet",
            "type": "video",
            "q": query,
            "maxResults": min(max_results, MAX_SEARCH_RESULTS),
            "key": self.api_key,
            "order": "relevance",
            "safeSearch": "strict",
            "videoCategoryId": "22",
            "videoEmbeddable": "true",
            "relevanceLanguage": self.relevance_language,
            "regionCode": self.region_code,
        }

        response = self.fetcher.fetch(
            YOUTUBE_SEARCH_URL,
            params=params,
            timeout=SEARCH_TIMEOUT,
            max_attempts=SEARCH_ATTEMPTS,
        )

        items = response.get("items")
        if not isinstance(items, list):
            raise MalformedResponseError("YouTube search response has no items list")

        total = (response.get("pageInfo") or {}).get("totalResults")
        logger.info(f"YouTube API returned {len(items)} videos (total: {total})")
        return items

    def get_video_details(self, video_ids: List[str]) -> List[Optional[Dict]]:
        """Fetch statistics and content details for all ids in one call.

        Returns one entry per requested id, in the same order; ids the API
        did not return map to None.
        """
        if not video_ids:
            return []

        response = self.fetcher.get_json(
            YOUTUBE_VIDEOS_URL,
            params={
                "part": "snippet,contentDetails,statistics",
                "id": ",".join(video_ids),
                "key": self.api_key,
            },
            timeout=LOOKUP_TIMEOUT,
        )

        details_map = {}
        for detail in response.get("items") or []:
            if isinstance(detail, dict) and detail.get("id"):
                details_map[detail["id"]] = detail

        return [details_map.get(video_id) for video_id in video_ids]

    async def search_videos(self, query: str, max_results: int = 10) -> List[VideoRecord]:
        """Search YouTube and return enriched records in the provider's ranking order."""
        if not query.strip():
            return []

        logger.info(f"Searching YouTube for: '{query}' (maxResults={max_results})")

        loop = asyncio.get_event_loop()
        items = await loop.run_in_executor(None, self.search_items, query, max_results)
        if not items:
            logger.warning(f"No videos found for query: {query}")
            return []

        try:
            video_ids = [item["id"]["videoId"] for item in items]
        except (KeyError, TypeError) as e:
            raise MalformedResponseError(f"YouTube search item without a video id: {e}") from e

        logger.info(f"Found {len(video_ids)} videos, getting detailed information...")
        details = await loop.run_in_executor(None, self.get_video_details, video_ids)

        logger.info("Fetching caption information for videos...")
        captions = await self.caption_service.fetch_all(video_ids)

        videos = []
        for search_item, detail, caption in zip(items, details, captions):
            video = format_video_data(search_item, detail)
            video.subtitles = caption
            videos.append(video)

        return videos
