"""Caption availability lookups, fanned out concurrently per video."""

import asyncio
import logging
from typing import List, Optional

from utils.http import HttpFetcher, LOOKUP_TIMEOUT

logger = logging.getLogger(__name__)

YOUTUBE_CAPTIONS_URL = "https://www.googleapis.com/youtube/v3/captions"

PRIMARY_LANGUAGE_PREFIX = "zh"
SECONDARY_LANGUAGE_PREFIX = "en"
UNDETERMINED_LANGUAGE = "und"


def summarize_caption_tracks(items: List[dict]) -> Optional[str]:
    """Render the usable caption tracks as one line, or None if there are none."""
    tracks = []
    for item in items:
        snippet = item.get("snippet") or {}
        language = snippet.get("language") or ""
        if not (
            language.startswith(PRIMARY_LANGUAGE_PREFIX)
            or language.startswith(SECONDARY_LANGUAGE_PREFIX)
            or language == UNDETERMINED_LANGUAGE
        ):
            continue

        kind = "auto-generated" if snippet.get("trackKind") == "asr" else "manual"
        tracks.append(f"[{language}] {snippet.get('name', '')} ({kind})")

    if not tracks:
        return None
    return f"Available captions: {', '.join(tracks)}"


class CaptionService:
    """Fetches caption track metadata (not caption text) from the YouTube API."""

    def __init__(self, api_key: str, fetcher: Optional[HttpFetcher] = None):
        self.api_key = api_key
        self.fetcher = fetcher or HttpFetcher()

    def fetch_captions(self, video_id: str) -> Optional[str]:
        """Return the caption summary for one video. Failures yield None."""
        try:
            response = self.fetcher.get_json(
                YOUTUBE_CAPTIONS_URL,
                params={"part": "snippet", "videoId": video_id, "key": self.api_key},
                timeout=LOOKUP_TIMEOUT,
            )
            items = response.get("items") or []
            if not isinstance(items, list):
                return None
            return summarize_caption_tracks(items)
        except Exception as e:
            logger.warning(f"Failed to fetch captions for video {video_id}: {e}")
            return None

    async def fetch_all(self, video_ids: List[str]) -> List[Optional[str]]:
        """Fetch caption summaries for every id, one task each.

        All tasks are awaited; the result list lines up with video_ids.
        """
        if not video_ids:
            return []

        loop = asyncio.get_event_loop()
        tasks = [
            loop.run_in_executor(None, self.fetch_captions, video_id)
            for video_id in video_ids
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        summaries: List[Optional[str]] = []
        for video_id, result in zip(video_ids, results):
            if isinstance(result, BaseException):
                logger.warning(f"Caption task for {video_id} failed: {result}")
                summaries.append(None)
            else:
                summaries.append(result)
        return summaries
