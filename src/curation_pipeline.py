"""Main tubesafe class orchestrating search, classification, filtering and caching."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set

from models.library import FavoriteRecord, SearchHistoryEntry
from models.verdict import VideoAnalysis
from models.video import (
    BatchAnalysisResponse,
    SearchRequest,
    SearchResponse,
    VideoRecord,
)
from services.ai_service import AIService, get_provider
from services.filter_service import filter_videos_by_mode
from services.youtube_service import YouTubeService
from utils.config import PipelineConfig, SettingsStore, load_config, validate_config
from utils.database import VideoStore
from utils.duration import DurationBounds
from utils.http import HttpFetcher
from utils.retry import ClassificationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 10
MAX_RESULTS_CAP = 20
PLACEHOLDER_THUMBNAIL = "https://via.placeholder.com/320x180/f5f5f5/666666?text=API+KEY+REQUIRED"


def create_fallback_response(query: str) -> SearchResponse:
    """A single, clearly labelled placeholder used when no real search can run."""
    now = datetime.now(timezone.utc)
    fallback_video = VideoRecord(
        id=f"fallback_{int(now.timestamp())}",
        title=f"Configure an API key to search: {query}",
        description="Set a YouTube API key in the settings to enable real search",
        channel_title="System notice",
        duration=0,
        view_count=0,
        like_count=0,
        published_at=now.isoformat(),
        thumbnail_url=PLACEHOLDER_THUMBNAIL,
        cached_at=now.isoformat(),
    )
    return SearchResponse(videos=[fallback_video], total_found=1)


def apply_analysis(video: VideoRecord, analysis: VideoAnalysis) -> VideoRecord:
    return video.with_classification(
        ai_score=analysis.overall_score,
        education_score=analysis.education_score,
        safety_score=analysis.safety_score,
        age_appropriate=analysis.age_appropriate,
    )


class CurationPipeline:
    """Central orchestrator for tubesafe."""

    def __init__(
        self,
        settings: Optional[SettingsStore] = None,
        store: Optional[VideoStore] = None,
        fetcher: Optional[HttpFetcher] = None,
        youtube_factory: Optional[Callable[[PipelineConfig], YouTubeService]] = None,
        ai_factory: Optional[Callable[[PipelineConfig], AIService]] = None,
    ):
        """Initialize the pipeline with settings and a video store."""
        self.settings = settings or SettingsStore(load_config())
        self.fetcher = fetcher or HttpFetcher()

        config_errors = validate_config(self.settings.as_dict())
        if config_errors:
            error_msg = "Configuration errors: " + "; ".join(config_errors)
            logger.error(error_msg)
            raise ValueError(error_msg)

        self.store = store or VideoStore(
            self.settings.get('database_path'),
            cache_duration_hours=self.settings.get('cache_duration_hours', 24),
        )
        self.youtube_factory = youtube_factory or self._default_youtube_service
        self.ai_factory = ai_factory or self._default_ai_service

        logger.info("tubesafe pipeline initialized")

    def _default_youtube_service(self, config: PipelineConfig) -> YouTubeService:
        return YouTubeService(
            config.youtube_api_key,
            fetcher=self.fetcher,
            relevance_language=config.search_language,
            region_code=config.region_code,
        )

    def _default_ai_service(self, config: PipelineConfig) -> AIService:
        provider = get_provider(config.ai_provider, config.ai_api_key, config.ai_model, self.fetcher)
        return AIService(provider)

    async def search_videos(self, request: SearchRequest) -> SearchResponse:
        """Run one search through the complete pipeline."""
        start_time = time.time()
        logger.info(f"Searching for '{request.query}' on {request.platform}")

        config = self.settings.snapshot()

        if not config.youtube_api_key:
            logger.warning("No YouTube API key configured, returning placeholder result")
            return create_fallback_response(request.query)

        max_results = min(request.max_results or DEFAULT_MAX_RESULTS, MAX_RESULTS_CAP)
        youtube_service = self.youtube_factory(config)

        try:
            videos = await youtube_service.search_videos(request.query, max_results)
        except Exception as e:
            logger.error(f"YouTube search failed after retries: {e}")
            return create_fallback_response(request.query)

        search_time = time.time() - start_time
        ai_start_time = time.time()

        if request.skip_ai_analysis:
            logger.info("Skipping AI analysis (requested)")
            await self._save_results(videos, request)
            return SearchResponse(
                videos=videos,
                total_found=len(videos),
                search_time=search_time,
            )

        if config.ai_api_key and videos:
            videos = await self.classify(videos, config)

        videos = filter_videos_by_mode(videos, request.filter_mode)

        ai_analysis_time = time.time() - ai_start_time
        logger.info(
            f"Found {len(videos)} videos in {search_time + ai_analysis_time:.2f}s "
            f"(search: {search_time:.2f}s, AI: {ai_analysis_time:.2f}s)"
        )

        await self._save_results(videos, request)

        return SearchResponse(
            videos=videos,
            total_found=len(videos),
            search_time=search_time,
            ai_analysis_time=ai_analysis_time,
        )

    async def classify(self, videos: List[VideoRecord], config: PipelineConfig) -> List[VideoRecord]:
        """Batch classification, falling back to one request per video if the batch fails."""
        ai_service = self.ai_factory(config)
        logger.info(f"Batch analyzing {len(videos)} videos with {config.ai_provider}")

        loop = asyncio.get_event_loop()
        try:
            analyzed = await loop.run_in_executor(
                None,
                ai_service.classify_videos,
                videos,
                config.custom_filter_prompt,
                config.duration_bounds,
            )
            logger.info(f"Batch analysis successful: {len(analyzed)} videos passed filtering")
            return analyzed
        except ClassificationError as e:
            logger.warning(f"Batch analysis failed, falling back to individual analysis: {e}")

        return await self.analyze_individually(ai_service, videos, config.custom_filter_prompt)

    async def analyze_individually(
        self,
        ai_service: AIService,
        videos: List[VideoRecord],
        prompt_override: Optional[str] = None,
    ) -> List[VideoRecord]:
        """Analyze every video concurrently; failed analyses leave the video unclassified."""
        loop = asyncio.get_event_loop()
        tasks = [
            loop.run_in_executor(None, ai_service.analyze_video, video, prompt_override)
            for video in videos
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        analyzed = []
        for video, result in zip(videos, results):
            if isinstance(result, BaseException):
                logger.warning(f"Individual analysis failed for {video.id}: {result}")
                analyzed.append(video)
            else:
                analyzed.append(apply_analysis(video, result))

        classified = sum(1 for video in analyzed if video.is_classified)
        logger.info(f"Individual analysis classified {classified} of {len(videos)} videos")
        return analyzed

    async def analyze_videos_batch(
        self,
        videos: List[VideoRecord],
        provider: str,
        api_key: str,
        prompt_override: Optional[str] = None,
        duration_bounds: Optional[DurationBounds] = None,
    ) -> BatchAnalysisResponse:
        """Classify caller-supplied videos with explicit provider credentials."""
        start_time = time.time()

        if not api_key:
            raise ValueError("API key is required for batch video analysis")
        if not videos:
            return BatchAnalysisResponse()

        ai_service = AIService(get_provider(provider, api_key, fetcher=self.fetcher))
        loop = asyncio.get_event_loop()
        analyzed = await loop.run_in_executor(
            None, ai_service.classify_videos, videos, prompt_override, duration_bounds
        )

        analysis_time = time.time() - start_time
        logger.info(f"Batch analysis complete: {len(analyzed)} videos analyzed in {analysis_time:.2f}s")
        return BatchAnalysisResponse(
            analyzed_videos=analyzed,
            total_analyzed=len(analyzed),
            analysis_time=analysis_time,
        )

    async def _save_results(self, videos: List[VideoRecord], request: SearchRequest) -> None:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(
            None,
            self.store.batch_save_videos,
            videos,
            request.query,
            request.platform,
            request.filter_mode,
        )

    def add_to_favorites(self, video_id: str, notes: Optional[str] = None) -> None:
        self.store.add_to_favorites(video_id, notes)

    def get_favorites(self) -> List[FavoriteRecord]:
        return self.store.get_favorites()

    def remove_from_favorites(self, favorite_id: int) -> None:
        self.store.remove_from_favorites(favorite_id)

    def get_cached_videos(self) -> List[VideoRecord]:
        return self.store.get_cached_videos()

    def get_expired_video_ids(self) -> Set[str]:
        return self.store.get_expired_video_ids()

    def delete_video(self, video_id: str) -> None:
        self.store.delete_video(video_id)

    def clear_cache(self) -> int:
        return self.store.clear_cache()

    def get_search_history(self, limit: int = 20) -> List[SearchHistoryEntry]:
        return self.store.get_search_history(limit)

    def close(self) -> None:
        self.store.close()
