"""AI service for child-suitability classification of videos.

Two interchangeable LLM backends sit behind one `complete(prompt, max_tokens)`
interface; batching, chunking and parsing are shared.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import ValidationError

from models.verdict import VideoAnalysis
from models.video import VideoRecord
from services.response_parser import parse_batch_response, strip_markdown_code_blocks
from utils.duration import DurationBounds, format_duration
from utils.http import HttpFetcher, CLASSIFY_TIMEOUT
from utils.retry import (
    ClassificationError,
    MalformedResponseError,
    ProviderRejectedError,
    RetryableError,
)

logger = logging.getLogger(__name__)

MAX_VIDEOS_PER_BATCH = 5
BASE_TOKENS = 500
TOKENS_PER_VIDEO = 300
MAX_TOKENS = 8000
SINGLE_ANALYSIS_TOKENS = 500
TEMPERATURE = 0.3

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"
DEFAULT_ANTHROPIC_MODEL = "claude-3-haiku-20240307"

DEFAULT_FILTER_PROMPT = """Assess whether each of the following videos is suitable for children aged 3-6.
Criteria:
1. Educational value: supports learning in cognition, language, maths, science and similar
2. Content safety: no violence, horror or otherwise inappropriate content
3. Age fit: matches the cognitive level of preschool children
4. Production quality: clear picture, clear audio, well made

Overall score:
- If the duration does not meet the requirement, cap the overall score at min(score, 60).
- If the duration meets the requirement, use the average of the criteria as the overall score."""

OUTPUT_CONTRACT = """Output requirements:
- Return JSON only
- Only include videos with score >= 70 whose duration meets the requirement
- Fields:
{
  "videos": [
    {
      "index": 1,
      "score": 0-100,
      "suitable": true/false,
      "reason": "why this score",
      "educational_value": 0-100,
      "safety_score": 0-100
    }
  ]
}"""

SINGLE_VIDEO_PROMPT = """Assess whether this video is suitable for children. Provide:
1. education score (0-1)
2. safety score (0-1)
3. whether it is age appropriate (true/false)
4. overall score (0-1)
5. recommended age range
6. detailed reasoning

Return JSON only:
{"education_score": 0.8, "safety_score": 0.9, "age_appropriate": true, "overall_score": 0.85, "recommended_age": "3-6", "reasoning": "..."}"""


def calculate_required_tokens(video_count: int) -> int:
    """Output budget for a batch: a fixed base plus room for each verdict, capped."""
    return min(BASE_TOKENS + TOKENS_PER_VIDEO * video_count, MAX_TOKENS)


def chunk_videos(videos: List[VideoRecord], chunk_size: int = MAX_VIDEOS_PER_BATCH) -> List[List[VideoRecord]]:
    return [videos[i:i + chunk_size] for i in range(0, len(videos), chunk_size)]


def describe_video(position: int, video: VideoRecord) -> str:
    """Render one video for the prompt. Every field is always present."""
    duration_text = format_duration(video.duration) if video.duration is not None else "unknown"
    return (
        f"Video {position}:\n"
        f"Title: {video.title}\n"
        f"Duration: {duration_text} ({video.duration or 0} seconds)\n"
        f"Description: {video.description or 'no description'}\n"
        f"Likes: {video.like_count or 0}\n"
        f"Views: {video.view_count or 0}\n"
        f"Published: {video.published_at or 'unknown publish time'}\n"
        f"Channel: {video.channel_title or 'unknown'}\n"
        f"Captions: {video.subtitles or 'no caption information'}"
    )


def build_batch_prompt(videos: List[VideoRecord], prompt_override: Optional[str] = None) -> str:
    video_list = "\n\n".join(
        describe_video(index + 1, video) for index, video in enumerate(videos)
    )
    return (
        f"{prompt_override or DEFAULT_FILTER_PROMPT}\n\n"
        f"{OUTPUT_CONTRACT}\n\n"
        f"Analyze the following {len(videos)} videos:\n\n"
        f"{video_list}"
    )


class ClassificationProvider(ABC):
    """An LLM backend reduced to prompt in, text out."""

    name = "provider"

    def __init__(self, api_key: str, model_name: str, fetcher: Optional[HttpFetcher] = None):
        self.api_key = api_key
        self.model_name = model_name
        self.fetcher = fetcher or HttpFetcher()

    @abstractmethod
    def complete(self, prompt: str, max_tokens: int) -> str:
        """Send one user turn and return the reply text."""


class OpenAIProvider(ClassificationProvider):
    name = "OpenAI"

    def __init__(self, api_key: str, model_name: str = DEFAULT_OPENAI_MODEL, fetcher: Optional[HttpFetcher] = None):
        super().__init__(api_key, model_name, fetcher)

    def complete(self, prompt: str, max_tokens: int) -> str:
        response = self.fetcher.post_json(
            OPENAI_CHAT_URL,
            payload={
                "model": self.model_name,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": max_tokens,
                "temperature": TEMPERATURE,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=CLASSIFY_TIMEOUT,
            provider=self.name,
        )
        try:
            return response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(f"No response from OpenAI: {e}") from e


class AnthropicProvider(ClassificationProvider):
    name = "Anthropic"

    def __init__(self, api_key: str, model_name: str = DEFAULT_ANTHROPIC_MODEL, fetcher: Optional[HttpFetcher] = None):
        super().__init__(api_key, model_name, fetcher)

    def complete(self, prompt: str, max_tokens: int) -> str:
        response = self.fetcher.post_json(
            ANTHROPIC_MESSAGES_URL,
            payload={
                "model": self.model_name,
                "max_tokens": max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            timeout=CLASSIFY_TIMEOUT,
            provider=self.name,
        )
        try:
            return response["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(f"No response from Anthropic: {e}") from e


def get_provider(
    provider: str,
    api_key: str,
    model_name: Optional[str] = None,
    fetcher: Optional[HttpFetcher] = None,
) -> ClassificationProvider:
    """Pick a backend by tag; anything other than 'anthropic' means OpenAI."""
    if provider == "anthropic":
        return AnthropicProvider(api_key, model_name or DEFAULT_ANTHROPIC_MODEL, fetcher)
    return OpenAIProvider(api_key, model_name or DEFAULT_OPENAI_MODEL, fetcher)


class AIService:
    """Batch and single-video classification on top of a provider."""

    def __init__(self, provider: ClassificationProvider):
        self.provider = provider
        logger.info(f"Initialized AI service with {provider.name} model: {provider.model_name}")

    def classify_videos(
        self,
        videos: List[VideoRecord],
        prompt_override: Optional[str] = None,
        duration_bounds: Optional[DurationBounds] = None,
    ) -> List[VideoRecord]:
        """Classify videos and return only the ones judged suitable.

        More than MAX_VIDEOS_PER_BATCH videos are split into chunks that are
        sent one after another; a failed chunk contributes nothing. A single
        batch that fails raises ClassificationError.
        """
        if not videos:
            return []

        if len(videos) <= MAX_VIDEOS_PER_BATCH:
            return self._classify_batch(videos, prompt_override, duration_bounds)

        chunks = chunk_videos(videos)
        logger.info(f"Splitting {len(videos)} videos into {len(chunks)} chunks of {MAX_VIDEOS_PER_BATCH}")

        all_results = []
        for number, chunk in enumerate(chunks, start=1):
            try:
                all_results.extend(self._classify_batch(chunk, prompt_override, duration_bounds))
            except ClassificationError as e:
                logger.warning(f"Chunk {number}/{len(chunks)} failed, dropping {len(chunk)} videos: {e}")
        return all_results

    def _classify_batch(
        self,
        videos: List[VideoRecord],
        prompt_override: Optional[str],
        duration_bounds: Optional[DurationBounds],
    ) -> List[VideoRecord]:
        prompt = build_batch_prompt(videos, prompt_override)
        max_tokens = calculate_required_tokens(len(videos))

        try:
            response_text = self.provider.complete(prompt, max_tokens)
        except (RetryableError, ProviderRejectedError) as e:
            raise ClassificationError(f"{self.provider.name} batch request failed: {e}") from e

        return parse_batch_response(videos, response_text, duration_bounds)

    def analyze_video(self, video: VideoRecord, prompt_override: Optional[str] = None) -> VideoAnalysis:
        """Classify a single video. Unreadable replies fall back to default scores."""
        prompt = (
            f"Video title: {video.title}\n"
            f"Video description: {video.description or ''}\n\n"
            f"{prompt_override or SINGLE_VIDEO_PROMPT}"
        )
        response_text = self.provider.complete(prompt, SINGLE_ANALYSIS_TOKENS)

        try:
            data = json.loads(strip_markdown_code_blocks(response_text))
            if not isinstance(data, dict):
                raise ValueError("analysis is not an object")
            analysis = VideoAnalysis.model_validate(data)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Could not parse analysis for '{video.title}', using defaults: {e}")
            return VideoAnalysis(reasoning=response_text)

        if not analysis.reasoning:
            analysis.reasoning = response_text
        return analysis
