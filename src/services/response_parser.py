"""Decoding of batch classification responses back onto source videos."""

import json
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from models.verdict import BatchEnvelope, BatchVerdict
from models.video import VideoRecord
from utils.duration import DEFAULT_DURATION_BOUNDS, DurationBounds

logger = logging.getLogger(__name__)

MIN_ACCEPTED_SCORE = 0.70


def strip_markdown_code_blocks(text: str) -> str:
    """Strip markdown code blocks from AI response text.

    Args:
        text: Raw text that may contain markdown code blocks

    Returns:
        Cleaned text with markdown code blocks removed
    """
    text = text.strip()
    if text.startswith('```json'):
        text = text[7:]
    elif text.startswith('```'):
        text = text[3:]
    if text.endswith('```'):
        text = text[:-3]
    return text.strip()


def decode_verdicts(response_text: str) -> Optional[List[dict]]:
    """Return the raw verdict list, or None when the envelope is unusable."""
    try:
        data = json.loads(strip_markdown_code_blocks(response_text or ""))
        return BatchEnvelope.model_validate(data).videos
    except (json.JSONDecodeError, ValidationError) as e:
        logger.debug(f"Batch response is not a verdict envelope: {e}")
        return None


def parse_batch_response(
    videos: List[VideoRecord],
    response_text: str,
    duration_bounds: Optional[DurationBounds] = None,
) -> List[VideoRecord]:
    """Apply batch verdicts to the source videos.

    Only videos judged suitable, within the duration bounds and scoring at
    least 0.70 are returned, in source order and at most once each, with their
    classification set. The first verdict for an index wins. If the response
    cannot be decoded at all, the source videos come back unchanged.
    """
    bounds = duration_bounds or DEFAULT_DURATION_BOUNDS

    raw_verdicts = decode_verdicts(response_text)
    if raw_verdicts is None:
        logger.warning("Batch analysis parsing failed, returning videos unfiltered")
        return list(videos)

    verdicts: Dict[int, BatchVerdict] = {}
    for raw in raw_verdicts:
        try:
            verdict = BatchVerdict.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping invalid verdict {raw}: {e.error_count()} error(s)")
            continue

        idx = verdict.index - 1
        if idx >= len(videos):
            logger.warning(f"Verdict index {verdict.index} out of range for {len(videos)} videos")
            continue
        if idx in verdicts:
            logger.warning(f"Ignoring repeated verdict for index {verdict.index}")
            continue
        verdicts[idx] = verdict

    result_videos = []
    for idx in sorted(verdicts):
        verdict = verdicts[idx]
        video = videos[idx]
        duration_ok = bounds.accepts(video.duration)
        accepted = verdict.suitable and duration_ok
        score = verdict.score / 100.0

        if accepted and score >= MIN_ACCEPTED_SCORE:
            result_videos.append(video.with_classification(
                ai_score=score,
                education_score=verdict.educational_value / 100.0,
                safety_score=verdict.safety_score / 100.0,
                age_appropriate=accepted,
            ))

    return result_videos
