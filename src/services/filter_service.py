"""Filter-mode retention and ranking of classified videos."""

import logging
from typing import List

from models.video import VideoRecord

logger = logging.getLogger(__name__)

FILTER_MODES = ("strict", "balanced", "educational")

STRICT_SAFETY_THRESHOLD = 0.90
EDUCATIONAL_THRESHOLD = 0.75
BALANCED_THRESHOLD = 0.60


def passes_filter(video: VideoRecord, filter_mode: str) -> bool:
    """Retention rule for one video.

    Unclassified videos fail strict and educational but pass balanced, since an
    unset ai_score counts as exactly the balanced threshold.
    """
    if filter_mode == "strict":
        safety = video.safety_score if video.safety_score is not None else 0.0
        return safety >= STRICT_SAFETY_THRESHOLD and video.age_appropriate is True
    if filter_mode == "educational":
        education = video.education_score if video.education_score is not None else 0.0
        return education >= EDUCATIONAL_THRESHOLD

    ai_score = video.ai_score if video.ai_score is not None else BALANCED_THRESHOLD
    return ai_score >= BALANCED_THRESHOLD


def sort_key(video: VideoRecord, filter_mode: str) -> float:
    if filter_mode == "strict":
        score = video.safety_score
    elif filter_mode == "educational":
        score = video.education_score
    else:
        score = video.ai_score
    return score if score is not None else 0.0


def filter_videos_by_mode(videos: List[VideoRecord], filter_mode: str) -> List[VideoRecord]:
    """Keep the videos the mode accepts, best first; ties keep input order."""
    if filter_mode not in FILTER_MODES:
        logger.debug(f"Unknown filter mode '{filter_mode}', using balanced")
        filter_mode = "balanced"

    kept = [video for video in videos if passes_filter(video, filter_mode)]
    kept.sort(key=lambda video: sort_key(video, filter_mode), reverse=True)

    logger.info(f"Filter '{filter_mode}' kept {len(kept)} of {len(videos)} videos")
    return kept
