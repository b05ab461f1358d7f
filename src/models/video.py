"""Video-related data models."""

import json
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from typing import List, Optional


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class VideoRecord:
    """A YouTube video with enrichment metadata and optional classification."""

    id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[int] = None  # in seconds
    channel_title: Optional[str] = None
    published_at: Optional[str] = None
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    ai_score: Optional[float] = None
    education_score: Optional[float] = None
    safety_score: Optional[float] = None
    age_appropriate: Optional[bool] = None
    tags: Optional[str] = None
    cached_at: Optional[str] = None
    subtitles: Optional[str] = None

    def __post_init__(self):
        if self.duration is not None and self.duration < 0:
            raise ValueError(f"duration must be non-negative, got {self.duration}")

    @property
    def is_classified(self) -> bool:
        return self.ai_score is not None

    def with_classification(
        self,
        ai_score: float,
        education_score: float,
        safety_score: float,
        age_appropriate: bool,
    ) -> "VideoRecord":
        """Return a copy with all four classification fields set together.

        Scores must already be normalized to [0, 1].
        """
        for name, value in (
            ("ai_score", ai_score),
            ("education_score", education_score),
            ("safety_score", safety_score),
        ):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

        return replace(
            self,
            ai_score=ai_score,
            education_score=education_score,
            safety_score=safety_score,
            age_appropriate=age_appropriate,
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "VideoRecord":
        """Create a record from a stored dictionary, ignoring unknown keys."""
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, payload: str) -> "VideoRecord":
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("video payload is not an object")
        return cls.from_dict(data)


@dataclass
class SearchRequest:
    """Parameters of one search invocation."""

    query: str
    platform: str = "youtube"
    filter_mode: str = "balanced"
    max_results: Optional[int] = None
    skip_ai_analysis: bool = False


@dataclass
class SearchResponse:
    """Ranked results of one search invocation with stage timings (seconds)."""

    videos: List[VideoRecord] = field(default_factory=list)
    total_found: int = 0
    search_time: float = 0.0
    ai_analysis_time: float = 0.0


@dataclass
class BatchAnalysisResponse:
    """Result of a standalone batch classification."""

    analyzed_videos: List[VideoRecord] = field(default_factory=list)
    total_analyzed: int = 0
    analysis_time: float = 0.0
