"""Typed classification verdicts decoded from LLM responses."""

from typing import Any, List

from pydantic import BaseModel, Field


class BatchVerdict(BaseModel):
    """One video's verdict inside a batch response.

    `index` is 1-based and required. Scores are on the provider's 0-100 scale;
    absent fields fall back to the defaults below.
    """

    index: int = Field(ge=1)
    score: float = Field(default=0.0, ge=0, le=100)
    educational_value: float = Field(default=70.0, ge=0, le=100)
    safety_score: float = Field(default=80.0, ge=0, le=100)
    suitable: bool = False
    reason: str = ""


class BatchEnvelope(BaseModel):
    """Top-level object a batch response must decode into."""

    videos: List[Any]


class VideoAnalysis(BaseModel):
    """Single-video analysis on a 0-1 scale."""

    education_score: float = Field(default=0.7, ge=0, le=1)
    safety_score: float = Field(default=0.8, ge=0, le=1)
    age_appropriate: bool = True
    overall_score: float = Field(default=0.75, ge=0, le=1)
    recommended_age: str = "Parent review needed"
    reasoning: str = ""
