"""Persisted cache, favorite and search-history models."""

import logging
from dataclasses import dataclass
from typing import Optional

from models.video import VideoRecord

logger = logging.getLogger(__name__)


@dataclass
class CachedVideoRecord:
    """One row of the video cache; last write for an id wins."""

    id: str
    query: str
    platform: str
    video_data: str  # serialized VideoRecord
    cached_at: str
    expires_at: str

    @classmethod
    def from_row(cls, row: dict) -> "CachedVideoRecord":
        return cls(
            id=row["id"],
            query=row["query"],
            platform=row["platform"],
            video_data=row["video_data"],
            cached_at=row["cached_at"],
            expires_at=row["expires_at"],
        )

    def is_expired(self, now_iso: str) -> bool:
        """Expiry is advisory: readers decide, nothing sweeps old rows."""
        return self.expires_at <= now_iso

    def video(self) -> VideoRecord:
        return VideoRecord.from_json(self.video_data)


@dataclass
class FavoriteRecord:
    """A favorited video with the snapshot taken when it was favorited."""

    id: int
    video_id: str
    created_at: str
    user_notes: Optional[str] = None
    video: Optional[VideoRecord] = None

    @classmethod
    def from_row(cls, row: dict) -> "FavoriteRecord":
        video = None
        try:
            video = VideoRecord.from_json(row["video_data"])
        except (ValueError, TypeError) as e:
            logger.warning(f"Favorite {row['video_id']} has an unreadable snapshot: {e}")

        return cls(
            id=row["id"],
            video_id=row["video_id"],
            user_notes=row.get("user_notes"),
            created_at=row["created_at"],
            video=video,
        )


@dataclass
class SearchHistoryEntry:
    """Append-only audit row written once per persisted search."""

    id: int
    query: str
    platform: str
    filter_mode: str
    results_count: int
    created_at: str

    @classmethod
    def from_row(cls, row: dict) -> "SearchHistoryEntry":
        return cls(**{name: row[name] for name in cls.__dataclass_fields__})
