"""SQLite persistence for cached videos, favorites and search history."""

import queue
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Set

from models.library import CachedVideoRecord, FavoriteRecord, SearchHistoryEntry
from models.video import VideoRecord, utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 5
DEFAULT_CACHE_HOURS = 24

SCHEMA_SQL = '''
CREATE TABLE IF NOT EXISTS cached_videos (
    id TEXT PRIMARY KEY,
    query TEXT NOT NULL,
    platform TEXT NOT NULL,
    video_data TEXT NOT NULL,
    cached_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS favorites (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    video_id TEXT NOT NULL UNIQUE,
    user_notes TEXT,
    created_at TEXT NOT NULL,
    video_data TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS search_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    query TEXT NOT NULL,
    platform TEXT NOT NULL,
    filter_mode TEXT NOT NULL,
    results_count INTEGER NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_cached_videos_query ON cached_videos(query, platform);
CREATE INDEX IF NOT EXISTS idx_cached_videos_expires ON cached_videos(expires_at);
CREATE INDEX IF NOT EXISTS idx_search_history_date ON search_history(created_at);
CREATE INDEX IF NOT EXISTS idx_favorites_created ON favorites(created_at);
'''

UPSERT_CACHED_VIDEO_SQL = '''
    INSERT OR REPLACE INTO cached_videos (
        id, query, platform, video_data, cached_at, expires_at
    ) VALUES (?, ?, ?, ?, ?, ?)
'''


def init_database(db_path: str) -> None:
    """Initialize SQLite database with required tables."""
    db_file = Path(db_path)
    db_file.parent.mkdir(parents=True, exist_ok=True)

    with sqlite3.connect(db_path) as conn:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    logger.info(f"Database initialized at {db_path}")


class ConnectionPool:
    """Fixed-size pool of sqlite connections; checkout blocks when all are busy."""

    def __init__(self, db_path: str, size: int = DEFAULT_POOL_SIZE):
        self.db_path = db_path
        self.size = size
        self._connections: "queue.Queue[sqlite3.Connection]" = queue.Queue(maxsize=size)
        for _ in range(size):
            conn = sqlite3.connect(db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._connections.put(conn)

    @contextmanager
    def connection(self):
        conn = self._connections.get()
        try:
            yield conn
        finally:
            self._connections.put(conn)

    def close(self) -> None:
        while not self._connections.empty():
            self._connections.get_nowait().close()


def _placeholder_video(video_id: str) -> VideoRecord:
    return VideoRecord(id=video_id, title="Unknown Video", cached_at=utc_now_iso())


class VideoStore:
    """Cache, favorites and history tables behind one connection pool."""

    def __init__(
        self,
        db_path: str,
        pool_size: int = DEFAULT_POOL_SIZE,
        cache_duration_hours: int = DEFAULT_CACHE_HOURS,
    ):
        self.db_path = db_path
        self.cache_duration_hours = cache_duration_hours
        init_database(db_path)
        self.pool = ConnectionPool(db_path, pool_size)

    def close(self) -> None:
        self.pool.close()

    def _timestamps(self):
        now = datetime.now(timezone.utc)
        expires = now + timedelta(hours=self.cache_duration_hours)
        return now.isoformat(), expires.isoformat()

    def batch_save_videos(
        self,
        videos: List[VideoRecord],
        query: str,
        platform: str,
        filter_mode: str = "balanced",
    ) -> int:
        """Upsert every video and append one history row, all in one transaction.

        Any failure rolls back the whole batch, history row included.
        """
        cached_at, expires_at = self._timestamps()

        with self.pool.connection() as conn:
            try:
                cursor = conn.cursor()
                for video in videos:
                    cursor.execute(UPSERT_CACHED_VIDEO_SQL, (
                        video.id,
                        query,
                        platform,
                        video.to_json(),
                        cached_at,
                        expires_at,
                    ))

                cursor.execute('''
                    INSERT INTO search_history (
                        query, platform, filter_mode, results_count, created_at
                    ) VALUES (?, ?, ?, ?, ?)
                ''', (query, platform, filter_mode, len(videos), cached_at))

                conn.commit()
            except Exception:
                conn.rollback()
                logger.error(f"Batch save of {len(videos)} videos for '{query}' rolled back")
                raise

        logger.info(f"Saved {len(videos)} videos for '{query}' on {platform}")
        return len(videos)

    def save_video(self, video: VideoRecord, query: Optional[str] = None, platform: str = "youtube") -> None:
        """Upsert a single video outside of any search."""
        cached_at, expires_at = self._timestamps()

        with self.pool.connection() as conn:
            conn.execute(UPSERT_CACHED_VIDEO_SQL, (
                video.id,
                query if query is not None else video.title,
                platform,
                video.to_json(),
                cached_at,
                expires_at,
            ))
            conn.commit()
        logger.debug(f"Saved video: {video.id}")

    def get_cached_videos(self) -> List[VideoRecord]:
        """All cached videos, newest first. Rows that fail to decode are skipped."""
        with self.pool.connection() as conn:
            rows = conn.execute(
                'SELECT id, video_data FROM cached_videos ORDER BY cached_at DESC'
            ).fetchall()

        videos = []
        for row in rows:
            try:
                videos.append(VideoRecord.from_json(row['video_data']))
            except (ValueError, TypeError) as e:
                logger.debug(f"Skipping undecodable cached video {row['id']}: {e}")

        logger.info(f"Loaded {len(videos)} cached videos from database")
        return videos

    def get_cached_entry(self, video_id: str) -> Optional[CachedVideoRecord]:
        with self.pool.connection() as conn:
            row = conn.execute(
                'SELECT * FROM cached_videos WHERE id = ?', (video_id,)
            ).fetchone()

        if row:
            return CachedVideoRecord.from_row(dict(row))
        return None

    def get_expired_video_ids(self, now_iso: Optional[str] = None) -> Set[str]:
        """Ids of cached videos past their expiry. Nothing is deleted."""
        now_iso = now_iso or utc_now_iso()
        with self.pool.connection() as conn:
            rows = conn.execute('SELECT * FROM cached_videos').fetchall()

        entries = [CachedVideoRecord.from_row(dict(row)) for row in rows]
        return {entry.id for entry in entries if entry.is_expired(now_iso)}

    def delete_video(self, video_id: str) -> None:
        with self.pool.connection() as conn:
            conn.execute('DELETE FROM cached_videos WHERE id = ?', (video_id,))
            conn.commit()
        logger.debug(f"Deleted cached video: {video_id}")

    def clear_cache(self) -> int:
        """Delete every cached video and return how many rows went."""
        with self.pool.connection() as conn:
            cursor = conn.execute('DELETE FROM cached_videos')
            conn.commit()
        logger.info(f"Cleared {cursor.rowcount} cached videos")
        return cursor.rowcount

    def add_to_favorites(self, video_id: str, notes: Optional[str] = None) -> None:
        """Favorite a video, snapshotting its cached data (or a placeholder)."""
        entry = self.get_cached_entry(video_id)
        if entry is not None:
            video_data = entry.video_data
        else:
            video_data = _placeholder_video(video_id).to_json()

        with self.pool.connection() as conn:
            conn.execute('''
                INSERT OR REPLACE INTO favorites (
                    video_id, user_notes, created_at, video_data
                ) VALUES (?, ?, ?, ?)
            ''', (video_id, notes, utc_now_iso(), video_data))
            conn.commit()
        logger.info(f"Added {video_id} to favorites")

    def get_favorites(self) -> List[FavoriteRecord]:
        with self.pool.connection() as conn:
            rows = conn.execute('''
                SELECT id, video_id, user_notes, created_at, video_data
                FROM favorites
                ORDER BY created_at DESC
            ''').fetchall()

        return [FavoriteRecord.from_row(dict(row)) for row in rows]

    def remove_from_favorites(self, favorite_id: int) -> None:
        with self.pool.connection() as conn:
            conn.execute('DELETE FROM favorites WHERE id = ?', (favorite_id,))
            conn.commit()

    def get_search_history(self, limit: int = 20) -> List[SearchHistoryEntry]:
        """Most recent searches first."""
        with self.pool.connection() as conn:
            rows = conn.execute('''
                SELECT id, query, platform, filter_mode, results_count, created_at
                FROM search_history
                ORDER BY created_at DESC, id DESC
                LIMIT ?
            ''', (limit,)).fetchall()

        return [SearchHistoryEntry.from_row(dict(row)) for row in rows]
