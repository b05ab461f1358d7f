import pytest

from models.video import VideoRecord
from utils.database import VideoStore


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data
        self.text = text

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """Replays queued responses (or raises queued exceptions) and records calls."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def _next(self):
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def get(self, url, params=None, timeout=None):
        self.calls.append(("GET", url, params, timeout))
        return self._next()

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append(("POST", url, json, headers, timeout))
        return self._next()


def make_video(video_id="vid1", duration=300, **overrides):
    fields = dict(
        id=video_id,
        title=f"Video {video_id}",
        description="Counting with friendly animals",
        channel_title="Kids Channel",
        published_at="2024-01-01T00:00:00Z",
        duration=duration,
        view_count=1000,
        like_count=50,
    )
    fields.update(overrides)
    return VideoRecord(**fields)


@pytest.fixture
def store(tmp_path):
    video_store = VideoStore(str(tmp_path / "tubesafe.db"))
    yield video_store
    video_store.close()
