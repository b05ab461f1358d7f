import asyncio

from services.caption_service import CaptionService, summarize_caption_tracks
from utils.retry import NetworkError


class CaptionFetcher:
    """Answers caption lookups per video id; ids mapped to exceptions raise."""

    def __init__(self, by_video):
        self.by_video = by_video
        self.calls = []

    def get_json(self, url, params=None, timeout=None, provider="YouTube"):
        self.calls.append((url, params, timeout))
        result = self.by_video[params["videoId"]]
        if isinstance(result, BaseException):
            raise result
        return result


def _track(language, name, kind="standard"):
    return {"snippet": {"language": language, "name": name, "trackKind": kind}}


def test_summary_keeps_supported_languages():
    summary = summarize_caption_tracks([
        _track("en", "English"),
        _track("zh-Hans", "Chinese", kind="asr"),
        _track("fr", "French"),
        _track("und", ""),
    ])
    assert summary == (
        "Available captions: [en] English (manual), "
        "[zh-Hans] Chinese (auto-generated), [und]  (manual)"
    )


def test_summary_is_none_without_usable_tracks():
    assert summarize_caption_tracks([]) is None
    assert summarize_caption_tracks([_track("de", "German")]) is None


def test_fetch_captions_uses_short_timeout():
    fetcher = CaptionFetcher({"a": {"items": [_track("en", "English")]}})
    service = CaptionService("key", fetcher=fetcher)

    assert service.fetch_captions("a").startswith("Available captions:")
    url, params, timeout = fetcher.calls[0]
    assert url.endswith("/captions")
    assert params == {"part": "snippet", "videoId": "a", "key": "key"}
    assert timeout == 5.0


def test_fetch_captions_swallows_failures():
    fetcher = CaptionFetcher({"a": NetworkError("timed out")})
    assert CaptionService("key", fetcher=fetcher).fetch_captions("a") is None


def test_fetch_all_is_positional_and_isolates_failures():
    fetcher = CaptionFetcher({
        "a": {"items": [_track("en", "English")]},
        "b": NetworkError("timed out"),
        "c": {"items": []},
        "d": {"items": [_track("zh", "Chinese", kind="asr")]},
    })
    service = CaptionService("key", fetcher=fetcher)

    summaries = asyncio.run(service.fetch_all(["a", "b", "c", "d"]))

    assert len(summaries) == 4
    assert "[en] English" in summaries[0]
    assert summaries[1] is None
    assert summaries[2] is None
    assert "[zh] Chinese (auto-generated)" in summaries[3]
    assert len(fetcher.calls) == 4


def test_fetch_all_empty():
    service = CaptionService("key", fetcher=CaptionFetcher({}))
    assert asyncio.run(service.fetch_all([])) == []
