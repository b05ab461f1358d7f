import json

import pytest

from conftest import FakeResponse, FakeSession, make_video
from services.ai_service import (
    AIService,
    AnthropicProvider,
    ClassificationProvider,
    OpenAIProvider,
    build_batch_prompt,
    calculate_required_tokens,
    chunk_videos,
    describe_video,
    get_provider,
)
from utils.http import HttpFetcher
from utils.retry import ClassificationError, MalformedResponseError, NetworkError, ProviderRejectedError


class ScriptedProvider(ClassificationProvider):
    """Returns queued replies in order; queued exceptions are raised."""

    name = "Scripted"

    def __init__(self, replies):
        super().__init__("key", "scripted-model", fetcher=object())
        self.replies = list(replies)
        self.prompts = []

    def complete(self, prompt, max_tokens):
        self.prompts.append((prompt, max_tokens))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


def _accept_all(count, score=90):
    return json.dumps({"videos": [
        {"index": i, "score": score, "suitable": True} for i in range(1, count + 1)
    ]})


@pytest.mark.parametrize("count,expected", [(0, 500), (1, 800), (5, 2000), (100, 8000)])
def test_calculate_required_tokens(count, expected):
    assert calculate_required_tokens(count) == expected


def test_chunk_videos_sizes():
    videos = [make_video(f"v{i}") for i in range(12)]
    chunks = chunk_videos(videos)
    assert [len(c) for c in chunks] == [5, 5, 2]
    assert [v.id for c in chunks for v in c] == [v.id for v in videos]


def test_describe_video_placeholders():
    video = make_video("a", duration=None, description=None, channel_title=None,
                       published_at=None, view_count=None, like_count=None)
    text = describe_video(3, video)
    assert text.startswith("Video 3:")
    assert "Duration: unknown (0 seconds)" in text
    assert "Description: no description" in text
    assert "Published: unknown publish time" in text
    assert "Channel: unknown" in text
    assert "Captions: no caption information" in text
    assert "Likes: 0" in text
    assert "Views: 0" in text


def test_build_batch_prompt_uses_override():
    videos = [make_video("a", duration=253), make_video("b")]
    prompt = build_batch_prompt(videos, "Only animal videos please.")
    assert prompt.startswith("Only animal videos please.")
    assert "Analyze the following 2 videos" in prompt
    assert "Duration: 4m 13s (253 seconds)" in prompt
    assert "Video 2:" in prompt
    assert '"videos"' in prompt


def test_classify_empty_makes_no_calls():
    provider = ScriptedProvider([])
    assert AIService(provider).classify_videos([]) == []
    assert provider.prompts == []


def test_single_batch_uses_token_budget():
    provider = ScriptedProvider([_accept_all(3)])
    videos = [make_video(f"v{i}") for i in range(3)]

    result = AIService(provider).classify_videos(videos)

    assert [v.id for v in result] == ["v0", "v1", "v2"]
    assert provider.prompts[0][1] == 1400


def test_single_batch_failure_raises():
    provider = ScriptedProvider([NetworkError("timed out")])
    with pytest.raises(ClassificationError):
        AIService(provider).classify_videos([make_video("a")])


def test_single_batch_rejection_raises():
    provider = ScriptedProvider([ProviderRejectedError("OpenAI", 401, "bad key")])
    with pytest.raises(ClassificationError):
        AIService(provider).classify_videos([make_video("a")])


def test_chunks_run_sequentially_and_failures_are_isolated():
    videos = [make_video(f"v{i}") for i in range(12)]
    provider = ScriptedProvider([
        _accept_all(5),
        NetworkError("connection reset"),
        _accept_all(2),
    ])

    result = AIService(provider).classify_videos(videos)

    assert len(provider.prompts) == 3
    assert [v.id for v in result] == ["v0", "v1", "v2", "v3", "v4", "v10", "v11"]
    assert "Analyze the following 2 videos" in provider.prompts[2][0]
    assert "Title: Video v10" in provider.prompts[2][0]


def test_unparseable_chunk_passes_through():
    videos = [make_video(f"v{i}") for i in range(6)]
    provider = ScriptedProvider(["I cannot answer that", _accept_all(1, score=50)])

    result = AIService(provider).classify_videos(videos)

    assert [v.id for v in result] == ["v0", "v1", "v2", "v3", "v4"]
    assert all(v.ai_score is None for v in result)


def test_openai_request_and_reply():
    session = FakeSession([FakeResponse(200, {"choices": [{"message": {"content": "hello"}}]})])
    provider = OpenAIProvider("sk-test", fetcher=HttpFetcher(session=session))

    assert provider.complete("prompt", 800) == "hello"

    method, url, payload, headers, timeout = session.calls[0]
    assert method == "POST"
    assert url.endswith("/chat/completions")
    assert payload["model"] == "gpt-3.5-turbo"
    assert payload["max_tokens"] == 800
    assert payload["temperature"] == 0.3
    assert payload["messages"] == [{"role": "user", "content": "prompt"}]
    assert headers["Authorization"] == "Bearer sk-test"
    assert timeout == 30.0


def test_anthropic_request_and_reply():
    session = FakeSession([FakeResponse(200, {"content": [{"type": "text", "text": "hi"}]})])
    provider = AnthropicProvider("ak-test", fetcher=HttpFetcher(session=session))

    assert provider.complete("prompt", 500) == "hi"

    _, url, payload, headers, _ = session.calls[0]
    assert url.endswith("/v1/messages")
    assert payload["model"] == "claude-3-haiku-20240307"
    assert headers["x-api-key"] == "ak-test"
    assert headers["anthropic-version"] == "2023-06-01"


@pytest.mark.parametrize("provider_class,body", [
    (OpenAIProvider, {"choices": []}),
    (AnthropicProvider, {"content": []}),
])
def test_empty_reply_is_malformed(provider_class, body):
    session = FakeSession([FakeResponse(200, body)])
    provider = provider_class("key", fetcher=HttpFetcher(session=session))
    with pytest.raises(MalformedResponseError):
        provider.complete("prompt", 500)


def test_get_provider_by_tag():
    assert isinstance(get_provider("anthropic", "k"), AnthropicProvider)
    assert isinstance(get_provider("openai", "k"), OpenAIProvider)
    assert isinstance(get_provider("gemini", "k"), OpenAIProvider)
    assert get_provider("openai", "k", model_name="gpt-4o-mini").model_name == "gpt-4o-mini"


def test_analyze_video_parses_reply():
    reply = json.dumps({"education_score": 0.9, "safety_score": 0.95, "age_appropriate": True,
                        "overall_score": 0.92, "recommended_age": "3-6", "reasoning": "Gentle counting song"})
    provider = ScriptedProvider(["```json\n" + reply + "\n```"])

    analysis = AIService(provider).analyze_video(make_video("a"))

    assert analysis.overall_score == 0.92
    assert analysis.recommended_age == "3-6"
    assert provider.prompts[0][1] == 500
    assert provider.prompts[0][0].startswith("Video title: Video a")


def test_analyze_video_falls_back_to_defaults():
    provider = ScriptedProvider(["Looks fine to me"])

    analysis = AIService(provider).analyze_video(make_video("a"))

    assert analysis.education_score == 0.7
    assert analysis.safety_score == 0.8
    assert analysis.age_appropriate is True
    assert analysis.overall_score == 0.75
    assert analysis.recommended_age == "Parent review needed"
    assert analysis.reasoning == "Looks fine to me"


def test_analyze_video_transport_errors_propagate():
    provider = ScriptedProvider([NetworkError("timed out")])
    with pytest.raises(NetworkError):
        AIService(provider).analyze_video(make_video("a"))


def test_chunked_output_keeps_source_order_and_size():
    videos = [make_video(f"v{i}") for i in range(7)]
    provider = ScriptedProvider([
        json.dumps({"videos": [
            {"index": 3, "score": 90, "suitable": True},
            {"index": 1, "score": 90, "suitable": True},
            {"index": 2, "score": 90, "suitable": True},
            {"index": 2, "score": 75, "suitable": True},
        ]}),
        json.dumps({"videos": [
            {"index": 2, "score": 90, "suitable": True},
            {"index": 1, "score": 90, "suitable": True},
        ]}),
    ])

    result = AIService(provider).classify_videos(videos)

    assert [v.id for v in result] == ["v0", "v1", "v2", "v5", "v6"]
    assert len(result) <= len(videos)
