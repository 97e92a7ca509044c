"""Tests for the chat completion providers and the provider registry."""

from __future__ import annotations

import json

import httpx
import pytest

from signal_brain.orchestrator.providers import (
    PROVIDER_CLASSES,
    DeepSeekProvider,
    OpenAIProvider,
    ProviderRegistry,
)
from signal_brain.shell.config import AIConfig, ProviderConfig
from signal_brain.shell.errors import ConfigurationError, ProviderError, RateLimitError

API_URL = "https://llm.example.test/v1/chat/completions"


def _ok(content: str = "ok") -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


class Recorder:
    """Mock transport handler that replays canned responses and keeps requests."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


class FakeSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _provider(cls, handler, sleep, api_key="sk-test", api_url=API_URL, max_attempts=3):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = ProviderConfig(api_key=api_key, api_url=api_url, model_name="test-model")
    return cls(config, client, max_attempts=max_attempts, retry_base_delay=2.0, sleep=sleep)


@pytest.mark.asyncio
async def test_success_sends_two_messages_with_bearer():
    handler = Recorder(_ok("分析完成"))
    sleep = FakeSleep()
    provider = _provider(OpenAIProvider, handler, sleep)

    text = await provider.complete("system text", "user text")

    assert text == "分析完成"
    assert len(handler.requests) == 1
    request = handler.requests[0]
    assert request.method == "POST"
    assert str(request.url) == API_URL
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert request.headers["Content-Type"] == "application/json"
    payload = json.loads(request.content)
    assert payload["model"] == "test-model"
    assert payload["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "user text"},
    ]
    assert payload["max_tokens"] == 1024
    assert payload["temperature"] == 0.7
    assert payload["stream"] is False
    assert "top_k" not in payload
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_deepseek_adds_sampling_parameters():
    handler = Recorder(_ok())
    provider = _provider(DeepSeekProvider, handler, FakeSleep())

    await provider.complete("s", "u")

    payload = json.loads(handler.requests[0].content)
    assert payload["top_p"] == 0.7
    assert payload["top_k"] == 50
    assert payload["frequency_penalty"] == 0.5
    assert payload["n"] == 1


@pytest.mark.asyncio
async def test_rate_limit_exhausts_after_three_attempts():
    handler = Recorder(*(httpx.Response(429, json={"error": "slow down"}) for _ in range(3)))
    sleep = FakeSleep()
    provider = _provider(DeepSeekProvider, handler, sleep)

    with pytest.raises(RateLimitError) as exc_info:
        await provider.complete("s", "u")

    assert len(handler.requests) == 3
    # linear backoff between attempts, none after the last one
    assert sleep.calls == [2.0, 4.0]
    assert exc_info.value.status == 429
    assert exc_info.value.body == {"error": "slow down"}


@pytest.mark.asyncio
async def test_single_attempt_raises_rate_limit_without_waiting():
    handler = Recorder(httpx.Response(429, json={"error": "slow down"}))
    sleep = FakeSleep()
    provider = _provider(OpenAIProvider, handler, sleep, max_attempts=1)

    with pytest.raises(RateLimitError) as exc_info:
        await provider.complete("s", "u")

    assert len(handler.requests) == 1
    assert sleep.calls == []
    assert exc_info.value.headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_rate_limit_then_success():
    handler = Recorder(httpx.Response(429, text="busy"), _ok("second try"))
    sleep = FakeSleep()
    provider = _provider(DeepSeekProvider, handler, sleep)

    assert await provider.complete("s", "u") == "second try"
    assert len(handler.requests) == 2
    assert sleep.calls == [2.0]


@pytest.mark.asyncio
async def test_server_error_is_not_retried():
    handler = Recorder(httpx.Response(500, text="internal error"), _ok())
    sleep = FakeSleep()
    provider = _provider(OpenAIProvider, handler, sleep)

    with pytest.raises(ProviderError) as exc_info:
        await provider.complete("s", "u")

    assert not isinstance(exc_info.value, RateLimitError)
    assert exc_info.value.status == 500
    assert exc_info.value.body == "internal error"
    assert len(handler.requests) == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_missing_api_key_makes_no_request():
    handler = Recorder(_ok())
    provider = _provider(DeepSeekProvider, handler, FakeSleep(), api_key="")

    with pytest.raises(ConfigurationError, match="DEEPSEEK_API_KEY"):
        await provider.complete("s", "u")
    assert handler.requests == []


@pytest.mark.asyncio
async def test_missing_api_url_makes_no_request():
    handler = Recorder(_ok())
    provider = _provider(OpenAIProvider, handler, FakeSleep(), api_url="")

    with pytest.raises(ConfigurationError, match="OPENAI_API_URL"):
        await provider.complete("s", "u")
    assert handler.requests == []


@pytest.mark.asyncio
async def test_response_without_choices_is_provider_error():
    handler = Recorder(httpx.Response(200, json={"choices": []}))
    provider = _provider(OpenAIProvider, handler, FakeSleep())

    with pytest.raises(ProviderError, match="choices"):
        await provider.complete("s", "u")


@pytest.mark.asyncio
async def test_network_error_is_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = _provider(OpenAIProvider, handler, FakeSleep())

    with pytest.raises(ProviderError, match="request failed"):
        await provider.complete("s", "u")


# --- Registry ---


def _ai_config(**overrides) -> AIConfig:
    config = AIConfig(
        providers={
            "deepseek": ProviderConfig(api_key="ds-key", api_url=API_URL, model_name="deepseek-ai/DeepSeek-V3"),
            "openai": ProviderConfig(api_key="oa-key", api_url=API_URL, model_name="gpt-4"),
        },
    )
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


def test_builtin_providers_registered():
    assert PROVIDER_CLASSES["deepseek"] is DeepSeekProvider
    assert PROVIDER_CLASSES["openai"] is OpenAIProvider


@pytest.mark.asyncio
async def test_registry_builds_and_caches_by_name():
    registry = ProviderRegistry(_ai_config())
    try:
        default = registry.get()
        assert isinstance(default, DeepSeekProvider)
        assert registry.get("deepseek") is default
        assert isinstance(registry.get("openai"), OpenAIProvider)
    finally:
        await registry.close()


@pytest.mark.asyncio
async def test_registry_unknown_provider():
    registry = ProviderRegistry(_ai_config())
    try:
        with pytest.raises(ConfigurationError, match="Unsupported provider 'claude'"):
            registry.get("claude")
    finally:
        await registry.close()


@pytest.mark.asyncio
async def test_registry_passes_retry_policy():
    handler = Recorder(*(httpx.Response(429) for _ in range(2)))
    sleep = FakeSleep()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    registry = ProviderRegistry(_ai_config(max_attempts=2, retry_base_delay_ms=500), client=client, sleep=sleep)

    with pytest.raises(RateLimitError):
        await registry.get("openai").complete("s", "u")

    assert len(handler.requests) == 2
    assert sleep.calls == [0.5]
    await registry.close()
