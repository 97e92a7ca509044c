"""AI providers: OpenAI-style chat completion endpoints behind one interface.

Every provider exposes ``complete(system_prompt, user_prompt) -> str``.
Concrete providers register themselves by name; the registry builds them
from config on first use, so adding a provider never touches dispatch.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Protocol

import httpx
import structlog

from signal_brain.shell.config import AIConfig, ProviderConfig
from signal_brain.shell.errors import ConfigurationError, ProviderError, RateLimitError

log = structlog.get_logger()


class CompletionProvider(Protocol):
    name: str

    async def complete(self, system_prompt: str, user_prompt: str) -> str: ...


PROVIDER_CLASSES: dict[str, type[ChatCompletionProvider]] = {}


def register_provider(name: str) -> Callable[[type[ChatCompletionProvider]], type[ChatCompletionProvider]]:
    """Class decorator: make a provider available under ``name``."""
    def decorator(cls: type[ChatCompletionProvider]) -> type[ChatCompletionProvider]:
        cls.name = name
        PROVIDER_CLASSES[name] = cls
        return cls
    return decorator


def _response_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class ChatCompletionProvider:
    """POSTs a two-message chat completion and returns the first choice's text."""

    name = "chat"

    def __init__(
        self,
        config: ProviderConfig,
        client: httpx.AsyncClient,
        max_attempts: int = 3,
        retry_base_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._client = client
        self._max_attempts = max_attempts
        self._retry_base_delay = retry_base_delay
        self._sleep = sleep

    def build_payload(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self._config.model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "stream": False,
        }

    def _check_config(self) -> None:
        env_prefix = self.name.upper()
        if not self._config.api_key:
            raise ConfigurationError(f"{self.name}: {env_prefix}_API_KEY is not configured")
        if not self._config.api_url:
            raise ConfigurationError(f"{self.name}: {env_prefix}_API_URL is not configured")

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send one completion request.

        HTTP 429 is retried up to ``max_attempts`` total, waiting
        ``retry_base_delay * attempt`` between tries. Any other failure
        raises immediately.

        Raises:
            ConfigurationError: key or URL missing (no request is made)
            RateLimitError: still rate limited after the last attempt
            ProviderError: any other HTTP, network or payload failure
        """
        self._check_config()

        payload = self.build_payload(system_prompt, user_prompt)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.api_key}",
        }

        max_attempts = max(1, self._max_attempts)
        for attempt in range(1, max_attempts + 1):
            try:
                resp = await self._client.post(self._config.api_url, json=payload, headers=headers)
            except httpx.HTTPError as e:
                log.error("provider.request_failed", provider=self.name, attempt=attempt, error=str(e))
                raise ProviderError(f"{self.name} request failed: {e}") from e

            if resp.status_code == 429:
                error = RateLimitError(
                    f"{self.name} rate limited (HTTP 429)",
                    status=resp.status_code,
                    body=_response_body(resp),
                    headers=dict(resp.headers),
                )
                if attempt == max_attempts:
                    log.error("provider.rate_limit_exhausted", provider=self.name, attempts=attempt,
                              body=error.body, headers=error.headers)
                    raise error
                wait = self._retry_base_delay * attempt
                log.warning("provider.rate_limited", provider=self.name,
                            attempt=attempt, max_attempts=max_attempts, wait=wait)
                await self._sleep(wait)
                continue

            if not resp.is_success:
                body = _response_body(resp)
                log.error("provider.http_error", provider=self.name, status=resp.status_code,
                          body=body, headers=dict(resp.headers))
                raise ProviderError(
                    f"{self.name} returned HTTP {resp.status_code}",
                    status=resp.status_code,
                    body=body,
                    headers=dict(resp.headers),
                )

            text = self._extract_text(resp)
            log.info("provider.response", provider=self.name, model=self._config.model_name,
                     attempt=attempt, chars=len(text))
            return text

    def _extract_text(self, resp: httpx.Response) -> str:
        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            body = _response_body(resp)
            log.error("provider.malformed_response", provider=self.name, body=body)
            raise ProviderError(
                f"{self.name} response has no choices[0].message.content",
                status=resp.status_code,
                body=body,
                headers=dict(resp.headers),
            ) from e
        if not isinstance(content, str):
            raise ProviderError(f"{self.name} returned non-text content", status=resp.status_code, body=content)
        return content


@register_provider("deepseek")
class DeepSeekProvider(ChatCompletionProvider):
    """DeepSeek-compatible endpoint (SiliconFlow, Huawei Cloud MaaS, ...)."""

    def build_payload(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        payload = super().build_payload(system_prompt, user_prompt)
        payload.update({
            "top_p": 0.7,
            "top_k": 50,
            "frequency_penalty": 0.5,
            "n": 1,
        })
        return payload


@register_provider("openai")
class OpenAIProvider(ChatCompletionProvider):
    pass


class ProviderRegistry:
    """Builds providers from config by name and shares one HTTP client."""

    def __init__(
        self,
        config: AIConfig,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self._sleep = sleep
        self._providers: dict[str, CompletionProvider] = {}

    @property
    def default_name(self) -> str:
        return self._config.default_provider

    def register(self, name: str, provider: CompletionProvider) -> None:
        """Install a ready-made provider instance under ``name``."""
        self._providers[name] = provider

    def get(self, name: str | None = None) -> CompletionProvider:
        name = name or self._config.default_provider
        if name in self._providers:
            return self._providers[name]

        cls = PROVIDER_CLASSES.get(name)
        provider_config = self._config.providers.get(name)
        if cls is None or provider_config is None:
            raise ConfigurationError(
                f"Unsupported provider '{name}' (known: {', '.join(sorted(PROVIDER_CLASSES))})"
            )

        provider = cls(
            provider_config,
            self._client,
            max_attempts=self._config.max_attempts,
            retry_base_delay=self._config.retry_base_delay_ms / 1000,
            sleep=self._sleep,
        )
        self._providers[name] = provider
        return provider

    async def close(self) -> None:
        await self._client.aclose()
