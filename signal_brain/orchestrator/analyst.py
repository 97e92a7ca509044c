"""Analysis orchestrator: prompt, provider call, verdict."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from signal_brain.orchestrator.prompts import ANALYST_SYSTEM, BUY_MARKER, build_analysis_prompt
from signal_brain.orchestrator.providers import ProviderRegistry
from signal_brain.parsing.models import TokenInfo

log = structlog.get_logger()

REASON_MAX_CHARS = 200


@dataclass
class AnalysisResult:
    should_buy: bool
    reason: str
    full_analysis: str
    token_info: TokenInfo | None = None
    provider: str = ""


def summarize_reason(text: str, limit: int = REASON_MAX_CHARS) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def interpret_response(text: str) -> tuple[bool, str]:
    """Return (should_buy, reason) for a provider report."""
    should_buy = BUY_MARKER.lower() in text.lower()
    return should_buy, summarize_reason(text)


class AnalysisOrchestrator:
    """Turns a parsed alert into a buy/pass verdict via an AI provider."""

    def __init__(self, registry: ProviderRegistry, buy_amount: str) -> None:
        self._registry = registry
        self._buy_amount = buy_amount

    async def analyze(
        self,
        token_info: TokenInfo,
        message: str | None = None,
        provider: str | None = None,
        buy_amount: str | None = None,
    ) -> AnalysisResult:
        """Ask the provider for a full report on one alert.

        Provider errors are logged and re-raised; the caller decides
        whether to drop the message.
        """
        provider_name = provider or self._registry.default_name
        message = message if message is not None else token_info.raw_message
        prompt = build_analysis_prompt(message, buy_amount or self._buy_amount)

        log.info("analysis.started", provider=provider_name, symbol=token_info.symbol,
                 signal_type=token_info.type.value)
        try:
            text = await self._registry.get(provider_name).complete(ANALYST_SYSTEM, prompt)
        except Exception as e:
            log.error("analysis.failed", provider=provider_name, error=str(e))
            raise

        should_buy, reason = interpret_response(text)
        log.info("analysis.completed", provider=provider_name, should_buy=should_buy,
                 symbol=token_info.symbol)
        return AnalysisResult(
            should_buy=should_buy,
            reason=reason,
            full_analysis=text,
            token_info=token_info,
            provider=provider_name,
        )
