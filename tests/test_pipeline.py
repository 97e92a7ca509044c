"""End-to-end tests for the per-message pipeline with fake provider and transport."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from structlog.testing import capture_logs

from signal_brain.orchestrator.analyst import AnalysisOrchestrator
from signal_brain.pipeline import SignalPipeline
from signal_brain.shell.config import TradingConfig
from signal_brain.shell.errors import RateLimitError
from signal_brain.storage.json_store import JsonFileStore
from signal_brain.storage.trade_recorder import TradeRecorder
from signal_brain.trading.decision import DecisionEngine
from signal_brain.trading.executor import TradeExecutor

ADDRESS = "EjAEAvHbiPSfGdK3Hwu9RHqH9fp3gAG76NrxfrauYt2N"
ATH_ALERT = f"🏆 ATH Price Alert!\n$Neymar Jr(Neymar Jr)\n{ADDRESS}\n💡 MCP: $298.6M"


class FakeTransport:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send_text(self, recipient: str, text: str) -> None:
        self.sent.append((recipient, text))


def _build(tmp_path, reply):
    provider = MagicMock()
    if isinstance(reply, Exception):
        provider.complete = AsyncMock(side_effect=reply)
    else:
        provider.complete = AsyncMock(return_value=reply)
    registry = MagicMock()
    registry.default_name = "deepseek"
    registry.get = MagicMock(return_value=provider)

    transport = FakeTransport()
    recorder = TradeRecorder(JsonFileStore(tmp_path / "trades.json"))
    trading = TradingConfig(buy_amount="0.01", trade_bot="@US_GMGNBOT")
    executor = TradeExecutor(trading, transport, recorder)
    pipeline = SignalPipeline(AnalysisOrchestrator(registry, trading.buy_amount), DecisionEngine(executor))
    return pipeline, provider, transport, recorder


@pytest.mark.asyncio
async def test_buy_verdict_dispatches_and_records(tmp_path):
    pipeline, provider, transport, recorder = _build(tmp_path, "报告结果：建议购买\n理由充分")

    analysis = await pipeline.handle_message(ATH_ALERT)

    assert analysis.should_buy is True
    assert transport.sent == [("@US_GMGNBOT", f"/buy {ADDRESS} 0.01")]
    records = recorder.load_all()
    assert len(records) == 1
    assert records[0].token_symbol == "Neymar Jr"
    assert records[0].old_message == ATH_ALERT
    provider.complete.assert_awaited_once()


@pytest.mark.asyncio
async def test_pass_verdict_sends_nothing(tmp_path):
    pipeline, _, transport, recorder = _build(tmp_path, "报告结果：建议放弃")

    analysis = await pipeline.handle_message(ATH_ALERT)

    assert analysis.should_buy is False
    assert transport.sent == []
    assert recorder.load_all() == []


@pytest.mark.asyncio
async def test_unrecognized_message_is_skipped(tmp_path):
    pipeline, provider, transport, _ = _build(tmp_path, "报告结果：建议购买")

    assert await pipeline.handle_message("gm, market looks hot today") is None
    assert await pipeline.handle_message(None) is None
    provider.complete.assert_not_awaited()
    assert transport.sent == []


@pytest.mark.asyncio
async def test_provider_failure_drops_message(tmp_path):
    pipeline, _, transport, recorder = _build(tmp_path, RateLimitError("rate limited", status=429))

    assert await pipeline.handle_message(ATH_ALERT) is None
    assert transport.sent == []
    assert recorder.load_all() == []


@pytest.mark.asyncio
async def test_detected_signal_is_logged_with_token_fields(tmp_path):
    pipeline, _, _, _ = _build(tmp_path, "报告结果：建议放弃")

    with capture_logs() as logs:
        await pipeline.handle_message(ATH_ALERT)

    detected = [e for e in logs if e["event"] == "signal.detected"]
    assert len(detected) == 1
    token = detected[0]["token"]
    assert token["type"] == "athPrice"
    assert token["address"] == ADDRESS
    assert token["marketCap"] == "$298.6M"
