"""Decision engine: routes an analysis verdict to the executor or drops it."""

from __future__ import annotations

import structlog

from signal_brain.orchestrator.analyst import AnalysisResult
from signal_brain.trading.executor import TradeExecutor

log = structlog.get_logger()


class DecisionEngine:
    def __init__(self, executor: TradeExecutor) -> None:
        self._executor = executor

    async def act(self, message: str, analysis: AnalysisResult) -> bool:
        """Returns True if a buy command was dispatched."""
        token = analysis.token_info
        symbol = token.symbol if token else ""

        if not analysis.should_buy or token is None:
            log.info("decision.pass", symbol=symbol, reason=analysis.reason)
            return False

        log.info("decision.buy", symbol=symbol, reason=analysis.reason)
        return await self._executor.execute(message, token, analysis.full_analysis)
