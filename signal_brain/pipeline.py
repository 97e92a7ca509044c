"""Per-message pipeline: parse -> analyze -> decide.

One call per inbound post. Whatever goes wrong with a single post is
logged here and never reaches the listener.
"""

from __future__ import annotations

import structlog

from signal_brain.orchestrator.analyst import AnalysisOrchestrator, AnalysisResult
from signal_brain.parsing.extractor import parse_message
from signal_brain.trading.decision import DecisionEngine

log = structlog.get_logger()


class SignalPipeline:
    def __init__(self, orchestrator: AnalysisOrchestrator, decision: DecisionEngine) -> None:
        self._orchestrator = orchestrator
        self._decision = decision

    async def handle_message(self, text: str | None) -> AnalysisResult | None:
        """Process one post. Returns the analysis, or None if skipped or failed."""
        token_info = parse_message(text)
        if not token_info.is_known:
            return None

        log.info("signal.detected", symbol=token_info.symbol, token=token_info.to_dict())
        try:
            analysis = await self._orchestrator.analyze(token_info, token_info.raw_message)
            log.info("signal.analysis", symbol=token_info.symbol, full_analysis=analysis.full_analysis)
            await self._decision.act(token_info.raw_message, analysis)
        except Exception as e:
            log.error("signal.failed", symbol=token_info.symbol, error=str(e), exc_info=True)
            return None
        return analysis
