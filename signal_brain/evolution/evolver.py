"""Strategy evolution: meta-analysis of past trades.

Derives features from every stored trade, asks a provider for failure
causes, success traits and threshold advice, and keeps the narrative.
Output is advisory text only; nothing here changes a parameter.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from signal_brain.evolution.features import derive_features
from signal_brain.orchestrator.prompts import EVOLUTION_SYSTEM, build_evolution_prompt
from signal_brain.orchestrator.providers import ProviderRegistry
from signal_brain.shell.errors import PersistenceError, SignalBrainError
from signal_brain.storage.json_store import JsonFileStore
from signal_brain.storage.trade_recorder import TradeRecorder

log = structlog.get_logger()

NO_DATA_MESSAGE = "No trade history to analyse"


@dataclass
class EvolutionResult:
    success: bool
    message: str = ""
    result: str | None = None
    total_trades: int = 0


class StrategyEvolver:
    """Runs one meta-analysis cycle over the trade store."""

    def __init__(
        self,
        recorder: TradeRecorder,
        registry: ProviderRegistry,
        history_store: JsonFileStore,
        latest_store: JsonFileStore,
        provider: str | None = None,
    ) -> None:
        self._recorder = recorder
        self._registry = registry
        self._history = history_store
        self._latest = latest_store
        self._provider = provider

    async def evolve(self) -> EvolutionResult:
        log.info("evolution.started", provider=self._provider or self._registry.default_name)

        try:
            records = self._recorder.load_all()
        except PersistenceError as e:
            return EvolutionResult(success=False, message=f"Cannot load trade history: {e}")

        if not records:
            log.info("evolution.no_data")
            return EvolutionResult(success=False, message=NO_DATA_MESSAGE)

        features = [derive_features(r).to_dict() for r in records]
        prompt = build_evolution_prompt(features)

        try:
            text = await self._registry.get(self._provider).complete(EVOLUTION_SYSTEM, prompt)
        except SignalBrainError as e:
            log.error("evolution.provider_failed", error=str(e), trades=len(records))
            return EvolutionResult(success=False, message=f"Analysis failed: {e}", total_trades=len(records))

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "totalTrades": len(records),
            "analysisResult": text,
        }
        try:
            history_size = self._history.append(entry)
            self._latest.save(entry)
        except PersistenceError as e:
            return EvolutionResult(success=False, message=f"Cannot save analysis: {e}",
                                   result=text, total_trades=len(records))

        log.info("evolution.completed", trades=len(records), history_size=history_size,
                 latest=str(self._latest.path))
        return EvolutionResult(success=True, message="Strategy analysis updated",
                               result=text, total_trades=len(records))
