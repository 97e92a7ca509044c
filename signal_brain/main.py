"""Signal Brain: alert-driven AI trading assistant.

Main entry point. Wires all components and manages lifecycle.

Startup: load config -> build providers/stores/pipeline -> Telegram login (retried) -> evolution policy -> poll
Shutdown: stop scheduler -> stop Telegram -> close provider HTTP client
"""

from __future__ import annotations

import asyncio
import signal
from typing import Awaitable, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from signal_brain.evolution.evolver import StrategyEvolver
from signal_brain.orchestrator.analyst import AnalysisOrchestrator
from signal_brain.orchestrator.providers import ProviderRegistry
from signal_brain.pipeline import SignalPipeline
from signal_brain.shell.config import Config, TelegramConfig, load_config
from signal_brain.shell.errors import TransportError
from signal_brain.storage.json_store import JsonFileStore
from signal_brain.storage.trade_recorder import TradeRecorder
from signal_brain.telegram.transport import TelegramTransport
from signal_brain.trading.decision import DecisionEngine
from signal_brain.trading.executor import TradeExecutor
from signal_brain.utils.logging import setup_logging

log = structlog.get_logger()


class SignalBrain:
    """Main application: wires and runs all components."""

    def __init__(
        self,
        config: Config | None = None,
        transport_factory: Callable[[TelegramConfig], TelegramTransport] = TelegramTransport,
        registry: ProviderRegistry | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._transport_factory = transport_factory
        self._registry = registry
        self._sleep = sleep
        self._transport: TelegramTransport | None = None
        self._recorder: TradeRecorder | None = None
        self._pipeline: SignalPipeline | None = None
        self._evolver: StrategyEvolver | None = None
        self._scheduler: AsyncIOScheduler | None = None
        self._evolution_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Full startup sequence. Returns when stop() is called."""
        log.info("brain.starting")

        # 1. Config
        if self._config is None:
            self._config = load_config()
            setup_logging(self._config.log_level, channel=self._config.telegram.monitor_channel)
        log.info("config.loaded", provider=self._config.ai.default_provider,
                 buy_amount=self._config.trading.buy_amount,
                 evolution_trigger=self._config.evolution.trigger)

        # 2. Components
        self._build_components()

        # 3. Telegram session (fatal after the last attempt)
        self._transport = await self.connect_with_retry()
        self._pipeline = self._build_pipeline(self._transport)
        self._transport.on_text(self._on_text)

        # 4. Evolution cadence
        self._apply_evolution_policy()

        # 5. Listen
        await self._transport.start_listening()
        self._running = True
        log.info("brain.online", channel=self._config.telegram.monitor_channel)

        await self._stop_event.wait()

    def _build_components(self) -> None:
        config = self._config
        if self._registry is None:
            self._registry = ProviderRegistry(config.ai)

        self._recorder = TradeRecorder(
            JsonFileStore(config.storage.trades_path),
            capacity=config.storage.trade_capacity,
        )
        self._evolver = StrategyEvolver(
            self._recorder,
            self._registry,
            history_store=JsonFileStore(config.storage.analysis_history_path),
            latest_store=JsonFileStore(config.storage.latest_analysis_path),
            provider=config.evolution_provider,
        )

    def _build_pipeline(self, transport: TelegramTransport) -> SignalPipeline:
        executor = TradeExecutor(self._config.trading, transport, self._recorder)
        orchestrator = AnalysisOrchestrator(self._registry, self._config.trading.buy_amount)
        return SignalPipeline(orchestrator, DecisionEngine(executor))

    async def connect_with_retry(self) -> TelegramTransport:
        """Log in to Telegram, retrying a bounded number of times.

        Raises the last TransportError once every attempt has failed.
        """
        tg = self._config.telegram
        for attempt in range(1, tg.max_login_attempts + 1):
            transport = self._transport_factory(tg)
            try:
                await transport.connect()
            except TransportError as e:
                log.error("telegram.login_failed", attempt=attempt,
                          max_attempts=tg.max_login_attempts, error=str(e))
                if attempt == tg.max_login_attempts:
                    log.error("brain.login_exhausted", attempts=attempt)
                    raise
                log.info("telegram.login_retry", next_attempt=attempt + 1,
                         wait=tg.login_retry_delay_seconds)
                await self._sleep(tg.login_retry_delay_seconds)
                continue
            return transport

        raise TransportError("Telegram login was never attempted")

    async def _on_text(self, text: str) -> None:
        await self._pipeline.handle_message(text)

    def _apply_evolution_policy(self) -> None:
        trigger = self._config.evolution.trigger

        if trigger == "on_connect":
            self._evolution_task = asyncio.create_task(self.run_evolution())
            self._evolution_task.add_done_callback(self._on_evolution_done)
        elif trigger == "interval":
            self._scheduler = AsyncIOScheduler()
            self._scheduler.add_job(
                self.run_evolution,
                IntervalTrigger(hours=self._config.evolution.interval_hours),
                id="strategy_evolution", name="Strategy Evolution",
                max_instances=1,
            )
            self._scheduler.start()
        log.info("evolution.policy", trigger=trigger,
                 interval_hours=self._config.evolution.interval_hours if trigger == "interval" else None)

    async def run_evolution(self) -> None:
        result = await self._evolver.evolve()
        log.info("evolution.result", success=result.success, message=result.message,
                 trades=result.total_trades)

    def _on_evolution_done(self, task: asyncio.Task) -> None:
        """Log unexpected errors from the background evolution run."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            log.error("evolution.task_failed", error=str(exc), type=type(exc).__name__)

    def request_shutdown(self) -> None:
        self._stop_event.set()

    async def stop(self) -> None:
        """Graceful shutdown sequence."""
        log.info("brain.stopping")
        self._running = False
        self._stop_event.set()

        # 1. Stop scheduler
        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        # 2. Stop Telegram
        if self._transport:
            await self._transport.stop()

        # 3. Close provider HTTP client
        if self._registry:
            await self._registry.close()

        log.info("brain.stopped")


async def main() -> None:
    brain = SignalBrain()

    # Handle SIGTERM/SIGINT for graceful shutdown
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, brain.request_shutdown)

    try:
        await brain.start()
    except KeyboardInterrupt:
        pass
    finally:
        await brain.stop()


def run() -> None:
    """Entry point for pyproject.toml script."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
