"""Trade executor: sends /buy commands to the trading bot and records them."""

from __future__ import annotations

import structlog

from signal_brain.parsing.models import TokenInfo
from signal_brain.shell.config import TradingConfig
from signal_brain.shell.contract import Transport
from signal_brain.shell.errors import PersistenceError, TransportError
from signal_brain.storage.trade_recorder import TradeRecord, TradeRecorder

log = structlog.get_logger()


def format_buy_command(address: str, amount: str) -> str:
    return f"/buy {address} {amount}"


class TradeExecutor:
    """Dispatches buy commands. There is no fill confirmation; a sent
    command is the end of the line for this process."""

    def __init__(self, config: TradingConfig, transport: Transport, recorder: TradeRecorder) -> None:
        self._config = config
        self._transport = transport
        self._recorder = recorder

    async def execute(self, message: str, token_info: TokenInfo, analysis: str) -> bool:
        """Send the buy command. Returns True once the command is sent."""
        if not token_info.address:
            log.warning("trade.no_address", symbol=token_info.symbol)
            return False

        amount = self._config.buy_amount
        command = format_buy_command(token_info.address, amount)
        log.info("trade.dispatching", command=command, recipient=self._config.trade_bot)

        try:
            await self._transport.send_text(self._config.trade_bot, command)
        except TransportError as e:
            log.error("trade.send_failed", command=command, recipient=self._config.trade_bot, error=str(e))
            return False

        log.info("trade.dispatched", command=command, recipient=self._config.trade_bot)

        record = TradeRecord(
            timestamp=TradeRecord.now(),
            token_address=token_info.address,
            token_name=token_info.name,
            token_symbol=token_info.symbol,
            buy_amount=amount,
            old_message=message,
            analysis_result=analysis,
        )
        try:
            await self._recorder.append(record)
        except PersistenceError as e:
            # command already sent, result stands
            log.error("trade.record_failed", address=token_info.address, error=str(e))

        return True
