"""Trade records: one entry per dispatched /buy command.

"Recorded" means the command was sent, not that the trade filled.
The store keeps the newest ``capacity`` records and drops the oldest.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from signal_brain.storage.json_store import JsonFileStore

log = structlog.get_logger()

DEFAULT_CAPACITY = 100


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


@dataclass(frozen=True)
class TradeRecord:
    token_address: str
    token_name: str
    token_symbol: str
    buy_amount: str
    old_message: str
    analysis_result: str
    timestamp: str = ""
    trading_result: str | None = None

    @staticmethod
    def now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        data = {
            "timestamp": self.timestamp,
            "tokenAddress": self.token_address,
            "tokenName": self.token_name,
            "tokenSymbol": self.token_symbol,
            "buyAmount": self.buy_amount,
            "oldMessage": self.old_message,
            "analysisResult": self.analysis_result,
        }
        if self.trading_result is not None:
            data["tradingResult"] = self.trading_result
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TradeRecord:
        """Tolerates hand-edited files: missing keys become "", other types become text."""
        trading_result = data.get("tradingResult")
        return cls(
            timestamp=_text(data.get("timestamp")),
            token_address=_text(data.get("tokenAddress")),
            token_name=_text(data.get("tokenName")),
            token_symbol=_text(data.get("tokenSymbol")),
            buy_amount=_text(data.get("buyAmount")),
            old_message=_text(data.get("oldMessage")),
            analysis_result=_text(data.get("analysisResult")),
            trading_result=None if trading_result is None else _text(trading_result),
        )


class TradeRecorder:
    """Capacity-bounded, append-only trade log backed by a JSON array.

    Every append reads the whole file, appends, trims and rewrites it.
    Appends are serialized on a lock so concurrent signal handlers in this
    process cannot lose each other's records.
    """

    def __init__(self, store: JsonFileStore, capacity: int = DEFAULT_CAPACITY) -> None:
        self._store = store
        self._capacity = capacity
        self._lock = asyncio.Lock()

    async def append(self, record: TradeRecord) -> int:
        """Persist one record. Returns the stored count.

        Raises PersistenceError if the store cannot be read or written.
        """
        async with self._lock:
            records = self._store.load_list()
            records.append(record.to_dict())
            dropped = max(0, len(records) - self._capacity)
            if dropped:
                records = records[-self._capacity:]
            self._store.save(records)

        log.info("trade.recorded", symbol=record.token_symbol, address=record.token_address,
                 stored=len(records), dropped=dropped, path=str(self._store.path))
        return len(records)

    def load_all(self) -> list[TradeRecord]:
        return [TradeRecord.from_dict(r) for r in self._store.load_list() if isinstance(r, dict)]
