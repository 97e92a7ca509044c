"""Structured token metadata extracted from alert messages.

Plain dataclasses. Every scalar stays a display string with its original
unit (K/M/%) so nothing is lost before the text reaches the AI provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Chain(Enum):
    SOLANA = "Solana"
    ETHEREUM = "Ethereum"
    BSC = "Binance Smart Chain"
    TON = "Ton"


class SignalType(Enum):
    KOL_BUY = "kolBuy"
    ATH_PRICE = "athPrice"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Classification:
    chain: Chain
    type: SignalType


@dataclass
class NetInflow:
    amount: str = ""    # $-22.7K
    sol: str = ""       # -154.7217 Sol


@dataclass
class KolActivity:
    buys: str = ""
    sells: str = ""


@dataclass
class PriceChange:
    m5: str = ""
    h1: str = ""
    h6: str = ""


@dataclass
class Liquidity:
    sol: str = ""       # 253.08 SOL
    usd: str = ""       # $74.3K
    burn_rate: str = ""  # 100%


@dataclass
class Security:
    no_mint: bool = False
    blacklist: bool = False
    burnt: bool = False
    top10_percent: str = ""


@dataclass
class Developer:
    status: str = ""    # Sell All / Add Liquidity
    burnt: str = ""
    burn_rate: str = ""


@dataclass
class TokenInfo:
    chain: Chain = Chain.SOLANA
    type: SignalType = SignalType.UNKNOWN
    name: str = ""
    symbol: str = ""
    address: str = ""
    net_inflow: NetInflow | None = None       # kolBuy only
    kol_activity: KolActivity | None = None   # kolBuy only
    price_change: PriceChange = field(default_factory=PriceChange)
    transactions: str = ""
    volume: str = ""
    market_cap: str = ""
    liquidity: Liquidity = field(default_factory=Liquidity)
    holders: str = ""
    open_time: str = ""
    security: Security = field(default_factory=Security)
    developer: Developer = field(default_factory=Developer)
    raw_message: str = ""

    @property
    def is_known(self) -> bool:
        return self.type is not SignalType.UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the field names used in alerts and logs."""
        data: dict[str, Any] = {
            "chain": self.chain.value,
            "type": self.type.value,
            "name": self.name,
            "symbol": self.symbol,
            "address": self.address,
            "priceChange": {
                "5m": self.price_change.m5,
                "1h": self.price_change.h1,
                "6h": self.price_change.h6,
            },
            "transactions": self.transactions,
            "volume": self.volume,
            "marketCap": self.market_cap,
            "liquidity": {
                "sol": self.liquidity.sol,
                "usd": self.liquidity.usd,
                "burnRate": self.liquidity.burn_rate,
            },
            "holders": self.holders,
            "openTime": self.open_time,
            "security": {
                "noMint": self.security.no_mint,
                "blacklist": self.security.blacklist,
                "burnt": self.security.burnt,
                "top10Percent": self.security.top10_percent,
            },
            "developer": {
                "status": self.developer.status,
                "burnt": self.developer.burnt,
                "burnRate": self.developer.burn_rate,
            },
        }
        if self.net_inflow is not None:
            data["netInflow"] = {"amount": self.net_inflow.amount, "sol": self.net_inflow.sol}
        if self.kol_activity is not None:
            data["kolActivity"] = {"buys": self.kol_activity.buys, "sells": self.kol_activity.sells}
        return data
