"""Heuristic features mined from stored analysis reports.

The reports are free text written by an AI provider, so every feature is
a phrase rule in the tables below. Bump FEATURE_RULES_VERSION whenever a
rule changes; the version travels with every derived record.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from signal_brain.storage.trade_recorder import TradeRecord

FEATURE_RULES_VERSION = 1

UNKNOWN = "unknown"


@dataclass(frozen=True)
class PhraseRule:
    """Matches when any ``any_of`` phrase and every ``all_of`` phrase is present."""
    feature: str
    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if self.any_of and not any(p in text for p in self.any_of):
            return False
        return all(p in text for p in self.all_of)


# Evaluated in order, first hit wins; neither -> neutral.
MOOD_RULES: tuple[PhraseRule, ...] = (
    PhraseRule("positive", any_of=("社区情绪积极", "社区反应良好")),
    PhraseRule("negative", any_of=("社区情绪消极", "社区反应不佳")),
)

DECISION_BUY_RULE = PhraseRule("buy", any_of=("建议购买",))

RISK_SCORE_RE = re.compile(r"风险评估[：:]\s*(\d+)")

FLAG_RULES: tuple[PhraseRule, ...] = (
    PhraseRule("negativeNetInflow", any_of=("净流入为负", "资金流出")),
    PhraseRule("highVolatility", any_of=("高波动性", "波动性高", "极高的波动性")),
    PhraseRule("developerSellAll", any_of=("sell all", "开发者卖出")),
    PhraseRule("lowLiquidity", any_of=("流动性低", "流动性较低")),
    PhraseRule("kolBuying", all_of=("kol", "买入")),
    PhraseRule("hasProfitTarget", any_of=("止盈点", "止盈价格")),
    PhraseRule("hasStopLoss", any_of=("止损点", "止损价格")),
    PhraseRule("hasBatchSelling", any_of=("分批卖出", "分批出售")),
)


@dataclass
class StrategyFeatureRecord:
    token_symbol: str
    timestamp: str
    community_mood: str
    decision: str
    risk_level: str
    flags: dict[str, bool] = field(default_factory=dict)
    trading_result: str = UNKNOWN
    buy_amount: str = ""
    token_address: str = ""
    rules_version: int = FEATURE_RULES_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokenSymbol": self.token_symbol,
            "timestamp": self.timestamp,
            "communityMood": self.community_mood,
            "decision": self.decision,
            "riskLevel": self.risk_level,
            **self.flags,
            "tradingResult": self.trading_result,
            "buyAmount": self.buy_amount,
            "tokenAddress": self.token_address,
            "rulesVersion": self.rules_version,
        }


def detect_mood(text: str) -> str:
    for rule in MOOD_RULES:
        if rule.matches(text):
            return rule.feature
    return "neutral"


def detect_risk_level(text: str) -> str:
    m = RISK_SCORE_RE.search(text)
    return m.group(1) if m else UNKNOWN


def derive_features(record: TradeRecord) -> StrategyFeatureRecord:
    """Apply the rule tables to one record's analysis report."""
    text = (record.analysis_result or "").lower()
    return StrategyFeatureRecord(
        token_symbol=record.token_symbol,
        timestamp=record.timestamp,
        community_mood=detect_mood(text),
        decision="buy" if DECISION_BUY_RULE.matches(text) else "pass",
        risk_level=detect_risk_level(text),
        flags={rule.feature: rule.matches(text) for rule in FLAG_RULES},
        trading_result=record.trading_result or UNKNOWN,
        buy_amount=record.buy_amount,
        token_address=record.token_address,
    )
