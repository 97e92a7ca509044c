"""Field extraction for recognized alert types.

Every field has its own pattern and is matched against the whole message,
so one malformed line never hides the others. A miss leaves the field at
its default; extraction itself never raises.
"""

from __future__ import annotations

import re
from typing import Callable

from signal_brain.parsing.classifier import classify
from signal_brain.parsing.models import (
    Chain,
    KolActivity,
    NetInflow,
    SignalType,
    TokenInfo,
)

# $SYMBOL(Name); symbols may contain spaces ("$Neymar Jr(Neymar Jr)")
_TOKEN_RE = re.compile(r"\$([^($\n]+)\(([^)\n]+)\)")
# "净流入:$-22.7K(-154.7217 Sol)" has the same shape but is the inflow amount
_INFLOW_PREFIX = "净流入:"
_SOL_AMOUNT_RE = re.compile(r"-?[\d.,]+ Sol", re.IGNORECASE)
_TITLE_RE = re.compile(r"KOL Buy ([^!\n]+)!")
_ADDRESS_RE = re.compile(r"[A-Za-z0-9]{32,}")

_INFLOW_RE = re.compile(r"KOL Inflow净流入:\$([-0-9.]+[KM]?)\(([-0-9.]+) Sol\)")
_KOL_ACTIVITY_RE = re.compile(r"KOL Buy/Sell:([0-9]+)/([0-9]+)")
_PRICE_CHANGE_RE = re.compile(r"📈 5m \| 1h \| 6h: ([^%|]+)% \| ([^%|]+)% \| ([^%|]+)%")
_TX_VOL_RE = re.compile(r"🎲 5m TXs/Vol: ([^/\n]+)/\$([0-9.,]+[KMB]?)")
_MCAP_RE = re.compile(r"💡 MCP: \$([0-9.,]+[KMB]?)")
_LIQUIDITY_RE = re.compile(r"💧 Liq: (\S+) SOL \(\$([0-9.,]+[KMB]?) 🔥([^%]+)%\)")
_HOLDER_RE = re.compile(r"👥 Holder: ([0-9,]+)")
_OPEN_TIME_RE = re.compile(r"🕒 Open: ([^\n]*?)\s*ago")
_TOP10_RE = re.compile(r"[✅❌]TOP 10: ([^%]+)%")
_DEV_STATUS_RE = re.compile(r"⏳ DEV: ([^$\n]+)")
# chef emoji is a ZWJ sequence, spelled out so the joiner is visible
_DEV_BURNT_RE = re.compile("\U0001F468\u200d\U0001F373" + r" DEV Burnt烧币: ([^(]+)\(🔥Rate: ([^)%]*)%\)")


def extract_token_identity(text: str) -> tuple[str, str]:
    """Return (symbol, name) from the first $SYMBOL(Name) outside the inflow line."""
    for match in _TOKEN_RE.finditer(text):
        symbol, name = match.group(1).strip(), match.group(2).strip()
        if not symbol:
            continue
        if text.endswith(_INFLOW_PREFIX, 0, match.start()) or _SOL_AMOUNT_RE.fullmatch(name):
            continue
        return symbol, name
    return "", ""


def extract_address(text: str) -> str:
    """First line that is one alphanumeric run of 32+ chars (pump suffix included)."""
    for line in text.split("\n"):
        candidate = line.strip()
        if _ADDRESS_RE.fullmatch(candidate):
            return candidate
    return ""


def _extract_common(info: TokenInfo, text: str) -> None:
    """Fields both alert types share."""
    info.address = extract_address(text)

    m = _PRICE_CHANGE_RE.search(text)
    if m:
        info.price_change.m5 = f"{m.group(1)}%"
        info.price_change.h1 = f"{m.group(2)}%"
        info.price_change.h6 = f"{m.group(3)}%"

    m = _TX_VOL_RE.search(text)
    if m:
        info.transactions = m.group(1).strip()
        info.volume = f"${m.group(2)}"

    m = _MCAP_RE.search(text)
    if m:
        info.market_cap = f"${m.group(1)}"

    m = _LIQUIDITY_RE.search(text)
    if m:
        info.liquidity.sol = f"{m.group(1)} SOL"
        info.liquidity.usd = f"${m.group(2)}"
        info.liquidity.burn_rate = f"{m.group(3)}%"

    m = _HOLDER_RE.search(text)
    if m:
        info.holders = m.group(1)

    m = _OPEN_TIME_RE.search(text)
    if m:
        info.open_time = m.group(1).strip()

    info.security.no_mint = "✅ NoMint" in text
    info.security.blacklist = "✅Blacklist" in text
    info.security.burnt = "✅Burnt" in text

    m = _TOP10_RE.search(text)
    if m:
        info.security.top10_percent = f"{m.group(1)}%"

    m = _DEV_STATUS_RE.search(text)
    if m:
        info.developer.status = m.group(1).strip()

    m = _DEV_BURNT_RE.search(text)
    if m:
        info.developer.burnt = m.group(1).strip()
        info.developer.burn_rate = f"{m.group(2)}%"


def extract_kol_buy(text: str, chain: Chain = Chain.SOLANA) -> TokenInfo:
    info = TokenInfo(
        chain=chain,
        type=SignalType.KOL_BUY,
        net_inflow=NetInflow(),
        kol_activity=KolActivity(),
        raw_message=text,
    )

    info.symbol, info.name = extract_token_identity(text)
    if not info.symbol:
        m = _TITLE_RE.search(text)
        if m:
            info.symbol = m.group(1).strip()

    m = _INFLOW_RE.search(text)
    if m:
        info.net_inflow.amount = f"${m.group(1)}"
        info.net_inflow.sol = f"{m.group(2)} Sol"

    m = _KOL_ACTIVITY_RE.search(text)
    if m:
        info.kol_activity.buys = m.group(1)
        info.kol_activity.sells = m.group(2)

    _extract_common(info, text)
    return info


def extract_ath_price(text: str, chain: Chain = Chain.SOLANA) -> TokenInfo:
    info = TokenInfo(chain=chain, type=SignalType.ATH_PRICE, raw_message=text)
    info.symbol, info.name = extract_token_identity(text)
    _extract_common(info, text)
    return info


EXTRACTORS: dict[SignalType, Callable[[str, Chain], TokenInfo]] = {
    SignalType.KOL_BUY: extract_kol_buy,
    SignalType.ATH_PRICE: extract_ath_price,
}


def parse_message(text: str | None) -> TokenInfo:
    """Classify and extract. Unknown alerts carry only chain, type and raw text."""
    text = text or ""
    classification = classify(text)
    extractor = EXTRACTORS.get(classification.type)
    if extractor is None:
        return TokenInfo(chain=classification.chain, type=SignalType.UNKNOWN, raw_message=text)
    return extractor(text, classification.chain)
