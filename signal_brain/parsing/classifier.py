"""Message classification: which chain and which alert type."""

from __future__ import annotations

from signal_brain.parsing.models import Chain, Classification, SignalType

# Checked in order; first hit wins, otherwise Solana.
CHAIN_MARKERS: tuple[tuple[str, Chain], ...] = (
    ("Ethereum", Chain.ETHEREUM),
    ("Binance Smart Chain", Chain.BSC),
    ("Ton", Chain.TON),
)

TYPE_MARKERS: tuple[tuple[str, SignalType], ...] = (
    ("KOL Buy", SignalType.KOL_BUY),
    ("ATH Price", SignalType.ATH_PRICE),
)


def detect_chain(text: str) -> Chain:
    for marker, chain in CHAIN_MARKERS:
        if marker in text:
            return chain
    return Chain.SOLANA


def detect_type(text: str) -> SignalType:
    for marker, signal_type in TYPE_MARKERS:
        if marker in text:
            return signal_type
    return SignalType.UNKNOWN


def classify(text: str | None) -> Classification:
    """Classify a raw alert. Total: any input yields a Classification."""
    text = text or ""
    return Classification(chain=detect_chain(text), type=detect_type(text))
