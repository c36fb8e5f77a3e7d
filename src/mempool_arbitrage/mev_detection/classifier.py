"""
Opportunity Classifier.

Matches pending transactions against a table of known trade-call selectors
and a minimum notional size. Almost every observed transaction is expected
to be a no-match, so a miss is never an error.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from .opportunity_models import ObservedTransaction, Opportunity, eth_to_wei

logger = logging.getLogger(__name__)

SELECTOR_LENGTH = 4

# Router swap entrypoints watched by default
DEFAULT_TRADE_SELECTORS: Dict[str, str] = {
    "0x38ed1739": "swapExactTokensForTokens",
    "0x8803dbee": "swapTokensForExactTokens",
    "0x7ff36ab5": "swapExactETHForTokens",
    "0x18cbafe5": "swapExactTokensForETH",
    "0xfb3bdb41": "swapETHForExactTokens",
    "0x128acb08": "swap",  # UniswapV3Pool
}


def _normalize_selector(selector: str) -> str:
    selector = selector.strip().lower()
    if not selector.startswith("0x"):
        selector = "0x" + selector
    if len(selector) != 2 + SELECTOR_LENGTH * 2:
        raise ValueError(f"Invalid selector {selector!r}: expected 4 bytes")
    bytes.fromhex(selector[2:])
    return selector


@dataclass
class ClassifierConfig:
    """Configuration for the opportunity classifier."""
    trade_selectors: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TRADE_SELECTORS))
    min_notional_eth: float = 0.5

    @classmethod
    def from_selectors(cls, selectors: Iterable[str], min_notional_eth: float = 0.5) -> "ClassifierConfig":
        """Build a config from a plain selector list, naming known selectors."""
        table = {}
        for selector in selectors:
            normalized = _normalize_selector(selector)
            table[normalized] = DEFAULT_TRADE_SELECTORS.get(normalized, "custom")
        return cls(trade_selectors=table or dict(DEFAULT_TRADE_SELECTORS), min_notional_eth=min_notional_eth)


class OpportunityClassifier:
    """Pure classifier turning an observed transaction into an optional opportunity."""

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()
        self._selectors = {
            bytes.fromhex(_normalize_selector(sel)[2:]): (_normalize_selector(sel), name)
            for sel, name in self.config.trade_selectors.items()
        }
        self._min_notional_wei = eth_to_wei(self.config.min_notional_eth)

    def classify(self, tx: ObservedTransaction) -> Optional[Opportunity]:
        """Return an opportunity when the transaction matches, otherwise None."""
        payload = tx.data
        if not isinstance(payload, (bytes, bytearray)) or len(payload) < SELECTOR_LENGTH:
            return None

        match = self._selectors.get(bytes(payload[:SELECTOR_LENGTH]))
        if match is None:
            return None

        if not isinstance(tx.value, int) or tx.value <= 0 or tx.value < self._min_notional_wei:
            return None

        selector, name = match
        logger.debug(f"Matched {name} in {tx.hash[:10]}... ({tx.value_eth:.4f} ETH)")
        return Opportunity(
            source_tx_hash=tx.hash,
            notional_wei=tx.value,
            selector=selector,
            selector_name=name,
        )

    def recognized_selectors(self) -> Dict[str, str]:
        return {selector: name for selector, name in self._selectors.values()}
