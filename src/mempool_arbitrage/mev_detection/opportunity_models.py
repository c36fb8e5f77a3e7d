"""
Opportunity Data Models.

Defines the data structures that flow through one pipeline pass: the observed
pending transaction, the classified opportunity, the fee sample, the profit
verdict, the signed bundle and its resolution.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

WEI_PER_ETH = 10**18
WEI_PER_GWEI = 10**9


def wei_to_eth(amount_wei: int) -> float:
    """Convert a wei amount to ETH."""
    return amount_wei / WEI_PER_ETH


def eth_to_wei(amount_eth: float) -> int:
    """Convert an ETH amount to wei."""
    return int(round(amount_eth * WEI_PER_ETH))


def gwei_to_wei(amount_gwei: float) -> int:
    """Convert a gwei amount to wei."""
    return int(round(amount_gwei * WEI_PER_GWEI))


def normalize_payload(data: Any) -> bytes:
    """
    Normalize a transaction payload to bytes.

    Accepts bytes-like values (including HexBytes) and hex strings with or
    without the 0x prefix. Anything else, including undecodable hex, yields
    an empty payload.
    """
    if data is None:
        return b""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        text = data[2:] if data[:2].lower() == "0x" else data
        try:
            return bytes.fromhex(text)
        except ValueError:
            return b""
    return b""


class Resolution(str, Enum):
    """Terminal outcome of a submitted bundle."""
    INCLUDED = "included"                    # Landed in the targeted block
    NOT_INCLUDED = "not_included"            # Target block produced without it
    REJECTED = "rejected"                    # Relay simulation failed
    SUBMISSION_FAILED = "submission_failed"  # Transport error or relay refusal


class PassOutcome(str, Enum):
    """Terminal state of one pipeline pass."""
    UNFETCHABLE = "unfetchable"
    NO_MATCH = "no_match"
    UNPROFITABLE = "unprofitable"
    STALE = "stale"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class ObservedTransaction:
    """Immutable snapshot of a pending transaction."""
    hash: str
    data: bytes
    value: int
    sender: str
    to: Optional[str] = None

    @classmethod
    def from_node(cls, tx: Any) -> "ObservedTransaction":
        """Build a snapshot from a node transaction mapping (AttributeDict or dict)."""
        tx_hash = tx.get("hash")
        if isinstance(tx_hash, (bytes, bytearray)):
            tx_hash = "0x" + bytes(tx_hash).hex()
        return cls(
            hash=str(tx_hash or ""),
            data=normalize_payload(tx.get("input", tx.get("data"))),
            value=int(tx.get("value") or 0),
            sender=str(tx.get("from") or ""),
            to=tx.get("to"),
        )

    @property
    def value_eth(self) -> float:
        return wei_to_eth(self.value)


class Opportunity(BaseModel):
    """A classified candidate transaction worth evaluating for profit."""

    model_config = ConfigDict(frozen=True)

    source_tx_hash: str = Field(..., description="Hash of the source transaction")
    notional_wei: int = Field(..., description="Attached value of the source transaction", gt=0)
    selector: str = Field(..., description="Matched 4-byte selector, 0x-prefixed")
    selector_name: str = Field(..., description="Trade-call signature class")
    detected_at: float = Field(default_factory=time.time, description="When the match was made")

    @property
    def notional_eth(self) -> float:
        return wei_to_eth(self.notional_wei)


@dataclass(frozen=True)
class FeeSample:
    """Point-in-time fee quote in wei per gas."""
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    base_fee_per_gas: Optional[int] = None
    fetched_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ProfitVerdict:
    """Result of evaluating an opportunity, amounts in ETH."""
    profitable: bool
    net_yield_eth: float
    gross_yield_eth: float
    execution_cost_eth: float
    threshold_eth: float
    net_yield_usd: float = 0.0

    @classmethod
    def unprofitable(cls, threshold_eth: float) -> "ProfitVerdict":
        """Fail-safe verdict used when the estimate cannot be produced."""
        return cls(
            profitable=False,
            net_yield_eth=0.0,
            gross_yield_eth=0.0,
            execution_cost_eth=0.0,
            threshold_eth=threshold_eth,
        )


@dataclass(frozen=True)
class Bundle:
    """Signed single-transaction bundle for one target block."""
    source_tx_hash: str
    target_block: int
    nonce: int
    to: str
    calldata: bytes
    signed_transaction: str
    transaction_hash: str
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    gas_limit: int
    created_at: float = field(default_factory=time.time)

    @property
    def raw_transactions(self) -> List[str]:
        return [self.signed_transaction]
