"""On-chain and sentiment data models."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class Holder:
    address: str
    balance: float


@dataclass(frozen=True)
class Transaction:
    """A single transfer.  ``timestamp`` is epoch milliseconds."""

    from_address: str
    to_address: str
    value: float
    timestamp: int = 0


@dataclass(frozen=True)
class OnChainSnapshot:
    """Normalised chain-explorer snapshot.  Input only; never persisted here.

    ``network_stats`` carries provider aggregates such as
    ``active_addresses_24h``, ``transaction_count_24h``, ``value_locked``
    and ``large_transactions_24h``.
    """

    holders: list[Holder] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    network_stats: dict[str, Any] = field(default_factory=dict)

    @property
    def total_supply(self) -> float:
        return sum(h.balance for h in self.holders)


@dataclass(frozen=True)
class SentimentSnapshot:
    """Aggregated social sentiment.  ``score`` ∈ [-1, 1], percentages 0–100."""

    score: float = 0.0
    magnitude: float = 0.0
    positive_percentage: float = 0.0
    negative_percentage: float = 0.0
    mentions: int = 0


@dataclass(frozen=True)
class RiskMetrics:
    """Holder-concentration, volatility and liquidity risk for one snapshot."""

    concentration_risk: str  # very_low | low | medium | high | very_high
    top_10_percentage: float
    top_50_percentage: float
    top_100_percentage: float
    holder_count: int
    gini_coefficient: float
    volume_volatility: float
    liquidity_risk: str  # medium | high
    liquidity_score: float
    overall_risk_score: float
    risk_level: str  # low | medium | high

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class WindowStats:
    """Transaction totals over one trailing window (1h, 24h or 168h)."""

    count: int
    volume: float
    unique_addresses: int
    average_size: float
    large_transactions: int


@dataclass(frozen=True)
class OnChainActivity:
    """Transaction-activity summary and anomaly flags for one snapshot.

    ``windows`` and ``trends`` are ``None`` when no transaction carries a
    timestamp.
    """

    transaction_count: int
    active_addresses: int
    total_volume: float
    average_transaction_size: float
    large_transaction_count: int
    whale_movement_count: int
    activity_level: str  # very_low | low | medium | high | very_high
    anomalies: list[str] = field(default_factory=list)
    hourly_count: Optional[int] = None
    daily_count: Optional[int] = None
    windows: Optional[dict[str, WindowStats]] = None
    trends: Optional[dict[str, str]] = None

    def to_dict(self) -> dict:
        return asdict(self)
