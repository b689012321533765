"""On-chain risk analysis — concentration, inequality, volatility, liquidity.

Pure functions over an ``OnChainSnapshot``.  Nothing here performs I/O;
activity windows are anchored on the newest transaction timestamp rather
than the wall clock so identical snapshots always give identical output.
"""

import logging
import math
from typing import Any, Optional, Sequence

import numpy as np

from signal_engine.errors import InvalidInputError
from signal_engine.risk.fields import finite_float, finite_int
from signal_engine.risk.models import (
    Holder,
    OnChainActivity,
    OnChainSnapshot,
    RiskMetrics,
    Transaction,
    WindowStats,
)

logger = logging.getLogger("signal_engine")

# Average transaction value / total supply below this is illiquid.
LIQUIDITY_RATIO_THRESHOLD = 0.001
# A transaction is "large" when it exceeds this multiple of the average.
LARGE_TX_MULTIPLIER = 10.0
# Whales are the top 1% of holders by balance.
WHALE_HOLDER_FRACTION = 0.01

_RISK_WEIGHTS = {
    "concentration": 0.4,
    "volatility": 0.3,
    "liquidity": 0.3,
}

_HOUR_MS = 60 * 60 * 1000
WINDOW_HOURS = {"1h": 1, "24h": 24, "168h": 168}

# network_stats keys read by the scorer, split by numeric kind.
_COUNT_STATS = ("active_addresses_24h", "transaction_count_24h", "large_transactions_24h")
_AMOUNT_STATS = ("value_locked",)


# ── Concentration ────────────────────────────────────────────────────────


def top_holders_percentage(
    holders: Sequence[Holder], total_supply: float, count: int
) -> float:
    """Percentage (0–100) of *total_supply* held by the largest *count* holders."""
    if total_supply <= 0:
        return 0.0
    ranked = sorted((h.balance for h in holders), reverse=True)
    return sum(ranked[:count]) / total_supply * 100.0


def assess_concentration_risk(top_10_percentage: float) -> str:
    """Map the top-10 holder share onto a five-step risk tier."""
    if top_10_percentage > 80:
        return "very_high"
    if top_10_percentage > 60:
        return "high"
    if top_10_percentage > 40:
        return "medium"
    if top_10_percentage > 20:
        return "low"
    return "very_low"


def assess_overall_risk(score: float) -> str:
    """Three-step tier for the blended risk score."""
    if score > 0.7:
        return "high"
    if score > 0.4:
        return "medium"
    return "low"


def calculate_gini(balances: Sequence[float]) -> float:
    """Gini coefficient of *balances* ∈ [0, 1].

    ``G = Σ (2i − n + 1) · b_i / (n² · mean)`` for ``i`` in ``0..n-1``
    over balances sorted ascending, so one holder owning everything among
    ``n`` scores ``(n − 1) / n``.  Zero for an empty or all-zero input.
    A single holder is trivially equal to itself and scores 0.
    """
    if len(balances) == 0:
        return 0.0
    values = np.sort(np.asarray(balances, dtype=float))
    mean = values.mean()
    if mean <= 0:
        return 0.0
    n = len(values)
    idx = np.arange(n)
    gini = float(np.sum((2 * idx - n + 1) * values) / (n * n * mean))
    return max(0.0, min(1.0, gini))


# ── Volatility & liquidity ──────────────────────────────────────────────


def calculate_volume_volatility(values: Sequence[float]) -> float:
    """Population standard deviation of successive percentage changes.

    Changes whose base value is zero are skipped (undefined).  Returns 0
    when fewer than one change can be computed.
    """
    changes = [
        (values[i] - values[i - 1]) / values[i - 1]
        for i in range(1, len(values))
        if values[i - 1] != 0
    ]
    if not changes:
        return 0.0
    return float(np.std(changes))


def assess_liquidity(
    transactions: Sequence[Transaction], total_supply: float
) -> tuple[str, float, float]:
    """Return ``(liquidity_risk, liquidity_score, volume_to_supply_ratio)``.

    ``liquidity_score = min(ratio × 1000, 1)``; the risk tier is ``"high"``
    below the 0.001 ratio threshold and ``"medium"`` otherwise.  With no
    supply the ratio is 0 (maximally illiquid).
    """
    avg_size = average_transaction_size(transactions)
    ratio = avg_size / total_supply if total_supply > 0 else 0.0
    risk = "high" if ratio < LIQUIDITY_RATIO_THRESHOLD else "medium"
    score = min(ratio * 1000.0, 1.0)
    return risk, score, ratio


def analyze_onchain(snapshot: OnChainSnapshot) -> RiskMetrics:
    """Turn a raw holder/transaction snapshot into ``RiskMetrics``.

    Overall risk blends concentration (Gini) 40 %, transaction-value
    volatility 30 % (capped at 1) and illiquidity ``1 − liquidity_score``
    30 %, clamped to [0, 1], then tiered by ``assess_overall_risk``.
    """
    total_supply = snapshot.total_supply
    top_10 = top_holders_percentage(snapshot.holders, total_supply, 10)
    gini = calculate_gini([h.balance for h in snapshot.holders])
    volatility = calculate_volume_volatility([t.value for t in snapshot.transactions])
    liquidity_risk, liquidity_score, _ = assess_liquidity(
        snapshot.transactions, total_supply
    )

    blend = (
        gini * _RISK_WEIGHTS["concentration"]
        + min(volatility, 1.0) * _RISK_WEIGHTS["volatility"]
        + (1.0 - liquidity_score) * _RISK_WEIGHTS["liquidity"]
    )
    overall = max(0.0, min(1.0, blend))

    return RiskMetrics(
        concentration_risk=assess_concentration_risk(top_10),
        top_10_percentage=top_10,
        top_50_percentage=top_holders_percentage(snapshot.holders, total_supply, 50),
        top_100_percentage=top_holders_percentage(snapshot.holders, total_supply, 100),
        holder_count=len(snapshot.holders),
        gini_coefficient=gini,
        volume_volatility=volatility,
        liquidity_risk=liquidity_risk,
        liquidity_score=liquidity_score,
        overall_risk_score=overall,
        risk_level=assess_overall_risk(overall),
    )


# ── Activity ─────────────────────────────────────────────────────────────


def average_transaction_size(transactions: Sequence[Transaction]) -> float:
    if not transactions:
        return 0.0
    return sum(t.value for t in transactions) / len(transactions)


def find_large_transactions(
    transactions: Sequence[Transaction],
    multiplier: float = LARGE_TX_MULTIPLIER,
) -> list[Transaction]:
    """Transactions worth more than *multiplier* × the average value."""
    avg = average_transaction_size(transactions)
    return [t for t in transactions if t.value > avg * multiplier]


def find_whale_movements(snapshot: OnChainSnapshot) -> list[Transaction]:
    """Transactions touching a top-1% holder and moving > 10% of the whale threshold."""
    if not snapshot.holders:
        return []
    ranked = sorted(snapshot.holders, key=lambda h: h.balance, reverse=True)
    threshold = ranked[int(len(ranked) * WHALE_HOLDER_FRACTION)].balance
    whales = {h.address for h in ranked if h.balance >= threshold}
    return [
        t for t in snapshot.transactions
        if (t.from_address in whales or t.to_address in whales)
        and t.value > threshold * 0.1
    ]


def _log_scale(value: float) -> float:
    return math.log10(value + 1) / 10


def categorize_activity(tx_count: int, addresses: int, volume: float) -> str:
    """Five-step activity tier from a log-scaled blend of counts and volume."""
    score = (
        _log_scale(tx_count) * 0.4
        + _log_scale(addresses) * 0.3
        + _log_scale(volume) * 0.3
    )
    if score > 0.8:
        return "very_high"
    if score > 0.6:
        return "high"
    if score > 0.4:
        return "medium"
    if score > 0.2:
        return "low"
    return "very_low"


def _window(
    transactions: Sequence[Transaction], anchor_ms: int, hours: int
) -> list[Transaction]:
    cutoff = anchor_ms - hours * _HOUR_MS
    return [t for t in transactions if t.timestamp >= cutoff]


def _addresses(transactions: Sequence[Transaction]) -> set[str]:
    return {t.from_address for t in transactions} | {t.to_address for t in transactions}


def window_stats(transactions: Sequence[Transaction]) -> WindowStats:
    """Count, volume, distinct addresses and large transfers for one window.

    Large transfers are judged against the window's own average.
    """
    return WindowStats(
        count=len(transactions),
        volume=sum(t.value for t in transactions),
        unique_addresses=len(_addresses(transactions)),
        average_size=average_transaction_size(transactions),
        large_transactions=len(find_large_transactions(transactions)),
    )


def calculate_trend(hourly: float, daily: float) -> str:
    """Compare the last-hour rate against a 24h hourly baseline.

    >1.5× is ``strongly_increasing``, >1.1× ``increasing``, <0.5×
    ``strongly_decreasing``, <0.9× ``decreasing``, otherwise ``stable``.
    """
    if hourly > daily * 1.5:
        return "strongly_increasing"
    if hourly > daily * 1.1:
        return "increasing"
    if hourly < daily * 0.5:
        return "strongly_decreasing"
    if hourly < daily * 0.9:
        return "decreasing"
    return "stable"


def activity_trends(windows: dict[str, WindowStats]) -> dict[str, str]:
    """Volume, frequency and size trends of the last hour against the day.

    Volume and count are rates, so the 24h totals are spread over 24 hours.
    Average size is already per transaction and is compared directly.
    """
    hour, day = windows["1h"], windows["24h"]
    return {
        "volume_trend": calculate_trend(hour.volume, day.volume / 24),
        "frequency_trend": calculate_trend(hour.count, day.count / 24),
        "size_trend": calculate_trend(hour.average_size, day.average_size),
    }


def detect_anomalies(transactions: Sequence[Transaction]) -> tuple[list[str], Optional[int], Optional[int]]:
    """Compare the last hour against the 24h hourly average.

    Returns ``(anomalies, hourly_count, daily_count)``.  Without timestamps
    no window can be formed and the counts are ``None``.
    """
    stamped = [t for t in transactions if t.timestamp > 0]
    if not stamped:
        return [], None, None

    anchor = max(t.timestamp for t in stamped)
    hourly = _window(stamped, anchor, 1)
    daily = _window(stamped, anchor, 24)

    anomalies: list[str] = []
    daily_avg = len(daily) / 24
    if len(hourly) > daily_avg * 3:
        anomalies.append("high_frequency")

    hourly_volume = sum(t.value for t in hourly)
    daily_volume = sum(t.value for t in daily)
    if hourly_volume > daily_volume / 12:
        anomalies.append("volume_spike")

    hourly_large = len(find_large_transactions(hourly))
    daily_large = len(find_large_transactions(daily))
    if hourly_large > daily_large / 24 * 3:
        anomalies.append("large_tx_spike")

    # Addresses first seen in the last hour, against twice the hourly share
    # of the day's distinct addresses.
    cutoff = anchor - _HOUR_MS
    seen_before = _addresses([t for t in daily if t.timestamp < cutoff])
    new_addresses = _addresses(hourly) - seen_before
    if len(new_addresses) > len(_addresses(daily)) / 24 * 2:
        anomalies.append("new_addresses")

    return anomalies, len(hourly), len(daily)


def analyze_activity(snapshot: OnChainSnapshot) -> OnChainActivity:
    """Summarise transaction activity, large transfers and whale movements.

    Timestamped transactions also get per-window totals (1h, 24h, 168h)
    and last-hour trends, anchored on the newest timestamp.
    """
    txs = snapshot.transactions
    active = len({t.from_address for t in txs})
    volume = sum(t.value for t in txs)
    anomalies, hourly, daily = detect_anomalies(txs)

    windows = trends = None
    stamped = [t for t in txs if t.timestamp > 0]
    if stamped:
        anchor = max(t.timestamp for t in stamped)
        windows = {
            label: window_stats(_window(stamped, anchor, hours))
            for label, hours in WINDOW_HOURS.items()
        }
        trends = activity_trends(windows)

    activity = OnChainActivity(
        transaction_count=len(txs),
        active_addresses=active,
        total_volume=volume,
        average_transaction_size=average_transaction_size(txs),
        large_transaction_count=len(find_large_transactions(txs)),
        whale_movement_count=len(find_whale_movements(snapshot)),
        activity_level=categorize_activity(len(txs), active, volume),
        anomalies=anomalies,
        hourly_count=hourly,
        daily_count=daily,
        windows=windows,
        trends=trends,
    )
    if anomalies:
        logger.info("On-chain anomalies detected: %s", ", ".join(anomalies))
    return activity


def large_transaction_count(snapshot: OnChainSnapshot) -> int:
    """Provider-reported 24h large-transaction count, else counted from the snapshot."""
    reported = snapshot.network_stats.get("large_transactions_24h")
    if reported is not None:
        return finite_int(reported, "network_stats.large_transactions_24h")
    return len(find_large_transactions(snapshot.transactions))


# ── Parsing ──────────────────────────────────────────────────────────────


def _parse_network_stats(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise InvalidInputError("network_stats must be an object")
    stats = dict(raw)
    for key in _COUNT_STATS:
        if stats.get(key) is not None:
            stats[key] = finite_int(stats[key], f"network_stats.{key}")
    for key in _AMOUNT_STATS:
        if stats.get(key) is not None:
            stats[key] = finite_float(stats[key], f"network_stats.{key}")
    return stats


def validate_onchain(snapshot: Optional[OnChainSnapshot]) -> None:
    """Raise ``InvalidInputError`` for non-finite balances, values or stats."""
    if snapshot is None:
        return
    for i, h in enumerate(snapshot.holders):
        finite_float(h.balance, f"holders[{i}].balance")
    for i, t in enumerate(snapshot.transactions):
        finite_float(t.value, f"transactions[{i}].value")
    _parse_network_stats(snapshot.network_stats)


def parse_onchain(payload: Optional[dict[str, Any]]) -> Optional[OnChainSnapshot]:
    """Build an ``OnChainSnapshot`` from a request payload (``None`` passes through).

    Transactions accept either ``from``/``to`` or ``from_address``/``to_address``.
    Balances, values, timestamps and the scored ``network_stats`` keys must
    be finite numbers; anything else raises ``InvalidInputError``.
    """
    if payload is None:
        return None
    holders = [
        Holder(
            address=str(h.get("address", "")),
            balance=finite_float(h.get("balance", 0), f"holders[{i}].balance"),
        )
        for i, h in enumerate(payload.get("holders") or [])
    ]
    transactions = [
        Transaction(
            from_address=str(t.get("from", t.get("from_address", ""))),
            to_address=str(t.get("to", t.get("to_address", ""))),
            value=finite_float(t.get("value", 0), f"transactions[{i}].value"),
            timestamp=finite_int(t.get("timestamp", 0), f"transactions[{i}].timestamp"),
        )
        for i, t in enumerate(payload.get("transactions") or [])
    ]
    return OnChainSnapshot(
        holders=holders,
        transactions=transactions,
        network_stats=_parse_network_stats(payload.get("network_stats") or {}),
    )
