"""Composite scoring — per-dimension primitives and two weighted forms.

Both forms share the same primitive functions and differ only in their row
of the ``WEIGHTS`` table:

* ``full``   — general token scoring over five dimensions.
* ``signal`` — the narrower three-input score that drives the buy/sell
  recommendation.

Higher numbers always mean "more favourable": the risk dimension is
inverted so that high raw risk gives a low score.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from signal_engine.analysis.models import (
    BEARISH_PATTERNS,
    BULLISH_PATTERNS,
    IndicatorSet,
    OHLCBar,
)
from signal_engine.risk.models import OnChainSnapshot, RiskMetrics, SentimentSnapshot
from signal_engine.risk.sentiment import normalize_sentiment, sentiment_spread
from signal_engine.scoring.models import CompositeScore

FULL = "full"
SIGNAL = "signal"

WEIGHTS: dict[str, dict[str, float]] = {
    FULL: {
        "technical": 0.30,
        "market": 0.25,
        "fundamental": 0.20,
        "social": 0.15,
        "risk": 0.10,
    },
    SIGNAL: {
        "technical": 0.5,
        "sentiment": 0.3,
        "onchain": 0.2,
    },
}

# Empirical ceilings for the log-scaled fundamental inputs.
ACTIVE_ADDRESS_LOG_CEILING = 6.0
TX_COUNT_LOG_CEILING = 6.0
VALUE_LOCKED_CEILING = 0.5

MOMENTUM_LOOKBACKS = (1, 7, 14, 30)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class DimensionInputs:
    """Everything the dimension primitives may draw on for one evaluation."""

    series: Sequence[OHLCBar]
    indicators: IndicatorSet
    patterns: list[str] = field(default_factory=list)
    onchain: Optional[OnChainSnapshot] = None
    risk_metrics: Optional[RiskMetrics] = None
    sentiment: Optional[SentimentSnapshot] = None


# ── Dimension primitives ─────────────────────────────────────────────────


def technical_score(indicators: IndicatorSet, patterns: Sequence[str]) -> float:
    """Signed technical contribution ∈ [-1, 1].

    * SMA20 vs SMA50 and SMA50 vs SMA200 ordering: ±0.2 each (bullish
      stacking adds, bearish stacking subtracts; unavailable MAs add 0).
    * RSI < 30 (oversold) +0.3, RSI > 70 (overbought) −0.3.
    * MACD histogram > 0 +0.2, < 0 −0.2.
    * (bullish − bearish pattern count) × 0.1.
    """
    score = 0.0

    for fast, slow in (
        (indicators.sma_20, indicators.sma_50),
        (indicators.sma_50, indicators.sma_200),
    ):
        if fast is None or slow is None:
            continue
        if fast > slow:
            score += 0.2
        elif fast < slow:
            score -= 0.2

    if indicators.rsi_14 is not None:
        if indicators.rsi_14 < 30:
            score += 0.3
        elif indicators.rsi_14 > 70:
            score -= 0.3

    if indicators.macd is not None:
        if indicators.macd.histogram > 0:
            score += 0.2
        elif indicators.macd.histogram < 0:
            score -= 0.2

    bullish = sum(1 for p in patterns if p in BULLISH_PATTERNS)
    bearish = sum(1 for p in patterns if p in BEARISH_PATTERNS)
    score += (bullish - bearish) * 0.1

    return _clamp(score, -1.0, 1.0)


def price_momentum(series: Sequence[OHLCBar]) -> Optional[float]:
    """Mean percentage price change over 1, 7, 14 and 30 bars (those available)."""
    closes = [bar.close for bar in series]
    changes = [
        (closes[-1] - closes[-1 - n]) / closes[-1 - n] * 100.0
        for n in MOMENTUM_LOOKBACKS
        if len(closes) > n and closes[-1 - n] != 0
    ]
    if not changes:
        return None
    return sum(changes) / len(changes)


def market_score(series: Sequence[OHLCBar]) -> float:
    """Momentum score ∈ [-1, 1]: a 10 % average move saturates the scale."""
    momentum = price_momentum(series)
    if momentum is None:
        return 0.0
    return _clamp(momentum / 10.0, -1.0, 1.0)


def network_activity_score(stats: dict, onchain: OnChainSnapshot) -> float:
    """Log-scaled blend of active addresses, transaction count and locked value ∈ [0, 1].

    Provider aggregates in ``network_stats`` take precedence; otherwise the
    counts are derived from the snapshot's transactions.
    """
    active = stats.get("active_addresses_24h")
    if active is None:
        active = len({t.from_address for t in onchain.transactions})
    tx_count = stats.get("transaction_count_24h")
    if tx_count is None:
        tx_count = len(onchain.transactions)
    value_locked = float(stats.get("value_locked") or 0.0)

    def _log_ratio(value: float, ceiling: float) -> float:
        if value <= 1:
            return 0.0
        return min(math.log10(value) / ceiling, 1.0)

    return (
        _log_ratio(float(active), ACTIVE_ADDRESS_LOG_CEILING) * 0.4
        + _log_ratio(float(tx_count), TX_COUNT_LOG_CEILING) * 0.3
        + _clamp(value_locked / VALUE_LOCKED_CEILING, 0.0, 1.0) * 0.3
    )


def fundamental_score(
    onchain: Optional[OnChainSnapshot], risk: Optional[RiskMetrics]
) -> float:
    """Network activity folded with inverted on-chain risk ∈ [0, 1].

    ``0.7 × activity + 0.3 × (1 − overall_risk_score)``: low risk raises
    the fundamental contribution.
    """
    if onchain is None:
        return 0.0
    activity = network_activity_score(onchain.network_stats, onchain)
    safety = 1.0 - risk.overall_risk_score if risk is not None else 0.5
    return _clamp(activity * 0.7 + safety * 0.3, 0.0, 1.0)


def social_score(sentiment: Optional[SentimentSnapshot]) -> float:
    """Normalised sentiment ∈ [-1, 1]; 0 when absent."""
    return normalize_sentiment(sentiment)


def price_volatility_risk(series: Sequence[OHLCBar]) -> float:
    """Annualised close-to-close volatility scaled to [0, 1] (200 % saturates)."""
    closes = [bar.close for bar in series]
    returns = [
        (closes[i] - closes[i - 1]) / closes[i - 1]
        for i in range(1, len(closes))
        if closes[i - 1] != 0
    ]
    if len(returns) < 2:
        return 0.0
    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    return _clamp(math.sqrt(variance * 365) / 2.0, 0.0, 1.0)


def risk_score(
    series: Sequence[OHLCBar],
    risk: Optional[RiskMetrics],
    sentiment: Optional[SentimentSnapshot],
) -> float:
    """Inverted blended risk ∈ [0, 1]; higher means safer.

    ``1 − (0.3 × volatility + 0.3 × liquidity + 0.2 × concentration +
    0.2 × sentiment-volatility)``.  Sentiment-volatility risk is
    ``1 − spread`` (a split crowd is riskier than a consensus) and reads
    0.5 when no sentiment is available.
    """
    if risk is None:
        return 0.0
    volatility_risk = price_volatility_risk(series)
    liquidity_risk = 1.0 - risk.liquidity_score
    concentration_risk = risk.top_10_percentage / 100.0
    sentiment_risk = 1.0 - sentiment_spread(sentiment) if sentiment is not None else 0.5

    blended = (
        volatility_risk * 0.3
        + liquidity_risk * 0.3
        + concentration_risk * 0.2
        + sentiment_risk * 0.2
    )
    return _clamp(1.0 - blended, 0.0, 1.0)


# ── Dimension registry ───────────────────────────────────────────────────

_Primitive = Callable[[DimensionInputs], float]
_Presence = Callable[[DimensionInputs], bool]

_DIMENSIONS: dict[str, tuple[_Primitive, _Presence]] = {
    "technical": (
        lambda d: technical_score(d.indicators, d.patterns),
        lambda d: True,
    ),
    "market": (
        lambda d: market_score(d.series),
        lambda d: True,
    ),
    "fundamental": (
        lambda d: fundamental_score(d.onchain, d.risk_metrics),
        lambda d: d.onchain is not None,
    ),
    "social": (
        lambda d: social_score(d.sentiment),
        lambda d: d.sentiment is not None,
    ),
    "risk": (
        lambda d: risk_score(d.series, d.risk_metrics, d.sentiment),
        lambda d: d.risk_metrics is not None,
    ),
}
# The signal form names its inputs after their sources.
_DIMENSIONS["sentiment"] = _DIMENSIONS["social"]
_DIMENSIONS["onchain"] = _DIMENSIONS["fundamental"]


# ── Aggregation ──────────────────────────────────────────────────────────


def weighted_total(scores: dict[str, float], weights: dict[str, float]) -> float:
    """Σ weight × score; dimensions missing from *scores* count as 0."""
    return sum(scores.get(name, 0.0) * w for name, w in weights.items())


def calculate_confidence(scores: Sequence[float]) -> float:
    """``1 − 2·sqrt(mean((s − 0.5)²))`` floored at 0.

    Scores clustered together near the middle of the scale give high
    confidence; widely scattered scores give low confidence.
    """
    if not scores:
        return 0.0
    variance = sum((s - 0.5) ** 2 for s in scores) / len(scores)
    return max(0.0, 1.0 - math.sqrt(variance) * 2.0)


def assign_rating(total_score: float) -> str:
    if total_score > 0.8:
        return "A+"
    if total_score > 0.7:
        return "A"
    if total_score > 0.6:
        return "B+"
    if total_score > 0.5:
        return "B"
    if total_score > 0.4:
        return "C+"
    if total_score > 0.3:
        return "C"
    return "D"


def determine_trend(total_score: float) -> str:
    if total_score > 0.7:
        return "strongly_bullish"
    if total_score > 0.6:
        return "bullish"
    if total_score > 0.4:
        return "neutral"
    if total_score > 0.3:
        return "bearish"
    return "strongly_bearish"


def compute_composite(form: str, inputs: DimensionInputs) -> CompositeScore:
    """Score every dimension of *form* and fuse them.

    Raises ``KeyError`` if *form* is not a row of ``WEIGHTS``.
    """
    if form not in WEIGHTS:
        raise KeyError(
            f"Unknown composite form '{form}'. "
            f"Available: {', '.join(WEIGHTS.keys())}"
        )
    weights = WEIGHTS[form]

    scores: dict[str, float] = {}
    present: dict[str, bool] = {}
    for name in weights:
        primitive, is_present = _DIMENSIONS[name]
        present[name] = is_present(inputs)
        scores[name] = primitive(inputs) if present[name] else 0.0

    total = weighted_total(scores, weights)
    confidence = calculate_confidence(
        [scores[name] for name in weights if present[name]]
    )

    return CompositeScore(
        form=form,
        dimension_scores=scores,
        present=present,
        total_score=total,
        confidence=confidence,
        rating=assign_rating(total),
        trend=determine_trend(total),
    )


def full_composite(inputs: DimensionInputs) -> CompositeScore:
    """Five-dimension composite used for general token scoring."""
    return compute_composite(FULL, inputs)


def signal_composite(inputs: DimensionInputs) -> CompositeScore:
    """Three-dimension composite that drives the trading recommendation."""
    return compute_composite(SIGNAL, inputs)
