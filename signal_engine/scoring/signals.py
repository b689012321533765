"""Trading signal generation — deterministic threshold map, no I/O.

Direction and confidence come from the signal-form composite total.  Risk
level is derived independently from price volatility, sentiment spread and
large on-chain transfers.  Price targets come straight from the level
finder; nothing is fabricated when a level list is empty.
"""

from typing import Optional

from signal_engine.analysis.models import IndicatorSet, SupportResistance
from signal_engine.risk.models import OnChainSnapshot, SentimentSnapshot
from signal_engine.risk.onchain import large_transaction_count
from signal_engine.risk.sentiment import sentiment_spread
from signal_engine.scoring.models import CompositeScore, TradingSignal

STOP_LOSS_FACTOR = 0.95
TAKE_PROFIT_FACTOR = 1.05
DEFAULT_LARGE_TX_ALERT_COUNT = 50

# (threshold test, signal, confidence), evaluated in order.
_SIGNAL_THRESHOLDS = (
    (lambda s: s > 0.7, "strong_buy", 0.8),
    (lambda s: s > 0.3, "buy", 0.6),
    (lambda s: s < -0.7, "strong_sell", 0.8),
    (lambda s: s < -0.3, "sell", 0.6),
)


def classify_signal(total_score: float) -> tuple[str, float]:
    """Map a signal-form total onto ``(overall_signal, confidence)``."""
    for test, label, confidence in _SIGNAL_THRESHOLDS:
        if test(total_score):
            return label, confidence
    return "neutral", 0.4


def calculate_risk_level(
    indicators: IndicatorSet,
    sentiment: Optional[SentimentSnapshot],
    onchain: Optional[OnChainSnapshot],
    large_tx_alert_count: int = DEFAULT_LARGE_TX_ALERT_COUNT,
) -> str:
    """Bucket a blended risk reading into ``low`` / ``medium`` / ``high``.

    ``0.4 × Bollinger width + 0.3 × sentiment spread + 0.3`` when the
    large-transaction count exceeds *large_tx_alert_count*.  Missing inputs
    contribute 0.
    """
    volatility = indicators.bollinger.width if indicators.bollinger is not None else 0.0
    large_tx_flag = (
        onchain is not None
        and large_transaction_count(onchain) > large_tx_alert_count
    )

    score = (
        volatility * 0.4
        + sentiment_spread(sentiment) * 0.3
        + (0.3 if large_tx_flag else 0.0)
    )
    if score > 0.7:
        return "high"
    if score > 0.3:
        return "medium"
    return "low"


def generate_signal(
    composite: CompositeScore,
    indicators: IndicatorSet,
    levels: SupportResistance,
    sentiment: Optional[SentimentSnapshot] = None,
    onchain: Optional[OnChainSnapshot] = None,
    large_tx_alert_count: int = DEFAULT_LARGE_TX_ALERT_COUNT,
) -> TradingSignal:
    """Build the ``TradingSignal`` for a signal-form *composite*.

    Entry points are the support levels.  ``stop_loss = min(support) × 0.95``
    and ``take_profit = max(resistance) × 1.05``; each is ``None`` when its
    level list is empty.
    """
    overall, confidence = classify_signal(composite.total_score)

    stop_loss = min(levels.support) * STOP_LOSS_FACTOR if levels.support else None
    take_profit = (
        max(levels.resistance) * TAKE_PROFIT_FACTOR if levels.resistance else None
    )

    return TradingSignal(
        overall_signal=overall,
        confidence=confidence,
        risk_level=calculate_risk_level(
            indicators, sentiment, onchain, large_tx_alert_count
        ),
        entry_points=list(levels.support),
        stop_loss=stop_loss,
        take_profit=take_profit,
    )
