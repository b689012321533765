"""Technical indicators — SMA, EMA, RSI, MACD, Bollinger Bands. Pure functions, no I/O.

Unlike a strategy that needs every indicator, the scoring engine degrades
gracefully: each calculator returns ``None`` when the series is shorter
than its window instead of raising.
"""

import logging
import math
from typing import Optional, Sequence

from signal_engine.analysis.models import (
    BollingerBands,
    IndicatorSet,
    MACDResult,
    OHLCBar,
)

logger = logging.getLogger("signal_engine")

MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(closes: Sequence[float], period: int) -> Optional[float]:
    """Arithmetic mean of the last *period* closes, or ``None`` if too short."""
    if len(closes) < period:
        return None
    return sum(closes[-period:]) / period


def calculate_ema_series(values: Sequence[float], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series.

    Uses the recursive form:
        ``EMA_t = (price_t - EMA_{t-1}) × k + EMA_{t-1}``
    where ``k = 2 / (period + 1)``.  The first EMA value is seeded with the
    SMA of the first *period* values.

    Returns a list the same length as *values*.  Entries before the seed
    period are ``float('nan')``.  Returns an empty list if fewer than
    *period* values are provided.
    """
    if len(values) < period:
        return []

    k = 2.0 / (period + 1)
    ema: list[float] = [float("nan")] * len(values)

    # Seed: SMA of first *period* values
    ema[period - 1] = sum(values[:period]) / period

    for i in range(period, len(values)):
        ema[i] = (values[i] - ema[i - 1]) * k + ema[i - 1]

    return ema


def calculate_ema(closes: Sequence[float], period: int) -> Optional[float]:
    """Latest EMA value, or ``None`` if fewer than *period* closes."""
    series = calculate_ema_series(closes, period)
    if not series:
        return None
    return series[-1]


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(closes: Sequence[float], period: int = 14) -> Optional[float]:
    """Relative Strength Index over the last *period* single-bar deltas.

    Simple (not Wilder-smoothed) averages:
        avg_gain = mean(max(delta, 0)), avg_loss = mean(max(-delta, 0))
        RSI = 100 - 100 / (1 + avg_gain / avg_loss)

    An ``avg_loss`` of zero yields 100 (no loss observed), including the
    flat case where both averages are zero.

    Requires ``period + 1`` closes; returns ``None`` otherwise.
    """
    if len(closes) < period + 1:
        return None

    window = closes[-(period + 1):]
    deltas = [window[i] - window[i - 1] for i in range(1, len(window))]

    avg_gain = sum(d for d in deltas if d > 0) / period
    avg_loss = sum(-d for d in deltas if d < 0) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    closes: Sequence[float],
    fast: int = MACD_FAST,
    slow: int = MACD_SLOW,
    signal: int = MACD_SIGNAL,
) -> Optional[MACDResult]:
    """Moving Average Convergence Divergence.

    ``macd_line = EMA(fast) - EMA(slow)``.  The signal line is the
    EMA(*signal*) of the MACD-line history, which has one value per bar
    from bar *slow* onwards.  While that history holds fewer than *signal*
    values the signal line falls back to the latest MACD value, so the
    histogram reads 0 rather than inventing momentum.

    Returns ``None`` if fewer than *slow* closes are available.
    """
    if len(closes) < slow:
        return None

    fast_ema = calculate_ema_series(closes, fast)
    slow_ema = calculate_ema_series(closes, slow)
    macd_history = [fast_ema[i] - slow_ema[i] for i in range(slow - 1, len(closes))]

    macd_line = macd_history[-1]
    if len(macd_history) >= signal:
        signal_line = calculate_ema_series(macd_history, signal)[-1]
    else:
        signal_line = macd_line

    return MACDResult(
        macd_line=macd_line,
        signal_line=signal_line,
        histogram=macd_line - signal_line,
    )


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    closes: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> Optional[BollingerBands]:
    """Bollinger Bands over the last *period* closes.

    Middle = SMA(close, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    σ is the population standard deviation.  Returns ``None`` if fewer than
    *period* closes.
    """
    middle = calculate_sma(closes, period)
    if middle is None:
        return None

    window = closes[-period:]
    variance = sum((x - middle) ** 2 for x in window) / period
    sigma = math.sqrt(variance)

    return BollingerBands(
        middle=middle,
        upper=middle + std_dev * sigma,
        lower=middle - std_dev * sigma,
    )


# ── Aggregate ────────────────────────────────────────────────────────────


def compute_indicators(series: Sequence[OHLCBar]) -> IndicatorSet:
    """Compute the full ``IndicatorSet`` for *series*.

    Never raises for short series; unavailable indicators are ``None``.
    """
    closes = [bar.close for bar in series]

    indicators = IndicatorSet(
        sma_20=calculate_sma(closes, 20),
        sma_50=calculate_sma(closes, 50),
        sma_200=calculate_sma(closes, 200),
        ema_12=calculate_ema(closes, MACD_FAST),
        ema_26=calculate_ema(closes, MACD_SLOW),
        rsi_14=calculate_rsi(closes, 14),
        macd=calculate_macd(closes),
        bollinger=calculate_bollinger(closes, 20, 2.0),
    )

    unavailable = [name for name, value in vars(indicators).items() if value is None]
    if unavailable:
        logger.debug(
            "Insufficient history (%d bars) for: %s",
            len(closes), ", ".join(unavailable),
        )
    return indicators
