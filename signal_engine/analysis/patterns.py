"""Candlestick pattern detection over the last 1–3 bars — pure functions."""

from typing import Sequence

from signal_engine.analysis.models import (
    BEARISH_ENGULFING,
    BULLISH_ENGULFING,
    EVENING_STAR,
    HAMMER,
    MORNING_STAR,
    OHLCBar,
    SHOOTING_STAR,
)

# Star patterns: the middle bar's body must be smaller than this fraction
# of the first bar's body.
STAR_BODY_RATIO = 0.3
# Hammer / shooting star wick-to-body ratios.
LONG_WICK_RATIO = 2.0
SHORT_WICK_RATIO = 0.5


def is_bullish_engulfing(prev: OHLCBar, last: OHLCBar) -> bool:
    """Bearish bar followed by a bullish bar whose body engulfs it."""
    return (
        prev.is_bearish
        and last.is_bullish
        and last.open < prev.close
        and last.close > prev.open
    )


def is_bearish_engulfing(prev: OHLCBar, last: OHLCBar) -> bool:
    """Bullish bar followed by a bearish bar whose body engulfs it."""
    return (
        prev.is_bullish
        and last.is_bearish
        and last.open > prev.close
        and last.close < prev.open
    )


def is_morning_star(first: OHLCBar, middle: OHLCBar, last: OHLCBar) -> bool:
    """Large bearish bar, small-bodied middle bar, then a bullish bar
    closing above the first bar's midpoint.
    """
    if not first.is_bearish or first.body == 0:
        return False
    midpoint = (first.open + first.close) / 2
    return (
        middle.body < first.body * STAR_BODY_RATIO
        and last.is_bullish
        and last.close > midpoint
    )


def is_evening_star(first: OHLCBar, middle: OHLCBar, last: OHLCBar) -> bool:
    """Large bullish bar, small-bodied middle bar, then a bearish bar
    closing below the first bar's midpoint.
    """
    if not first.is_bullish or first.body == 0:
        return False
    midpoint = (first.open + first.close) / 2
    return (
        middle.body < first.body * STAR_BODY_RATIO
        and last.is_bearish
        and last.close < midpoint
    )


def is_hammer(bar: OHLCBar) -> bool:
    """Long lower wick (> 2× body), short upper wick (< 0.5× body).

    A doji (zero body) never qualifies: the upper-wick bound would be 0.
    """
    body = bar.body
    return (
        bar.lower_wick > body * LONG_WICK_RATIO
        and bar.upper_wick < body * SHORT_WICK_RATIO
    )


def is_shooting_star(bar: OHLCBar) -> bool:
    """Long upper wick (> 2× body), short lower wick (< 0.5× body)."""
    body = bar.body
    return (
        bar.upper_wick > body * LONG_WICK_RATIO
        and bar.lower_wick < body * SHORT_WICK_RATIO
    )


def detect_patterns(series: Sequence[OHLCBar]) -> list[str]:
    """Classify the most recent bars into named reversal patterns.

    Only the last three bars are inspected.  Two-bar patterns need at least
    two bars and three-bar patterns need three; shorter series simply match
    fewer patterns.  Several patterns may apply to the same window.

    Returns a list of pattern names, bullish patterns first.
    """
    patterns: list[str] = []
    if not series:
        return patterns

    last = series[-1]
    prev = series[-2] if len(series) >= 2 else None
    first = series[-3] if len(series) >= 3 else None

    if prev is not None and is_bullish_engulfing(prev, last):
        patterns.append(BULLISH_ENGULFING)
    if first is not None and is_morning_star(first, prev, last):
        patterns.append(MORNING_STAR)
    if is_hammer(last):
        patterns.append(HAMMER)

    if prev is not None and is_bearish_engulfing(prev, last):
        patterns.append(BEARISH_ENGULFING)
    if first is not None and is_evening_star(first, prev, last):
        patterns.append(EVENING_STAR)
    if is_shooting_star(last):
        patterns.append(SHOOTING_STAR)

    return patterns
