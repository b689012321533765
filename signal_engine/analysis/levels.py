"""Support/Resistance level detection by magnitude bucketing — pure functions.

Every high and low is rounded to half of its order-of-magnitude step and
counted.  Buckets that recur often enough are treated as significant
levels.  This approximates clustering of turning points without swing
detection, at O(n) cost and with fully deterministic output.
"""

import math
from collections import Counter
from typing import Optional, Sequence

from signal_engine.analysis.models import OHLCBar, SupportResistance

MIN_TOUCHES = 4


def round_to_level(price: float) -> Optional[float]:
    """Round *price* to the nearest half-magnitude step.

    ``step = 10 ** floor(log10(price)) / 2``, e.g. 123.4 → step 50 → 100.0,
    0.0734 → step 0.005 → 0.075.

    Returns ``None`` for non-positive or non-finite prices (no magnitude is defined).
    """
    if not math.isfinite(price) or price <= 0:
        return None
    step = 10 ** math.floor(math.log10(price)) / 2
    return round(price / step) * step


def find_support_resistance(
    series: Sequence[OHLCBar],
    min_touches: int = MIN_TOUCHES,
) -> SupportResistance:
    """Partition significant levels around the last close.

    Args:
        series: OHLC bars, oldest first.
        min_touches: Minimum occurrences for a bucket to count as a level.

    Returns:
        ``SupportResistance`` with both lists sorted ascending.  Levels equal
        to the last close are neither support nor resistance.
    """
    if not series:
        return SupportResistance(support=[], resistance=[])

    counts: Counter = Counter()
    for bar in series:
        for price in (bar.high, bar.low):
            level = round_to_level(price)
            if level is not None:
                counts[level] += 1

    significant = sorted(level for level, n in counts.items() if n >= min_touches)
    last_close = series[-1].close

    return SupportResistance(
        support=[lvl for lvl in significant if lvl < last_close],
        resistance=[lvl for lvl in significant if lvl > last_close],
    )
