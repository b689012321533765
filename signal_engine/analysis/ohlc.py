"""OHLC normalisation — converts raw market-data rows into ``OHLCBar`` lists.

Providers return either positional rows ``[open_time, open, high, low,
close]`` (volume sometimes appended as a sixth element, sometimes absent)
or dicts keyed by field name.  Both shapes are accepted.
"""

import math
from typing import Any, Iterable

from signal_engine.analysis.models import OHLCBar
from signal_engine.errors import InvalidSeriesError


def _to_float(value: Any, field: str, index: int) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidSeriesError(
            f"Bar {index}: field '{field}' is not numeric ({value!r})"
        ) from None
    if not math.isfinite(number):
        raise InvalidSeriesError(f"Bar {index}: field '{field}' is not finite")
    return number


def _parse_row(row: Any, index: int) -> OHLCBar:
    if isinstance(row, OHLCBar):
        return row

    if isinstance(row, dict):
        missing = [k for k in ("open_time", "open", "high", "low", "close") if k not in row]
        if missing:
            raise InvalidSeriesError(
                f"Bar {index}: missing field(s) {', '.join(missing)}"
            )
        raw_time = row["open_time"]
        values = [row["open"], row["high"], row["low"], row["close"]]
        raw_volume = row.get("volume")
    elif isinstance(row, (list, tuple)):
        if len(row) < 5:
            raise InvalidSeriesError(
                f"Bar {index}: expected at least 5 elements, got {len(row)}"
            )
        raw_time = row[0]
        values = list(row[1:5])
        raw_volume = row[5] if len(row) > 5 else None
    else:
        raise InvalidSeriesError(
            f"Bar {index}: unsupported row type {type(row).__name__}"
        )

    o, h, l, c = (
        _to_float(v, name, index)
        for v, name in zip(values, ("open", "high", "low", "close"))
    )
    volume = None if raw_volume is None else _to_float(raw_volume, "volume", index)
    open_time = int(_to_float(raw_time, "open_time", index))
    return OHLCBar(open_time=open_time, open=o, high=h, low=l, close=c, volume=volume)


def parse_series(rows: Iterable[Any]) -> list[OHLCBar]:
    """Parse raw provider rows into an ordered ``OHLCSeries``.

    Bars are sorted by ``open_time`` (oldest first).  Gaps in time are
    tolerated and never interpolated.

    Raises ``InvalidSeriesError`` if *rows* is empty or any row is malformed.
    """
    if rows is None:
        raise InvalidSeriesError("OHLC series is required")

    bars = [_parse_row(row, i) for i, row in enumerate(rows)]
    if not bars:
        raise InvalidSeriesError("OHLC series is empty; at least one bar is required")

    bars.sort(key=lambda b: b.open_time)
    return bars
