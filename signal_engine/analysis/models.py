"""Price-analysis data models — typed representations for indicator outputs."""

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True)
class OHLCBar:
    """A single candlestick bar.  ``volume`` is optional (some providers omit it)."""

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.open > self.close


@dataclass(frozen=True)
class MACDResult:
    macd_line: float
    signal_line: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    middle: float
    upper: float
    lower: float

    @property
    def width(self) -> float:
        """Band width normalised by the middle band (0 when middle is 0)."""
        if self.middle == 0:
            return 0.0
        return (self.upper - self.lower) / self.middle


@dataclass(frozen=True)
class IndicatorSet:
    """Latest indicator values for a series.

    ``None`` means the series was too short for that indicator.  Callers
    must treat it as "unavailable", never as zero.
    """

    sma_20: Optional[float] = None
    sma_50: Optional[float] = None
    sma_200: Optional[float] = None
    ema_12: Optional[float] = None
    ema_26: Optional[float] = None
    rsi_14: Optional[float] = None
    macd: Optional[MACDResult] = None
    bollinger: Optional[BollingerBands] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SupportResistance:
    """Significant price levels below (support) and above (resistance) the last close."""

    support: list[float]
    resistance: list[float]

    def to_dict(self) -> dict:
        return {"support": list(self.support), "resistance": list(self.resistance)}


# ── Candlestick patterns ─────────────────────────────────────────────────

BULLISH_ENGULFING = "bullish_engulfing"
BEARISH_ENGULFING = "bearish_engulfing"
MORNING_STAR = "morning_star"
EVENING_STAR = "evening_star"
HAMMER = "hammer"
SHOOTING_STAR = "shooting_star"

BULLISH_PATTERNS: frozenset[str] = frozenset({BULLISH_ENGULFING, MORNING_STAR, HAMMER})
BEARISH_PATTERNS: frozenset[str] = frozenset({BEARISH_ENGULFING, EVENING_STAR, SHOOTING_STAR})
ALL_PATTERNS: frozenset[str] = BULLISH_PATTERNS | BEARISH_PATTERNS
