"""Scoring data models — composite scores and the trading signal."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class CompositeScore:
    """Weighted fusion of per-dimension scores.

    ``present`` records which dimensions had input data; absent dimensions
    score 0 and are left out of the confidence calculation.
    """

    form: str  # "full" or "signal"
    dimension_scores: dict[str, float]
    present: dict[str, bool]
    total_score: float
    confidence: float
    rating: str  # A+ | A | B+ | B | C+ | C | D
    trend: str  # strongly_bullish | bullish | neutral | bearish | strongly_bearish

    def to_dict(self) -> dict:
        return {
            "form": self.form,
            **{f"{name}_score": score for name, score in self.dimension_scores.items()},
            "present": dict(self.present),
            "total_score": self.total_score,
            "confidence": self.confidence,
            "rating": self.rating,
            "trend": self.trend,
        }


@dataclass(frozen=True)
class TradingSignal:
    """The engine's actionable recommendation for one asset/timeframe."""

    overall_signal: str  # strong_buy | buy | neutral | sell | strong_sell
    confidence: float
    risk_level: str  # low | medium | high
    entry_points: list[float] = field(default_factory=list)
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "overall_signal": self.overall_signal,
            "confidence": self.confidence,
            "risk_level": self.risk_level,
            "entry_points": list(self.entry_points),
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
        }
