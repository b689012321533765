"""Signal engine — orchestrates one scoring pass per call.

Analyzers run first, then the composite scorer, then the signal generator.
The engine holds no mutable state between calls and performs no I/O, so
instances can be shared freely across threads.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from signal_engine.analysis.indicators import compute_indicators
from signal_engine.analysis.levels import find_support_resistance
from signal_engine.analysis.models import IndicatorSet, OHLCBar, SupportResistance
from signal_engine.analysis.ohlc import parse_series
from signal_engine.analysis.patterns import detect_patterns
from signal_engine.errors import InvalidInputError, InvalidSeriesError, NumericCorruptionError
from signal_engine.risk.models import (
    OnChainActivity,
    OnChainSnapshot,
    RiskMetrics,
    SentimentSnapshot,
)
from signal_engine.risk.onchain import (
    analyze_activity,
    analyze_onchain,
    parse_onchain,
    validate_onchain,
)
from signal_engine.risk.sentiment import parse_sentiment, validate_sentiment
from signal_engine.scoring.composite import DimensionInputs, full_composite, signal_composite
from signal_engine.scoring.models import CompositeScore, TradingSignal
from signal_engine.scoring.signals import DEFAULT_LARGE_TX_ALERT_COUNT, generate_signal

logger = logging.getLogger("signal_engine")

TIMEFRAMES = ("1d", "1w", "1m", "3m")


@dataclass(frozen=True)
class EngineRequest:
    asset_id: str
    timeframe: str
    ohlc: list[OHLCBar]
    onchain: Optional[OnChainSnapshot] = None
    sentiment: Optional[SentimentSnapshot] = None


@dataclass(frozen=True)
class EngineResult:
    """Everything computed for one request, ready to hand to persistence."""

    asset_id: str
    timeframe: str
    indicators: IndicatorSet
    support_resistance: SupportResistance
    patterns: list[str]
    risk_metrics: Optional[RiskMetrics]
    onchain_activity: Optional[OnChainActivity]
    composite: CompositeScore
    signal_composite: CompositeScore
    signal: TradingSignal
    computed_at: str
    onchain_present: bool = False
    sentiment_present: bool = False

    @property
    def inputs_present(self) -> dict[str, bool]:
        return {
            "ohlc": True,
            "onchain": self.onchain_present,
            "sentiment": self.sentiment_present,
        }

    def to_dict(self) -> dict:
        technical = self.indicators.to_dict()
        technical["support_resistance"] = self.support_resistance.to_dict()
        technical["patterns"] = list(self.patterns)
        return {
            "asset_id": self.asset_id,
            "timeframe": self.timeframe,
            "technical_indicators": technical,
            "risk_metrics": self.risk_metrics.to_dict() if self.risk_metrics else None,
            "onchain_activity": (
                self.onchain_activity.to_dict() if self.onchain_activity else None
            ),
            "composite": self.composite.to_dict(),
            "signal_composite": self.signal_composite.to_dict(),
            "signal": self.signal.to_dict(),
            "inputs_present": self.inputs_present,
            "computed_at": self.computed_at,
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def assert_finite(value: Any, path: str = "result") -> None:
    """Walk a nested dict/list and raise on the first NaN or infinity."""
    if isinstance(value, float):
        if not math.isfinite(value):
            raise NumericCorruptionError(path, value)
    elif isinstance(value, dict):
        for key, item in value.items():
            assert_finite(item, f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            assert_finite(item, f"{path}[{i}]")


def parse_request(payload: dict) -> EngineRequest:
    """Validate the shape of a raw request dict and build an ``EngineRequest``.

    Raises ``InvalidSeriesError`` for an empty or malformed OHLC series and
    ``InvalidInputError`` for every other shape problem.
    """
    if not isinstance(payload, dict):
        raise InvalidInputError("Request body must be a JSON object")

    asset_id = payload.get("asset_id")
    if not asset_id:
        raise InvalidInputError("asset_id is required")

    timeframe = payload.get("timeframe", "1d")
    if timeframe not in TIMEFRAMES:
        raise InvalidInputError(
            f"Unknown timeframe '{timeframe}'. Available: {', '.join(TIMEFRAMES)}"
        )

    ohlc = parse_series(payload.get("ohlc"))

    try:
        onchain = parse_onchain(payload.get("onchain"))
        sentiment = parse_sentiment(payload.get("sentiment"))
    except InvalidInputError:
        raise
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidInputError(f"Malformed snapshot: {exc}") from exc

    return EngineRequest(
        asset_id=str(asset_id),
        timeframe=timeframe,
        ohlc=ohlc,
        onchain=onchain,
        sentiment=sentiment,
    )


class SignalEngine:
    """Stateless technical signal and risk scoring engine.

    Args:
        large_tx_alert_count: Large-transaction count above which the
            on-chain component raises the risk level.
        clock: Returns the current UTC time; only used for ``computed_at``.
    """

    def __init__(
        self,
        large_tx_alert_count: int = DEFAULT_LARGE_TX_ALERT_COUNT,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._large_tx_alert_count = large_tx_alert_count
        self._clock = clock

    def evaluate(self, request: EngineRequest) -> EngineResult:
        """Run the full scoring pipeline for *request*.

        Raises ``InvalidSeriesError`` if the series is empty or holds a
        non-finite bar, ``InvalidInputError`` if a snapshot holds a
        non-finite number, and ``NumericCorruptionError`` if any output
        number is non-finite.
        """
        if not request.ohlc:
            raise InvalidSeriesError("OHLC series is empty; at least one bar is required")
        for i, bar in enumerate(request.ohlc):
            if not all(math.isfinite(p) for p in (bar.open, bar.high, bar.low, bar.close)):
                raise InvalidSeriesError(f"Bar {i}: prices must be finite")
        validate_onchain(request.onchain)
        validate_sentiment(request.sentiment)

        series = request.ohlc
        indicators = compute_indicators(series)
        levels = find_support_resistance(series)
        patterns = detect_patterns(series)

        risk_metrics = None
        activity = None
        if request.onchain is not None:
            risk_metrics = analyze_onchain(request.onchain)
            activity = analyze_activity(request.onchain)

        inputs = DimensionInputs(
            series=series,
            indicators=indicators,
            patterns=patterns,
            onchain=request.onchain,
            risk_metrics=risk_metrics,
            sentiment=request.sentiment,
        )
        composite = full_composite(inputs)
        sig_composite = signal_composite(inputs)
        signal = generate_signal(
            sig_composite,
            indicators,
            levels,
            sentiment=request.sentiment,
            onchain=request.onchain,
            large_tx_alert_count=self._large_tx_alert_count,
        )

        result = EngineResult(
            asset_id=request.asset_id,
            timeframe=request.timeframe,
            indicators=indicators,
            support_resistance=levels,
            patterns=patterns,
            risk_metrics=risk_metrics,
            onchain_activity=activity,
            composite=composite,
            signal_composite=sig_composite,
            signal=signal,
            computed_at=self._clock().isoformat(),
            onchain_present=request.onchain is not None,
            sentiment_present=request.sentiment is not None,
        )
        assert_finite(result.to_dict())

        logger.info(
            "Scored %s/%s: %s (total=%.3f, risk=%s, bars=%d)",
            request.asset_id, request.timeframe, signal.overall_signal,
            sig_composite.total_score, signal.risk_level, len(series),
        )
        return result

    def evaluate_payload(self, payload: dict) -> dict:
        """Validate a raw request dict, evaluate it and return the output record."""
        return self.evaluate(parse_request(payload)).to_dict()
