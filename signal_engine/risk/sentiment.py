"""Sentiment normalisation — maps a raw sentiment snapshot onto [-1, 1]."""

from typing import Any, Optional

from signal_engine.risk.fields import finite_float
from signal_engine.risk.models import SentimentSnapshot

# Magnitude above which the sentiment is considered "strong".
STRONG_MAGNITUDE = 0.5
MAGNITUDE_BONUS = 0.2

_NUMERIC_FIELDS = (
    "score",
    "magnitude",
    "positive_percentage",
    "negative_percentage",
    "mentions",
)


def sentiment_spread(snapshot: Optional[SentimentSnapshot]) -> float:
    """Absolute positive/negative percentage spread as a fraction (0 when absent)."""
    if snapshot is None:
        return 0.0
    return abs(snapshot.positive_percentage - snapshot.negative_percentage) / 100.0


def normalize_sentiment(snapshot: Optional[SentimentSnapshot]) -> float:
    """Blend score, magnitude and distribution into a bounded score.

    ``0.4 × score + bonus + 0.4 × (positive% − negative%) / 100``, clamped to
    [-1, 1].  The magnitude bonus (0.2 when magnitude > 0.5) is applied in
    the direction of the score, so strong bearish sentiment pushes further
    down rather than being softened.  A missing snapshot is neutral (0).
    """
    if snapshot is None:
        return 0.0

    bonus = 0.0
    if snapshot.magnitude > STRONG_MAGNITUDE and snapshot.score != 0:
        bonus = MAGNITUDE_BONUS if snapshot.score > 0 else -MAGNITUDE_BONUS

    distribution = (snapshot.positive_percentage - snapshot.negative_percentage) / 100.0
    raw = snapshot.score * 0.4 + bonus + distribution * 0.4
    return max(-1.0, min(1.0, raw))


def validate_sentiment(snapshot: Optional[SentimentSnapshot]) -> None:
    """Raise ``InvalidInputError`` if any numeric field is NaN or infinite."""
    if snapshot is None:
        return
    for name in _NUMERIC_FIELDS:
        finite_float(getattr(snapshot, name), f"sentiment.{name}")


def parse_sentiment(payload: Optional[dict[str, Any]]) -> Optional[SentimentSnapshot]:
    """Build a ``SentimentSnapshot`` from a request payload (``None`` passes through).

    Missing fields default to 0.  Raises ``InvalidInputError`` for
    non-numeric or non-finite values.
    """
    if payload is None:
        return None

    def _read(name: str) -> float:
        raw = payload.get(name)
        return 0.0 if raw is None else finite_float(raw, f"sentiment.{name}")

    return SentimentSnapshot(
        score=_read("score"),
        magnitude=_read("magnitude"),
        positive_percentage=_read("positive_percentage"),
        negative_percentage=_read("negative_percentage"),
        mentions=int(_read("mentions")),
    )
