"""Engine error taxonomy.

Short history and missing optional inputs are not errors (they surface as
null indicators and ``inputs_present`` flags).  Only malformed requests and
numeric corruption raise.
"""


class EngineError(Exception):
    """Base class for all errors raised by the scoring engine."""


class InvalidInputError(EngineError, ValueError):
    """The request cannot be scored: unknown timeframe, missing asset id, or
    a malformed on-chain / sentiment snapshot.  Maps to HTTP 422.
    """


class InvalidSeriesError(InvalidInputError):
    """The OHLC series is empty or contains malformed bars."""


class NumericCorruptionError(EngineError, ArithmeticError):
    """A non-finite value reached the output record.

    This is always a defect inside the engine and maps to HTTP 500.  A
    corrupted number must never be returned as a plausible-looking signal.
    """

    def __init__(self, field_path: str, value: float) -> None:
        super().__init__(f"Non-finite value {value!r} at '{field_path}'")
        self.field_path = field_path
        self.value = value
