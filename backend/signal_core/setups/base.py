"""Shared behaviour for rule-based setups."""

from __future__ import annotations

import math

from signal_core.models.candle import Candle
from signal_core.models.config import EngineConfig
from signal_core.models.signal import Direction, IndicatorSignal

_MIN_RANGE = 1e-9


def fmt(value: float | None, digits: int = 2) -> str:
    """Format an indicator value for a vote detail string."""
    if value is None or not math.isfinite(value):
        return "n/a"
    return f"{value:.{digits}f}"


def rounded(value: float | None, digits: int = 5) -> float | None:
    """Round a value for aux_values, mapping NaN/inf to None."""
    if value is None or not math.isfinite(value):
        return None
    return round(float(value), digits)


def has_dominant_body(candle: Candle, ratio: float, direction: Direction) -> bool:
    """Check for a candle whose body in `direction` covers `ratio` of its range."""
    body = candle.close - candle.open
    if direction is Direction.FALL:
        body = -body
    return body > 0 and body / max(candle.range_size, _MIN_RANGE) >= ratio


class BaseSetup:
    """Base class for setups.

    Subclasses set `name` and `label` and implement `evaluate`. The helpers
    build votes with the confidence clamped to 0..100.
    """

    name: str = ""
    label: str = ""

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()

    def evaluate(self, ctx) -> IndicatorSignal:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    def _vote(
        self,
        direction: Direction,
        confidence: int,
        detail: str,
        **kwargs,
    ) -> IndicatorSignal:
        return IndicatorSignal(
            name=self.label,
            direction=direction,
            confidence=min(max(int(confidence), 0), 100),
            detail=detail,
            **kwargs,
        )

    def _neutral(self, detail: str, **kwargs) -> IndicatorSignal:
        return self._vote(
            Direction.NEUTRAL, self.config.neutral_confidence, detail, **kwargs
        )

    def _not_evaluated(self, reason: str) -> IndicatorSignal:
        return self._vote(
            Direction.NEUTRAL,
            0,
            f"not evaluated: {reason}",
            aux_values={"evaluated": False},
        )
