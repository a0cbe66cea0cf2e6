"""Setup protocol defining the interface all setups must implement.

This module provides:
- SetupContext: Everything a setup may read for one evaluation
- Setup: Runtime-checkable Protocol that setups must satisfy
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

from signal_core.indicators.calculator import IndicatorBundle
from signal_core.models.candle import Candle
from signal_core.models.signal import IndicatorSignal


@dataclass(frozen=True)
class SetupContext:
    """Input for one evaluation.

    Attributes:
        candles: Full candle history, oldest first.
        indicators: Series and snapshots computed once for this history.
    """

    candles: Sequence[Candle]
    indicators: IndicatorBundle

    @property
    def last(self) -> int:
        return len(self.candles) - 1


@runtime_checkable
class Setup(Protocol):
    """Protocol that every rule-based setup must implement.

    A setup is stateless between calls: it reads the context and returns
    exactly one vote. Anything it needs from earlier bars is re-derived from
    the context.
    """

    @property
    def name(self) -> str:
        """Unique registry name (e.g., 'trend_filter')."""
        ...

    @property
    def label(self) -> str:
        """Display name used on the vote (e.g., 'Trend Filter')."""
        ...

    def evaluate(self, ctx: SetupContext) -> IndicatorSignal:
        """Evaluate the setup on the latest bar of the context."""
        ...
