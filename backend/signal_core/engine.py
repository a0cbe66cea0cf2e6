"""Signal classification engine.

Pipeline for one call:
1. Compute every indicator series once for the candle history
2. Below the warm-up length, return a NEUTRAL insufficient-history result
3. Evaluate each enabled setup; a setup that raises becomes a NEUTRAL vote
4. Tally the votes and attach indicator snapshots for display
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

import signal_core.setups  # noqa: F401  (registers built-in setups)
from signal_core.aggregator import VoteTally, tally_votes
from signal_core.indicators.calculator import IndicatorBundle, IndicatorCalculator
from signal_core.indicators.indicators import finite_or_none
from signal_core.models.candle import Candle
from signal_core.models.config import EngineConfig, get_preset
from signal_core.models.signal import (
    CombinedLabel,
    Direction,
    IndicatorSignal,
    SignalResult,
    Strength,
)
from signal_core.setups.protocol import Setup, SetupContext
from signal_core.setups.registry import create_setup

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SignalEngine:
    """Classifies a candle history into a composite RISE/FALL/NEUTRAL signal.

    The engine holds only configuration; every call recomputes from the
    candles it is given, so one instance can be shared freely.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        preset: str = "canonical",
        clock: Callable[[], int] | None = None,
    ):
        """
        Args:
            config: Full rule set. When omitted the named preset is used.
            preset: Preset name, recorded on every result.
            clock: Returns wall-clock milliseconds for result timestamps.

        Raises:
            KeyError: Unknown preset or setup name.
        """
        self.config = config if config is not None else get_preset(preset)
        self.preset = preset
        self.calculator = IndicatorCalculator(self.config.indicators)
        self.setups: list[Setup] = [
            create_setup(name, config=self.config) for name in self.config.setups
        ]
        self._clock = clock or _now_ms
        logger.debug(
            "SignalEngine ready: preset=%s setups=%s",
            preset,
            [s.name for s in self.setups],
        )

    def classify(self, candles: Sequence[Candle]) -> SignalResult:
        """Classify the latest bar of `candles` (oldest first)."""
        candles = list(candles)
        bundle = self.calculator.calculate(candles)
        n = len(candles)

        if n < self.config.min_bars:
            return self._build_result(
                candles,
                bundle,
                votes=[],
                tally=None,
                warmed_up=False,
                reason=f"insufficient history: {n}/{self.config.min_bars} bars",
            )

        ctx = SetupContext(candles=candles, indicators=bundle)
        votes = [self._evaluate(setup, ctx) for setup in self.setups]
        tally = tally_votes(votes, self.config.voting)

        logger.debug(
            "Classified %d bars: %s (%d rise / %d fall / %d neutral)",
            n,
            tally.combined_label.value,
            tally.rise_count,
            tally.fall_count,
            tally.neutral_count,
        )
        return self._build_result(candles, bundle, votes, tally, warmed_up=True, reason="")

    def _evaluate(self, setup: Setup, ctx: SetupContext) -> IndicatorSignal:
        try:
            return setup.evaluate(ctx)
        except Exception as e:
            logger.exception("Setup %s failed", setup.name)
            return IndicatorSignal(
                name=setup.label,
                direction=Direction.NEUTRAL,
                confidence=0,
                detail=f"evaluation error: {type(e).__name__}: {e}",
                aux_values={"evaluated": False},
            )

    def _build_result(
        self,
        candles: list[Candle],
        bundle: IndicatorBundle,
        votes: list[IndicatorSignal],
        tally: VoteTally | None,
        warmed_up: bool,
        reason: str,
    ) -> SignalResult:
        periods = self.config.indicators

        def latest(series_map: dict, period: int) -> float | None:
            series = series_map.get(period)
            if series is None or len(series) == 0:
                return None
            return finite_or_none(series[-1])

        if tally is None:
            summary = dict(
                direction=Direction.NEUTRAL,
                strength=Strength.NONE,
                confidence=0,
                confidence_score=f"0/{len(votes)}",
                combined_label=CombinedLabel.NEUTRAL,
                rise_count=0,
                fall_count=0,
                neutral_count=len(votes),
            )
        else:
            summary = dict(
                direction=tally.direction,
                strength=tally.strength,
                confidence=tally.confidence,
                confidence_score=tally.confidence_score,
                combined_label=tally.combined_label,
                rise_count=tally.rise_count,
                fall_count=tally.fall_count,
                neutral_count=tally.neutral_count,
            )

        return SignalResult(
            **summary,
            votes=votes,
            timestamp=self._clock(),
            bar_timestamp=candles[-1].timestamp if candles else None,
            bar_count=len(candles),
            warmed_up=warmed_up,
            preset=self.preset,
            reason=reason,
            ichimoku=bundle.ichimoku,
            support_resistance=bundle.levels,
            stochastic=bundle.stochastic,
            macd=bundle.macd,
            atr=bundle.atr_snapshot,
            adx=bundle.adx,
            bollinger=bundle.bollinger,
            ema21=latest(bundle.ema, periods.ema_medium),
            ema50=latest(bundle.ema, periods.ema_slow),
            rsi7=latest(bundle.rsi, periods.rsi_fast),
        )


def generate_signal(
    candles: Sequence[Candle],
    config: EngineConfig | None = None,
) -> SignalResult:
    """Classify `candles` with a one-off engine (canonical preset by default)."""
    return SignalEngine(config).classify(candles)
