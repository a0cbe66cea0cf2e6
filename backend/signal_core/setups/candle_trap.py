"""Candle trap detector.

A trap candle (second-to-last bar) is a long-wicked rejection bar near the
EMA(21) that is confirmed by the following bar. Detection runs as a chain
of hard gates:

1. Preconditions - history length, non-doji body, range expansion
2. Shape - long rejection wick, small body, short opposite wick
3. Noise - conflicting or clustered traps, RSI boundary, flat EMA
4. Direction - EMA proximity, RSI zone, trend into the trap, swing extreme
5. Confirmation - next bar closes beyond the trap

A candle that survives every gate is graded A+/A/B/C and carries trade
levels. Any failure produces a NEUTRAL vote naming the gate and reason.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from signal_core.indicators.calculator import IndicatorBundle
from signal_core.indicators.indicators import is_finite
from signal_core.models.candle import Candle
from signal_core.models.config import CandleTrapConfig, IndicatorSettings
from signal_core.models.signal import (
    Direction,
    IndicatorSignal,
    TradeLevels,
    TrapGrade,
)
from signal_core.setups.base import BaseSetup, fmt, rounded
from signal_core.setups.protocol import SetupContext
from signal_core.setups.registry import register_setup

logger = logging.getLogger(__name__)

_MIN_BODY = 1e-9


class TrapStage(str, Enum):
    PRECONDITIONS = "preconditions"
    SHAPE = "shape"
    NOISE = "noise"
    DIRECTION = "direction"
    CONFIRMATION = "confirmation"
    PASSED = "passed"


@dataclass
class TrapAnalysis:
    """Outcome of running the trap gates on one history."""

    direction: Direction
    stage: TrapStage
    reason: str
    grade: TrapGrade | None = None
    confidence: int | None = None
    metrics: dict[str, float] = field(default_factory=dict)
    trade_levels: TradeLevels | None = None

    @property
    def passed(self) -> bool:
        return self.stage is TrapStage.PASSED

    @classmethod
    def reject(cls, stage: TrapStage, reason: str, **metrics: float) -> "TrapAnalysis":
        return cls(direction=Direction.NEUTRAL, stage=stage, reason=reason, metrics=metrics)


def classify_trap_shape(candle: Candle, rules: CandleTrapConfig) -> Direction:
    """Return RISE for a bullish trap shape, FALL for bearish, else NEUTRAL."""
    rng = candle.range_size
    if rng <= 0:
        return Direction.NEUTRAL
    body = candle.body_size
    if body > rules.max_body_ratio * rng:
        return Direction.NEUTRAL

    upper, lower = candle.upper_wick, candle.lower_wick
    if lower >= rules.wick_body_multiple * body and upper < body and lower >= rules.min_wick_ratio * rng:
        return Direction.RISE
    if upper >= rules.wick_body_multiple * body and lower < body and upper >= rules.min_wick_ratio * rng:
        return Direction.FALL
    return Direction.NEUTRAL


class CandleTrapDetector:
    """Runs the trap gates over a candle history and its indicator bundle."""

    def __init__(
        self,
        rules: CandleTrapConfig | None = None,
        periods: IndicatorSettings | None = None,
    ):
        self.rules = rules or CandleTrapConfig()
        self.periods = periods or IndicatorSettings()

    @property
    def required_bars(self) -> int:
        r = self.rules
        lookback = max(
            r.range_average_bars,
            r.cluster_lookback,
            r.opposite_trap_lookback,
            r.swing_lookback,
            r.trend_moves + 1,
            r.ema_slope_bars + 1,
        )
        return max(r.min_history, lookback + 2)

    def analyze(self, candles: Sequence[Candle], bundle: IndicatorBundle) -> TrapAnalysis:
        r = self.rules
        n = len(candles)
        if n < self.required_bars:
            return TrapAnalysis.reject(
                TrapStage.PRECONDITIONS, f"needs {self.required_bars} bars, have {n}"
            )

        t = n - 2
        trap, confirm = candles[t], candles[t + 1]
        rng, body = trap.range_size, trap.body_size

        # Stage 1: preconditions
        if rng <= 0 or body <= r.doji_body_ratio * rng:
            return TrapAnalysis.reject(TrapStage.PRECONDITIONS, "doji-like trap candle")
        prior = candles[t - r.range_average_bars : t]
        avg_range = sum(c.range_size for c in prior) / len(prior)
        if avg_range <= 0:
            return TrapAnalysis.reject(
                TrapStage.PRECONDITIONS, f"no range in the previous {r.range_average_bars} bars"
            )
        expansion = rng / avg_range
        if expansion < r.range_expansion_min:
            return TrapAnalysis.reject(
                TrapStage.PRECONDITIONS,
                f"range {expansion:.2f}x average, needs {r.range_expansion_min:.2f}x",
                expansion=expansion,
            )

        # Stage 2: shape
        direction = classify_trap_shape(trap, r)
        if direction is Direction.NEUTRAL:
            return TrapAnalysis.reject(
                TrapStage.SHAPE,
                f"no trap shape (body {body / rng:.0%} of range, "
                f"lower wick {trap.lower_wick / rng:.0%}, upper wick {trap.upper_wick / rng:.0%})",
                expansion=expansion,
            )

        # Stage 3: noise
        opposite = direction.opposite
        recent = candles[t - r.opposite_trap_lookback : t]
        if any(classify_trap_shape(c, r) is opposite for c in recent):
            return TrapAnalysis.reject(
                TrapStage.NOISE,
                f"opposite trap within {r.opposite_trap_lookback} bars",
            )
        cluster = sum(
            1
            for c in candles[t - r.cluster_lookback : t]
            if classify_trap_shape(c, r) is not Direction.NEUTRAL
        )
        if cluster >= r.cluster_max:
            return TrapAnalysis.reject(
                TrapStage.NOISE,
                f"{cluster} trap candles in the previous {r.cluster_lookback} bars",
            )

        rsi_series = bundle.rsi.get(self.periods.rsi_trap)
        ema_series = bundle.ema.get(self.periods.ema_medium)
        slope_from = t - r.ema_slope_bars
        if (
            rsi_series is None
            or ema_series is None
            or not is_finite(rsi_series[t])
            or not is_finite(ema_series[t])
            or not is_finite(ema_series[slope_from])
        ):
            return TrapAnalysis.reject(TrapStage.NOISE, "indicators warming up")

        rsi_trap = float(rsi_series[t])
        ema_trap = float(ema_series[t])
        # Exact-equality check kept for parity; it almost never triggers on real data
        if rsi_trap in r.rsi_boundaries:
            return TrapAnalysis.reject(
                TrapStage.NOISE, f"RSI({self.periods.rsi_trap}) exactly on boundary {rsi_trap:g}"
            )
        ema_base = float(ema_series[slope_from])
        slope_pct = abs(ema_trap - ema_base) / ema_base * 100 if ema_base else 0.0
        if slope_pct < r.min_ema_slope_pct:
            return TrapAnalysis.reject(
                TrapStage.NOISE,
                f"EMA({self.periods.ema_medium}) slope {slope_pct:.4f}% below {r.min_ema_slope_pct}%",
            )

        # Stage 4: directional checks
        ema_distance_pct = abs(trap.close - ema_trap) / ema_trap * 100 if ema_trap else float("inf")
        if ema_distance_pct > r.ema_proximity_pct:
            return TrapAnalysis.reject(
                TrapStage.DIRECTION,
                f"close {ema_distance_pct:.3f}% from EMA({self.periods.ema_medium}), "
                f"max {r.ema_proximity_pct}%",
            )
        failure = self._check_direction(candles, t, direction, rsi_trap)
        if failure:
            return TrapAnalysis.reject(TrapStage.DIRECTION, failure)

        # Stage 5: confirmation
        confirmed = (
            confirm.close > trap.close if direction is Direction.RISE else confirm.close < trap.close
        )
        if not confirmed:
            return TrapAnalysis.reject(
                TrapStage.CONFIRMATION,
                f"confirmation close {confirm.close:g} does not follow through from {trap.close:g}",
            )

        wick = trap.lower_wick if direction is Direction.RISE else trap.upper_wick
        wick_body = wick / max(body, _MIN_BODY)
        body_ratio = body / rng
        grade, confidence = self._grade(wick_body, body_ratio, expansion)
        levels = self._trade_levels(trap, confirm, direction)

        logger.debug(
            "Candle trap %s graded %s (wick/body %.2f, body %.2f, expansion %.2f)",
            direction.value,
            grade.value,
            wick_body,
            body_ratio,
            expansion,
        )
        return TrapAnalysis(
            direction=direction,
            stage=TrapStage.PASSED,
            reason=f"{grade.value} {direction.value.lower()} trap confirmed",
            grade=grade,
            confidence=confidence,
            metrics={
                "wick_body": wick_body,
                "body_ratio": body_ratio,
                "expansion": expansion,
                "rsi": rsi_trap,
            },
            trade_levels=levels,
        )

    def _check_direction(
        self,
        candles: Sequence[Candle],
        t: int,
        direction: Direction,
        rsi_trap: float,
    ) -> str | None:
        """Return a failure reason, or None when the directional checks pass."""
        r = self.rules
        trap = candles[t]
        moves = range(t - r.trend_moves + 1, t + 1)
        swing = candles[t - r.swing_lookback : t]

        if direction is Direction.RISE:
            if not r.rise_rsi_min <= rsi_trap <= r.rise_rsi_max:
                return f"RSI {rsi_trap:.1f} outside {r.rise_rsi_min:g}-{r.rise_rsi_max:g}"
            lower_lows = sum(1 for j in moves if candles[j].low < candles[j - 1].low)
            if lower_lows < r.min_trend_moves:
                return f"{lower_lows}/{r.trend_moves} lower lows into trap"
            swing_low = min(c.low for c in swing)
            if r.require_sweep:
                if not (trap.low < swing_low < trap.close):
                    return f"no sweep of {r.swing_lookback}-bar low {swing_low:g}"
            elif trap.low < swing_low:
                return f"trap low breaks {r.swing_lookback}-bar low {swing_low:g}"
            return None

        if not r.fall_rsi_min <= rsi_trap <= r.fall_rsi_max:
            return f"RSI {rsi_trap:.1f} outside {r.fall_rsi_min:g}-{r.fall_rsi_max:g}"
        higher_highs = sum(1 for j in moves if candles[j].high > candles[j - 1].high)
        if higher_highs < r.min_trend_moves:
            return f"{higher_highs}/{r.trend_moves} higher highs into trap"
        swing_high = max(c.high for c in swing)
        if r.require_sweep:
            if not (trap.high > swing_high > trap.close):
                return f"no sweep of {r.swing_lookback}-bar high {swing_high:g}"
        elif trap.high > swing_high:
            return f"trap high breaks {r.swing_lookback}-bar high {swing_high:g}"
        return None

    def _grade(self, wick_body: float, body_ratio: float, expansion: float) -> tuple[TrapGrade, int]:
        for band in self.rules.grade_bands:
            if (
                wick_body >= band.min_wick_body
                and body_ratio <= band.max_body_ratio
                and expansion >= band.min_expansion
            ):
                return TrapGrade(band.grade), band.confidence
        return TrapGrade.C, self.rules.fallback_grade_confidence

    def _trade_levels(
        self, trap: Candle, confirm: Candle, direction: Direction
    ) -> TradeLevels | None:
        r = self.rules
        buffer = r.stop_buffer_ratio * trap.range_size
        entry = confirm.close
        if direction is Direction.RISE:
            stop = trap.low - buffer
            risk = entry - stop
            target = entry + risk * r.reward_multiple
        else:
            stop = trap.high + buffer
            risk = stop - entry
            target = entry - risk * r.reward_multiple
        if risk <= 0:
            return None
        return TradeLevels(
            entry=entry,
            stop=stop,
            target=target,
            risk=risk,
            reward_multiple=r.reward_multiple,
        )


@register_setup("candle_trap")
class CandleTrapSetup(BaseSetup):
    name = "candle_trap"
    label = "Candle Trap"

    def __init__(self, config=None):
        super().__init__(config)
        self.detector = CandleTrapDetector(self.config.candle_trap, self.config.indicators)

    def evaluate(self, ctx: SetupContext) -> IndicatorSignal:
        analysis = self.detector.analyze(ctx.candles, ctx.indicators)
        if not analysis.passed:
            aux = {"stage": analysis.stage.value}
            if "expansion" in analysis.metrics:
                aux["expansion"] = rounded(analysis.metrics["expansion"], 3)
            return self._neutral(f"{analysis.stage.value}: {analysis.reason}", aux_values=aux)

        m = analysis.metrics
        return self._vote(
            analysis.direction,
            analysis.confidence,
            f"{analysis.reason} · wick/body {fmt(m['wick_body'])}"
            f" · body {fmt(m['body_ratio'] * 100, 0)}% · range {fmt(m['expansion'])}x",
            aux_values={
                "stage": analysis.stage.value,
                "wick_body": rounded(m["wick_body"], 3),
                "body_ratio": rounded(m["body_ratio"], 3),
                "expansion": rounded(m["expansion"], 3),
                "rsi": rounded(m["rsi"], 2),
            },
            grade=analysis.grade,
            trade_levels=analysis.trade_levels,
        )
