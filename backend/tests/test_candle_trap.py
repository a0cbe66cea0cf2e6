"""Tests for the candle trap detector."""

import numpy as np
import pytest

from signal_core.indicators import IndicatorBundle
from signal_core.models import Candle, Direction, EngineConfig, TrapGrade
from signal_core.models.config import CandleTrapConfig
from signal_core.setups import (
    CandleTrapDetector,
    CandleTrapSetup,
    SetupContext,
    TrapStage,
    classify_trap_shape,
)

BAR_MS = 120_000


def full_body_bar(low: float, index: int, green: bool = True, size: float = 0.3) -> Candle:
    """Wickless bar spanning [low, low + size]."""
    high = low + size
    open_price, close = (low, high) if green else (high, low)
    return Candle(open=open_price, high=high, low=low, close=close, timestamp=index * BAR_MS)


def make_bundle(candles: list[Candle], rsi6: np.ndarray, ema21: np.ndarray) -> IndicatorBundle:
    return IndicatorBundle(
        opens=np.array([c.open for c in candles]),
        highs=np.array([c.high for c in candles]),
        lows=np.array([c.low for c in candles]),
        closes=np.array([c.close for c in candles]),
        ema={21: ema21},
        rsi={6: rsi6},
    )


def bullish_trap_scenario(
    trap: Candle | None = None,
    confirm: Candle | None = None,
    swing_low: float = 99.0,
    trap_rsi: float = 32.0,
):
    """32 bars: a bullish trap at index 30 confirmed by bar 31.

    Bars 0-24 sit at 100.5-100.8 with one dip to `swing_low` at bar 12,
    then five bars step down into the trap (lower lows).
    """
    lows = [100.5] * 25
    lows[12] = swing_low
    lows += [100.4, 100.3, 100.2, 100.1, 100.0]
    candles = [full_body_bar(low, i, green=i < 25) for i, low in enumerate(lows)]
    candles.append(trap or Candle(open=100.0, high=100.12, low=99.5, close=100.1, timestamp=30 * BAR_MS))
    candles.append(
        confirm or Candle(open=100.1, high=100.35, low=100.05, close=100.3, timestamp=31 * BAR_MS)
    )

    rsi6 = np.full(32, 50.0)
    rsi6[30] = trap_rsi
    ema21 = np.full(32, 100.2)
    ema21[30:] = 100.05
    return candles, rsi6, ema21


def mirror(candles: list[Candle], rsi6: np.ndarray, ema21: np.ndarray, axis: float = 200.0):
    """Reflect a scenario through `axis` (bullish becomes bearish)."""
    mirrored = [
        Candle(
            open=axis - c.open,
            high=axis - c.low,
            low=axis - c.high,
            close=axis - c.close,
            timestamp=c.timestamp,
        )
        for c in candles
    ]
    return mirrored, 100.0 - rsi6, axis - ema21


def analyze(candles, rsi6, ema21, **rules):
    detector = CandleTrapDetector(CandleTrapConfig(**rules))
    return detector.analyze(candles, make_bundle(candles, rsi6, ema21))


class TestTrapShape:
    def test_bullish_shape(self):
        candle = Candle(open=100.0, high=100.12, low=99.5, close=100.1, timestamp=0)

        assert classify_trap_shape(candle, CandleTrapConfig()) is Direction.RISE

    def test_bearish_shape(self):
        candle = Candle(open=100.0, high=100.5, low=99.88, close=99.9, timestamp=0)

        assert classify_trap_shape(candle, CandleTrapConfig()) is Direction.FALL

    def test_half_body_is_not_a_trap(self):
        # body = 0.5 * range, lower wick 0, upper wick 0.5 * range
        candle = Candle(open=100.0, high=101.0, low=100.0, close=100.5, timestamp=0)

        assert classify_trap_shape(candle, CandleTrapConfig()) is Direction.NEUTRAL

    def test_zero_range_is_not_a_trap(self):
        candle = Candle(open=100.0, high=100.0, low=100.0, close=100.0, timestamp=0)

        assert classify_trap_shape(candle, CandleTrapConfig()) is Direction.NEUTRAL


class TestCandleTrapDetector:
    def test_bullish_trap_passes_with_grade_a(self):
        candles, rsi6, ema21 = bullish_trap_scenario()

        result = analyze(candles, rsi6, ema21)

        assert result.passed
        assert result.direction is Direction.RISE
        assert result.grade is TrapGrade.A
        assert result.confidence == 88
        assert result.metrics["expansion"] == pytest.approx(0.62 / 0.3)

    def test_bullish_trade_levels(self):
        candles, rsi6, ema21 = bullish_trap_scenario()

        levels = analyze(candles, rsi6, ema21).trade_levels

        assert levels.entry == pytest.approx(100.3)
        assert levels.stop == pytest.approx(99.5 - 0.062)
        assert levels.risk == pytest.approx(100.3 - 99.438)
        assert levels.target == pytest.approx(100.3 + 0.862 * 1.5)
        assert levels.reward_multiple == 1.5

    def test_bearish_trap_mirrors_bullish(self):
        candles, rsi6, ema21 = mirror(*bullish_trap_scenario())

        result = analyze(candles, rsi6, ema21)

        assert result.passed
        assert result.direction is Direction.FALL
        assert result.grade is TrapGrade.A
        assert result.trade_levels.stop == pytest.approx(200.0 - 99.5 + 0.062)
        assert result.trade_levels.target < result.trade_levels.entry

    def test_insufficient_history(self):
        candles, rsi6, ema21 = bullish_trap_scenario()

        result = analyze(candles[-20:], rsi6[-20:], ema21[-20:])

        assert result.stage is TrapStage.PRECONDITIONS
        assert "needs 30 bars" in result.reason

    def test_doji_rejected(self):
        trap = Candle(open=100.0, high=100.12, low=99.5, close=100.01, timestamp=30 * BAR_MS)
        candles, rsi6, ema21 = bullish_trap_scenario(trap=trap)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.PRECONDITIONS
        assert "doji" in result.reason

    def test_range_expansion_required(self):
        candles, rsi6, ema21 = bullish_trap_scenario()

        result = analyze(candles, rsi6, ema21, range_expansion_min=3.0)

        assert result.stage is TrapStage.PRECONDITIONS
        assert "average" in result.reason

    def test_half_body_candle_rejected_at_shape_stage(self):
        trap = Candle(open=100.0, high=100.62, low=100.0, close=100.31, timestamp=30 * BAR_MS)
        candles, rsi6, ema21 = bullish_trap_scenario(trap=trap)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.SHAPE
        assert result.direction is Direction.NEUTRAL
        assert "no trap shape" in result.reason

    def test_opposite_trap_nearby_is_noise(self):
        candles, rsi6, ema21 = bullish_trap_scenario()
        candles[28] = Candle(open=100.15, high=100.4, low=100.1, close=100.1, timestamp=28 * BAR_MS)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.NOISE
        assert "opposite trap" in result.reason

    def test_clustered_traps_are_noise(self):
        candles, rsi6, ema21 = bullish_trap_scenario()
        for i in (20, 22, 24):
            candles[i] = Candle(open=100.6, high=100.64, low=100.0, close=100.63, timestamp=i * BAR_MS)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.NOISE
        assert "3 trap candles in the previous 10 bars" in result.reason

    def test_rsi_exact_boundary_is_noise(self):
        candles, rsi6, ema21 = bullish_trap_scenario(trap_rsi=40.0)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.NOISE
        assert "boundary" in result.reason

    def test_flat_ema_is_noise(self):
        candles, rsi6, ema21 = bullish_trap_scenario()
        ema21[:] = 100.05

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.NOISE
        assert "slope" in result.reason

    def test_rsi_outside_zone(self):
        candles, rsi6, ema21 = bullish_trap_scenario(trap_rsi=45.0)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.DIRECTION
        assert "RSI" in result.reason

    def test_far_from_ema(self):
        candles, rsi6, ema21 = bullish_trap_scenario()
        ema21[30] = 101.0

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.DIRECTION
        assert "from EMA" in result.reason

    def test_needs_lower_lows_into_trap(self):
        candles, rsi6, ema21 = bullish_trap_scenario()
        for i in range(25, 30):
            candles[i] = full_body_bar(100.0, i, green=False)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.DIRECTION
        assert result.reason == "1/5 lower lows into trap"

    def test_needs_higher_highs_into_bearish_trap(self):
        candles, rsi6, ema21 = bullish_trap_scenario()
        for i in range(25, 30):
            candles[i] = full_body_bar(100.0, i, green=False)
        candles, rsi6, ema21 = mirror(candles, rsi6, ema21)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.DIRECTION
        assert result.reason == "1/5 higher highs into trap"

    def test_breaking_swing_low_rejected(self):
        candles, rsi6, ema21 = bullish_trap_scenario(swing_low=99.6)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.DIRECTION
        assert "breaks" in result.reason

    def test_sweep_variant_requires_breach(self):
        candles, rsi6, ema21 = bullish_trap_scenario()

        result = analyze(candles, rsi6, ema21, require_sweep=True)

        assert result.stage is TrapStage.DIRECTION
        assert "no sweep" in result.reason

    def test_sweep_variant_accepts_failed_breakdown(self):
        candles, rsi6, ema21 = bullish_trap_scenario(swing_low=99.6)

        result = analyze(candles, rsi6, ema21, require_sweep=True)

        assert result.passed
        assert result.direction is Direction.RISE

    def test_confirmation_required(self):
        confirm = Candle(open=100.1, high=100.2, low=99.9, close=100.0, timestamp=31 * BAR_MS)
        candles, rsi6, ema21 = bullish_trap_scenario(confirm=confirm)

        result = analyze(candles, rsi6, ema21)

        assert result.stage is TrapStage.CONFIRMATION


class TestGrading:
    @pytest.mark.parametrize(
        "wick_body,body_ratio,expansion,grade,confidence",
        [
            (5.0, 0.10, 2.0, TrapGrade.A_PLUS, 95),
            (5.0, 0.20, 2.0, TrapGrade.A, 88),
            (2.6, 0.28, 1.1, TrapGrade.B, 78),
            (2.0, 0.30, 0.9, TrapGrade.C, 65),
        ],
    )
    def test_grade_bands(self, wick_body, body_ratio, expansion, grade, confidence):
        detector = CandleTrapDetector()

        assert detector._grade(wick_body, body_ratio, expansion) == (grade, confidence)


class TestCandleTrapSetup:
    def test_vote_carries_grade_and_levels(self):
        candles, rsi6, ema21 = bullish_trap_scenario()
        setup = CandleTrapSetup(EngineConfig())

        vote = setup.evaluate(SetupContext(candles, make_bundle(candles, rsi6, ema21)))

        assert vote.name == "Candle Trap"
        assert vote.direction is Direction.RISE
        assert vote.confidence == 88
        assert vote.grade is TrapGrade.A
        assert vote.trade_levels is not None
        assert vote.aux_values["stage"] == "passed"

    def test_rejection_is_neutral_with_reason(self):
        trap = Candle(open=100.0, high=100.62, low=100.0, close=100.31, timestamp=30 * BAR_MS)
        candles, rsi6, ema21 = bullish_trap_scenario(trap=trap)

        vote = CandleTrapSetup().evaluate(SetupContext(candles, make_bundle(candles, rsi6, ema21)))

        assert vote.direction is Direction.NEUTRAL
        assert vote.confidence == 45
        assert vote.detail.startswith("shape: no trap shape")
        assert vote.aux_values["stage"] == "shape"
        assert vote.grade is None
