"""Trend continuation: pullback to a level with RSI leaving an extreme."""

from signal_core.indicators.indicators import is_finite
from signal_core.indicators.levels import is_near_level
from signal_core.models.signal import Direction, IndicatorSignal
from signal_core.setups.base import BaseSetup, fmt, rounded
from signal_core.setups.protocol import SetupContext
from signal_core.setups.registry import register_setup


@register_setup("trend_continuation")
class TrendContinuationSetup(BaseSetup):
    name = "trend_continuation"
    label = "Setup 1: Trend-Continuation Mode"

    def evaluate(self, ctx: SetupContext) -> IndicatorSignal:
        periods = self.config.indicators
        rules = self.config.continuation
        ind = ctx.indicators
        last = ctx.last

        rsi_fast = ind.rsi.get(periods.rsi_fast)
        ema_medium = ind.ema.get(periods.ema_medium)
        if (
            last < 1
            or rsi_fast is None
            or ema_medium is None
            or not is_finite(rsi_fast[last])
            or not is_finite(rsi_fast[last - 1])
            or not is_finite(ema_medium[last])
        ):
            return self._not_evaluated(
                f"RSI({periods.rsi_fast})/EMA({periods.ema_medium}) warming up"
            )

        close = ctx.candles[last].close
        rsi_now = float(rsi_fast[last])
        rsi_prev = float(rsi_fast[last - 1])
        ema_now = float(ema_medium[last])
        levels = ind.levels

        direction = Direction.NEUTRAL
        if (
            close > ema_now
            and is_near_level(close, levels.nearest_support, rules.near_level_pct)
            and rsi_prev <= rules.rsi_recovery_level < rsi_now
        ):
            direction = Direction.RISE
        elif (
            close < ema_now
            and is_near_level(close, levels.nearest_resistance, rules.near_level_pct)
            and rsi_prev >= rules.rsi_rollover_level > rsi_now
        ):
            direction = Direction.FALL

        aux = {"rsi": rounded(rsi_now, 2), "ema": rounded(ema_now)}
        summary = (
            f"RSI({periods.rsi_fast}) {fmt(rsi_prev, 1)} -> {fmt(rsi_now, 1)}"
            f" · EMA({periods.ema_medium}) {fmt(ema_now, 4)}"
        )
        if direction is Direction.NEUTRAL:
            return self._neutral(f"No continuation · {summary}", aux_values=aux)

        side = "Uptrend pullback" if direction is Direction.RISE else "Downtrend pullback"
        return self._vote(direction, rules.confidence, f"{side} · {summary}", aux_values=aux)
