"""Scalp machine: RSI(3) midline flip with candle colour change."""

from signal_core.indicators.indicators import is_finite
from signal_core.models.signal import Direction, IndicatorSignal
from signal_core.setups.base import BaseSetup, fmt, rounded
from signal_core.setups.protocol import SetupContext
from signal_core.setups.registry import register_setup


@register_setup("scalp")
class ScalpSetup(BaseSetup):
    """Momentum flip on RSI(3) across 50 with a colour change through EMA(9).

    The raw trigger is evaluated at any bar index over the precomputed
    series. Cooldown and hard invalidation replay it over earlier bars
    instead of remembering past triggers, so the setup holds no state.
    """

    name = "scalp"
    label = "Scalp Machine"

    def raw_trigger(self, ctx: SetupContext, i: int) -> Direction:
        """Evaluate the unfiltered trigger at bar `i`."""
        periods = self.config.indicators
        rules = self.config.scalp
        ind = ctx.indicators
        if i < 1:
            return Direction.NEUTRAL

        rsi_scalp = ind.rsi.get(periods.rsi_scalp)
        ema_scalp = ind.ema.get(periods.ema_scalp)
        if rsi_scalp is None or ema_scalp is None or ind.atr is None:
            return Direction.NEUTRAL
        rsi_prev, rsi_now = rsi_scalp[i - 1], rsi_scalp[i]
        if not all(is_finite(v) for v in (rsi_prev, rsi_now, ema_scalp[i], ind.atr[i])):
            return Direction.NEUTRAL
        if not self.passes_size_filter(ctx, i):
            return Direction.NEUTRAL

        previous, current = ctx.candles[i - 1], ctx.candles[i]
        if (
            rsi_prev < rules.rsi_midline <= rsi_now
            and previous.is_bearish
            and current.is_bullish
            and current.close > ema_scalp[i]
        ):
            return Direction.RISE
        if (
            rsi_prev > rules.rsi_midline >= rsi_now
            and previous.is_bullish
            and current.is_bearish
            and current.close < ema_scalp[i]
        ):
            return Direction.FALL
        return Direction.NEUTRAL

    def passes_size_filter(self, ctx: SetupContext, i: int) -> bool:
        """Bar `i` and enough of its recent bars must clear the ATR body floor.

        Each bar is measured against the ATR at that bar.
        """
        rules = self.config.scalp
        atr_series = ctx.indicators.atr

        def clears_floor(j: int) -> bool:
            value = atr_series[j]
            if not is_finite(value):
                return False
            return ctx.candles[j].body_size >= rules.min_body_atr_ratio * float(value)

        if not clears_floor(i):
            return False
        window = range(max(i - rules.size_check_bars + 1, 0), i + 1)
        return sum(1 for j in window if clears_floor(j)) >= rules.size_check_min_pass

    def in_cooldown(self, ctx: SetupContext, direction: Direction) -> bool:
        last = ctx.last
        start = max(last - self.config.scalp.cooldown_bars, 1)
        return any(self.raw_trigger(ctx, i) is direction for i in range(start, last))

    def is_invalidated(self, ctx: SetupContext, direction: Direction) -> bool:
        """Check whether the preceding same-direction trigger was engulfed.

        The latest raw trigger within the invalidation lookback is engulfed
        when a later opposite-colour candle covers its whole body.
        """
        last = ctx.last
        start = max(last - self.config.scalp.invalidation_lookback, 1)
        for j in range(last - 1, start - 1, -1):
            if self.raw_trigger(ctx, j) is not direction:
                continue
            trigger = ctx.candles[j]
            body_top = max(trigger.open, trigger.close)
            body_bottom = min(trigger.open, trigger.close)
            for candle in ctx.candles[j + 1 : last]:
                if direction is Direction.RISE:
                    engulfs = candle.is_bearish and candle.open >= body_top and candle.close <= body_bottom
                else:
                    engulfs = candle.is_bullish and candle.open <= body_bottom and candle.close >= body_top
                if engulfs:
                    return True
            return False
        return False

    def evaluate(self, ctx: SetupContext) -> IndicatorSignal:
        periods = self.config.indicators
        rules = self.config.scalp
        ind = ctx.indicators
        last = ctx.last

        rsi_scalp = ind.rsi.get(periods.rsi_scalp)
        ema_scalp = ind.ema.get(periods.ema_scalp)
        if (
            last < 1
            or rsi_scalp is None
            or ema_scalp is None
            or ind.atr is None
            or not is_finite(ind.atr[last])
            or not is_finite(rsi_scalp[last - 1])
        ):
            return self._not_evaluated(f"ATR({periods.atr_period}) warming up")

        atr_now = float(ind.atr[last])
        body_ratio = ctx.candles[last].body_size / atr_now if atr_now > 0 else 0.0
        aux = {
            "rsi": rounded(rsi_scalp[last], 2),
            "ema": rounded(ema_scalp[last]),
            "atr": rounded(atr_now, 6),
            "body_atr_ratio": rounded(body_ratio, 3),
        }
        summary = (
            f"RSI({periods.rsi_scalp}) {fmt(rsi_scalp[last - 1], 1)} -> {fmt(rsi_scalp[last], 1)}"
            f" · body {fmt(body_ratio, 2)}x ATR"
        )

        direction = self.raw_trigger(ctx, last)
        if direction is Direction.NEUTRAL:
            return self._neutral(f"No trigger · {summary}", aux_values=aux)
        if self.in_cooldown(ctx, direction):
            return self._neutral(
                f"{direction.value} trigger in cooldown · {summary}",
                aux_values={**aux, "blocked": "cooldown"},
            )
        if self.is_invalidated(ctx, direction):
            return self._neutral(
                f"{direction.value} trigger invalidated by engulfing candle · {summary}",
                aux_values={**aux, "blocked": "invalidated"},
            )
        return self._vote(direction, rules.confidence, f"Momentum flip · {summary}", aux_values=aux)
