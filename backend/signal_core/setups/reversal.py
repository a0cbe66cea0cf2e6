"""Reversal at support/resistance with RSI extreme and candle confirmation."""

from signal_core.indicators.indicators import is_finite
from signal_core.indicators.levels import is_near_level
from signal_core.models.signal import Direction, IndicatorSignal
from signal_core.setups.base import BaseSetup, fmt, has_dominant_body, rounded
from signal_core.setups.protocol import SetupContext
from signal_core.setups.registry import register_setup


@register_setup("reversal")
class ReversalSetup(BaseSetup):
    """RISE at support when RSI(7) is oversold and the bar confirms.

    The confirming bar either closes beyond the previous bar's extreme or
    has a dominant body in the reversal direction. Both together earn the
    confluence bonus.
    """

    name = "reversal"
    label = "Setup 1: Reversal Mode"

    def evaluate(self, ctx: SetupContext) -> IndicatorSignal:
        periods = self.config.indicators
        rules = self.config.reversal
        ind = ctx.indicators
        last = ctx.last

        rsi_fast = ind.rsi.get(periods.rsi_fast)
        if last < 1 or rsi_fast is None or not is_finite(rsi_fast[last]):
            return self._not_evaluated(f"RSI({periods.rsi_fast}) warming up")

        current = ctx.candles[last]
        previous = ctx.candles[last - 1]
        rsi_now = float(rsi_fast[last])
        levels = ind.levels

        near_support = is_near_level(current.close, levels.nearest_support, rules.near_level_pct)
        near_resistance = is_near_level(
            current.close, levels.nearest_resistance, rules.near_level_pct
        )

        direction = Direction.NEUTRAL
        confluence = False
        if near_support and rsi_now < rules.rsi_oversold:
            beats_high = current.close > previous.high
            bullish_body = has_dominant_body(current, rules.dominant_body_ratio, Direction.RISE)
            if beats_high or bullish_body:
                direction = Direction.RISE
                confluence = beats_high and bullish_body
        elif near_resistance and rsi_now > rules.rsi_overbought:
            beats_low = current.close < previous.low
            bearish_body = has_dominant_body(current, rules.dominant_body_ratio, Direction.FALL)
            if beats_low or bearish_body:
                direction = Direction.FALL
                confluence = beats_low and bearish_body

        aux = {
            "rsi": rounded(rsi_now, 2),
            "near_support": near_support,
            "near_resistance": near_resistance,
            "confluence": confluence,
        }
        if direction is Direction.NEUTRAL:
            return self._neutral(
                f"No reversal · RSI({periods.rsi_fast}) {fmt(rsi_now, 1)}",
                aux_values=aux,
            )

        where = "support" if direction is Direction.RISE else "resistance"
        confidence = rules.confidence + (rules.confluence_bonus if confluence else 0)
        return self._vote(
            direction,
            confidence,
            f"Reversal at {where} · RSI({periods.rsi_fast}) {fmt(rsi_now, 1)}"
            + (" · confluence" if confluence else ""),
            aux_values=aux,
        )
