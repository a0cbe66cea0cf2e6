"""EMA(50) trend filter with MACD(6,13,5) momentum trigger."""

import numpy as np

from signal_core.indicators.indicators import is_finite
from signal_core.indicators.levels import is_near_level
from signal_core.models.signal import Direction, IndicatorSignal
from signal_core.setups.base import BaseSetup, fmt, rounded
from signal_core.setups.protocol import SetupContext
from signal_core.setups.registry import register_setup


def histogram_crossed_zero(
    histogram: np.ndarray,
    last: int,
    lookback: int,
    direction: Direction,
    first_valid: int,
) -> bool:
    """Check for a histogram zero cross in the last `lookback` bars.

    Each transition (i - 1 -> i) with i in [last - lookback, last] is tested;
    transitions touching bars before `first_valid` are ignored.
    """
    start = max(last - lookback, first_valid + 1, 1)
    for i in range(start, last + 1):
        prev, curr = histogram[i - 1], histogram[i]
        if not (is_finite(prev) and is_finite(curr)):
            continue
        if direction is Direction.RISE and prev <= 0 < curr:
            return True
        if direction is Direction.FALL and prev >= 0 > curr:
            return True
    return False


@register_setup("trend_filter")
class TrendFilterSetup(BaseSetup):
    """Trade only with a sloped EMA(50) and a fresh MACD cross.

    A signal is strong when both EMAs slope the same way, price sits near
    a level and an oscillator confirms.
    """

    name = "trend_filter"
    label = "Trend Filter"

    def evaluate(self, ctx: SetupContext) -> IndicatorSignal:
        periods = self.config.indicators
        rules = self.config.trend_filter
        ind = ctx.indicators
        last = ctx.last

        ema_slow = ind.ema.get(periods.ema_slow)
        ema_medium = ind.ema.get(periods.ema_medium)
        m = ind.macd
        if (
            last < 1
            or m is None
            or ema_slow is None
            or ema_medium is None
            or not all(
                is_finite(v)
                for v in (ema_slow[last], ema_slow[last - 1], ema_medium[last], ema_medium[last - 1])
            )
        ):
            return self._not_evaluated(
                f"EMA({periods.ema_slow})/MACD({periods.macd_fast},{periods.macd_slow},"
                f"{periods.macd_signal}) warming up"
            )

        close = ctx.candles[last].close
        trend_ema = float(ema_slow[last])
        slope = trend_ema - float(ema_slow[last - 1])
        distance = close - trend_ema
        is_flat = abs(slope) < rules.flat_slope_threshold
        histogram_rising = m.histogram > m.previous_histogram
        histogram_falling = m.histogram < m.previous_histogram
        first_valid = periods.macd_slow + periods.macd_signal + 1

        direction = Direction.NEUTRAL
        if (
            not is_flat
            and distance >= rules.min_ema_distance
            and m.bullish_cross
            and histogram_rising
            and (
                m.histogram >= 0
                or histogram_crossed_zero(
                    ind.macd_histogram, last, rules.zero_cross_lookback, Direction.RISE, first_valid
                )
            )
        ):
            direction = Direction.RISE
        elif (
            not is_flat
            and -distance >= rules.min_ema_distance
            and m.bearish_cross
            and histogram_falling
            and (
                m.histogram <= 0
                or histogram_crossed_zero(
                    ind.macd_histogram, last, rules.zero_cross_lookback, Direction.FALL, first_valid
                )
            )
        ):
            direction = Direction.FALL

        aux = {
            "ema_slow": rounded(trend_ema),
            "ema_distance": rounded(distance),
            "ema_slope": rounded(slope, 6),
            "macd_histogram": rounded(m.histogram, 6),
        }
        summary = (
            f"EMA({periods.ema_slow}) dist {fmt(distance, 4)} slope {fmt(slope, 4)}"
            f" · hist {fmt(m.histogram, 5)}"
        )
        if direction is Direction.NEUTRAL:
            reason = "EMA flat" if is_flat else "No MACD trigger"
            return self._neutral(f"{reason} · {summary}", aux_values=aux, is_strong_signal=False)

        strong = self._is_strong(ctx, direction, ema_slow, ema_medium)
        return self._vote(
            direction,
            rules.strong_confidence if strong else rules.confidence,
            f"{'Strong ' if strong else ''}{direction.value} trend · {summary}",
            aux_values=aux,
            is_strong_signal=strong,
        )

    def _is_strong(
        self,
        ctx: SetupContext,
        direction: Direction,
        ema_slow: np.ndarray,
        ema_medium: np.ndarray,
    ) -> bool:
        periods = self.config.indicators
        rules = self.config.trend_filter
        ind = ctx.indicators
        last = ctx.last
        close = ctx.candles[last].close

        slow_delta = ema_slow[last] - ema_slow[last - 1]
        medium_delta = ema_medium[last] - ema_medium[last - 1]
        near_level = is_near_level(
            close, ind.levels.nearest_support, rules.near_level_pct
        ) or is_near_level(close, ind.levels.nearest_resistance, rules.near_level_pct)
        if not near_level:
            return False

        rsi_fast = ind.rsi.get(periods.rsi_fast)
        rsi_now = float(rsi_fast[last]) if rsi_fast is not None else float("nan")
        stoch = ind.stochastic

        if direction is Direction.RISE:
            if not (slow_delta > 0 and medium_delta > 0):
                return False
            stoch_ok = stoch is not None and stoch.k < rules.stoch_oversold and stoch.k > stoch.d
            return (is_finite(rsi_now) and rsi_now < rules.rsi_oversold) or stoch_ok

        if not (slow_delta < 0 and medium_delta < 0):
            return False
        stoch_ok = stoch is not None and stoch.k > rules.stoch_overbought and stoch.k < stoch.d
        return (is_finite(rsi_now) and rsi_now > rules.rsi_overbought) or stoch_ok
