"""EMA(5/13) crossover confirmed by a recent stochastic cross."""

import numpy as np

from signal_core.indicators.indicators import is_finite
from signal_core.models.signal import Direction, IndicatorSignal
from signal_core.setups.base import BaseSetup, fmt, rounded
from signal_core.setups.protocol import SetupContext
from signal_core.setups.registry import register_setup


def find_recent_cross(
    k: np.ndarray,
    d: np.ndarray,
    last: int,
    window: int,
    direction: Direction,
) -> int | None:
    """Return the index of the latest %K/%D cross within `window` bars of `last`.

    The current bar counts as distance 0. Bars whose %K/%D is still in
    warm-up are skipped.
    """
    for i in range(last, max(last - window, 1) - 1, -1):
        values = (k[i - 1], d[i - 1], k[i], d[i])
        if not all(is_finite(v) for v in values):
            continue
        if direction is Direction.RISE and k[i - 1] <= d[i - 1] and k[i] > d[i]:
            return i
        if direction is Direction.FALL and k[i - 1] >= d[i - 1] and k[i] < d[i]:
            return i
    return None


@register_setup("ema_stochastic")
class EmaStochasticSetup(BaseSetup):
    """Fast/slow EMA cross on this bar plus a stochastic cross out of an extreme."""

    name = "ema_stochastic"
    label = "EMA Crossover & Stochastic"

    def evaluate(self, ctx: SetupContext) -> IndicatorSignal:
        periods = self.config.indicators
        rules = self.config.ema_stochastic
        ind = ctx.indicators
        last = ctx.last

        fast = ind.ema.get(periods.ema_fast)
        slow = ind.ema.get(periods.ema_cross_slow)
        if (
            last < 1
            or fast is None
            or slow is None
            or ind.stochastic is None
            or not all(is_finite(v) for v in (fast[last - 1], slow[last - 1], fast[last], slow[last]))
        ):
            return self._not_evaluated("EMA/stochastic warming up")

        k, d = ind.stoch_k, ind.stoch_d
        ema_cross_up = fast[last - 1] <= slow[last - 1] and fast[last] > slow[last]
        ema_cross_down = fast[last - 1] >= slow[last - 1] and fast[last] < slow[last]

        direction = Direction.NEUTRAL
        if ema_cross_up:
            cross = find_recent_cross(k, d, last, rules.cross_recency_bars, Direction.RISE)
            if cross is not None and (k[last] < rules.oversold or k[cross - 1] < rules.oversold):
                direction = Direction.RISE
        elif ema_cross_down:
            cross = find_recent_cross(k, d, last, rules.cross_recency_bars, Direction.FALL)
            if cross is not None and (
                k[last] > rules.overbought or k[cross - 1] > rules.overbought
            ):
                direction = Direction.FALL

        stoch = ind.stochastic
        aux = {
            "ema_fast": rounded(fast[last]),
            "ema_slow": rounded(slow[last]),
            "stoch_k": rounded(stoch.k, 2),
            "stoch_d": rounded(stoch.d, 2),
        }
        summary = f"%K {fmt(stoch.k, 1)} / %D {fmt(stoch.d, 1)}"
        if direction is Direction.NEUTRAL:
            crossed = "EMA cross without stochastic" if (ema_cross_up or ema_cross_down) else "No EMA cross"
            return self._neutral(f"{crossed} · {summary}", aux_values=aux)

        arrow = "above" if direction is Direction.RISE else "below"
        return self._vote(
            direction,
            rules.confidence,
            f"EMA({periods.ema_fast}) crossed {arrow} EMA({periods.ema_cross_slow}) · {summary}",
            aux_values=aux,
        )
