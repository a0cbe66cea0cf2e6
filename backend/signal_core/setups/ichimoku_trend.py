"""Ichimoku cloud trend setup."""

from signal_core.models.signal import Direction, IndicatorSignal
from signal_core.setups.base import BaseSetup, fmt, rounded
from signal_core.setups.protocol import SetupContext
from signal_core.setups.registry import register_setup


@register_setup("ichimoku_trend")
class IchimokuTrendSetup(BaseSetup):
    """Cloud position plus Tenkan/Kijun cross, scored additively.

    Price above/below the cloud sets the direction; a TK cross can set or
    override it. Tenkan/Kijun alignment and the future cloud colour only add
    confidence when they agree with the direction already chosen.
    """

    name = "ichimoku_trend"
    label = "Ichimoku Cloud"

    def evaluate(self, ctx: SetupContext) -> IndicatorSignal:
        ichi = ctx.indicators.ichimoku
        if ichi is None:
            needed = self.config.indicators.senkou_b_period
            return self._not_evaluated(f"Ichimoku needs {needed} bars")

        rules = self.config.ichimoku_trend
        direction = Direction.NEUTRAL
        confidence = rules.base_confidence
        details: list[str] = []

        if ichi.price_above_cloud:
            direction = Direction.RISE
            confidence += rules.cloud_bonus
            details.append("Price above cloud")
        elif ichi.price_below_cloud:
            direction = Direction.FALL
            confidence += rules.cloud_bonus
            details.append("Price below cloud")
        else:
            confidence = rules.inside_cloud_confidence
            details.append("Price inside cloud")

        if ichi.tk_cross_bullish:
            direction = Direction.RISE
            confidence += rules.tk_cross_bonus
            details.append("TK cross up")
        elif ichi.tk_cross_bearish:
            direction = Direction.FALL
            confidence += rules.tk_cross_bonus
            details.append("TK cross down")

        if direction is Direction.RISE and ichi.tenkan_sen > ichi.kijun_sen:
            confidence += rules.tk_alignment_bonus
            details.append("Tenkan > Kijun")
        elif direction is Direction.FALL and ichi.tenkan_sen < ichi.kijun_sen:
            confidence += rules.tk_alignment_bonus
            details.append("Tenkan < Kijun")

        if direction is Direction.RISE and ichi.future_cloud_bullish:
            confidence += rules.future_cloud_bonus
            details.append("Future cloud bullish")
        elif direction is Direction.FALL and ichi.future_cloud_bearish:
            confidence += rules.future_cloud_bonus
            details.append("Future cloud bearish")

        details.append(f"T {fmt(ichi.tenkan_sen, 4)} / K {fmt(ichi.kijun_sen, 4)}")
        return self._vote(
            direction,
            min(confidence, rules.max_confidence),
            " · ".join(details),
            aux_values={
                "tenkan": rounded(ichi.tenkan_sen),
                "kijun": rounded(ichi.kijun_sen),
                "cloud_top": rounded(ichi.cloud_top),
                "cloud_bottom": rounded(ichi.cloud_bottom),
            },
        )
