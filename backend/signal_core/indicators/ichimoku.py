"""Ichimoku Cloud (Kinko Hyo) evaluated at the latest bar."""

import numpy as np

from signal_core.indicators.indicators import ArrayLike, _as_array
from signal_core.models.snapshots import IchimokuResult


def _midpoint(highs: np.ndarray, lows: np.ndarray, period: int, index: int) -> float:
    """(highest high + lowest low) / 2 over the window ending at index."""
    start = max(0, index - period + 1)
    return float(highs[start : index + 1].max() + lows[start : index + 1].min()) / 2


def ichimoku(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    tenkan_period: int = 9,
    kijun_period: int = 26,
    senkou_b_period: int = 52,
    displacement: int = 26,
) -> IchimokuResult | None:
    """
    Calculate the Ichimoku Cloud for the latest bar.

    The cloud under the current bar is built from Tenkan/Kijun and the
    52-bar midpoint as they stood `displacement` bars ago. When the history
    does not reach that far, the current values are used instead. The
    "future" cloud is the un-displaced projection from the current bar.

    Returns None when fewer than `senkou_b_period` bars are available.
    """
    h = _as_array(highs)
    l = _as_array(lows)
    c = _as_array(closes)
    if len(c) < senkou_b_period:
        return None
    if not (np.isfinite(h).all() and np.isfinite(l).all() and np.isfinite(c).all()):
        return None

    last = len(c) - 1
    prev = last - 1

    tenkan_sen = _midpoint(h, l, tenkan_period, last)
    prev_tenkan = _midpoint(h, l, tenkan_period, prev)
    kijun_sen = _midpoint(h, l, kijun_period, last)
    prev_kijun = _midpoint(h, l, kijun_period, prev)

    span_index = last - displacement
    if span_index >= kijun_period:
        senkou_span_a = (
            _midpoint(h, l, tenkan_period, span_index)
            + _midpoint(h, l, kijun_period, span_index)
        ) / 2
    else:
        senkou_span_a = (tenkan_sen + kijun_sen) / 2

    if span_index >= senkou_b_period:
        senkou_span_b = _midpoint(h, l, senkou_b_period, span_index)
    else:
        senkou_span_b = _midpoint(h, l, senkou_b_period, last)

    cloud_top = max(senkou_span_a, senkou_span_b)
    cloud_bottom = min(senkou_span_a, senkou_span_b)
    price = float(c[last])

    future_span_a = (tenkan_sen + kijun_sen) / 2
    future_span_b = _midpoint(h, l, senkou_b_period, last)

    return IchimokuResult(
        tenkan_sen=tenkan_sen,
        kijun_sen=kijun_sen,
        previous_tenkan=prev_tenkan,
        previous_kijun=prev_kijun,
        senkou_span_a=senkou_span_a,
        senkou_span_b=senkou_span_b,
        chikou_span=price,
        cloud_top=cloud_top,
        cloud_bottom=cloud_bottom,
        future_span_a=future_span_a,
        future_span_b=future_span_b,
        price_above_cloud=price > cloud_top,
        price_below_cloud=price < cloud_bottom,
        tk_cross_bullish=prev_tenkan <= prev_kijun and tenkan_sen > kijun_sen,
        tk_cross_bearish=prev_tenkan >= prev_kijun and tenkan_sen < kijun_sen,
        future_cloud_bullish=future_span_a > future_span_b,
        future_cloud_bearish=future_span_a < future_span_b,
    )
