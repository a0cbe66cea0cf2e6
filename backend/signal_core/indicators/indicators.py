"""Technical indicators for signal classification.

Pure NumPy implementations. Series functions return float64 arrays aligned
index-for-index with their input, with NaN inside the warm-up region.
Latest-bar functions return a snapshot model, or None when there is not
enough history.
"""

import math
from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from signal_core.models.snapshots import (
    AdxResult,
    AtrResult,
    BollingerResult,
    MacdResult,
    StochasticResult,
)

ArrayLike = Sequence[float] | np.ndarray


def _as_array(values: ArrayLike) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def is_finite(value) -> bool:
    """Check that a value is a real, finite number (None counts as missing)."""
    return value is not None and math.isfinite(value)


def finite_or_none(value) -> float | None:
    """Convert to a plain float, mapping NaN/inf/None to None."""
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


# =============================================================================
# Moving averages and rolling extremes
# =============================================================================

def sma(values: ArrayLike, period: int) -> np.ndarray:
    """
    Calculate Simple Moving Average.

    A window that contains a NaN produces NaN.

    Args:
        values: Sequence of values
        period: SMA period

    Returns:
        Array of SMA values (same length as input, NaN before period - 1)
    """
    arr = _as_array(values)
    result = np.full(arr.shape, np.nan)
    if period <= 0 or len(arr) < period:
        return result

    result[period - 1 :] = sliding_window_view(arr, period).mean(axis=1)
    return result


def ema(values: ArrayLike, period: int) -> np.ndarray:
    """
    Calculate Exponential Moving Average.

    Seeded with the first finite value (no SMA warm-up), then
    ema[i] = x[i] * k + ema[i - 1] * (1 - k) with k = 2 / (period + 1).

    Args:
        values: Sequence of values
        period: EMA period

    Returns:
        Array of EMA values (NaN before the first finite input)
    """
    arr = _as_array(values)
    result = np.full(arr.shape, np.nan)
    finite = np.flatnonzero(np.isfinite(arr))
    if finite.size == 0:
        return result

    start = int(finite[0])
    multiplier = 2.0 / (period + 1)
    result[start] = arr[start]
    for i in range(start + 1, len(arr)):
        result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)

    return result


def highest(values: ArrayLike, period: int) -> np.ndarray:
    """Calculate highest value over a trailing window."""
    arr = _as_array(values)
    result = np.full(arr.shape, np.nan)
    if period <= 0 or len(arr) < period:
        return result

    result[period - 1 :] = sliding_window_view(arr, period).max(axis=1)
    return result


def lowest(values: ArrayLike, period: int) -> np.ndarray:
    """Calculate lowest value over a trailing window."""
    arr = _as_array(values)
    result = np.full(arr.shape, np.nan)
    if period <= 0 or len(arr) < period:
        return result

    result[period - 1 :] = sliding_window_view(arr, period).min(axis=1)
    return result


# =============================================================================
# Oscillators
# =============================================================================

def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def rsi(closes: ArrayLike, period: int = 14) -> np.ndarray:
    """
    Calculate Relative Strength Index with Wilder smoothing.

    Average gain/loss are seeded with the simple mean of the first `period`
    deltas and then smoothed as (avg * (period - 1) + delta) / period.
    A zero average loss maps to 100.

    Args:
        closes: Sequence of close prices
        period: RSI period

    Returns:
        Array of RSI values in [0, 100], NaN for indices < period
    """
    arr = _as_array(closes)
    result = np.full(arr.shape, np.nan)
    if period <= 0 or len(arr) < period + 1:
        return result

    deltas = np.diff(arr)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, len(arr)):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        result[i] = _rsi_value(avg_gain, avg_loss)

    return result


def stochastic_series(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    k_period: int = 5,
    d_period: int = 3,
    slowing: int = 3,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Calculate the slow stochastic oscillator.

    raw %K = (close - lowest low) / (highest high - lowest low) * 100, or
    exactly 50 when the window has zero range. Slow %K = SMA(raw %K, slowing),
    %D = SMA(slow %K, d_period).

    Returns:
        Tuple of (raw_k, slow_k, d) arrays
    """
    c = _as_array(closes)
    hh = highest(highs, k_period)
    ll = lowest(lows, k_period)
    span = hh - ll

    with np.errstate(invalid="ignore", divide="ignore"):
        raw_k = np.where(span == 0, 50.0, (c - ll) / span * 100.0)
    raw_k[~np.isfinite(hh) | ~np.isfinite(ll)] = np.nan

    slow_k = sma(raw_k, slowing)
    d = sma(slow_k, d_period)
    return raw_k, slow_k, d


def latest_stochastic(
    slow_k: np.ndarray,
    d: np.ndarray,
    min_bars: int,
) -> StochasticResult | None:
    """Build the latest %K/%D snapshot from already computed series."""
    if len(slow_k) < max(min_bars, 2):
        return None
    values = (slow_k[-1], d[-1], slow_k[-2], d[-2])
    if not all(is_finite(v) for v in values):
        return None
    return StochasticResult(
        k=float(slow_k[-1]),
        d=float(d[-1]),
        previous_k=float(slow_k[-2]),
        previous_d=float(d[-2]),
    )


def stochastic(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    k_period: int = 5,
    d_period: int = 3,
    slowing: int = 3,
) -> StochasticResult | None:
    """Slow stochastic at the latest bar, with previous-bar values for crosses."""
    _, slow_k, d = stochastic_series(highs, lows, closes, k_period, d_period, slowing)
    return latest_stochastic(slow_k, d, k_period + d_period + slowing)


def macd_series(
    closes: ArrayLike,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Calculate MACD.

    macd = EMA(fast) - EMA(slow); signal = EMA(macd, signal_period);
    histogram = macd - signal.

    Returns:
        Tuple of (macd_line, signal_line, histogram) arrays
    """
    line = ema(closes, fast_period) - ema(closes, slow_period)
    signal_line = ema(line, signal_period)
    return line, signal_line, line - signal_line


def latest_macd(
    line: np.ndarray,
    signal_line: np.ndarray,
    histogram: np.ndarray,
    min_bars: int,
) -> MacdResult | None:
    """Build the latest MACD snapshot from already computed series."""
    if len(line) < max(min_bars, 2):
        return None
    values = (line[-1], signal_line[-1], line[-2], signal_line[-2])
    if not all(is_finite(v) for v in values):
        return None
    return MacdResult(
        macd=float(line[-1]),
        signal=float(signal_line[-1]),
        histogram=float(histogram[-1]),
        previous_macd=float(line[-2]),
        previous_signal=float(signal_line[-2]),
        previous_histogram=float(histogram[-2]),
    )


def macd(
    closes: ArrayLike,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MacdResult | None:
    """MACD at the latest bar, with previous-bar values for crossover tests."""
    line, signal_line, histogram = macd_series(closes, fast_period, slow_period, signal_period)
    return latest_macd(line, signal_line, histogram, slow_period + signal_period + 2)


# =============================================================================
# Volatility and trend strength
# =============================================================================

def true_range(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
) -> np.ndarray:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close));
    the first bar has no previous close and uses high - low.
    """
    h = _as_array(highs)
    l = _as_array(lows)
    c = _as_array(closes)
    if len(h) == 0:
        return np.array([], dtype=np.float64)

    result = h - l
    if len(h) > 1:
        prev_close = c[:-1]
        result[1:] = np.maximum.reduce(
            [h[1:] - l[1:], np.abs(h[1:] - prev_close), np.abs(l[1:] - prev_close)]
        )
    return result


def atr(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    period: int = 14,
) -> np.ndarray:
    """
    Calculate Average True Range with Wilder smoothing.

    True ranges are taken from the second bar on (each needs a previous
    close). The first ATR, at index `period`, is the mean of the first
    `period` of them.

    Returns:
        Array of ATR values, NaN for indices < period
    """
    tr = true_range(highs, lows, closes)
    result = np.full(tr.shape, np.nan)
    if period <= 0 or len(tr) < period + 1:
        return result

    value = float(tr[1 : period + 1].mean())
    result[period] = value
    for i in range(period + 1, len(tr)):
        value = (value * (period - 1) + tr[i]) / period
        result[i] = value

    return result


def latest_atr(
    atr_values: np.ndarray,
    average_window: int = 50,
    high_volatility_mult: float = 1.3,
) -> AtrResult | None:
    """Build the ATR snapshot, comparing the latest value to its trailing mean."""
    valid = atr_values[np.isfinite(atr_values)]
    if valid.size == 0:
        return None
    value = float(valid[-1])
    average = float(valid[-average_window:].mean())
    return AtrResult(
        value=value,
        average=average,
        high_volatility=value > average * high_volatility_mult,
    )


def adx(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    period: int = 14,
    strong_trend: float = 25.0,
) -> AdxResult | None:
    """
    Calculate ADX with +DI/-DI (Wilder smoothing).

    Requires at least 3 * period bars. Zero true range maps DI to 0.
    """
    h = _as_array(highs)
    l = _as_array(lows)
    if len(h) < period * 3:
        return None

    up_move = h[1:] - h[:-1]
    down_move = l[:-1] - l[1:]
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
    tr = true_range(highs, lows, closes)[1:]

    smooth_plus = float(plus_dm[:period].sum())
    smooth_minus = float(minus_dm[:period].sum())
    smooth_tr = float(tr[:period].sum())

    plus_di = minus_di = 0.0
    dx_values: list[float] = []
    for i in range(period, len(tr)):
        smooth_plus = smooth_plus - smooth_plus / period + plus_dm[i]
        smooth_minus = smooth_minus - smooth_minus / period + minus_dm[i]
        smooth_tr = smooth_tr - smooth_tr / period + tr[i]

        plus_di = smooth_plus / smooth_tr * 100 if smooth_tr != 0 else 0.0
        minus_di = smooth_minus / smooth_tr * 100 if smooth_tr != 0 else 0.0
        di_sum = plus_di + minus_di
        dx_values.append(abs(plus_di - minus_di) / di_sum * 100 if di_sum != 0 else 0.0)

    if len(dx_values) < period:
        return None

    value = sum(dx_values[:period]) / period
    for dx in dx_values[period:]:
        value = (value * (period - 1) + dx) / period

    if not all(is_finite(v) for v in (value, plus_di, minus_di)):
        return None

    return AdxResult(
        adx=float(value),
        plus_di=float(plus_di),
        minus_di=float(minus_di),
        strong_trend=bool(value > strong_trend),
        bullish_di=bool(plus_di > minus_di),
    )


def bollinger(
    closes: ArrayLike,
    period: int = 20,
    std_mult: float = 2.0,
) -> BollingerResult | None:
    """
    Calculate Bollinger Bands at the latest bar (population std dev).

    %B = (close - lower) / (upper - lower), or 0.5 for a zero-width band.
    """
    c = _as_array(closes)
    if len(c) < period:
        return None

    window = c[-period:]
    middle = float(window.mean())
    std_dev = float(window.std())
    upper = middle + std_mult * std_dev
    lower = middle - std_mult * std_dev
    close = float(c[-1])

    if not all(is_finite(v) for v in (middle, std_dev, close)):
        return None

    return BollingerResult(
        upper=upper,
        middle=middle,
        lower=lower,
        bandwidth=(upper - lower) / middle if middle != 0 else 0.0,
        percent_b=(close - lower) / (upper - lower) if upper != lower else 0.5,
    )
