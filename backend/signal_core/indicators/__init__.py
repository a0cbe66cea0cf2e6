"""Technical indicators (pure math, no I/O)."""

from signal_core.indicators.calculator import IndicatorBundle, IndicatorCalculator
from signal_core.indicators.ichimoku import ichimoku
from signal_core.indicators.indicators import (
    adx,
    atr,
    bollinger,
    ema,
    finite_or_none,
    highest,
    is_finite,
    lowest,
    macd,
    macd_series,
    rsi,
    sma,
    stochastic,
    stochastic_series,
    true_range,
)
from signal_core.indicators.levels import (
    LevelManager,
    is_near_level,
    swing_support_resistance,
)

__all__ = [
    "IndicatorBundle",
    "IndicatorCalculator",
    "ichimoku",
    "adx",
    "atr",
    "bollinger",
    "ema",
    "finite_or_none",
    "highest",
    "is_finite",
    "lowest",
    "macd",
    "macd_series",
    "rsi",
    "sma",
    "stochastic",
    "stochastic_series",
    "true_range",
    "LevelManager",
    "is_near_level",
    "swing_support_resistance",
]
