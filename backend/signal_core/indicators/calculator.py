"""One-pass indicator computation shared by all setups."""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from signal_core.indicators.ichimoku import ichimoku
from signal_core.indicators.indicators import (
    adx,
    atr,
    bollinger,
    ema,
    latest_atr,
    latest_macd,
    latest_stochastic,
    macd_series,
    rsi,
    stochastic_series,
)
from signal_core.indicators.levels import LevelManager
from signal_core.models.candle import Candle
from signal_core.models.config import IndicatorSettings
from signal_core.models.snapshots import (
    AdxResult,
    AtrResult,
    BollingerResult,
    IchimokuResult,
    MacdResult,
    StochasticResult,
    SupportResistanceLevels,
)


@dataclass
class IndicatorBundle:
    """Every series and snapshot computed for one candle history.

    Series are aligned with the candle index, so setups that look back
    over several bars read trailing values instead of recomputing.
    """

    opens: np.ndarray
    highs: np.ndarray
    lows: np.ndarray
    closes: np.ndarray
    ema: dict[int, np.ndarray] = field(default_factory=dict)
    rsi: dict[int, np.ndarray] = field(default_factory=dict)
    stoch_k: np.ndarray | None = None
    stoch_d: np.ndarray | None = None
    macd_line: np.ndarray | None = None
    macd_signal: np.ndarray | None = None
    macd_histogram: np.ndarray | None = None
    atr: np.ndarray | None = None

    ichimoku: IchimokuResult | None = None
    levels: SupportResistanceLevels = field(default_factory=SupportResistanceLevels)
    stochastic: StochasticResult | None = None
    macd: MacdResult | None = None
    atr_snapshot: AtrResult | None = None
    adx: AdxResult | None = None
    bollinger: BollingerResult | None = None

    def __len__(self) -> int:
        return len(self.closes)

    @property
    def last(self) -> int:
        return len(self.closes) - 1


class IndicatorCalculator:
    """Calculator for all technical indicators needed by the setups."""

    def __init__(self, settings: IndicatorSettings | None = None):
        self.settings = settings or IndicatorSettings()
        self.level_manager = LevelManager(
            lookback=self.settings.sr_lookback,
            tolerance_pct=self.settings.sr_tolerance_pct,
            min_touches=self.settings.sr_min_touches,
        )

    @property
    def ema_periods(self) -> list[int]:
        s = self.settings
        return sorted({s.ema_fast, s.ema_cross_slow, s.ema_scalp, s.ema_medium, s.ema_slow})

    @property
    def rsi_periods(self) -> list[int]:
        s = self.settings
        return sorted({s.rsi_scalp, s.rsi_trap, s.rsi_fast})

    def calculate(self, candles: Sequence[Candle]) -> IndicatorBundle:
        """Calculate all indicators for the given candle history."""
        return self.calculate_arrays(
            opens=np.array([c.open for c in candles], dtype=np.float64),
            highs=np.array([c.high for c in candles], dtype=np.float64),
            lows=np.array([c.low for c in candles], dtype=np.float64),
            closes=np.array([c.close for c in candles], dtype=np.float64),
        )

    def calculate_arrays(
        self,
        opens: np.ndarray,
        highs: np.ndarray,
        lows: np.ndarray,
        closes: np.ndarray,
    ) -> IndicatorBundle:
        """
        Calculate all indicators for OHLC arrays.

        Returns:
            IndicatorBundle with full series and latest-bar snapshots
        """
        s = self.settings
        bundle = IndicatorBundle(opens=opens, highs=highs, lows=lows, closes=closes)
        if len(closes) == 0:
            return bundle

        bundle.ema = {period: ema(closes, period) for period in self.ema_periods}
        bundle.rsi = {period: rsi(closes, period) for period in self.rsi_periods}

        _, bundle.stoch_k, bundle.stoch_d = stochastic_series(
            highs, lows, closes, s.stoch_k, s.stoch_d, s.stoch_slowing
        )
        bundle.stochastic = latest_stochastic(
            bundle.stoch_k, bundle.stoch_d, s.stoch_k + s.stoch_d + s.stoch_slowing
        )

        bundle.macd_line, bundle.macd_signal, bundle.macd_histogram = macd_series(
            closes, s.macd_fast, s.macd_slow, s.macd_signal
        )
        bundle.macd = latest_macd(
            bundle.macd_line,
            bundle.macd_signal,
            bundle.macd_histogram,
            s.macd_slow + s.macd_signal + 2,
        )

        bundle.atr = atr(highs, lows, closes, s.atr_period)
        bundle.atr_snapshot = latest_atr(
            bundle.atr, s.atr_average_window, s.atr_high_volatility_mult
        )
        bundle.adx = adx(highs, lows, closes, s.adx_period, s.adx_strong_trend)
        bundle.bollinger = bollinger(closes, s.bollinger_period, s.bollinger_std)

        bundle.ichimoku = ichimoku(
            highs,
            lows,
            closes,
            tenkan_period=s.tenkan_period,
            kijun_period=s.kijun_period,
            senkou_b_period=s.senkou_b_period,
            displacement=s.displacement,
        )
        bundle.levels = self.level_manager.find_levels(highs, lows, closes)

        return bundle
