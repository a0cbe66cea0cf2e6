"""Latest-bar indicator records.

These are the derived values exposed to the display layer alongside the
composite signal. All of them refuse NaN/inf at construction, so a result
that reaches the caller only ever holds finite numbers or ``None``.
"""

from pydantic import BaseModel, ConfigDict, Field

_SNAPSHOT_CONFIG = ConfigDict(frozen=True, allow_inf_nan=False)


class IchimokuResult(BaseModel):
    """Ichimoku Cloud (9/26/52) evaluated at the latest bar."""

    model_config = _SNAPSHOT_CONFIG

    tenkan_sen: float  # Conversion line
    kijun_sen: float  # Base line
    previous_tenkan: float
    previous_kijun: float
    senkou_span_a: float  # Leading span A, as displaced onto the current bar
    senkou_span_b: float  # Leading span B, as displaced onto the current bar
    chikou_span: float  # Lagging span (current close)
    cloud_top: float
    cloud_bottom: float
    future_span_a: float
    future_span_b: float
    price_above_cloud: bool
    price_below_cloud: bool
    tk_cross_bullish: bool
    tk_cross_bearish: bool
    future_cloud_bullish: bool
    future_cloud_bearish: bool


class StochasticResult(BaseModel):
    """Slow stochastic %K/%D at the latest and previous bar."""

    model_config = _SNAPSHOT_CONFIG

    k: float
    d: float
    previous_k: float
    previous_d: float

    @property
    def bullish_cross(self) -> bool:
        return self.previous_k <= self.previous_d and self.k > self.d

    @property
    def bearish_cross(self) -> bool:
        return self.previous_k >= self.previous_d and self.k < self.d


class MacdResult(BaseModel):
    """MACD line/signal/histogram at the latest and previous bar."""

    model_config = _SNAPSHOT_CONFIG

    macd: float
    signal: float
    histogram: float
    previous_macd: float
    previous_signal: float
    previous_histogram: float

    @property
    def bullish_cross(self) -> bool:
        return self.previous_macd <= self.previous_signal and self.macd > self.signal

    @property
    def bearish_cross(self) -> bool:
        return self.previous_macd >= self.previous_signal and self.macd < self.signal


class AtrResult(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    value: float
    average: float  # Mean of the trailing ATR values (up to 50)
    high_volatility: bool


class AdxResult(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    adx: float
    plus_di: float
    minus_di: float
    strong_trend: bool
    bullish_di: bool


class BollingerResult(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    upper: float
    middle: float
    lower: float
    bandwidth: float
    percent_b: float


class SupportResistanceLevels(BaseModel):
    """Clustered swing levels relative to the latest close."""

    model_config = _SNAPSHOT_CONFIG

    supports: list[float] = Field(default_factory=list)
    resistances: list[float] = Field(default_factory=list)
    nearest_support: float | None = None
    nearest_resistance: float | None = None
