"""Engine configuration models and named presets.

Every period, threshold and confidence band used by the setups lives here.
Superseded rule variants are kept as named presets rather than as code.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_SETUP_ORDER = [
    "ichimoku_trend",
    "reversal",
    "trend_continuation",
    "ema_stochastic",
    "trend_filter",
    "scalp",
    "candle_trap",
]


class IndicatorSettings(BaseModel):
    """Indicator periods shared by the setups."""

    # EMA periods
    ema_fast: int = 5
    ema_cross_slow: int = 13
    ema_scalp: int = 9
    ema_medium: int = 21
    ema_slow: int = 50

    # RSI periods
    rsi_scalp: int = 3
    rsi_trap: int = 6
    rsi_fast: int = 7

    # Slow stochastic
    stoch_k: int = 5
    stoch_d: int = 3
    stoch_slowing: int = 3

    # MACD
    macd_fast: int = 6
    macd_slow: int = 13
    macd_signal: int = 5

    atr_period: int = 14
    atr_average_window: int = 50
    atr_high_volatility_mult: float = 1.3

    adx_period: int = 14
    adx_strong_trend: float = 25.0

    bollinger_period: int = 20
    bollinger_std: float = 2.0

    # Ichimoku
    tenkan_period: int = 9
    kijun_period: int = 26
    senkou_b_period: int = 52
    displacement: int = 26

    # Swing support/resistance
    sr_lookback: int = 100
    sr_tolerance_pct: float = 0.05  # percent
    sr_min_touches: int = 2


class IchimokuTrendConfig(BaseModel):
    base_confidence: int = 40
    inside_cloud_confidence: int = 30
    cloud_bonus: int = 20
    tk_cross_bonus: int = 20
    tk_alignment_bonus: int = 10
    future_cloud_bonus: int = 5
    max_confidence: int = 95


class ReversalConfig(BaseModel):
    near_level_pct: float = 0.1  # percent of price
    rsi_oversold: float = 25.0
    rsi_overbought: float = 75.0
    dominant_body_ratio: float = 0.6
    confidence: int = 74
    confluence_bonus: int = 6


class ContinuationConfig(BaseModel):
    near_level_pct: float = 0.1
    rsi_recovery_level: float = 30.0
    rsi_rollover_level: float = 70.0
    confidence: int = 72


class EmaStochasticConfig(BaseModel):
    oversold: float = 20.0
    overbought: float = 80.0
    cross_recency_bars: int = 1
    confidence: int = 74


class TrendFilterConfig(BaseModel):
    min_ema_distance: float = 0.04  # price units
    flat_slope_threshold: float = 0.01  # price units per bar
    zero_cross_lookback: int = 18
    near_level_pct: float = 0.1
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    stoch_oversold: float = 20.0
    stoch_overbought: float = 80.0
    confidence: int = 75
    strong_confidence: int = 85


class ScalpConfig(BaseModel):
    rsi_midline: float = 50.0
    min_body_atr_ratio: float = 0.3
    size_check_bars: int = 3
    size_check_min_pass: int = 2
    cooldown_bars: int = 3
    invalidation_lookback: int = 10
    confidence: int = 76


class GradeBand(BaseModel):
    """Minimum pattern quality for a trap grade."""

    grade: str
    min_wick_body: float
    max_body_ratio: float
    min_expansion: float
    confidence: int


class CandleTrapConfig(BaseModel):
    min_history: int = 30

    # Stage 1: preconditions
    doji_body_ratio: float = 0.05
    range_average_bars: int = 20
    range_expansion_min: float = 0.8

    # Stage 2: shape
    wick_body_multiple: float = 2.0
    max_body_ratio: float = 0.35
    min_wick_ratio: float = 0.5

    # Stage 3: noise filters
    opposite_trap_lookback: int = 4
    cluster_lookback: int = 10
    cluster_max: int = 3
    rsi_boundaries: list[float] = Field(default_factory=lambda: [25.0, 40.0, 60.0, 75.0])
    ema_slope_bars: int = 5
    min_ema_slope_pct: float = 0.01

    # Stage 4: directional checks
    ema_proximity_pct: float = 0.15
    rise_rsi_min: float = 25.0
    rise_rsi_max: float = 40.0
    fall_rsi_min: float = 60.0
    fall_rsi_max: float = 75.0
    trend_moves: int = 5
    min_trend_moves: int = 3
    swing_lookback: int = 20
    require_sweep: bool = False  # Breakout-failure variant

    # Grading and trade levels
    grade_bands: list[GradeBand] = Field(
        default_factory=lambda: [
            GradeBand(grade="A+", min_wick_body=4.0, max_body_ratio=0.15, min_expansion=1.5, confidence=95),
            GradeBand(grade="A", min_wick_body=3.0, max_body_ratio=0.25, min_expansion=1.25, confidence=88),
            GradeBand(grade="B", min_wick_body=2.5, max_body_ratio=0.30, min_expansion=1.0, confidence=78),
        ]
    )
    fallback_grade_confidence: int = 65
    stop_buffer_ratio: float = 0.1
    reward_multiple: float = 1.5


class VotingConfig(BaseModel):
    """Composite label thresholds (agreeing vote counts)."""

    strong_votes: int = 5
    moderate_votes: int = 4
    weak_votes: int = 3
    weak_max_opposing: int = 1


class EngineConfig(BaseModel):
    """Complete rule set for one classification engine."""

    version: str = "1.0.0"
    min_bars: int = 100
    neutral_confidence: int = 45
    setups: list[str] = Field(default_factory=lambda: list(DEFAULT_SETUP_ORDER))

    indicators: IndicatorSettings = Field(default_factory=IndicatorSettings)
    ichimoku_trend: IchimokuTrendConfig = Field(default_factory=IchimokuTrendConfig)
    reversal: ReversalConfig = Field(default_factory=ReversalConfig)
    continuation: ContinuationConfig = Field(default_factory=ContinuationConfig)
    ema_stochastic: EmaStochasticConfig = Field(default_factory=EmaStochasticConfig)
    trend_filter: TrendFilterConfig = Field(default_factory=TrendFilterConfig)
    scalp: ScalpConfig = Field(default_factory=ScalpConfig)
    candle_trap: CandleTrapConfig = Field(default_factory=CandleTrapConfig)
    voting: VotingConfig = Field(default_factory=VotingConfig)


# =============================================================================
# Presets
# canonical: current rule set
# conservative: tightened trap volatility gate and longer scalp cooldown
# sweep: candle trap requires a failed breakout/breakdown of the 20-bar extreme
# =============================================================================
PRESETS: dict[str, EngineConfig] = {
    "canonical": EngineConfig(),
    "conservative": EngineConfig(
        candle_trap=CandleTrapConfig(range_expansion_min=1.05),
        scalp=ScalpConfig(cooldown_bars=5, min_body_atr_ratio=0.4),
        trend_filter=TrendFilterConfig(zero_cross_lookback=12),
    ),
    "sweep": EngineConfig(
        candle_trap=CandleTrapConfig(require_sweep=True, range_expansion_min=1.05),
    ),
}


def get_preset(name: str) -> EngineConfig:
    """Return a private copy of a named preset.

    Raises:
        KeyError: If no preset is registered under the given name.
    """
    config = PRESETS.get(name)
    if config is None:
        available = ", ".join(sorted(PRESETS)) or "(none)"
        raise KeyError(f"Unknown preset '{name}'. Available: {available}")
    return config.model_copy(deep=True)


def list_presets() -> list[str]:
    return sorted(PRESETS)
