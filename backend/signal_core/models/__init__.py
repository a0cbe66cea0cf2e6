"""Data models for candles, votes, composite signals and configuration."""

from signal_core.models.candle import Candle, CandleBuffer
from signal_core.models.config import (
    PRESETS,
    EngineConfig,
    get_preset,
    list_presets,
)
from signal_core.models.signal import (
    CombinedLabel,
    Direction,
    IndicatorSignal,
    SignalResult,
    Strength,
    TradeLevels,
    TrapGrade,
)
from signal_core.models.snapshots import (
    AdxResult,
    AtrResult,
    BollingerResult,
    IchimokuResult,
    MacdResult,
    StochasticResult,
    SupportResistanceLevels,
)

__all__ = [
    "Candle",
    "CandleBuffer",
    "PRESETS",
    "EngineConfig",
    "get_preset",
    "list_presets",
    "CombinedLabel",
    "Direction",
    "IndicatorSignal",
    "SignalResult",
    "Strength",
    "TradeLevels",
    "TrapGrade",
    "AdxResult",
    "AtrResult",
    "BollingerResult",
    "IchimokuResult",
    "MacdResult",
    "StochasticResult",
    "SupportResistanceLevels",
]
