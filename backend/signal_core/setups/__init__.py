"""Rule-based setups.

Importing this package registers every built-in setup.
"""

from signal_core.setups import (  # noqa: F401
    candle_trap,
    continuation,
    ema_stochastic,
    ichimoku_trend,
    reversal,
    scalp,
    trend_filter,
)
from signal_core.setups.base import BaseSetup
from signal_core.setups.candle_trap import (
    CandleTrapDetector,
    CandleTrapSetup,
    TrapAnalysis,
    TrapStage,
    classify_trap_shape,
)
from signal_core.setups.continuation import TrendContinuationSetup
from signal_core.setups.ema_stochastic import EmaStochasticSetup
from signal_core.setups.ichimoku_trend import IchimokuTrendSetup
from signal_core.setups.protocol import Setup, SetupContext
from signal_core.setups.registry import (
    create_setup,
    get_setup_class,
    list_setups,
    register_setup,
)
from signal_core.setups.reversal import ReversalSetup
from signal_core.setups.scalp import ScalpSetup
from signal_core.setups.trend_filter import TrendFilterSetup

__all__ = [
    "BaseSetup",
    "CandleTrapDetector",
    "CandleTrapSetup",
    "EmaStochasticSetup",
    "IchimokuTrendSetup",
    "ReversalSetup",
    "ScalpSetup",
    "Setup",
    "SetupContext",
    "TrapAnalysis",
    "TrapStage",
    "TrendContinuationSetup",
    "TrendFilterSetup",
    "classify_trap_shape",
    "create_setup",
    "get_setup_class",
    "list_setups",
    "register_setup",
]
