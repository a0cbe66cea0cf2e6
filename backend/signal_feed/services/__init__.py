"""Feed services."""

from signal_feed.services.candle_builder import CandleBuilder, Tick
from signal_feed.services.signal_service import SignalCallback, SignalService

__all__ = [
    "CandleBuilder",
    "Tick",
    "SignalCallback",
    "SignalService",
]
