"""Per-bar signal service.

Recomputes the composite signal whenever the candle builder closes a bar,
keeps a short history of warmed-up results for display and notifies
registered async callbacks.
"""

import logging
from collections import deque
from typing import Awaitable, Callable

from signal_core.engine import SignalEngine
from signal_core.models.candle import Candle
from signal_core.models.signal import SignalResult
from signal_feed.config import Settings, get_settings
from signal_feed.presets import load_engine_config
from signal_feed.services.candle_builder import CandleBuilder

logger = logging.getLogger(__name__)

# Type alias for signal callback
SignalCallback = Callable[[SignalResult], Awaitable[None]]


class SignalService:
    """Runs the engine on every closed candle.

    Usage:
        service = SignalService()
        service.on_signal(my_callback)

        for tick in ticks:
            await service.builder.add_tick(tick)
    """

    def __init__(
        self,
        engine: SignalEngine | None = None,
        builder: CandleBuilder | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        if engine is None:
            preset, config = load_engine_config(settings.preset, settings.presets_file)
            engine = SignalEngine(config, preset=preset)

        self.engine = engine
        self.builder = builder or CandleBuilder(
            interval_seconds=settings.candle_interval_seconds,
            max_candles=settings.max_candles,
        )
        self.symbol = settings.symbol
        self.history: deque[SignalResult] = deque(maxlen=settings.signal_history_size)
        self.latest: SignalResult | None = None

        self._callbacks: list[SignalCallback] = []
        self.builder.on_candle_closed(self.on_candle_closed)

        logger.info(
            "SignalService initialized: symbol=%s preset=%s interval=%ds",
            self.symbol,
            self.engine.preset,
            settings.candle_interval_seconds,
        )

    def on_signal(self, callback: SignalCallback) -> None:
        """Register callback for new signals."""
        self._callbacks.append(callback)

    async def on_candle_closed(self, candle: Candle) -> None:
        await self.refresh()

    async def refresh(self) -> SignalResult:
        """Classify the closed history and notify callbacks."""
        result = self.engine.classify(self.builder.candles())
        self._record(result)

        for callback in self._callbacks:
            try:
                await callback(result)
            except Exception as e:
                logger.error("Signal callback error: %s", e)

        return result

    def preview(self) -> SignalResult:
        """Classify including the forming candle, without recording the result."""
        return self.engine.classify(self.builder.candles(include_current=True))

    def _record(self, result: SignalResult) -> None:
        previous = self.latest
        self.latest = result
        if not result.warmed_up:
            logger.debug("%s warming up: %s", self.symbol, result.reason)
            return

        # Newest first
        self.history.appendleft(result)
        if previous is None or previous.combined_label != result.combined_label:
            logger.info(
                "%s signal: %s (%s, confidence %d%%)",
                self.symbol,
                result.combined_label.value,
                result.confidence_score,
                result.confidence,
            )
