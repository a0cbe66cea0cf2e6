"""Tick-to-candle builder.

Ticks are bucketed into fixed-interval candles aligned to the epoch:
- A tick in the current bucket updates high/low/close
- A tick in a later bucket closes the current candle and opens a new one
- A tick in an earlier bucket (late delivery) is ignored
- The first tick after load_history continues the newest loaded bar when
  it falls in the same bucket

Closed candles go into a capped CandleBuffer and are passed to the
registered async callbacks.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

from signal_core.models.candle import Candle, CandleBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tick:
    price: float
    timestamp: int  # epoch milliseconds


class CandleBuilder:
    """Builds fixed-interval candles from a tick stream.

    Usage:
        builder = CandleBuilder(interval_seconds=120)
        builder.on_candle_closed(my_callback)

        for tick in ticks:
            await builder.add_tick(tick)
    """

    def __init__(self, interval_seconds: int = 120, max_candles: int = 200):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.interval_ms = interval_seconds * 1000
        self.buffer = CandleBuffer(max_size=max_candles)
        self.tick_count = 0
        self.last_tick: Tick | None = None

        self._current: Candle | None = None
        self._callbacks: list[Callable[[Candle], Awaitable[None]]] = []

    def on_candle_closed(self, callback: Callable[[Candle], Awaitable[None]]) -> None:
        """Register an async callback for each closed candle."""
        self._callbacks.append(callback)

    def bucket_start(self, timestamp_ms: int) -> int:
        """Get the candle open time for a tick timestamp."""
        return (int(timestamp_ms) // self.interval_ms) * self.interval_ms

    @property
    def current_candle(self) -> Candle | None:
        """The forming (not yet closed) candle."""
        return self._current

    def candles(self, include_current: bool = False) -> list[Candle]:
        """Closed candles, oldest first, optionally followed by the forming one."""
        candles = list(self.buffer.candles)
        if include_current and self._current is not None:
            candles.append(self._current)
        return candles

    def load_history(self, candles: Iterable[Candle]) -> None:
        """Replace closed history (e.g. from a history request on connect)."""
        self.buffer.candles.clear()
        self.buffer.extend(candles)
        self._current = None
        logger.info("Loaded %d historical candles", len(self.buffer))

    async def add_tick(self, tick: Tick) -> Candle | None:
        """Add a tick.

        Returns:
            The candle closed by this tick, or None
        """
        start = self.bucket_start(tick.timestamp)
        if self._current is None and self.buffer.candles:
            # First tick after load_history: the newest loaded bar may still be forming
            newest = self.buffer.candles[-1]
            if start == newest.timestamp:
                self._current = self.buffer.candles.pop()
            elif start < newest.timestamp:
                logger.debug("Ignoring late tick at %d (history ends %d)", tick.timestamp, newest.timestamp)
                return None
        current = self._current

        if current is not None and start < current.timestamp:
            logger.debug("Ignoring late tick at %d (current candle %d)", tick.timestamp, current.timestamp)
            return None

        self.tick_count += 1
        self.last_tick = tick
        closed: Candle | None = None

        if current is None or start != current.timestamp:
            if current is not None:
                closed = current
                self.buffer.add(closed)
            self._current = Candle(
                open=tick.price,
                high=tick.price,
                low=tick.price,
                close=tick.price,
                timestamp=start,
            )
        else:
            self._current = Candle(
                open=current.open,
                high=max(current.high, tick.price),
                low=min(current.low, tick.price),
                close=tick.price,
                timestamp=current.timestamp,
            )

        if closed is not None:
            logger.debug("Closed candle at %d (close=%s)", closed.timestamp, closed.close)
            for callback in self._callbacks:
                try:
                    await callback(closed)
                except Exception as e:
                    logger.error("Candle callback error: %s", e)

        return closed
