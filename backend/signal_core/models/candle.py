"""Candle (OHLC bar) data models."""

from pydantic import BaseModel, ConfigDict, Field


class Candle(BaseModel):
    """Closed OHLC bar."""

    model_config = ConfigDict(frozen=True)

    open: float
    high: float
    low: float
    close: float
    timestamp: int  # Bar open time, epoch milliseconds

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open

    @property
    def body_size(self) -> float:
        """Get the absolute size of the candle body."""
        return abs(self.close - self.open)

    @property
    def range_size(self) -> float:
        """Get the full range (high - low) of the candle."""
        return self.high - self.low

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low


class CandleBuffer(BaseModel):
    """Capped history of closed candles fed to the engine."""

    candles: list[Candle] = Field(default_factory=list)
    max_size: int = 200

    def add(self, candle: Candle) -> None:
        """Add a candle to the buffer, maintaining max size."""
        if self.candles and candle.timestamp <= self.candles[-1].timestamp:
            # Same bar re-delivered: keep the latest version
            if candle.timestamp == self.candles[-1].timestamp:
                self.candles[-1] = candle
            return

        self.candles.append(candle)
        if len(self.candles) > self.max_size:
            self.candles = self.candles[-self.max_size :]

    def extend(self, candles: list[Candle]) -> None:
        for candle in candles:
            self.add(candle)

    def __len__(self) -> int:
        return len(self.candles)
