"""Tests for the tick-to-candle builder."""

import logging

import pytest

from signal_core.models import Candle
from signal_feed.services import CandleBuilder, Tick

BAR_MS = 120_000


class TestBucketing:
    def test_bucket_start_aligned_to_interval(self):
        builder = CandleBuilder(interval_seconds=120)

        assert builder.bucket_start(0) == 0
        assert builder.bucket_start(119_999) == 0
        assert builder.bucket_start(120_000) == BAR_MS
        assert builder.bucket_start(250_000) == 2 * BAR_MS

    def test_invalid_interval(self):
        with pytest.raises(ValueError, match="must be positive"):
            CandleBuilder(interval_seconds=0)


class TestAddTick:
    @pytest.mark.asyncio
    async def test_first_tick_opens_candle(self):
        builder = CandleBuilder()

        closed = await builder.add_tick(Tick(price=100.0, timestamp=5_000))

        assert closed is None
        assert builder.current_candle == Candle(
            open=100.0, high=100.0, low=100.0, close=100.0, timestamp=0
        )
        assert builder.tick_count == 1

    @pytest.mark.asyncio
    async def test_ticks_update_ohlc(self):
        builder = CandleBuilder()

        for ts, price in [(1_000, 100.0), (2_000, 101.5), (3_000, 99.2), (4_000, 100.4)]:
            await builder.add_tick(Tick(price=price, timestamp=ts))

        current = builder.current_candle
        assert current.open == 100.0
        assert current.high == 101.5
        assert current.low == 99.2
        assert current.close == 100.4
        assert len(builder.buffer) == 0

    @pytest.mark.asyncio
    async def test_new_bucket_closes_candle(self):
        builder = CandleBuilder()
        await builder.add_tick(Tick(price=100.0, timestamp=1_000))
        await builder.add_tick(Tick(price=102.0, timestamp=60_000))

        closed = await builder.add_tick(Tick(price=101.0, timestamp=BAR_MS + 10))

        assert closed is not None
        assert closed.timestamp == 0
        assert closed.close == 102.0
        assert builder.candles() == [closed]
        assert builder.current_candle.timestamp == BAR_MS
        assert builder.current_candle.open == 101.0

    @pytest.mark.asyncio
    async def test_gap_skips_empty_buckets(self):
        builder = CandleBuilder()
        await builder.add_tick(Tick(price=100.0, timestamp=0))

        closed = await builder.add_tick(Tick(price=100.5, timestamp=5 * BAR_MS))

        assert closed.timestamp == 0
        assert builder.current_candle.timestamp == 5 * BAR_MS

    @pytest.mark.asyncio
    async def test_late_tick_ignored(self):
        builder = CandleBuilder()
        await builder.add_tick(Tick(price=100.0, timestamp=BAR_MS))

        closed = await builder.add_tick(Tick(price=50.0, timestamp=BAR_MS - 1))

        assert closed is None
        assert builder.tick_count == 1
        assert builder.current_candle.low == 100.0

    @pytest.mark.asyncio
    async def test_history_capped(self):
        builder = CandleBuilder(max_candles=5)

        for i in range(10):
            await builder.add_tick(Tick(price=100.0 + i, timestamp=i * BAR_MS))

        candles = builder.candles()
        assert len(candles) == 5
        assert candles[-1].timestamp == 8 * BAR_MS

    @pytest.mark.asyncio
    async def test_include_current(self):
        builder = CandleBuilder()
        await builder.add_tick(Tick(price=100.0, timestamp=0))
        await builder.add_tick(Tick(price=101.0, timestamp=BAR_MS))

        candles = builder.candles(include_current=True)

        assert len(candles) == 2
        assert candles[-1] is builder.current_candle


class TestCallbacks:
    @pytest.mark.asyncio
    async def test_callback_invoked(self):
        builder = CandleBuilder()
        closed_candles = []

        async def callback(candle: Candle):
            closed_candles.append(candle)

        builder.on_candle_closed(callback)
        await builder.add_tick(Tick(price=100.0, timestamp=0))
        await builder.add_tick(Tick(price=101.0, timestamp=BAR_MS))

        assert len(closed_candles) == 1
        assert closed_candles[0].timestamp == 0

    @pytest.mark.asyncio
    async def test_callback_error_logged(self, caplog):
        builder = CandleBuilder()
        received = []

        async def failing(candle: Candle):
            raise RuntimeError("boom")

        async def working(candle: Candle):
            received.append(candle)

        builder.on_candle_closed(failing)
        builder.on_candle_closed(working)

        with caplog.at_level(logging.ERROR):
            await builder.add_tick(Tick(price=100.0, timestamp=0))
            closed = await builder.add_tick(Tick(price=101.0, timestamp=BAR_MS))

        assert closed is not None
        assert received == [closed]
        assert "Candle callback error: boom" in caplog.text


class TestLoadHistory:
    @pytest.mark.asyncio
    async def test_load_history_replaces_buffer(self):
        builder = CandleBuilder()
        await builder.add_tick(Tick(price=100.0, timestamp=0))

        history = [
            Candle(open=1.0, high=2.0, low=0.5, close=1.5, timestamp=i * BAR_MS)
            for i in range(3)
        ]
        builder.load_history(history)

        assert builder.candles() == history
        assert builder.current_candle is None

        closed = await builder.add_tick(Tick(price=1.6, timestamp=3 * BAR_MS))
        assert closed is None
        assert builder.current_candle.timestamp == 3 * BAR_MS

    @pytest.mark.asyncio
    async def test_tick_continues_newest_loaded_candle(self):
        builder = CandleBuilder()
        history = [
            Candle(open=1.0, high=2.0, low=0.5, close=1.5, timestamp=i * BAR_MS)
            for i in range(3)
        ]
        builder.load_history(history)

        await builder.add_tick(Tick(price=1.7, timestamp=2 * BAR_MS + 60_000))

        current = builder.current_candle
        assert current == Candle(open=1.0, high=2.0, low=0.5, close=1.7, timestamp=2 * BAR_MS)
        assert builder.candles() == history[:2]

        closed = await builder.add_tick(Tick(price=1.8, timestamp=3 * BAR_MS))

        assert closed == current
        assert builder.candles()[-1] == Candle(
            open=1.0, high=2.0, low=0.5, close=1.7, timestamp=2 * BAR_MS
        )
        assert len(builder.candles()) == 3

    @pytest.mark.asyncio
    async def test_tick_older_than_history_ignored(self):
        builder = CandleBuilder()
        history = [
            Candle(open=1.0, high=2.0, low=0.5, close=1.5, timestamp=i * BAR_MS)
            for i in range(3)
        ]
        builder.load_history(history)

        closed = await builder.add_tick(Tick(price=9.0, timestamp=BAR_MS))

        assert closed is None
        assert builder.current_candle is None
        assert builder.candles() == history
        assert builder.tick_count == 0
