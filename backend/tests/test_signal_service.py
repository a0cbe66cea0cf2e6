"""Tests for the per-bar signal service."""

import logging

import numpy as np
import pytest

from signal_core import SignalEngine
from signal_core.models import Candle, SignalResult
from signal_feed.config import Settings
from signal_feed.services import CandleBuilder, SignalService, Tick

BAR_MS = 120_000


def make_settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def history(n: int, seed: int = 7) -> list[Candle]:
    rng = np.random.default_rng(seed)
    closes = 100 + np.cumsum(rng.normal(0, 0.2, n))
    candles = []
    for i, close in enumerate(closes):
        open_price = closes[i - 1] if i > 0 else close
        candles.append(
            Candle(
                open=float(open_price),
                high=float(max(open_price, close) + 0.05),
                low=float(min(open_price, close) - 0.05),
                close=float(close),
                timestamp=i * BAR_MS,
            )
        )
    return candles


def make_service(**settings) -> SignalService:
    return SignalService(
        engine=SignalEngine(),
        settings=make_settings(**settings),
    )


class TestSignalService:
    def test_builder_from_settings(self):
        service = make_service(candle_interval_seconds=60, max_candles=50)

        assert service.builder.interval_ms == 60_000
        assert service.builder.buffer.max_size == 50
        assert service.symbol == "R_50"

    def test_engine_from_settings_preset(self):
        service = SignalService(settings=make_settings(preset="sweep"))

        assert service.engine.preset == "sweep"
        assert service.engine.config.candle_trap.require_sweep is True

    def test_uses_given_builder(self):
        builder = CandleBuilder(interval_seconds=30)

        service = SignalService(engine=SignalEngine(), builder=builder, settings=make_settings())

        assert service.builder is builder

    @pytest.mark.asyncio
    async def test_refresh_records_warmed_up_result(self):
        service = make_service()
        service.builder.load_history(history(120))

        result = await service.refresh()

        assert result.warmed_up is True
        assert service.latest is result
        assert list(service.history) == [result]

    @pytest.mark.asyncio
    async def test_warming_up_not_recorded_in_history(self):
        service = make_service()
        service.builder.load_history(history(50))

        result = await service.refresh()

        assert result.warmed_up is False
        assert service.latest is result
        assert len(service.history) == 0

    @pytest.mark.asyncio
    async def test_history_newest_first_and_capped(self):
        service = make_service(signal_history_size=3)
        candles = history(110)

        for n in range(105, 110):
            service.builder.load_history(candles[:n])
            await service.refresh()

        assert len(service.history) == 3
        timestamps = [r.bar_timestamp for r in service.history]
        assert timestamps == [108 * BAR_MS, 107 * BAR_MS, 106 * BAR_MS]

    @pytest.mark.asyncio
    async def test_closed_candle_triggers_signal(self):
        service = make_service()
        service.builder.load_history(history(120))
        received: list[SignalResult] = []

        async def callback(result: SignalResult):
            received.append(result)

        service.on_signal(callback)
        await service.builder.add_tick(Tick(price=101.0, timestamp=120 * BAR_MS))
        assert received == []

        await service.builder.add_tick(Tick(price=101.2, timestamp=121 * BAR_MS))

        assert len(received) == 1
        assert received[0].bar_count == 121
        assert received[0].bar_timestamp == 120 * BAR_MS

    @pytest.mark.asyncio
    async def test_signal_callback_error_logged(self, caplog):
        service = make_service()
        service.builder.load_history(history(120))

        async def failing(result: SignalResult):
            raise RuntimeError("display down")

        service.on_signal(failing)

        with caplog.at_level(logging.ERROR):
            result = await service.refresh()

        assert service.latest is result
        assert "Signal callback error: display down" in caplog.text

    @pytest.mark.asyncio
    async def test_preview_includes_forming_candle(self):
        service = make_service()
        service.builder.load_history(history(120))
        await service.builder.add_tick(Tick(price=99.0, timestamp=120 * BAR_MS))

        preview = service.preview()

        assert preview.bar_count == 121
        assert preview.bar_timestamp == 120 * BAR_MS
        assert service.latest is None
        assert len(service.history) == 0
