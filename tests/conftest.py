"""Fixtures compartidas: reloj determinista, RNG sembrado, settings de test."""

from __future__ import annotations

import random
from typing import List, Optional, Sequence

import pytest

from chartpulse.application.services.indicator_service import IndicatorService
from chartpulse.application.state.indicator_registry import IndicatorRegistry
from chartpulse.application.use_cases.chart_session_usecase import ChartSessionUseCase
from chartpulse.domain.entities.candle import Candle
from chartpulse.shared.config.settings import Settings

# Inicio de un bucket de 1m (1_699_999_980 % 60 == 0)
BASE = 1_699_999_980


class FakeClock:
    """Reloj manual: los tests deciden qué hora es."""

    def __init__(self, now: float = BASE + 5) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_candles(
    closes: Sequence[float],
    highs: Optional[Sequence[float]] = None,
    lows: Optional[Sequence[float]] = None,
    start: int = BASE,
    step: int = 60,
) -> List[Candle]:
    highs = highs if highs is not None else closes
    lows = lows if lows is not None else closes
    return [
        Candle(time=start + i * step, open=c, high=h, low=l, close=c, volume=1.0)
        for i, (c, h, l) in enumerate(zip(closes, highs, lows))
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        seed_history=False,
        window_period=50,
        tick_interval_ms=10,
        boundary_check_ms=20,
        simulation_seed=42,
    )


@pytest.fixture
def session(clock: FakeClock) -> ChartSessionUseCase:
    return ChartSessionUseCase(
        indicator_service=IndicatorService(IndicatorRegistry()),
        interval="1m",
        period=100,
        clock=clock,
    )
