"""
ChartPulse – Simulated market data
====================================
Fuente de precios random-walk y generador de histórico sintético.

Cada instancia posee su propio random.Random (inyectado o sembrado):
nunca se usa el RNG global del módulo `random`, así dos gráficos no
comparten estado y los tests son reproducibles con una semilla.
"""

from __future__ import annotations

import random
from typing import List, Optional

from chartpulse.application.ports.price_source import IPriceSource
from chartpulse.domain.entities.candle import Candle
from chartpulse.domain.value_objects.interval import bucket_start
from chartpulse.shared.logging.logger import get_logger

logger = get_logger("simulation")


class RandomWalkPriceSource(IPriceSource):
    """
    Random walk: cada paso mueve el precio ±uniform(0, volatility) con
    dirección 50/50, nunca por debajo de 0, redondeado a 2 decimales.
    """

    def __init__(
        self,
        base_price: float = 100.0,
        volatility: float = 0.1,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._volatility = volatility
        self._price = round(base_price, 2)

    @property
    def last_price(self) -> float:
        return self._price

    def next_price(self) -> float:
        direction = 1 if self._rng.random() > 0.5 else -1
        magnitude = self._rng.random() * self._volatility
        self._price = max(0.0, round(self._price + direction * magnitude, 2))
        return self._price

    def next_volume(self) -> float:
        return float(self._rng.randint(0, 9))

    def reset(self, price: Optional[float] = None) -> None:
        if price is not None:
            self._price = round(price, 2)


def generate_history(
    count: int,
    interval_seconds: int,
    now: float,
    rng: random.Random,
    base_price: float = 100.0,
    volatility: float = 2.0,
) -> List[Candle]:
    """
    Histórico sintético de `count` velas contiguas que termina en el
    bucket anterior al de `now`. Volumen por vela en [100, 1099].
    """
    end = bucket_start(int(now), interval_seconds)
    start = end - count * interval_seconds
    candles: List[Candle] = []
    last_close = base_price

    for i in range(count):
        change = (rng.random() - 0.5) * volatility
        open_ = last_close
        high = open_ + abs(change) + rng.random() * volatility
        low = max(0.0, open_ - abs(change) - rng.random() * volatility)
        close = max(0.0, open_ + change)
        candles.append(Candle(
            time=start + i * interval_seconds,
            open=round(open_, 2),
            high=round(max(high, open_, close), 2),
            low=round(min(low, open_, close), 2),
            close=round(close, 2),
            volume=float(rng.randint(100, 1099)),
        ))
        last_close = close

    logger.info(
        "Histórico sintético generado: %d velas de %ds (hasta t=%d)",
        count, interval_seconds, end,
    )
    return candles
