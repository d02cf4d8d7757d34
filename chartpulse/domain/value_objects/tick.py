"""
ChartPulse – Domain Value Object: Tick
========================================
Una observación de precio individual con su timestamp.

- frozen=True → inmutable, seguro para pasar entre coroutines.
- slots=True  → menor footprint de memoria en hot-path.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Tick:
    """Tick de precio (last-traded-price)."""

    epoch: int        # epoch-seconds ya normalizado
    price: float
    volume: float = 0.0   # incremento de volumen aportado por este tick

    def to_dict(self) -> dict:
        return {
            "epoch": self.epoch,
            "price": self.price,
            "volume": self.volume,
        }
