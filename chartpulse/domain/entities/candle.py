"""
ChartPulse – Domain Entity: Candle
====================================
Vela OHLCV inmutable con timestamp de apertura del bucket.

Decisiones de diseño:
- frozen=True → una vez sellada nadie puede alterar una vela pasada.
  La única vela mutable es la vela abierta que vive dentro de
  CandleAggregator.
- Se usa dataclass por rendimiento (más ligera que Pydantic para hot-path).

INVARIANTE: low ≤ min(open, close) y high ≥ max(open, close).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Candle:
    """Vela OHLCV."""

    time: int            # epoch-seconds de apertura (>0, único dentro de una serie)
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    def to_dict(self) -> dict:
        """Serialización para WebSocket / frontend."""
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }

    def merge(self, other: "Candle") -> "Candle":
        """
        Fusionar dos barras con el mismo timestamp.

        high=max, low=min, close=la más reciente (other). Se conserva el
        open de la primera barra vista y el volumen mayor de las dos.
        """
        return Candle(
            time=self.time,
            open=self.open,
            high=max(self.high, other.high),
            low=min(self.low, other.low),
            close=other.close,
            volume=max(self.volume, other.volume),
        )
