"""
ChartPulse – Domain Value Objects: Signal y Marker
===================================================
Una señal de trading (buy/sell) y el marcador que la representa en el
gráfico. Un marcador por timestamp distinto tras deduplicar (gana el último).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

BUY_COLOR = "#26a69a"
SELL_COLOR = "#ef5350"


class SignalType(str, Enum):
    BUY = "buy"
    SELL = "sell"


class MarkerPosition(str, Enum):
    BELOW_BAR = "belowBar"
    ABOVE_BAR = "aboveBar"


@dataclass(frozen=True, slots=True)
class Signal:
    """Señal de entrada tal como llega del exterior (time sin normalizar)."""

    time: Any
    type: SignalType
    label: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Marker:
    """Marcador listo para el renderer."""

    time: int
    position: MarkerPosition
    shape: str
    color: str
    text: str
    size: float = 1.5

    @classmethod
    def from_signal(cls, signal: Signal, time: int) -> "Marker":
        """Construir el marcador de una señal con su time ya normalizado."""
        if signal.type is SignalType.BUY:
            return cls(
                time=time,
                position=MarkerPosition.BELOW_BAR,
                shape="arrowUp",
                color=BUY_COLOR,
                text=signal.label or "Buy",
            )
        return cls(
            time=time,
            position=MarkerPosition.ABOVE_BAR,
            shape="arrowDown",
            color=SELL_COLOR,
            text=signal.label or "Sell",
        )

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "position": self.position.value,
            "shape": self.shape,
            "color": self.color,
            "text": self.text,
            "size": self.size,
        }
