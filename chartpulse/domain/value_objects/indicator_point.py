"""
ChartPulse – Domain Value Objects: series derivadas
=====================================================
Puntos y resultados producidos por el motor de indicadores.

Convención de warm-up: los índices sin historia suficiente NO emiten
punto. `value` admite None solo porque la frontera de render acepta
trazas externas; el motor nunca emite None ni NaN.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class IndicatorPoint:
    """Punto {time, value} de una serie derivada."""

    time: int
    value: Optional[float]

    def to_dict(self) -> dict:
        return {"time": self.time, "value": self.value}


@dataclass(frozen=True, slots=True)
class BollingerPoint:
    """Bandas de Bollinger para un índice temporal."""

    time: int
    upper: float
    middle: float
    lower: float

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "upper": self.upper,
            "middle": self.middle,
            "lower": self.lower,
        }


@dataclass(frozen=True)
class MACDResult:
    """
    Tres series alineadas por tiempo: macd, signal e histogram.

    Las tres comparten exactamente los mismos índices temporales,
    por lo que histogram[i] == macd[i] - signal[i] también por índice.
    """

    macd: List[IndicatorPoint] = field(default_factory=list)
    signal: List[IndicatorPoint] = field(default_factory=list)
    histogram: List[IndicatorPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "macd": [p.to_dict() for p in self.macd],
            "signal": [p.to_dict() for p in self.signal],
            "histogram": [p.to_dict() for p in self.histogram],
        }


@dataclass(frozen=True)
class StochasticResult:
    """%K suavizado y %D, alineados por tiempo."""

    k: List[IndicatorPoint] = field(default_factory=list)
    d: List[IndicatorPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "k": [p.to_dict() for p in self.k],
            "d": [p.to_dict() for p in self.d],
        }
