"""
ChartPulse – Render boundary DTOs
===================================
Lo que el núcleo entrega al renderer tras cada ciclo de actualización.

El renderer hace su propio diff contra lo último dibujado; el núcleo NO
rastrea qué ha visto ya el renderer. Todas las series van ordenadas
ascendente por time, sin duplicados.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

LINE = "line"
HISTOGRAM = "histogram"

# Paneles: 0 = precio (overlays), 1 = volumen, 2.. = osciladores
PRICE_PANE = 0
VOLUME_PANE = 1
FIRST_OSCILLATOR_PANE = 2

UP_VOLUME_COLOR = "#26a69a"
DOWN_VOLUME_COLOR = "#ef5350"


@dataclass
class TraceDTO:
    """Serie derivada con nombre, lista para dibujar."""

    id: str
    name: str
    type: str                     # line | histogram
    pane_index: int
    data: List[Dict[str, Any]] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "paneIndex": self.pane_index,
            "data": self.data,
            "options": self.options,
        }


@dataclass
class ChartSnapshot:
    """Estado completo para el renderer tras un ciclo."""

    interval: str
    is_live: bool
    candles: List[Dict[str, Any]] = field(default_factory=list)
    volume: List[Dict[str, Any]] = field(default_factory=list)
    traces: List[TraceDTO] = field(default_factory=list)
    markers: List[Dict[str, Any]] = field(default_factory=list)
    last_price: Optional[float] = None
    change: float = 0.0
    percent_change: float = 0.0

    def to_dict(self) -> dict:
        return {
            "interval": self.interval,
            "is_live": self.is_live,
            "candles": self.candles,
            "volume": self.volume,
            "traces": [t.to_dict() for t in self.traces],
            "markers": self.markers,
            "last_price": self.last_price,
            "change": self.change,
            "percent_change": self.percent_change,
        }
