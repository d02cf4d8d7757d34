"""
ChartPulse – Application Port: Price Source
=============================================
Interfaz de la fuente de precios que alimenta la sesión live.

Los use cases piden el siguiente precio; la infraestructura decide
CÓMO obtenerlo (random walk simulado, feed real, replay, ...).

IMPLEMENTACIONES POSIBLES:
- RandomWalkPriceSource (simulación)
- Feed de mercado real (fuera del alcance del núcleo)
- Fuente scriptada (testing)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class IPriceSource(ABC):
    """Proveedor de last-traded-price para la sesión live."""

    @abstractmethod
    def next_price(self) -> float:
        """Siguiente precio observado."""

    @abstractmethod
    def next_volume(self) -> float:
        """Incremento de volumen asociado al siguiente tick."""

    @abstractmethod
    def reset(self, price: Optional[float] = None) -> None:
        """Reposicionar la fuente en `price` (p.ej. tras cargar histórico)."""
