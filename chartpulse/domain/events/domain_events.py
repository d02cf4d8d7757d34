"""
ChartPulse – Domain Events / Commands
=======================================
Modelo explícito de comandos y eventos del gráfico.

Los COMANDOS (TickArrived, IntervalChanged, IndicatorAdded, ...) se
procesan de forma síncrona y en orden por ChartSessionUseCase:
    agregar → recalcular indicadores → snapshot para el renderer

Los EVENTOS (CandleSealed) representan HECHOS ya ocurridos; se publican
en el EventBus para consumidores externos.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence


@dataclass(frozen=True)
class DomainEvent:
    """Evento/comando base de dominio."""

    event_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.__class__.__name__,
            "timestamp": self.timestamp,
        }


# ─── Comandos ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TickArrived(DomainEvent):
    """Llegó un last-traded-price."""

    price: float = 0.0
    at_time: Any = None
    volume: float = 0.0


@dataclass(frozen=True)
class BarsLoaded(DomainEvent):
    """Carga batch de barras crudas (seed histórico)."""

    bars: Sequence[Any] = ()


@dataclass(frozen=True)
class BoundaryCheck(DomainEvent):
    """Comprobación periódica de cierre de vela contra el reloj."""

    now: Any = None


@dataclass(frozen=True)
class IntervalChanged(DomainEvent):
    interval: str = "1m"


@dataclass(frozen=True)
class IndicatorAdded(DomainEvent):
    indicator_id: str = ""
    overrides: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class IndicatorUpdated(DomainEvent):
    instance_id: str = ""
    overrides: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class IndicatorRemoved(DomainEvent):
    instance_id: str = ""


@dataclass(frozen=True)
class SignalsReceived(DomainEvent):
    signals: Sequence[Any] = ()


# ─── Eventos ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CandleSealed(DomainEvent):
    """Evento: una vela pasó de abierta a cerrada."""

    time: int = 0
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    volume: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        })
        return base
