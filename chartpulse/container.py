"""
Dependency Injection Container.

Contenedor que crea y conserva las instancias de la aplicación: event bus,
sesión de gráfico, controlador live, fuente de precios y broadcaster WS.

Clean Architecture: este contenedor vive en la capa más externa y es el
único lugar donde se crean dependencias concretas.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from chartpulse.application.services.indicator_service import IndicatorService, default_params
from chartpulse.application.state.indicator_registry import IndicatorRegistry
from chartpulse.application.use_cases.chart_session_usecase import ChartSessionUseCase
from chartpulse.application.use_cases.live_session import LiveSessionController
from chartpulse.domain.entities.candle import Candle
from chartpulse.infrastructure.external.event_bus import EventBus
from chartpulse.infrastructure.simulation.random_walk import RandomWalkPriceSource, generate_history
from chartpulse.presentation.websocket.websocket_manager import WebSocketManager
from chartpulse.shared.config.settings import Settings


@dataclass
class Container:
    """
    Contenedor de Inyección de Dependencias.

    Cada instancia se crea perezosamente la primera vez que se pide y se
    reutiliza después. El RNG de simulación es propio del contenedor
    (sembrado con settings.simulation_seed), nunca el global.
    """

    settings: Settings = field(default_factory=Settings)
    clock: Callable[[], float] = time.time

    _instances: Dict[str, Any] = field(default_factory=dict)

    def _get(self, name: str, factory: Callable[[], Any]) -> Any:
        if name not in self._instances:
            self._instances[name] = factory()
        return self._instances[name]

    # ==================== Infraestructura ====================

    @property
    def rng(self) -> random.Random:
        return self._get("rng", lambda: random.Random(self.settings.simulation_seed))

    @property
    def event_bus(self) -> EventBus:
        return self._get(
            "event_bus",
            lambda: EventBus(max_queue_size=self.settings.event_bus_max_queue_size),
        )

    @property
    def price_source(self) -> RandomWalkPriceSource:
        return self._get("price_source", lambda: RandomWalkPriceSource(
            base_price=self.settings.simulation_base_price,
            volatility=self.settings.simulation_volatility,
            rng=self.rng,
        ))

    def history(self, interval_seconds: int, now: float) -> List[Candle]:
        """Histórico sintético para sembrar la ventana."""
        return generate_history(
            count=self.settings.window_period,
            interval_seconds=interval_seconds,
            now=now,
            rng=self.rng,
            base_price=self.settings.simulation_base_price,
        )

    # ==================== Aplicación ====================

    @property
    def indicator_service(self) -> IndicatorService:
        return self._get("indicator_service", lambda: IndicatorService(
            registry=IndicatorRegistry(),
            defaults=default_params(self.settings),
        ))

    @property
    def chart_session(self) -> ChartSessionUseCase:
        return self._get("chart_session", lambda: ChartSessionUseCase(
            indicator_service=self.indicator_service,
            interval=self.settings.default_interval,
            period=self.settings.window_period,
            event_bus=self.event_bus,
            clock=self.clock,
            history_provider=self.history if self.settings.seed_history else None,
        ))

    @property
    def live_session(self) -> LiveSessionController:
        return self._get("live_session", lambda: LiveSessionController(
            session=self.chart_session,
            price_source=self.price_source,
            tick_interval_ms=self.settings.tick_interval_ms,
            boundary_check_ms=self.settings.boundary_check_ms,
            clock=self.clock,
        ))

    # ==================== Presentación ====================

    @property
    def ws_manager(self) -> WebSocketManager:
        return self._get("ws_manager", lambda: WebSocketManager(self.event_bus))

    # ==================== Lifecycle ====================

    def reset(self) -> None:
        """Resetea todas las instancias (útil para tests)."""
        self._instances.clear()

    def override(self, name: str, instance: Any) -> None:
        """Reemplazar una dependencia (útil para tests con fakes)."""
        self._instances[name] = instance


_container: Optional[Container] = None


def init_container(settings: Optional[Settings] = None) -> Container:
    """Crear el contenedor global."""
    global _container
    _container = Container(settings=settings) if settings is not None else Container()
    return _container


def get_container() -> Container:
    """Obtener el contenedor global (lo crea si no existe)."""
    if _container is None:
        return init_container()
    return _container
