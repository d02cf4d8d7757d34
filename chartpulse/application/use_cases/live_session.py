"""
ChartPulse – Live Session Controller
======================================
Conduce la llegada periódica de ticks (simulados o reales) y la
comprobación de cierre de vela contra el reloj.

ESTADOS:
  STOPPED ──toggle()/start()──▸ LIVE
  LIVE    ──toggle()/stop()───▸ STOPPED

Mientras está LIVE corren dos asyncio.Task independientes:
  - tick loop      (cada tick_interval_ms)   → ChartSession.on_tick_arrived
  - boundary loop  (cada boundary_check_ms)  → ChartSession.on_boundary_check

CANCELACIÓN SÍNCRONA Y SIN FUGAS:
- stop() cancela ambos tasks en el acto.
- Cada disparo vuelve a comprobar `state is LIVE` DESPUÉS de despertar:
  un timer que despierta tras un stop es un no-op, nunca un crash.
- Un único flag in-flight impide que un handler entre mientras el otro
  está a mitad de una actualización.
- Una excepción dentro de un handler se registra y el loop sigue vivo.

Cada controlador posee su propia fuente de precios (y con ella su RNG):
no hay estado de simulación global.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Callable, List, Optional, Set

from chartpulse.application.ports.price_source import IPriceSource
from chartpulse.application.use_cases.chart_session_usecase import ChartSessionUseCase
from chartpulse.shared.logging.logger import get_logger

logger = get_logger("live_session")


class SessionState(str, Enum):
    STOPPED = "stopped"
    LIVE = "live"


class LiveSessionController:
    """Dueño de los timers live de UN gráfico."""

    def __init__(
        self,
        session: ChartSessionUseCase,
        price_source: IPriceSource,
        tick_interval_ms: int = 500,
        boundary_check_ms: int = 1000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session = session
        self._source = price_source
        self._tick_interval = tick_interval_ms / 1000.0
        self._boundary_interval = boundary_check_ms / 1000.0
        self._clock = clock
        self._state = SessionState.STOPPED
        self._tasks: List[asyncio.Task] = []
        # Cancelados pendientes de terminar; cada task se retira al completar
        self._cancelled: Set[asyncio.Task] = set()
        self._in_flight = False

        # Métricas
        self._ticks_generated = 0
        self._boundary_checks = 0
        self._candles_sealed = 0
        self._skipped = 0
        self._errors = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_live(self) -> bool:
        return self._state is SessionState.LIVE

    # ──────────────────────── Transiciones ──────────────────────────────

    def start(self) -> None:
        """Pasar a LIVE y lanzar los dos timers. Idempotente."""
        if self._state is SessionState.LIVE:
            return
        self._state = SessionState.LIVE
        self._session.is_live = True

        last_price = self._session.aggregator.last_tick_price
        if last_price is not None:
            self._source.reset(last_price)

        self._tasks = [
            asyncio.create_task(self._tick_loop(), name="live-tick-loop"),
            asyncio.create_task(self._boundary_loop(), name="live-boundary-loop"),
        ]
        logger.info(
            "Sesión LIVE (tick=%.3fs, boundary=%.3fs)",
            self._tick_interval,
            self._boundary_interval,
        )

    def stop(self) -> None:
        """Pasar a STOPPED y cancelar los timers en el acto. Idempotente."""
        if self._state is SessionState.STOPPED:
            return
        self._state = SessionState.STOPPED
        self._session.is_live = False
        for task in self._tasks:
            task.cancel()
            if not task.done():
                self._cancelled.add(task)
                task.add_done_callback(self._cancelled.discard)
        self._tasks = []
        logger.info(
            "Sesión detenida. Ticks: %d, velas selladas: %d",
            self._ticks_generated,
            self._candles_sealed,
        )

    def toggle(self) -> SessionState:
        if self._state is SessionState.LIVE:
            self.stop()
        else:
            self.start()
        return self._state

    async def shutdown(self) -> None:
        """Detener y esperar a que los tasks cancelados terminen."""
        self.stop()
        pending = [t for t in self._cancelled if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._cancelled.clear()

    # ──────────────────────── Disparos (un ciclo cada uno) ──────────────

    async def tick_once(self) -> bool:
        """Un tick: precio de la fuente → sesión → snapshot. False si no corrió."""
        return await self._guarded(self._generate_tick, "tick")

    async def boundary_once(self) -> bool:
        """Una comprobación de cierre de vela contra el reloj."""
        return await self._guarded(self._check_boundary, "boundary")

    def _generate_tick(self) -> None:
        price = self._source.next_price()
        volume = self._source.next_volume()
        sealed = self._session.on_tick_arrived(price, self._clock(), volume)
        self._ticks_generated += 1
        if sealed is not None:
            self._candles_sealed += 1

    def _check_boundary(self) -> None:
        sealed = self._session.on_boundary_check(self._clock())
        self._boundary_checks += 1
        if sealed is not None:
            self._candles_sealed += 1

    async def _guarded(self, handler: Callable[[], None], name: str) -> bool:
        # Comprobación de estado en el momento del disparo
        if self._state is not SessionState.LIVE:
            return False
        if self._in_flight:
            self._skipped += 1
            logger.debug("Disparo '%s' omitido: actualización en curso", name)
            return False

        self._in_flight = True
        try:
            handler()
            await self._session.publish_snapshot()
            return True
        except Exception as e:
            self._errors += 1
            logger.error("Error en disparo '%s': %s", name, e, exc_info=True)
            return False
        finally:
            self._in_flight = False

    # ──────────────────────── Loops ─────────────────────────────────────

    async def _tick_loop(self) -> None:
        try:
            while self._state is SessionState.LIVE:
                await asyncio.sleep(self._tick_interval)
                await self.tick_once()
        except asyncio.CancelledError:
            logger.debug("Tick loop cancelado")

    async def _boundary_loop(self) -> None:
        try:
            while self._state is SessionState.LIVE:
                await asyncio.sleep(self._boundary_interval)
                await self.boundary_once()
        except asyncio.CancelledError:
            logger.debug("Boundary loop cancelado")

    @property
    def stats(self) -> dict:
        return {
            "state": self._state.value,
            "ticks_generated": self._ticks_generated,
            "boundary_checks": self._boundary_checks,
            "candles_sealed": self._candles_sealed,
            "skipped": self._skipped,
            "errors": self._errors,
            "pending_cancellations": len(self._cancelled),
        }
