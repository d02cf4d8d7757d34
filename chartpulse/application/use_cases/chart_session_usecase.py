"""
ChartPulse – Chart Session Use Case
=====================================
Caso de uso central: procesa los comandos del gráfico de forma síncrona y
en orden, y entrega al renderer un snapshot completo tras cada ciclo.

FLUJO (cada comando):
  comando (TickArrived, IntervalChanged, IndicatorAdded, ...)
       │
       ▼
  ChartSessionUseCase.handle(command)
       │
       ├── CandleAggregator      → agregar ticks / batch / boundary
       ├── IndicatorService      → recalcular trazas desde la ventana
       └── snapshot()            → ChartSnapshot para el renderer
                 │
                 └── publish_snapshot() → EventBus("chart_snapshot")

ERRORES:
- La ingesta (ticks, barras, señales) NUNCA lanza: los datos inválidos se
  descartan y se registran en log.
- Solo la configuración (indicadores, intervalo) lanza ConfigurationError
  al llamador, de forma síncrona.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from chartpulse.application.dto.chart_dto import (
    DOWN_VOLUME_COLOR,
    UP_VOLUME_COLOR,
    ChartSnapshot,
)
from chartpulse.application.services.candle_aggregator import CandleAggregator
from chartpulse.application.services.indicator_service import IndicatorService
from chartpulse.domain.entities.candle import Candle
from chartpulse.domain.events.domain_events import (
    BarsLoaded,
    BoundaryCheck,
    CandleSealed,
    DomainEvent,
    IndicatorAdded,
    IndicatorRemoved,
    IndicatorUpdated,
    IntervalChanged,
    SignalsReceived,
    TickArrived,
)
from chartpulse.domain.exceptions.domain_errors import InvalidTimestampError
from chartpulse.domain.services.series_deduplicator import deduplicate
from chartpulse.domain.services.time_normalizer import normalize_time
from chartpulse.domain.value_objects.interval import interval_to_seconds
from chartpulse.domain.value_objects.marker import Marker, Signal, SignalType
from chartpulse.infrastructure.external.event_bus import (
    CANDLE_SEALED_TOPIC,
    CHART_SNAPSHOT_TOPIC,
    EventBus,
)
from chartpulse.shared.logging.logger import get_logger

logger = get_logger("chart_session")

# (interval_seconds, now) → barras crudas para re-sembrar tras un cambio de intervalo
HistoryProvider = Callable[[int, float], Iterable[Any]]


def _signal_from(raw: Any) -> Optional[Signal]:
    """Signal desde un Signal o un mapping {time, type, label}. None si no es válida."""
    if isinstance(raw, Signal):
        return raw
    if not isinstance(raw, Mapping):
        return None
    try:
        signal_type = SignalType(str(raw.get("type", "")).lower())
    except ValueError:
        return None
    label = raw.get("label") or raw.get("text")
    return Signal(time=raw.get("time"), type=signal_type, label=label)


class ChartSessionUseCase:
    """
    Un gráfico: agregador de velas + indicadores seleccionados + marcadores.

    Todas las mutaciones pasan por los métodos on_* (o por handle()), que
    se ejecutan completos antes de devolver el control: ningún estado
    intermedio es observable desde fuera.
    """

    def __init__(
        self,
        indicator_service: IndicatorService,
        interval: str = "1m",
        period: int = 100,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
        history_provider: Optional[HistoryProvider] = None,
    ) -> None:
        self._indicators = indicator_service
        self._interval = interval
        self._period = period
        self._event_bus = event_bus
        self._clock = clock
        self._history_provider = history_provider
        self._aggregator = CandleAggregator(
            interval_seconds=interval_to_seconds(interval), period=period, clock=clock,
        )
        self._markers: List[Marker] = []
        self._pending_sealed: List[Candle] = []
        self._is_live = False
        self._processed_count = 0

        self._handlers: Dict[type, Callable[[Any], Any]] = {
            TickArrived: lambda c: self.on_tick_arrived(c.price, c.at_time, c.volume),
            BarsLoaded: lambda c: self.on_bars_loaded(c.bars),
            BoundaryCheck: lambda c: self.on_boundary_check(c.now),
            IntervalChanged: lambda c: self.on_interval_changed(c.interval),
            IndicatorAdded: lambda c: self.on_indicator_added(c.indicator_id, c.overrides),
            IndicatorUpdated: lambda c: self.on_indicator_updated(c.instance_id, c.overrides or {}),
            IndicatorRemoved: lambda c: self.on_indicator_removed(c.instance_id),
            SignalsReceived: lambda c: self.on_signals_received(c.signals),
        }
        logger.info(
            "ChartSession inicializada (intervalo=%s, ventana=%d)", interval, period,
        )

    # ──────────────────────── Estado (solo lectura) ─────────────────────

    @property
    def interval(self) -> str:
        return self._interval

    @property
    def aggregator(self) -> CandleAggregator:
        return self._aggregator

    @property
    def indicators(self) -> IndicatorService:
        return self._indicators

    @property
    def markers(self) -> List[Marker]:
        return list(self._markers)

    @property
    def is_live(self) -> bool:
        return self._is_live

    @is_live.setter
    def is_live(self, value: bool) -> None:
        self._is_live = bool(value)

    @property
    def stats(self) -> dict:
        last_tick = self._aggregator.last_tick
        return {
            "interval": self._interval,
            "last_tick": last_tick.to_dict() if last_tick is not None else None,
            "closed_candles": len(self._aggregator.closed_candles),
            "has_open_candle": self._aggregator.open_candle is not None,
            "dropped_points": self._aggregator.dropped_count,
            "indicators": len(self._indicators.registry),
            "markers": len(self._markers),
            "commands_processed": self._processed_count,
        }

    # ──────────────────────── Dispatch de comandos ──────────────────────

    def handle(self, command: DomainEvent) -> Any:
        """Despachar un comando al método on_* correspondiente."""
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Comando no soportado: {type(command).__name__}")
        return handler(command)

    # ──────────────────────── Datos de mercado ──────────────────────────

    def _track(self, sealed: Optional[Candle]) -> Optional[Candle]:
        self._processed_count += 1
        if sealed is not None:
            self._pending_sealed.append(sealed)
        return sealed

    def on_tick_arrived(self, price: Any, at_time: Any = None, volume: Any = 0.0) -> Optional[Candle]:
        """Tick de precio. Sin time → reloj de la sesión. Retorna la vela sellada, si hubo."""
        when = self._clock() if at_time is None else at_time
        return self._track(self._aggregator.ingest_tick(price, when, volume))

    def on_bars_loaded(self, bars: Iterable[Any]) -> int:
        """Carga batch de barras (seed histórico). Reemplaza la ventana."""
        self._processed_count += 1
        self._pending_sealed.clear()
        return self._aggregator.ingest_batch(bars)

    def on_boundary_check(self, now: Any = None) -> Optional[Candle]:
        return self._track(self._aggregator.roll_if_due(now))

    def on_interval_changed(self, interval: str) -> int:
        """
        Cambiar de intervalo: nuevo agregador vacío (ConfigurationError si el
        intervalo no existe). Si hay history_provider se re-siembra la ventana.
        Retorna la cantidad de velas cargadas.
        """
        seconds = interval_to_seconds(interval)
        previous = self._interval
        self._aggregator = CandleAggregator(
            interval_seconds=seconds, period=self._period, clock=self._clock,
        )
        self._interval = interval
        self._pending_sealed.clear()
        self._processed_count += 1
        logger.info("Intervalo cambiado: %s → %s", previous, interval)

        if self._history_provider is None:
            return 0
        return self._aggregator.ingest_batch(self._history_provider(seconds, self._clock()))

    # ──────────────────────── Indicadores ───────────────────────────────

    def on_indicator_added(self, indicator_id: str, overrides: Optional[Mapping[str, Any]] = None) -> str:
        """Seleccionar un indicador. Retorna el id de instancia."""
        self._processed_count += 1
        return self._indicators.add(indicator_id, overrides).instance_id

    def on_indicator_updated(self, instance_id: str, overrides: Mapping[str, Any]) -> str:
        self._processed_count += 1
        return self._indicators.update(instance_id, overrides).instance_id

    def on_indicator_removed(self, instance_id: str) -> str:
        self._processed_count += 1
        return self._indicators.remove(instance_id).instance_id

    # ──────────────────────── Señales → marcadores ──────────────────────

    def on_signals_received(self, signals: Sequence[Any]) -> int:
        """
        Reemplazar los marcadores por los de `signals`. Times inválidos se
        descartan; un marcador por time (gana el último). Retorna cuántos quedan.
        """
        self._processed_count += 1
        markers: List[Marker] = []
        for raw in signals:
            signal = _signal_from(raw)
            if signal is None:
                logger.warning("Señal descartada: formato no válido %r", raw)
                continue
            try:
                epoch = normalize_time(signal.time)
            except InvalidTimestampError as e:
                logger.warning("Señal descartada: %s", e.message)
                continue
            markers.append(Marker.from_signal(signal, epoch))

        self._markers = deduplicate(markers)
        return len(self._markers)

    # ──────────────────────── Snapshot para el renderer ─────────────────

    def snapshot(self) -> ChartSnapshot:
        """Recalcular indicadores desde la ventana actual y empaquetar el estado."""
        candles = self._aggregator.series()

        volume = [
            {
                "time": c.time,
                "value": c.volume,
                "color": UP_VOLUME_COLOR if c.close >= c.open else DOWN_VOLUME_COLOR,
            }
            for c in candles
            if c.volume > 0
        ]

        last_price = self._aggregator.last_tick_price
        if last_price is None and candles:
            last_price = candles[-1].close

        change = 0.0
        percent_change = 0.0
        if candles and last_price is not None:
            first_open = candles[0].open
            change = last_price - first_open
            if first_open:
                percent_change = change / first_open * 100.0

        return ChartSnapshot(
            interval=self._interval,
            is_live=self._is_live,
            candles=[c.to_dict() for c in candles],
            volume=volume,
            traces=self._indicators.build_traces(candles),
            markers=[m.to_dict() for m in self._markers],
            last_price=last_price,
            change=round(change, 2),
            percent_change=round(percent_change, 2),
        )

    async def publish_snapshot(self) -> ChartSnapshot:
        """
        Publicar las velas selladas pendientes (CANDLE_SEALED_TOPIC) y el
        snapshot actual (CHART_SNAPSHOT_TOPIC). Sin EventBus solo lo retorna.
        """
        snapshot = self.snapshot()
        sealed, self._pending_sealed = self._pending_sealed, []
        if self._event_bus is None:
            return snapshot

        for candle in sealed:
            await self._event_bus.publish(CANDLE_SEALED_TOPIC, CandleSealed(
                time=candle.time,
                open=candle.open,
                high=candle.high,
                low=candle.low,
                close=candle.close,
                volume=candle.volume,
            ))
        await self._event_bus.publish(CHART_SNAPSHOT_TOPIC, snapshot)
        return snapshot
