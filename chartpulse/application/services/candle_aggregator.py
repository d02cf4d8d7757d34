"""
ChartPulse – Candle Aggregator
================================
Construye velas OHLCV a partir de ticks en tiempo real (o de un batch de
barras crudas) agrupadas en buckets de `interval_seconds`.

ALGORITMO (ingest_tick):
  1. bucket = floor(epoch / interval) × interval
  2. Sin vela abierta → se abre una con open=high=low=close=price.
  3. Mismo bucket que la vela abierta → se muta en sitio:
     high=max, low=min, close=price, volume += incremento.
  4. Bucket posterior → se SELLA la vela abierta (pasa a closed_candles,
     descartando la más antigua si se supera `period`) y se abre una nueva
     en el bucket del tick con open = close anterior.
  5. Bucket anterior (tick tardío) → se descarta y se registra en log.

ESTADO:
- Solo existe UNA vela abierta a la vez (`_open`), propiedad exclusiva
  de este objeto.
- closed_candles usa deque(maxlen=period) → O(1) en append y descarte.
- interval_seconds es inmutable durante la vida del agregador; cambiar de
  intervalo implica crear un agregador nuevo.

ERRORES:
- Timestamps o precios inválidos se descartan en la frontera (WARNING),
  nunca se propagan: un raise aquí detendría el timer live.
"""

from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Iterable, List, Mapping, Optional

from chartpulse.domain.entities.candle import Candle
from chartpulse.domain.exceptions.domain_errors import (
    ConfigurationError,
    InvalidTimestampError,
)
from chartpulse.domain.services.series_deduplicator import deduplicate
from chartpulse.domain.services.time_normalizer import normalize_time
from chartpulse.domain.value_objects.interval import bucket_start
from chartpulse.domain.value_objects.tick import Tick
from chartpulse.shared.logging.logger import get_logger

logger = get_logger("candle_aggregator")


@dataclass
class _OpenCandle:
    """Vela mutable en construcción (solo uso interno)."""

    time: int             # inicio del bucket
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    def update(self, price: float, volume: float) -> None:
        """Actualizar OHLCV con un nuevo precio."""
        self.high = max(self.high, price)
        self.low = min(self.low, price)
        self.close = price
        self.volume += volume

    def freeze(self) -> Candle:
        """Convertir en Candle inmutable."""
        return Candle(
            time=self.time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
        )

    @classmethod
    def from_candle(cls, candle: Candle) -> "_OpenCandle":
        return cls(
            time=candle.time,
            open=candle.open,
            high=candle.high,
            low=candle.low,
            close=candle.close,
            volume=candle.volume,
        )


def _finite(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _field(bar: Any, name: str) -> Any:
    if isinstance(bar, Mapping):
        return bar.get(name)
    return getattr(bar, name, None)


class CandleAggregator:
    """
    Máquina de estados tick → velas OHLCV.

    Uso:
        aggregator = CandleAggregator(interval_seconds=60, period=100)
        sealed = aggregator.ingest_tick(101.5, 1_700_000_000)
        if sealed:
            # vela cerrada → recalcular indicadores, etc.
    """

    def __init__(
        self,
        interval_seconds: int,
        period: int = 100,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if interval_seconds <= 0:
            raise ConfigurationError(
                "interval_seconds debe ser positivo",
                field="interval_seconds",
                value=interval_seconds,
            )
        if period <= 0:
            raise ConfigurationError(
                "period debe ser positivo", field="period", value=period,
            )
        self._interval = interval_seconds
        self._period = period
        self._clock = clock
        self._open: Optional[_OpenCandle] = None
        self._closed: Deque[Candle] = deque(maxlen=period)
        self._last_tick: Optional[Tick] = None
        self._dropped = 0
        logger.info(
            "CandleAggregator inicializado (intervalo=%ds, ventana=%d)",
            self._interval,
            self._period,
        )

    # ──────────────────────── Estado (solo lectura) ─────────────────────

    @property
    def interval_seconds(self) -> int:
        return self._interval

    @property
    def period(self) -> int:
        return self._period

    @property
    def open_candle(self) -> Optional[Candle]:
        """Snapshot inmutable de la vela abierta."""
        return self._open.freeze() if self._open is not None else None

    @property
    def closed_candles(self) -> List[Candle]:
        """Copia de las velas cerradas (el deque nunca sale de aquí)."""
        return list(self._closed)

    @property
    def last_tick(self) -> Optional[Tick]:
        """Último tick aceptado (o la última barra del batch)."""
        return self._last_tick

    @property
    def last_tick_price(self) -> Optional[float]:
        return self._last_tick.price if self._last_tick is not None else None

    @property
    def dropped_count(self) -> int:
        """Puntos descartados en la frontera de ingesta."""
        return self._dropped

    def series(self) -> List[Candle]:
        """Velas cerradas + vela abierta (si existe), ascendente por time."""
        candles = list(self._closed)
        if self._open is not None:
            candles.append(self._open.freeze())
        return candles

    def reset(self) -> None:
        self._open = None
        self._closed.clear()
        self._last_tick = None

    # ──────────────────────── Ingesta de ticks ──────────────────────────

    def _bucket(self, epoch: int) -> int:
        return bucket_start(epoch, self._interval)

    def _seal(self) -> Candle:
        if self._open is None:
            raise RuntimeError("No hay vela abierta para sellar.")
        sealed = self._open.freeze()
        self._closed.append(sealed)
        self._open = None
        logger.debug(
            "Vela cerrada: t=%d O=%.5f H=%.5f L=%.5f C=%.5f V=%.2f",
            sealed.time, sealed.open, sealed.high, sealed.low, sealed.close, sealed.volume,
        )
        return sealed

    def ingest_tick(self, price: Any, at_time: Any, volume: Any = 0.0) -> Optional[Candle]:
        """
        Procesar un tick. Retorna la Candle sellada si el tick cruzó el
        límite del bucket, None en cualquier otro caso.

        Operación O(1), sin I/O. Nunca lanza por datos inválidos.
        """
        try:
            epoch = normalize_time(at_time)
        except InvalidTimestampError as e:
            self._dropped += 1
            logger.warning("Tick descartado: %s", e.message)
            return None

        price_value = _finite(price)
        if price_value is None or price_value < 0:
            self._dropped += 1
            logger.warning("Tick descartado: precio inválido %r", price)
            return None

        increment = _finite(volume)
        if increment is None or increment < 0:
            increment = 0.0

        bucket = self._bucket(epoch)

        # ── CASO 1: No hay vela abierta → abrir una nueva ──
        if self._open is None:
            if self._closed and bucket <= self._bucket(self._closed[-1].time):
                self._dropped += 1
                logger.warning(
                    "Tick tardío descartado: bucket %d ya sellado", bucket,
                )
                return None
            self._open = _OpenCandle(
                time=bucket,
                open=price_value,
                high=price_value,
                low=price_value,
                close=price_value,
                volume=increment,
            )
            self._last_tick = Tick(epoch=epoch, price=price_value, volume=increment)
            return None

        open_bucket = self._bucket(self._open.time)

        # ── CASO 2: Tick pertenece a la vela abierta ──
        if bucket == open_bucket:
            self._open.update(price_value, increment)
            self._last_tick = Tick(epoch=epoch, price=price_value, volume=increment)
            return None

        # ── CASO 3: Tick de un bucket anterior → descartar ──
        if bucket < open_bucket:
            self._dropped += 1
            logger.warning(
                "Tick tardío descartado: bucket %d < bucket abierto %d",
                bucket,
                open_bucket,
            )
            return None

        # ── CASO 4: Tick cruza el límite → sellar y abrir nueva ──
        previous_close = self._open.close
        sealed = self._seal()
        self._open = _OpenCandle(
            time=bucket,
            open=previous_close,
            high=max(previous_close, price_value),
            low=min(previous_close, price_value),
            close=price_value,
            volume=increment,
        )
        self._last_tick = Tick(epoch=epoch, price=price_value, volume=increment)
        return sealed

    def roll_if_due(self, now: Any = None) -> Optional[Candle]:
        """
        Comprobación de límite contra el reloj: si `now` alcanzó el final
        esperado de la vela abierta, sellarla y abrir una vela plana
        (open=high=low=close=close anterior, volume=0) en el bucket de `now`.
        """
        if self._open is None:
            return None
        try:
            epoch = normalize_time(self._clock() if now is None else now)
        except InvalidTimestampError as e:
            logger.warning("Boundary check ignorado: %s", e.message)
            return None

        expected_end = self._bucket(self._open.time) + self._interval
        if epoch < expected_end:
            return None

        previous_close = self._open.close
        sealed = self._seal()
        self._open = _OpenCandle(
            time=self._bucket(epoch),
            open=previous_close,
            high=previous_close,
            low=previous_close,
            close=previous_close,
        )
        return sealed

    # ──────────────────────── Carga batch ───────────────────────────────

    def _bar_to_candle(self, bar: Any) -> Optional[Candle]:
        try:
            epoch = normalize_time(_field(bar, "time"))
        except InvalidTimestampError as e:
            logger.warning("Barra descartada: %s", e.message)
            return None

        open_ = _finite(_field(bar, "open"))
        high = _finite(_field(bar, "high"))
        low = _finite(_field(bar, "low"))
        close = _finite(_field(bar, "close"))
        if None in (open_, high, low, close):
            logger.warning("Barra descartada en t=%d: OHLC inválido", epoch)
            return None

        volume = _finite(_field(bar, "volume"))
        if volume is None or volume < 0:
            volume = 0.0

        return Candle(
            time=epoch,
            open=open_,
            high=max(high, open_, close),
            low=min(low, open_, close),
            close=close,
            volume=volume,
        )

    def ingest_batch(self, raw_bars: Iterable[Any], now: Any = None) -> int:
        """
        Carga histórica: normalizar cada barra, fusionar timestamps
        duplicados (high=max, low=min, close=último), ordenar ascendente
        y fijar el resultado como closed_candles.

        La última barra pasa a ser la vela abierta si todavía cae en el
        bucket del tiempo real actual. Retorna la cantidad de velas únicas.
        """
        candles: List[Candle] = []
        for bar in raw_bars:
            candle = self._bar_to_candle(bar)
            if candle is None:
                self._dropped += 1
                continue
            candles.append(candle)

        merged = deduplicate(candles, merge=Candle.merge)

        self._closed.clear()
        self._open = None
        self._closed.extend(merged)

        if self._closed:
            last = self._closed[-1]
            try:
                now_epoch = normalize_time(self._clock() if now is None else now)
            except InvalidTimestampError:
                now_epoch = None
            if now_epoch is not None and self._bucket(last.time) == self._bucket(now_epoch):
                self._open = _OpenCandle.from_candle(self._closed.pop())
            self._last_tick = Tick(epoch=last.time, price=last.close)

        logger.info(
            "Batch cargado: %d velas únicas (%d en ventana, abierta=%s)",
            len(merged),
            len(self._closed),
            self._open is not None,
        )
        return len(merged)
