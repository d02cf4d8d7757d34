"""
ChartPulse – Indicator Service
================================
Mantiene las series derivadas de los indicadores seleccionados y las
proyecta a trazas para el renderer.

DISCIPLINA DE REFRESCO:
  Todos los indicadores se RECALCULAN COMPLETOS desde la ventana de velas
  (cerradas + abierta) en cada ciclo. O(n) por tick con n ≤ period, y sin
  estado incremental que pueda desincronizar la familia EMA (cuyo estado
  recursivo depende de todas las salidas anteriores).

  Las velas recibidas son snapshots inmutables; las series producidas son
  siempre listas nuevas.

PANELES:
  SMA / EMA / Bollinger → panel 0 (sobre el precio)
  Volume                → panel 1
  MACD / RSI / Stochastic → un panel propio cada uno, desde el 2, en el
  orden del registro.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from chartpulse.application.dto.chart_dto import (
    FIRST_OSCILLATOR_PANE,
    HISTOGRAM,
    LINE,
    PRICE_PANE,
    VOLUME_PANE,
    TraceDTO,
)
from chartpulse.application.state.indicator_registry import IndicatorEntry, IndicatorRegistry
from chartpulse.domain.entities.candle import Candle
from chartpulse.domain.services.indicator_calculator import IndicatorCalculator
from chartpulse.domain.services.series_deduplicator import normalize_and_deduplicate
from chartpulse.domain.value_objects.indicator_config import (
    BollingerParams,
    EMAParams,
    IndicatorConfig,
    IndicatorKind,
    IndicatorParams,
    MACDParams,
    RSIParams,
    SMAParams,
    StochasticParams,
    VolumeParams,
)
from chartpulse.domain.value_objects.indicator_point import IndicatorPoint
from chartpulse.shared.config.settings import Settings
from chartpulse.shared.logging.logger import get_logger

logger = get_logger("indicator_service")

OVERLAY_KINDS = {IndicatorKind.SMA, IndicatorKind.EMA, IndicatorKind.BOLLINGER}
OSCILLATOR_KINDS = {IndicatorKind.MACD, IndicatorKind.RSI, IndicatorKind.STOCHASTIC}


def default_params(settings: Settings) -> Dict[IndicatorKind, IndicatorParams]:
    """Parámetros por defecto de cada tipo, tomados de Settings."""
    return {
        IndicatorKind.SMA: SMAParams(period=settings.sma_period),
        IndicatorKind.EMA: EMAParams(period=settings.ema_period),
        IndicatorKind.BOLLINGER: BollingerParams(
            period=settings.bollinger_period, std_dev=settings.bollinger_std_dev,
        ),
        IndicatorKind.MACD: MACDParams(
            fast_period=settings.macd_fast,
            slow_period=settings.macd_slow,
            signal_period=settings.macd_signal,
        ),
        IndicatorKind.RSI: RSIParams(period=settings.rsi_period),
        IndicatorKind.STOCHASTIC: StochasticParams(
            period=settings.stochastic_period,
            smooth_k=settings.stochastic_smooth_k,
            smooth_d=settings.stochastic_smooth_d,
        ),
        IndicatorKind.VOLUME: VolumeParams(),
    }


def histogram_color(value: float) -> str:
    """Color de barra del histograma MACD según signo y magnitud."""
    if value >= 0:
        return "#22c55e" if value > 0.05 else "#86efac"
    return "#ef4444" if value < -0.05 else "#fca5a5"


def _line_data(points: Iterable[IndicatorPoint]) -> List[Dict[str, Any]]:
    """Puntos {time, value} limpios: sin None, normalizados y deduplicados."""
    raw = [p.to_dict() for p in points if p.value is not None]
    data, _ = normalize_and_deduplicate(raw)
    return data


class IndicatorService:
    """
    Selección de indicadores + recálculo + proyección a trazas.

    Ciclo de vida:
      1. Se instancia una vez por sesión de gráfico con su registro.
      2. add/update/remove validan la configuración (ConfigurationError).
      3. build_traces(candles) recalcula todo y retorna las trazas.
    """

    def __init__(
        self,
        registry: IndicatorRegistry,
        defaults: Optional[Mapping[IndicatorKind, IndicatorParams]] = None,
        calculator: type[IndicatorCalculator] = IndicatorCalculator,
    ) -> None:
        self._registry = registry
        self._defaults = dict(defaults or {})
        self._calc = calculator
        self._builders: Dict[IndicatorKind, Callable[[IndicatorEntry, Sequence[Candle], int], List[TraceDTO]]] = {
            IndicatorKind.SMA: self._sma_traces,
            IndicatorKind.EMA: self._ema_traces,
            IndicatorKind.BOLLINGER: self._bollinger_traces,
            IndicatorKind.MACD: self._macd_traces,
            IndicatorKind.RSI: self._rsi_traces,
            IndicatorKind.STOCHASTIC: self._stochastic_traces,
            IndicatorKind.VOLUME: self._volume_traces,
        }
        missing = set(IndicatorKind) - set(self._builders)
        if missing:
            raise RuntimeError(f"Tipos de indicador sin builder: {sorted(k.value for k in missing)}")
        logger.info("IndicatorService inicializado (%d tipos)", len(self._builders))

    @property
    def registry(self) -> IndicatorRegistry:
        return self._registry

    # ════════════════════════════════════════════════════════════════
    #  SELECCIÓN
    # ════════════════════════════════════════════════════════════════

    def add(self, indicator_id: str, overrides: Optional[Mapping[str, Any]] = None) -> IndicatorEntry:
        """Seleccionar un indicador. ConfigurationError si id/parámetros no son válidos."""
        config = IndicatorConfig.from_request(indicator_id, overrides, self._defaults)
        return self._registry.create(config)

    def update(self, instance_id: str, overrides: Mapping[str, Any]) -> IndicatorEntry:
        entry = self._registry.get(instance_id)
        return self._registry.update(instance_id, entry.config.with_overrides(overrides))

    def remove(self, instance_id: str) -> IndicatorEntry:
        return self._registry.remove(instance_id)

    # ════════════════════════════════════════════════════════════════
    #  RECÁLCULO → TRAZAS
    # ════════════════════════════════════════════════════════════════

    def build_traces(self, candles: Sequence[Candle]) -> List[TraceDTO]:
        """Recalcular todos los indicadores seleccionados desde `candles`."""
        traces: List[TraceDTO] = []
        next_pane = FIRST_OSCILLATOR_PANE
        for entry in self._registry.entries():
            pane = PRICE_PANE
            if entry.kind is IndicatorKind.VOLUME:
                pane = VOLUME_PANE
            elif entry.kind in OSCILLATOR_KINDS:
                pane = next_pane
                next_pane += 1
            traces.extend(self._builders[entry.kind](entry, candles, pane))
        return traces

    @staticmethod
    def _line(entry: IndicatorEntry, component: str, name: str, pane: int,
              points: Iterable[IndicatorPoint], color: Optional[str] = None) -> TraceDTO:
        return TraceDTO(
            id=f"{entry.instance_id}:{component}",
            name=name,
            type=LINE,
            pane_index=pane,
            data=_line_data(points),
            options={"color": color or entry.config.color, "lineWidth": 2},
        )

    def _sma_traces(self, entry: IndicatorEntry, candles: Sequence[Candle], pane: int) -> List[TraceDTO]:
        period = entry.config.params.period
        return [self._line(entry, "sma", f"SMA {period}", pane, self._calc.sma(candles, period))]

    def _ema_traces(self, entry: IndicatorEntry, candles: Sequence[Candle], pane: int) -> List[TraceDTO]:
        period = entry.config.params.period
        return [self._line(entry, "ema", f"EMA {period}", pane, self._calc.ema(candles, period))]

    def _bollinger_traces(self, entry: IndicatorEntry, candles: Sequence[Candle], pane: int) -> List[TraceDTO]:
        params: BollingerParams = entry.config.params
        bands = self._calc.bollinger(candles, params.period, params.std_dev)
        label = f"BB {params.period} {params.std_dev:g}"
        return [
            self._line(entry, "upper", f"{label} Upper", pane,
                       (IndicatorPoint(b.time, b.upper) for b in bands)),
            self._line(entry, "middle", f"{label} Middle", pane,
                       (IndicatorPoint(b.time, b.middle) for b in bands)),
            self._line(entry, "lower", f"{label} Lower", pane,
                       (IndicatorPoint(b.time, b.lower) for b in bands)),
        ]

    def _macd_traces(self, entry: IndicatorEntry, candles: Sequence[Candle], pane: int) -> List[TraceDTO]:
        params: MACDParams = entry.config.params
        result = self._calc.macd(candles, params.fast_period, params.slow_period, params.signal_period)
        label = f"MACD {params.fast_period},{params.slow_period},{params.signal_period}"

        histogram_data = _line_data(result.histogram)
        for point in histogram_data:
            point["color"] = histogram_color(point["value"])

        return [
            self._line(entry, "macd", label, pane, result.macd),
            self._line(entry, "signal", f"{label} Signal", pane, result.signal, color="#FF6D00"),
            TraceDTO(
                id=f"{entry.instance_id}:histogram",
                name=f"{label} Histogram",
                type=HISTOGRAM,
                pane_index=pane,
                data=histogram_data,
                options={"color": entry.config.color},
            ),
        ]

    def _rsi_traces(self, entry: IndicatorEntry, candles: Sequence[Candle], pane: int) -> List[TraceDTO]:
        period = entry.config.params.period
        return [self._line(entry, "rsi", f"RSI {period}", pane, self._calc.rsi(candles, period))]

    def _stochastic_traces(self, entry: IndicatorEntry, candles: Sequence[Candle], pane: int) -> List[TraceDTO]:
        params: StochasticParams = entry.config.params
        result = self._calc.stochastic(candles, params.period, params.smooth_k, params.smooth_d)
        label = f"Stoch {params.period},{params.smooth_k},{params.smooth_d}"
        return [
            self._line(entry, "k", f"{label} %K", pane, result.k),
            self._line(entry, "d", f"{label} %D", pane, result.d, color="#FF6D00"),
        ]

    def _volume_traces(self, entry: IndicatorEntry, candles: Sequence[Candle], pane: int) -> List[TraceDTO]:
        return [TraceDTO(
            id=f"{entry.instance_id}:volume",
            name="Volume",
            type=HISTOGRAM,
            pane_index=pane,
            data=_line_data(self._calc.volume(candles)),
            options={"color": entry.config.color, "priceScaleId": "volume"},
        )]
