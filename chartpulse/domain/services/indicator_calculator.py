"""
ChartPulse – Domain Service: Indicator Calculator
===================================================
Cálculos de indicadores técnicos puros sobre una serie de velas.

Todas las funciones son puras: (velas, parámetros) → serie nueva.
Sin estado oculto, deterministas, nunca mutan la entrada.

═══════════════════════════════════════════════════════════════════
                    CONVENCIONES
═══════════════════════════════════════════════════════════════════

WARM-UP:
  Los índices sin historia suficiente NO emiten punto ("skip").
  SMA(period) empieza en el índice period-1, EMA también (seed = SMA),
  RSI(period) en el índice period, MACD en slow+signal-2.

EMA:
  k = 2 / (period + 1)
  EMA_seed = SMA(primeros `period` closes)
  EMA_t    = (close_t − EMA_{t-1}) × k + EMA_{t-1}

RSI (Wilder):
  avg_gain_t = (avg_gain_{t-1} × (period − 1) + gain_t) / period
  avg_loss_t = (avg_loss_{t-1} × (period − 1) + loss_t) / period
  RSI = 100 − 100 / (1 + avg_gain / avg_loss)

RANGOS DEGENERADOS (valores centinela, nunca NaN/Infinity):
  RSI: avg_loss == 0 → 100 ; avg_gain == 0 → 0 ; ambos 0 → 50
  Stochastic: highest_high == lowest_low → %K bruto = 50

POR QUÉ NO PANDAS / TA-LIB:
  Ventana acotada (period velas), fórmulas explícitas y auditables,
  control total sobre edge cases.
"""

from __future__ import annotations

import math
from typing import Dict, List, Sequence

from chartpulse.domain.entities.candle import Candle
from chartpulse.domain.value_objects.indicator_point import (
    BollingerPoint,
    IndicatorPoint,
    MACDResult,
    StochasticResult,
)

# Valor de %K cuando la ventana no tiene rango (high == low)
STOCHASTIC_FLAT_VALUE = 50.0


def _rolling_mean(values: Sequence[float], period: int) -> List[float]:
    """
    Media móvil con suma acumulada (añadir el nuevo, restar el más viejo).

    Retorna len(values) - period + 1 valores; el valor j corresponde al
    índice j + period - 1 de la entrada. Lista vacía si no hay historia.
    """
    if len(values) < period:
        return []
    window_sum = sum(values[:period])
    result = [window_sum / period]
    for i in range(period, len(values)):
        window_sum += values[i] - values[i - period]
        result.append(window_sum / period)
    return result


def _ema(values: Sequence[float], period: int) -> List[float]:
    """EMA con seed SMA. Misma alineación que _rolling_mean."""
    if len(values) < period:
        return []
    k = 2.0 / (period + 1)
    prev = sum(values[:period]) / period
    result = [prev]
    for value in values[period:]:
        prev = (value - prev) * k + prev
        result.append(prev)
    return result


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_gain == 0.0 and avg_loss == 0.0:
        return 50.0  # Sin movimiento → neutral
    if avg_loss == 0.0:
        return 100.0  # Solo ganancias
    if avg_gain == 0.0:
        return 0.0  # Solo pérdidas
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


class IndicatorCalculator:
    """
    Calculadora de indicadores técnicos puros.

    RESPONSABILIDAD:
    Implementar las fórmulas matemáticas de indicadores.
    NO mantiene estado (stateless).
    """

    @staticmethod
    def sma(candles: Sequence[Candle], period: int) -> List[IndicatorPoint]:
        """Media simple de close sobre la ventana de `period` velas."""
        closes = [c.close for c in candles]
        offset = period - 1
        return [
            IndicatorPoint(time=candles[j + offset].time, value=value)
            for j, value in enumerate(_rolling_mean(closes, period))
        ]

    @staticmethod
    def ema(candles: Sequence[Candle], period: int) -> List[IndicatorPoint]:
        """Media exponencial con seed = SMA de los primeros `period` closes."""
        closes = [c.close for c in candles]
        offset = period - 1
        return [
            IndicatorPoint(time=candles[j + offset].time, value=value)
            for j, value in enumerate(_ema(closes, period))
        ]

    @staticmethod
    def bollinger(
        candles: Sequence[Candle], period: int, std_dev: float = 2.0,
    ) -> List[BollingerPoint]:
        """
        middle = SMA(period), σ = desviación estándar poblacional de la
        misma ventana, upper/lower = middle ± std_dev·σ.
        """
        closes = [c.close for c in candles]
        means = _rolling_mean(closes, period)
        bands: List[BollingerPoint] = []
        for j, mean in enumerate(means):
            window = closes[j:j + period]
            variance = sum((x - mean) ** 2 for x in window) / period
            sigma = math.sqrt(max(variance, 0.0))
            bands.append(BollingerPoint(
                time=candles[j + period - 1].time,
                upper=mean + std_dev * sigma,
                middle=mean,
                lower=mean - std_dev * sigma,
            ))
        return bands

    @staticmethod
    def macd(
        candles: Sequence[Candle],
        fast_period: int = 12,
        slow_period: int = 26,
        signal_period: int = 9,
    ) -> MACDResult:
        """
        macd = EMA(fast) − EMA(slow), alineadas por TIME (no por índice).
        signal = EMA(signal_period) de la línea macd.
        histogram = macd − signal.

        Las tres series se recortan al índice temporal de signal, así
        comparten exactamente los mismos times.
        """
        fast: Dict[int, float] = {
            p.time: p.value for p in IndicatorCalculator.ema(candles, fast_period)
        }
        slow = IndicatorCalculator.ema(candles, slow_period)

        macd_line = [
            (p.time, fast[p.time] - p.value) for p in slow if p.time in fast
        ]
        signal_values = _ema([value for _, value in macd_line], signal_period)
        if not signal_values:
            return MACDResult()

        aligned = macd_line[signal_period - 1:]
        macd_points: List[IndicatorPoint] = []
        signal_points: List[IndicatorPoint] = []
        histogram_points: List[IndicatorPoint] = []
        for (time, macd_value), signal_value in zip(aligned, signal_values):
            macd_points.append(IndicatorPoint(time=time, value=macd_value))
            signal_points.append(IndicatorPoint(time=time, value=signal_value))
            histogram_points.append(
                IndicatorPoint(time=time, value=macd_value - signal_value)
            )
        return MACDResult(
            macd=macd_points, signal=signal_points, histogram=histogram_points,
        )

    @staticmethod
    def rsi(candles: Sequence[Candle], period: int = 14) -> List[IndicatorPoint]:
        """
        RSI de Wilder. Necesita period+1 velas (period deltas); el primer
        punto corresponde a la vela de índice `period`.
        """
        if len(candles) < period + 1:
            return []

        total_gain = 0.0
        total_loss = 0.0
        for i in range(1, period + 1):
            delta = candles[i].close - candles[i - 1].close
            if delta > 0:
                total_gain += delta
            else:
                total_loss -= delta

        avg_gain = total_gain / period
        avg_loss = total_loss / period
        points = [IndicatorPoint(
            time=candles[period].time,
            value=_rsi_from_averages(avg_gain, avg_loss),
        )]

        for i in range(period + 1, len(candles)):
            delta = candles[i].close - candles[i - 1].close
            gain = delta if delta > 0 else 0.0
            loss = -delta if delta < 0 else 0.0
            avg_gain = (avg_gain * (period - 1) + gain) / period
            avg_loss = (avg_loss * (period - 1) + loss) / period
            points.append(IndicatorPoint(
                time=candles[i].time,
                value=_rsi_from_averages(avg_gain, avg_loss),
            ))
        return points

    @staticmethod
    def stochastic(
        candles: Sequence[Candle],
        period: int = 14,
        smooth_k: int = 3,
        smooth_d: int = 3,
    ) -> StochasticResult:
        """
        %K bruto = (close − lowest_low) / (highest_high − lowest_low) × 100
        %K suavizado = SMA(smooth_k) del %K bruto
        %D = SMA(smooth_d) del %K suavizado

        %K se recorta al índice temporal de %D (ambas series alineadas).
        """
        if len(candles) < period:
            return StochasticResult()

        raw_k: List[float] = []
        raw_times: List[int] = []
        for i in range(period - 1, len(candles)):
            window = candles[i - period + 1:i + 1]
            highest = max(c.high for c in window)
            lowest = min(c.low for c in window)
            if highest == lowest:
                raw_k.append(STOCHASTIC_FLAT_VALUE)
            else:
                raw_k.append((candles[i].close - lowest) / (highest - lowest) * 100.0)
            raw_times.append(candles[i].time)

        k_values = _rolling_mean(raw_k, smooth_k)
        k_times = raw_times[smooth_k - 1:]
        d_values = _rolling_mean(k_values, smooth_d)
        d_times = k_times[smooth_d - 1:]

        k_aligned = k_values[smooth_d - 1:]
        return StochasticResult(
            k=[IndicatorPoint(time=t, value=v) for t, v in zip(d_times, k_aligned)],
            d=[IndicatorPoint(time=t, value=v) for t, v in zip(d_times, d_values)],
        )

    @staticmethod
    def volume(candles: Sequence[Candle]) -> List[IndicatorPoint]:
        """Passthrough {time, value: volume}."""
        return [IndicatorPoint(time=c.time, value=c.volume) for c in candles]
