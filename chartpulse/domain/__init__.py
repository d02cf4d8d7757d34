"""
ChartPulse – Domain Layer
===========================
Núcleo puro del sistema. CERO dependencias externas.

Este módulo contiene:
- entities/: Candle
- value_objects/: Tick, IndicatorPoint, IndicatorConfig, Marker, intervalos
- services/: TimeNormalizer, SeriesDeduplicator, IndicatorCalculator
- events/: comandos y eventos del gráfico
- exceptions/: excepciones de dominio

REGLA DE DEPENDENCIA:
Este módulo NO puede importar de application/, infrastructure/,
presentation/ ni de frameworks externos (FastAPI, pydantic, etc.)
"""

from chartpulse.domain.entities.candle import Candle
from chartpulse.domain.value_objects.tick import Tick

__all__ = [
    "Candle",
    "Tick",
]
