"""Domain value objects."""
from chartpulse.domain.value_objects.tick import Tick
from chartpulse.domain.value_objects.indicator_point import (
    BollingerPoint,
    IndicatorPoint,
    MACDResult,
    StochasticResult,
)
from chartpulse.domain.value_objects.indicator_config import IndicatorConfig, IndicatorKind
from chartpulse.domain.value_objects.marker import Marker, Signal, SignalType

__all__ = [
    "Tick",
    "BollingerPoint",
    "IndicatorPoint",
    "MACDResult",
    "StochasticResult",
    "IndicatorConfig",
    "IndicatorKind",
    "Marker",
    "Signal",
    "SignalType",
]
