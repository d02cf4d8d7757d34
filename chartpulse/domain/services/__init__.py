"""Domain services - lógica pura sin estado."""
from chartpulse.domain.services.indicator_calculator import IndicatorCalculator
from chartpulse.domain.services.series_deduplicator import (
    deduplicate,
    normalize_and_deduplicate,
)
from chartpulse.domain.services.time_normalizer import normalize_time, try_normalize_time

__all__ = [
    "IndicatorCalculator",
    "deduplicate",
    "normalize_and_deduplicate",
    "normalize_time",
    "try_normalize_time",
]
