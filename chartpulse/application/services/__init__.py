"""Servicios de aplicación: agregación de velas e indicadores."""

from chartpulse.application.services.candle_aggregator import CandleAggregator
from chartpulse.application.services.indicator_service import IndicatorService

__all__ = ["CandleAggregator", "IndicatorService"]
