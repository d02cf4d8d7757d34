"""Casos de uso: sesión de gráfico y controlador live."""

from chartpulse.application.use_cases.chart_session_usecase import ChartSessionUseCase
from chartpulse.application.use_cases.live_session import LiveSessionController, SessionState

__all__ = [
    "ChartSessionUseCase",
    "LiveSessionController",
    "SessionState",
]
