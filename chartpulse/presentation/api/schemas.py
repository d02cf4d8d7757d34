"""
ChartPulse – API Schemas (Pydantic)
=====================================
Cuerpos de request validados por FastAPI antes de llegar a los casos de uso.

La validación de NEGOCIO (periodos positivos, fast < slow, ...) vive en el
dominio; aquí solo se valida la forma del JSON.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class IntervalRequest(BaseModel):
    """Body para cambiar el intervalo de vela."""
    interval: str


class IndicatorRequest(BaseModel):
    """Selección de un indicador: id del tipo + overrides de parámetros."""
    id: str
    config: Dict[str, Any] = Field(default_factory=dict)


class IndicatorUpdateRequest(BaseModel):
    config: Dict[str, Any] = Field(default_factory=dict)


class TickRequest(BaseModel):
    price: float
    time: Optional[Union[int, float, str]] = None
    volume: float = 0.0


class TicksRequest(BaseModel):
    ticks: List[TickRequest]


class BarRequest(BaseModel):
    time: Union[int, float, str]
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class BarsRequest(BaseModel):
    bars: List[BarRequest]


class SignalRequest(BaseModel):
    time: Union[int, float, str]
    type: Literal["buy", "sell"]
    label: Optional[str] = None


class SignalsRequest(BaseModel):
    signals: List[SignalRequest]
