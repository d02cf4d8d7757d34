"""
ChartPulse – Domain Value Objects: configuración de indicadores
=================================================================
Conjunto CERRADO de tipos de indicador, cada uno con su struct de
parámetros tipado y auto-validado.

DISEÑO:
- IndicatorKind es un Enum: añadir un tipo obliga a registrar su clase de
  parámetros en PARAMS_BY_KIND y su rama en el IndicatorService.
- Cada *Params es frozen y valida en __post_init__ → nunca existe una
  configuración inválida en memoria.
- Los nombres de parámetro aceptan snake_case y el camelCase del
  frontend (stdDev, fastPeriod, smoothK, ...).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from chartpulse.domain.exceptions.domain_errors import ConfigurationError


class IndicatorKind(str, Enum):
    SMA = "sma"
    EMA = "ema"
    BOLLINGER = "bollinger"
    MACD = "macd"
    RSI = "rsi"
    STOCHASTIC = "stochastic"
    VOLUME = "volume"

    @classmethod
    def parse(cls, indicator_id: str) -> "IndicatorKind":
        """Resolver un id de indicador. ConfigurationError si no existe."""
        try:
            return cls(str(indicator_id).lower())
        except ValueError:
            raise ConfigurationError(
                f"Indicador '{indicator_id}' no reconocido",
                field="id",
                value=indicator_id,
            ) from None


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"'{name}' debe ser entero", field=name, value=value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise ConfigurationError(f"'{name}' debe ser entero", field=name, value=value)
    if value <= 0:
        raise ConfigurationError(
            f"'{name}' debe ser positivo (recibido {value})", field=name, value=value,
        )
    return value


def _positive_float(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"'{name}' debe ser numérico", field=name, value=value)
    if not math.isfinite(value):
        raise ConfigurationError(
            f"'{name}' debe ser finito (recibido {value})", field=name, value=value,
        )
    if value <= 0:
        raise ConfigurationError(
            f"'{name}' debe ser positivo (recibido {value})", field=name, value=value,
        )
    return float(value)


@dataclass(frozen=True)
class SMAParams:
    period: int = 20

    def __post_init__(self) -> None:
        object.__setattr__(self, "period", _positive_int("period", self.period))


@dataclass(frozen=True)
class EMAParams:
    period: int = 20

    def __post_init__(self) -> None:
        object.__setattr__(self, "period", _positive_int("period", self.period))


@dataclass(frozen=True)
class BollingerParams:
    period: int = 20
    std_dev: float = 2.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "period", _positive_int("period", self.period))
        object.__setattr__(self, "std_dev", _positive_float("std_dev", self.std_dev))


@dataclass(frozen=True)
class MACDParams:
    fast_period: int = 12
    slow_period: int = 26
    signal_period: int = 9

    def __post_init__(self) -> None:
        for name in ("fast_period", "slow_period", "signal_period"):
            object.__setattr__(self, name, _positive_int(name, getattr(self, name)))
        if self.fast_period >= self.slow_period:
            raise ConfigurationError(
                "MACD requiere fast_period < slow_period "
                f"(recibido {self.fast_period} >= {self.slow_period})",
                field="fast_period",
                value=self.fast_period,
            )


@dataclass(frozen=True)
class RSIParams:
    period: int = 14

    def __post_init__(self) -> None:
        object.__setattr__(self, "period", _positive_int("period", self.period))


@dataclass(frozen=True)
class StochasticParams:
    period: int = 14
    smooth_k: int = 3
    smooth_d: int = 3

    def __post_init__(self) -> None:
        for name in ("period", "smooth_k", "smooth_d"):
            object.__setattr__(self, name, _positive_int(name, getattr(self, name)))


@dataclass(frozen=True)
class VolumeParams:
    pass


IndicatorParams = Union[
    SMAParams, EMAParams, BollingerParams, MACDParams,
    RSIParams, StochasticParams, VolumeParams,
]

PARAMS_BY_KIND: Dict[IndicatorKind, Type] = {
    IndicatorKind.SMA: SMAParams,
    IndicatorKind.EMA: EMAParams,
    IndicatorKind.BOLLINGER: BollingerParams,
    IndicatorKind.MACD: MACDParams,
    IndicatorKind.RSI: RSIParams,
    IndicatorKind.STOCHASTIC: StochasticParams,
    IndicatorKind.VOLUME: VolumeParams,
}

DEFAULT_COLORS: Dict[IndicatorKind, str] = {
    IndicatorKind.SMA: "#2962FF",
    IndicatorKind.EMA: "#FF6B6B",
    IndicatorKind.BOLLINGER: "#26a69a",
    IndicatorKind.MACD: "#2962FF",
    IndicatorKind.RSI: "#2962FF",
    IndicatorKind.STOCHASTIC: "#2962FF",
    IndicatorKind.VOLUME: "#26a69a",
}

# camelCase del frontend → nombre del campo
_ALIASES: Dict[str, str] = {
    "stdDev": "std_dev",
    "fastPeriod": "fast_period",
    "slowPeriod": "slow_period",
    "signalPeriod": "signal_period",
    "smoothK": "smooth_k",
    "smoothD": "smooth_d",
}

INDICATOR_CATALOG: List[dict] = [
    {"id": "sma", "name": "SMA", "description": "Simple Moving Average"},
    {"id": "ema", "name": "EMA", "description": "Exponential Moving Average"},
    {"id": "bollinger", "name": "Bollinger Bands", "description": "Bollinger Bands"},
    {"id": "macd", "name": "MACD", "description": "Moving Average Convergence Divergence"},
    {"id": "rsi", "name": "RSI", "description": "Relative Strength Index"},
    {"id": "stochastic", "name": "Stochastic", "description": "Stochastic Oscillator"},
    {"id": "volume", "name": "Volume", "description": "Volume"},
]


def build_params(
    kind: IndicatorKind,
    overrides: Optional[Mapping[str, Any]] = None,
    base: Optional[IndicatorParams] = None,
) -> IndicatorParams:
    """
    Construir los parámetros de `kind` aplicando `overrides` sobre `base`
    (o sobre los defaults del dataclass si no hay base).

    Un nombre de parámetro desconocido es un ConfigurationError.
    """
    params_cls = PARAMS_BY_KIND[kind]
    current = base if base is not None else params_cls()
    allowed = {f.name for f in fields(params_cls)}

    changes: Dict[str, Any] = {}
    for key, value in (overrides or {}).items():
        name = _ALIASES.get(key, key)
        if name not in allowed:
            raise ConfigurationError(
                f"Parámetro '{key}' no válido para '{kind.value}'",
                field=key,
                value=value,
            )
        changes[name] = value
    return replace(current, **changes)


def params_to_dict(params: IndicatorParams) -> dict:
    return {f.name: getattr(params, f.name) for f in fields(params)}


@dataclass(frozen=True)
class IndicatorConfig:
    """Selección de un indicador: tipo + parámetros tipados + color."""

    kind: IndicatorKind
    params: IndicatorParams
    color: str

    def __post_init__(self) -> None:
        if not isinstance(self.params, PARAMS_BY_KIND[self.kind]):
            raise ConfigurationError(
                f"Parámetros {type(self.params).__name__} no corresponden a '{self.kind.value}'",
                field="params",
            )

    @classmethod
    def from_request(
        cls,
        indicator_id: str,
        overrides: Optional[Mapping[str, Any]] = None,
        defaults: Optional[Mapping[IndicatorKind, IndicatorParams]] = None,
    ) -> "IndicatorConfig":
        """
        Crear una configuración desde el id y la config enviada por el cliente.

        Los overrides del usuario se aplican sobre los defaults por tipo.
        La clave "color" se separa de los parámetros numéricos.
        """
        kind = IndicatorKind.parse(indicator_id)
        overrides = dict(overrides or {})
        color = overrides.pop("color", None) or DEFAULT_COLORS[kind]
        base = (defaults or {}).get(kind)
        return cls(kind=kind, params=build_params(kind, overrides, base), color=color)

    def with_overrides(self, overrides: Mapping[str, Any]) -> "IndicatorConfig":
        """Nueva configuración del mismo tipo con parámetros actualizados."""
        overrides = dict(overrides)
        color = overrides.pop("color", None) or self.color
        return IndicatorConfig(
            kind=self.kind,
            params=build_params(self.kind, overrides, self.params),
            color=color,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.kind.value,
            "params": params_to_dict(self.params),
            "color": self.color,
        }
