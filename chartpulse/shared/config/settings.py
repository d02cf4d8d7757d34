"""
ChartPulse – Settings (Pydantic BaseSettings)
=============================================
Configuración centralizada cargada desde variables de entorno / .env.
Se usa pydantic-settings para validación estricta al arranque.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from chartpulse.domain.value_objects.interval import INTERVAL_SECONDS


class Settings(BaseSettings):
    # ─── Agregación de velas ────────────────────────────────────────────
    default_interval: str = Field(
        default="1m", description="Intervalo de vela activo al arrancar (1m..1d)",
    )
    window_period: int = Field(
        default=100, gt=0, description="Longitud de la ventana rodante de velas cerradas",
    )

    # ─── Parámetros por defecto de indicadores ──────────────────────────
    sma_period: int = Field(default=20, gt=0)
    ema_period: int = Field(default=20, gt=0)
    bollinger_period: int = Field(default=20, gt=0)
    bollinger_std_dev: float = Field(default=2.0, gt=0, allow_inf_nan=False)
    macd_fast: int = Field(default=12, gt=0)
    macd_slow: int = Field(default=26, gt=0)
    macd_signal: int = Field(default=9, gt=0)
    rsi_period: int = Field(default=14, gt=0)
    stochastic_period: int = Field(default=14, gt=0)
    stochastic_smooth_k: int = Field(default=3, gt=0)
    stochastic_smooth_d: int = Field(default=3, gt=0)

    # ─── Sesión live (simulación) ───────────────────────────────────────
    tick_interval_ms: int = Field(
        default=500, gt=0, description="Cada cuánto llega un tick simulado",
    )
    boundary_check_ms: int = Field(
        default=1000, gt=0, description="Cada cuánto se comprueba el cierre de vela",
    )
    simulation_base_price: float = Field(default=100.0, gt=0, allow_inf_nan=False)
    simulation_volatility: float = Field(
        default=0.1, gt=0, description="Movimiento máximo por tick simulado",
    )
    simulation_seed: Optional[int] = Field(
        default=None, description="Semilla del RNG de simulación (None = aleatoria)",
    )
    seed_history: bool = Field(
        default=True, description="Generar histórico sintético al arrancar",
    )

    # ─── Event Bus ──────────────────────────────────────────────────────
    event_bus_max_queue_size: int = Field(
        default=10_000,
        description="Tamaño máximo de cola del Event Bus para contrapresión",
    )

    # ─── Server ─────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8888)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("default_interval")
    @classmethod
    def _check_interval(cls, value: str) -> str:
        if value not in INTERVAL_SECONDS:
            raise ValueError(
                f"Intervalo '{value}' no válido (disponibles: {', '.join(INTERVAL_SECONDS)})"
            )
        return value

    @property
    def interval_seconds(self) -> int:
        return INTERVAL_SECONDS[self.default_interval]


# Singleton global – se importa donde se necesite
settings = Settings()
