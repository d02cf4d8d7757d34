"""
ChartPulse – Domain Exceptions
================================
Excepciones específicas del dominio.

JERARQUÍA:
    DomainError (base)
    ├── InvalidTimestampError   → se descarta el punto en la frontera de ingesta
    └── ConfigurationError      → se rechaza al seleccionar/configurar indicadores

NOTA: "historia insuficiente" (warm-up) y "rango degenerado" NO son
excepciones. El warm-up se representa omitiendo puntos y los rangos
degenerados se resuelven con valores centinela dentro del motor.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
        }


class InvalidTimestampError(DomainError):
    """Timestamp mal formado, cero o negativo."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message, code="INVALID_TIMESTAMP")
        self.value = value


class ConfigurationError(DomainError):
    """Configuración inválida: indicador desconocido, período no positivo, etc."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        super().__init__(message, code="CONFIGURATION_ERROR")
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field is not None:
            data["field"] = self.field
        return data


class UnknownIndicatorError(ConfigurationError):
    """Se referenció una instancia de indicador que no existe en el registro."""

    def __init__(self, instance_id: str):
        super().__init__(
            f"Instancia de indicador '{instance_id}' no encontrada",
            field="instance_id",
            value=instance_id,
        )
        self.instance_id = instance_id
