"""
ChartPulse – Indicator Registry
=================================
Arena de indicadores seleccionados, indexada por un id de instancia estable.

DISEÑO:
- Cada indicador seleccionado es un IndicatorEntry con id "<tipo>-<n>"
  (n creciente por tipo, nunca se reutiliza dentro del registro).
- Operaciones explícitas create / update / remove en lugar de diffs
  implícitos contra el render anterior.
- El registro conserva el orden de inserción → orden estable de paneles.
- NO almacena series calculadas: se recalculan desde la ventana de velas.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List

from chartpulse.domain.exceptions.domain_errors import (
    ConfigurationError,
    UnknownIndicatorError,
)
from chartpulse.domain.value_objects.indicator_config import IndicatorConfig, IndicatorKind
from chartpulse.shared.logging.logger import get_logger

logger = get_logger("indicator_registry")


@dataclass
class IndicatorEntry:
    """Un indicador seleccionado por el usuario."""

    instance_id: str
    config: IndicatorConfig
    created_at: float = field(default_factory=time.time)

    @property
    def kind(self) -> IndicatorKind:
        return self.config.kind

    def to_dict(self) -> dict:
        data = self.config.to_dict()
        data["instance_id"] = self.instance_id
        return data


class IndicatorRegistry:
    """
    Gestor centralizado de indicadores seleccionados.

    Acceso: registry.get(instance_id) → IndicatorEntry
    """

    def __init__(self) -> None:
        self._entries: Dict[str, IndicatorEntry] = {}
        self._counters: Dict[IndicatorKind, int] = {}

    def create(self, config: IndicatorConfig) -> IndicatorEntry:
        """Registrar un indicador nuevo y asignarle id de instancia."""
        n = self._counters.get(config.kind, 0) + 1
        self._counters[config.kind] = n
        entry = IndicatorEntry(instance_id=f"{config.kind.value}-{n}", config=config)
        self._entries[entry.instance_id] = entry
        logger.info("Indicador creado '%s' %s", entry.instance_id, config.to_dict()["params"])
        return entry

    def get(self, instance_id: str) -> IndicatorEntry:
        entry = self._entries.get(instance_id)
        if entry is None:
            raise UnknownIndicatorError(instance_id)
        return entry

    def update(self, instance_id: str, config: IndicatorConfig) -> IndicatorEntry:
        """Reemplazar la configuración de una instancia (mismo tipo)."""
        entry = self.get(instance_id)
        if config.kind is not entry.kind:
            raise ConfigurationError(
                f"No se puede cambiar el tipo de '{instance_id}' a '{config.kind.value}'",
                field="id",
                value=config.kind.value,
            )
        entry.config = config
        logger.info("Indicador actualizado '%s' %s", instance_id, config.to_dict()["params"])
        return entry

    def remove(self, instance_id: str) -> IndicatorEntry:
        entry = self.get(instance_id)
        del self._entries[instance_id]
        logger.info("Indicador eliminado '%s'", instance_id)
        return entry

    def entries(self) -> List[IndicatorEntry]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._entries

    def snapshot(self) -> List[dict]:
        """Snapshot de los indicadores seleccionados para API."""
        return [entry.to_dict() for entry in self._entries.values()]
