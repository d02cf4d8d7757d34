"""
ChartPulse – Domain Service: Series Deduplicator
==================================================
Colapsa puntos con timestamp repetido en una secuencia desordenada.

ALGORITMO:
  1. Mapa time → punto, en orden de llegada.
  2. Time repetido: merge(existente, entrante) si hay función de merge;
     si no, gana el último visto ("last write wins").
  3. Salida ordenada ascendente por time, un punto por timestamp.

Funciona tanto con dicts ({"time": ...}) como con dataclasses con
atributo `time`. Es idempotente: dedup(dedup(S)) == dedup(S).
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar

from chartpulse.domain.services.time_normalizer import try_normalize_time

T = TypeVar("T")
MergeFn = Callable[[T, T], T]


def time_of(point: Any) -> Any:
    """Obtener el time de un punto (dict o dataclass)."""
    if isinstance(point, Mapping):
        return point["time"]
    return point.time


def with_time(point: T, time: int) -> T:
    """Copia del punto con `time` reemplazado."""
    if isinstance(point, Mapping):
        copy = dict(point)
        copy["time"] = time
        return copy  # type: ignore[return-value]
    if dataclasses.is_dataclass(point):
        return dataclasses.replace(point, time=time)
    raise TypeError(f"Punto sin soporte para time: {type(point).__name__}")


def deduplicate(points: Iterable[T], merge: Optional[MergeFn] = None) -> List[T]:
    """Un punto por timestamp, ordenado ascendente."""
    by_time: Dict[Any, T] = {}
    for point in points:
        key = time_of(point)
        existing = by_time.get(key)
        if existing is not None and merge is not None:
            by_time[key] = merge(existing, point)
        else:
            by_time[key] = point
    return sorted(by_time.values(), key=time_of)


def normalize_points(points: Iterable[T]) -> Tuple[List[T], int]:
    """
    Normalizar el time de cada punto descartando los inválidos.

    Returns:
        (puntos normalizados, cantidad descartada)
    """
    valid: List[T] = []
    dropped = 0
    for point in points:
        normalized = try_normalize_time(time_of(point))
        if normalized is None:
            dropped += 1
            continue
        raw = time_of(point)
        if type(raw) is int and raw == normalized:
            valid.append(point)
        else:
            valid.append(with_time(point, normalized))
    return valid, dropped


def normalize_and_deduplicate(
    points: Iterable[T], merge: Optional[MergeFn] = None,
) -> Tuple[List[T], int]:
    """Frontera de ingesta: normalizar + deduplicar. Retorna (serie, descartados)."""
    valid, dropped = normalize_points(points)
    return deduplicate(valid, merge), dropped
