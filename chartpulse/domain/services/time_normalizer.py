"""
ChartPulse – Domain Service: Time Normalizer
==============================================
Canoniza representaciones heterogéneas de tiempo a epoch-seconds (int).

REGLAS:
  - Texto            → se parsea como instante de calendario (ISO-8601),
                       truncado a segundos enteros. Sin zona → UTC.
  - datetime         → igual que texto.
  - Numérico > 1e10  → milisegundos: se divide entre 1000 y se trunca.
  - Numérico resto   → ya son segundos; se trunca la parte fraccional.

Cualquier valor que no produzca un entero > 0 lanza InvalidTimestampError.
Nunca se emite NaN ni valores ≤ 0 hacia las series.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

from chartpulse.domain.exceptions.domain_errors import InvalidTimestampError

# Por encima de este valor el número se interpreta como milisegundos
MILLISECONDS_THRESHOLD = 10_000_000_000


def _parse_datetime(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _parse_text(value: str) -> float:
    text = value.strip()
    if not text:
        raise InvalidTimestampError("Timestamp vacío", value=value)
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        return _parse_datetime(datetime.fromisoformat(text))
    except ValueError:
        raise InvalidTimestampError(
            f"Timestamp textual no parseable: {value!r}", value=value,
        ) from None


def normalize_time(value: Any) -> int:
    """
    Convertir `value` a epoch-seconds enteros.

    Raises:
        InvalidTimestampError: valor mal formado, NaN, cero o negativo.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidTimestampError(f"Timestamp inválido: {value!r}", value=value)

    if isinstance(value, str):
        seconds = _parse_text(value)
    elif isinstance(value, datetime):
        seconds = _parse_datetime(value)
    elif isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise InvalidTimestampError(f"Timestamp no finito: {value!r}", value=value)
        seconds = value / 1000 if value > MILLISECONDS_THRESHOLD else value
    else:
        raise InvalidTimestampError(
            f"Tipo de timestamp no soportado: {type(value).__name__}", value=value,
        )

    result = math.floor(seconds)
    if result <= 0:
        raise InvalidTimestampError(
            f"Timestamp no positivo: {value!r}", value=value,
        )
    return int(result)


def try_normalize_time(value: Any) -> Optional[int]:
    """Variante para fronteras de ingesta: None en lugar de excepción."""
    try:
        return normalize_time(value)
    except InvalidTimestampError:
        return None
