"""
ChartPulse – Domain Value Object: Interval
============================================
Conjunto cerrado de intervalos de vela soportados y su duración en segundos.
"""

from __future__ import annotations

import math
from typing import Dict

from chartpulse.domain.exceptions.domain_errors import ConfigurationError

# Mapeo de nombre de intervalo a segundos por bucket
INTERVAL_SECONDS: Dict[str, int] = {
    "1m": 60,
    "5m": 300,
    "15m": 900,
    "30m": 1800,
    "1h": 3600,
    "4h": 14400,
    "1d": 86400,
}


def interval_to_seconds(interval: str) -> int:
    """Resolver un intervalo a segundos. ConfigurationError si no existe."""
    try:
        return INTERVAL_SECONDS[interval]
    except KeyError:
        raise ConfigurationError(
            f"Intervalo '{interval}' no válido",
            field="interval",
            value=interval,
        ) from None


def bucket_start(epoch: int, interval_seconds: int) -> int:
    """Alinear un timestamp al inicio de su bucket."""
    return int(math.floor(epoch / interval_seconds) * interval_seconds)
