"""Domain entities."""
from chartpulse.domain.entities.candle import Candle

__all__ = ["Candle"]
