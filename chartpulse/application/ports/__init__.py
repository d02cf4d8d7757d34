"""Application ports - interfaces hacia infraestructura."""
from chartpulse.application.ports.price_source import IPriceSource

__all__ = ["IPriceSource"]
