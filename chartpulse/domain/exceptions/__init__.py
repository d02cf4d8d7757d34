"""Domain exceptions."""
from chartpulse.domain.exceptions.domain_errors import (
    DomainError,
    InvalidTimestampError,
    ConfigurationError,
    UnknownIndicatorError,
)

__all__ = [
    "DomainError",
    "InvalidTimestampError",
    "ConfigurationError",
    "UnknownIndicatorError",
]
