"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from qrdine.core.config import get_settings, Settings, EnvironmentMode
from qrdine.core.exceptions import (
    QRDineError,
    ValidationError,
    NotFoundError,
    ConflictError,
    OrderPlacementError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "QRDineError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "OrderPlacementError",
]
