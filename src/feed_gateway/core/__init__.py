"""Core settings, logging and error types."""

from .config import Settings, get_settings, settings
from .exceptions import GatewayError, RemoteCallError, ValidationError

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "GatewayError",
    "RemoteCallError",
    "ValidationError",
]
