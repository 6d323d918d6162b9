"""Core data models."""

from nodegeo.core.models.config import ConcurrencyConfig, Config, GeoConfig, LogConfig
from nodegeo.core.models.geo import GeoLocation

__all__ = [
    # Config
    "ConcurrencyConfig",
    "Config",
    "GeoConfig",
    "LogConfig",
    # Geo
    "GeoLocation",
]
