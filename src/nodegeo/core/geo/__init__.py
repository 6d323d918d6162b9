"""Geolocation cache and resolver."""

from nodegeo.core.geo.cache import GeoCache
from nodegeo.core.geo.resolver import GeoResolver, create_resolver, extract_ip

__all__ = [
    "GeoCache",
    "GeoResolver",
    "create_resolver",
    "extract_ip",
]
