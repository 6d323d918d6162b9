"""Geolocation providers."""

from nodegeo.plugins.geo.ip_api_provider import IpApiProvider

__all__ = ["IpApiProvider"]
