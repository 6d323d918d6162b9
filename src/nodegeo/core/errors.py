"""Exceptions raised by geolocation providers."""

from __future__ import annotations


class GeoLookupError(Exception):
    """A provider call failed as a whole (timeout, transport, bad payload)."""

    def __init__(self, reason: str, ip_count: int = 1) -> None:
        self.reason = reason
        self.ip_count = ip_count
        super().__init__(f"Geo lookup failed for {ip_count} IP(s): {reason}")


class GeoRateLimitedError(GeoLookupError):
    """Provider answered HTTP 429."""
