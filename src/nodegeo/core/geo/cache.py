"""In-memory geolocation cache keyed by bare IP."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from nodegeo.core.models.geo import GeoLocation

logger = structlog.get_logger(__name__)


class GeoCache:
    """Process-local IP -> GeoLocation store.

    Entries live until clear() is called; nothing expires. Concurrent
    resolutions may put the same IP twice, which is harmless because a
    location is a pure function of the IP.
    """

    def __init__(self) -> None:
        self._entries: dict[str, GeoLocation] = {}
        self._hits = 0
        self._misses = 0

    def get(self, ip: str) -> GeoLocation | None:
        """Get cached location for an IP, recording a hit or miss."""
        location = self._entries.get(ip)
        if location is None:
            self._misses += 1
        else:
            self._hits += 1
        return location

    def put(self, ip: str, location: GeoLocation) -> None:
        """Store location for an IP."""
        self._entries[ip] = location

    def clear(self) -> None:
        """Remove all entries and reset counters."""
        size = len(self._entries)
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        logger.debug("Geo cache cleared", removed=size)

    def snapshot(self) -> dict[str, GeoLocation]:
        """Return a copy of all entries."""
        return dict(self._entries)

    def __contains__(self, ip: object) -> bool:
        return ip in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stats(self) -> dict[str, int]:
        """Get cache statistics."""
        return {
            "hits": self._hits,
            "misses": self._misses,
            "size": len(self._entries),
        }
