"""Geolocation data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

UNKNOWN = "Unknown"


@dataclass(frozen=True)
class GeoLocation:
    """Resolved geolocation data for an IP address."""

    country: str = UNKNOWN
    region: str = UNKNOWN
    city: str = UNKNOWN
    coordinates: tuple[float, float] = (0.0, 0.0)  # (latitude, longitude)
    timezone: str = UNKNOWN  # IANA timezone: "Europe/Berlin"

    @property
    def latitude(self) -> float:
        return self.coordinates[0]

    @property
    def longitude(self) -> float:
        return self.coordinates[1]

    @property
    def is_known(self) -> bool:
        """Check if the provider returned at least a country."""
        return self.country != UNKNOWN

    @classmethod
    def from_provider(cls, data: dict[str, Any]) -> GeoLocation:
        """Build from an ip-api style record.

        Missing or empty fields fall back to "Unknown" / 0.
        """
        return cls(
            country=data.get("country") or UNKNOWN,
            region=data.get("regionName") or UNKNOWN,
            city=data.get("city") or UNKNOWN,
            coordinates=(float(data.get("lat") or 0), float(data.get("lon") or 0)),
            timezone=data.get("timezone") or UNKNOWN,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "country": self.country,
            "region": self.region,
            "city": self.city,
            "ll": [self.latitude, self.longitude],
            "timezone": self.timezone,
        }
