"""Geolocation provider interface definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from nodegeo.core.models.geo import GeoLocation


@runtime_checkable
class IGeoProvider(Protocol):
    """Contract for upstream geolocation providers."""

    @property
    def name(self) -> str:
        """Provider name."""
        ...

    @property
    def max_batch_size(self) -> int:
        """Largest number of IPs accepted by lookup_batch()."""
        ...

    async def lookup(self, ip: str) -> GeoLocation | None:
        """
        Look up a single IP.

        Args:
            ip: Bare IPv4 or IPv6 address

        Returns:
            GeoLocation, or None if the provider reported a failure status

        Raises:
            GeoLookupError: On timeout, transport or parse failure
        """
        ...

    async def lookup_batch(self, ips: list[str]) -> dict[str, GeoLocation]:
        """
        Look up several IPs in one request.

        Args:
            ips: Up to max_batch_size bare IPs

        Returns:
            Dict mapping each successfully resolved IP to its GeoLocation.
            IPs the provider could not resolve are absent.

        Raises:
            GeoLookupError: On timeout, transport or parse failure
        """
        ...

    async def close(self) -> None:
        """Clean up provider resources."""
        ...
