"""Cache-backed, batched geolocation of node addresses.

Addresses come in as ``host`` or ``host:port``. Lookups are keyed by the
bare IP, repeats are served from the cache and misses are deduplicated
and sent to the provider in chunks of at most ``batch_size`` IPs.
Resolution is best-effort: failed IPs are missing from the result, no
exception reaches the caller.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from nodegeo.core.engine.pool import BoundedExecutor
from nodegeo.core.geo.cache import GeoCache
from nodegeo.core.models.geo import UNKNOWN

if TYPE_CHECKING:
    from nodegeo.core.interfaces.geo import IGeoProvider
    from nodegeo.core.models.config import Config
    from nodegeo.core.models.geo import GeoLocation

logger = structlog.get_logger(__name__)


def extract_ip(address: str) -> str:
    """Strip a trailing ``:port`` from an address."""
    return address.split(":", 1)[0]


class GeoResolver:
    """Resolves node addresses to GeoLocation records.

    Chunk requests go through a BoundedExecutor sized by
    ``max_in_flight_chunks``. The default of 1 keeps them strictly
    sequential so the upstream provider never sees a burst.

    The bound applies within one resolve_many() call. Concurrent calls on
    the same resolver each get their own chunk workers, so the provider can
    see up to ``max_in_flight_chunks`` requests per call. The executor is
    shared, and ``stats["chunks"]`` aggregates over all calls.
    """

    def __init__(
        self,
        provider: IGeoProvider,
        cache: GeoCache | None = None,
        *,
        batch_size: int = 100,
        max_in_flight_chunks: int = 1,
    ) -> None:
        """
        Initialize resolver.

        Args:
            provider: Upstream geolocation provider
            cache: Cache to read and populate; a private one if omitted
            batch_size: Maximum IPs per batch request (capped by the provider)
            max_in_flight_chunks: Batch requests allowed in flight at once
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self._provider = provider
        self._cache = cache if cache is not None else GeoCache()
        self._batch_size = min(batch_size, provider.max_batch_size)
        self._chunk_executor = BoundedExecutor(max_concurrency=max_in_flight_chunks)

    @property
    def cache(self) -> GeoCache:
        return self._cache

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def max_in_flight_chunks(self) -> int:
        return self._chunk_executor.max_concurrency

    async def resolve_one(self, address: str) -> GeoLocation | None:
        """
        Resolve a single address.

        Args:
            address: ``host`` or ``host:port``

        Returns:
            GeoLocation, or None if it could not be resolved
        """
        ip = extract_ip(address)

        cached = self._cache.get(ip)
        if cached is not None:
            return cached

        try:
            location = await self._provider.lookup(ip)
        except Exception as e:
            logger.debug("Single lookup failed", ip=ip, error=str(e), error_type=type(e).__name__)
            return None

        if location is None:
            return None

        self._cache.put(ip, location)
        return location

    async def resolve_many(self, addresses: Iterable[str]) -> dict[str, GeoLocation]:
        """
        Resolve many addresses with as few provider calls as possible.

        Args:
            addresses: ``host`` or ``host:port`` strings, repeats allowed

        Returns:
            Dict mapping bare IP to GeoLocation for every IP that was cached
            or resolved now. Unresolved IPs are absent.
        """
        results: dict[str, GeoLocation] = {}
        pending: dict[str, None] = {}  # ordered set

        for address in addresses:
            ip = extract_ip(address)
            if ip in results or ip in pending:
                continue
            cached = self._cache.get(ip)
            if cached is not None:
                results[ip] = cached
            else:
                pending[ip] = None

        if not pending:
            return results

        misses = list(pending)
        chunks = [misses[i : i + self._batch_size] for i in range(0, len(misses), self._batch_size)]

        logger.debug(
            "Resolving uncached IPs",
            cached=len(results),
            uncached=len(misses),
            chunks=len(chunks),
        )

        outcomes = await self._chunk_executor.run_outcomes(chunks, self._lookup_chunk)

        for outcome in outcomes:
            if not outcome.ok:
                logger.warning(
                    "Batch lookup failed",
                    chunk=outcome.index,
                    ip_count=len(chunks[outcome.index]),
                    error=str(outcome.error),
                    error_type=outcome.error_type,
                )
                continue
            results.update(outcome.value or {})

        logger.debug("Resolution done", requested=len(misses), resolved=len(results))
        return results

    async def _lookup_chunk(self, chunk: list[str]) -> dict[str, GeoLocation]:
        """Look up one chunk and cache what came back."""
        located = await self._provider.lookup_batch(chunk)
        for ip, location in located.items():
            self._cache.put(ip, location)
        return located

    async def locate_nodes(self, addresses: Iterable[str]) -> dict[str, GeoLocation]:
        """
        Map each original address (port included) to its location.

        Addresses whose IP could not be resolved are left out.
        """
        addresses = list(addresses)
        by_ip = await self.resolve_many(addresses)
        return {
            address: by_ip[extract_ip(address)]
            for address in addresses
            if extract_ip(address) in by_ip
        }

    async def get_country(self, address: str) -> str:
        """Get country name for an address, "Unknown" if unresolved."""
        location = await self.resolve_one(address)
        return location.country if location is not None else UNKNOWN

    def clear_cache(self) -> None:
        """Empty the cache. Next resolutions hit the provider again."""
        self._cache.clear()

    @property
    def stats(self) -> dict[str, Any]:
        """Get cache and chunk executor statistics."""
        return {
            "cache": self._cache.stats,
            "chunks": self._chunk_executor.stats,
        }

    async def close(self) -> None:
        """Release provider resources."""
        await self._provider.close()

    async def __aenter__(self) -> GeoResolver:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def create_resolver(config: Config | None = None, cache: GeoCache | None = None) -> GeoResolver:
    """Build a resolver backed by ip-api.com from configuration."""
    from nodegeo.core.models.config import Config
    from nodegeo.plugins.geo.ip_api_provider import IpApiProvider

    config = config or Config()
    geo = config.geo

    provider = IpApiProvider(
        single_url=geo.single_url,
        batch_url=geo.batch_url,
        single_timeout=geo.single_timeout,
        batch_timeout=geo.batch_timeout,
        max_batch_size=geo.batch_size,
    )

    return GeoResolver(
        provider,
        cache,
        batch_size=geo.batch_size,
        max_in_flight_chunks=geo.max_in_flight_chunks,
    )
