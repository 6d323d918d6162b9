"""ip-api.com geolocation provider.

Free tier: single lookups via GET /json/{ip}, up to 100 IPs per
POST /batch request.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from nodegeo.core.errors import GeoLookupError, GeoRateLimitedError
from nodegeo.core.models.geo import GeoLocation

logger = structlog.get_logger(__name__)

DEFAULT_SINGLE_URL = "http://ip-api.com/json"
DEFAULT_BATCH_URL = "http://ip-api.com/batch"


class IpApiProvider:
    """Geolocation lookups against ip-api.com.

    Every call is bounded by a wall-clock timeout. Timeouts, transport
    errors, non-200 answers and unparseable bodies raise GeoLookupError;
    items the provider reports as failed are simply left out.

    Usage:
        ```python
        async with IpApiProvider() as provider:
            locations = await provider.lookup_batch(["8.8.8.8", "1.1.1.1"])
        ```
    """

    SINGLE_FIELDS = "status,country,regionName,city,lat,lon,timezone"
    BATCH_FIELDS = "status,query,country,regionName,city,lat,lon,timezone"

    def __init__(
        self,
        single_url: str = DEFAULT_SINGLE_URL,
        batch_url: str = DEFAULT_BATCH_URL,
        single_timeout: float = 3.0,
        batch_timeout: float = 10.0,
        max_batch_size: int = 100,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize provider.

        Args:
            single_url: Base URL for single-IP lookups (IP is appended)
            batch_url: URL for batch lookups
            single_timeout: Timeout for a single lookup in seconds
            batch_timeout: Timeout for a batch lookup in seconds
            max_batch_size: Maximum IPs per batch request
            client: Optional shared httpx client; created if omitted
        """
        self.single_url = single_url.rstrip("/")
        self.batch_url = batch_url
        self.single_timeout = single_timeout
        self.batch_timeout = batch_timeout
        self._max_batch_size = max_batch_size

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    @property
    def name(self) -> str:
        return "ip-api"

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    async def lookup(self, ip: str) -> GeoLocation | None:
        """Look up a single IP."""
        data = await self._request(
            "GET",
            f"{self.single_url}/{ip}",
            timeout=self.single_timeout,
            ip_count=1,
            params={"fields": self.SINGLE_FIELDS},
        )

        if not isinstance(data, dict):
            raise GeoLookupError("expected a JSON object")

        if data.get("status") != "success":
            logger.debug("Provider reported failure", ip=ip, status=data.get("status"))
            return None

        try:
            return GeoLocation.from_provider(data)
        except (TypeError, ValueError) as e:
            raise GeoLookupError(f"malformed record: {e}") from e

    async def lookup_batch(self, ips: list[str]) -> dict[str, GeoLocation]:
        """Look up up to max_batch_size IPs in one request."""
        if not ips:
            return {}
        if len(ips) > self._max_batch_size:
            raise ValueError(f"Batch of {len(ips)} exceeds max_batch_size={self._max_batch_size}")

        data = await self._request(
            "POST",
            self.batch_url,
            timeout=self.batch_timeout,
            ip_count=len(ips),
            params={"fields": self.BATCH_FIELDS},
            json=ips,
        )

        if not isinstance(data, list):
            raise GeoLookupError("expected a JSON array", ip_count=len(ips))

        results: dict[str, GeoLocation] = {}
        for item in data:
            if not isinstance(item, dict) or item.get("status") != "success":
                continue
            ip = item.get("query")
            if not ip or not isinstance(ip, str):
                continue
            try:
                results[ip] = GeoLocation.from_provider(item)
            except (TypeError, ValueError) as e:
                logger.debug("Skipping malformed batch item", ip=ip, error=str(e))
                continue

        logger.debug("Batch lookup done", requested=len(ips), resolved=len(results))
        return results

    async def _request(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        ip_count: int,
        **kwargs: Any,
    ) -> Any:
        """Send one request and decode its JSON body."""
        try:
            response = await asyncio.wait_for(
                self._client.request(method, url, timeout=timeout, **kwargs),
                timeout=timeout,
            )
        except TimeoutError as e:
            raise GeoLookupError(f"timed out after {timeout}s", ip_count) from e
        except httpx.HTTPError as e:
            raise GeoLookupError(str(e) or type(e).__name__, ip_count) from e

        if response.status_code == 429:
            logger.warning("ip-api rate limit (429)", ip_count=ip_count)
            raise GeoRateLimitedError("rate limited (HTTP 429)", ip_count)
        if response.status_code != 200:
            raise GeoLookupError(f"HTTP {response.status_code}", ip_count)

        try:
            return response.json()
        except ValueError as e:
            raise GeoLookupError("invalid JSON body", ip_count) from e

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> IpApiProvider:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
