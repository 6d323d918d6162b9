"""nodegeo - geolocation enrichment for storage-node addresses."""

from nodegeo.core.engine.pool import (
    BoundedExecutor,
    batch_process,
    batch_process_with_index,
    create_executor,
)
from nodegeo.core.geo.cache import GeoCache
from nodegeo.core.geo.resolver import GeoResolver, create_resolver, extract_ip
from nodegeo.core.models.geo import GeoLocation

__version__ = "0.1.0"

__all__ = [
    "BoundedExecutor",
    "GeoCache",
    "GeoLocation",
    "GeoResolver",
    "__version__",
    "batch_process",
    "batch_process_with_index",
    "create_executor",
    "create_resolver",
    "extract_ip",
]
