"""Global test fixtures for nodegeo."""

from __future__ import annotations

import pytest
import structlog

from nodegeo.core.geo.cache import GeoCache
from nodegeo.core.geo.resolver import GeoResolver
from tests.pytest_plugins.fake_provider import FakeGeoProvider


@pytest.fixture
def geo_cache() -> GeoCache:
    return GeoCache()


@pytest.fixture
def fake_provider() -> FakeGeoProvider:
    return FakeGeoProvider()


@pytest.fixture
def resolver(fake_provider: FakeGeoProvider, geo_cache: GeoCache) -> GeoResolver:
    return GeoResolver(fake_provider, geo_cache)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration made by a test."""
    yield
    structlog.reset_defaults()
