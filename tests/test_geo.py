"""
Tests for IP geolocation: location model, resolver and cache.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from api.features.geo.cache import GeoCache
from api.features.geo.exceptions import (
    GeoCacheError,
    GeoLookupError,
    InvalidIPAddressError,
    IPAddressNotFoundError,
)
from api.features.geo.models import GeoLocation
from api.features.geo.resolver import GeoResolver
from infra.resources import IPDatabaseResource, RedisResource


def _record(country="Germany", province="Bavaria", city="Munich", lang="en"):
    return {
        "country": {"names": {lang: country}},
        "subdivisions": [{"names": {lang: province}}],
        "city": {"names": {lang: city}},
    }


@pytest.fixture
def ip_database() -> IPDatabaseResource:
    """IP database resource with a mocked reader."""
    resource = IPDatabaseResource("unused.mmdb")
    resource.reader = MagicMock()
    resource.reader.get.return_value = _record()
    return resource


@pytest.fixture
def resolver(ip_database, logger) -> GeoResolver:
    return GeoResolver(ip_database, language="en", logger=logger)


class TestGeoLocation:
    """Tests for the cache value format."""

    def test_to_cache_value(self):
        location = GeoLocation(country="Germany", province="Bavaria", city="Munich")

        assert location.to_cache_value() == "Germany|Bavaria|Munich"

    def test_from_cache_value(self):
        location = GeoLocation.from_cache_value("Germany||Munich")

        assert location == GeoLocation(country="Germany", province="", city="Munich")

    @pytest.mark.parametrize("value", [None, "", "Germany|Bavaria", "a|b|c|d"])
    def test_from_cache_value_malformed(self, value):
        assert GeoLocation.from_cache_value(value) is None


class TestIPDatabaseResource:
    """Tests for address handling in the resource."""

    def test_invalid_address_raises_value_error(self, ip_database):
        with pytest.raises(ValueError):
            ip_database.lookup("not-an-ip")

    @pytest.mark.parametrize("ip", ["10.0.0.1", "127.0.0.1", "192.168.1.20", "::1"])
    def test_non_public_addresses_have_no_record(self, ip_database, ip):
        assert ip_database.lookup(ip) is None
        ip_database.reader.get.assert_not_called()

    def test_public_address_queries_reader(self, ip_database):
        assert ip_database.lookup(" 8.8.8.8 ") == _record()
        ip_database.reader.get.assert_called_once()

    def test_lookup_before_init_raises(self):
        with pytest.raises(RuntimeError):
            IPDatabaseResource("unused.mmdb").lookup("8.8.8.8")

    async def test_redis_connect_before_init_raises(self):
        with pytest.raises(RuntimeError):
            await RedisResource("redis://localhost:6379/0").connect()


class TestGeoResolver:
    """Tests for IP to location resolution."""

    def test_resolve(self, resolver):
        location = resolver.resolve("8.8.8.8")

        assert location == GeoLocation(country="Germany", province="Bavaria", city="Munich")

    def test_resolve_ipv6(self, resolver):
        assert resolver.resolve("2001:4860:4860::8888").country == "Germany"

    def test_preferred_language_falls_back_to_english(self, ip_database, logger):
        ip_database.reader.get.return_value = {
            "country": {"names": {"en": "Germany", "de": "Deutschland"}},
            "city": {"names": {"en": "Munich"}},
        }

        location = GeoResolver(ip_database, language="de", logger=logger).resolve("8.8.8.8")

        assert location.country == "Deutschland"
        assert location.province == ""
        assert location.city == "Munich"

    @pytest.mark.parametrize("ip", [None, "", "   ", "999.1.1.1", "hello"])
    def test_invalid_ip(self, resolver, ip):
        with pytest.raises(InvalidIPAddressError):
            resolver.resolve(ip)

    def test_unmapped_ip(self, resolver, ip_database):
        ip_database.reader.get.return_value = None

        with pytest.raises(IPAddressNotFoundError):
            resolver.resolve("8.8.8.8")

    def test_private_ip_is_not_found(self, resolver):
        with pytest.raises(IPAddressNotFoundError):
            resolver.resolve("192.168.0.1")

    def test_record_without_country_is_not_found(self, resolver, ip_database):
        ip_database.reader.get.return_value = {"city": {"names": {"en": "Nowhere"}}}

        with pytest.raises(IPAddressNotFoundError):
            resolver.resolve("8.8.8.8")

    def test_uninitialised_database_becomes_lookup_error(self, logger):
        resolver = GeoResolver(IPDatabaseResource("unused.mmdb"), logger=logger)

        with pytest.raises(GeoLookupError) as exc_info:
            resolver.resolve("8.8.8.8")

        assert exc_info.value.error_code == "GEO_LOOKUP_ERROR"

    def test_reader_failure_becomes_lookup_error(self, resolver, ip_database, logger):
        ip_database.reader.get.side_effect = OSError("mmap closed")

        with pytest.raises(GeoLookupError) as exc_info:
            resolver.resolve("8.8.8.8")

        assert exc_info.value.error_code == "GEO_LOOKUP_ERROR"
        assert exc_info.value.ip == "8.8.8.8"
        logger.error.assert_called_once()


class TestGeoCache:
    """Tests for the Redis-backed location cache."""

    @pytest.fixture
    def client(self) -> AsyncMock:
        return AsyncMock()

    async def test_set_uses_prefixed_key_and_ttl(self, client):
        cache = GeoCache(client, ttl_seconds=3600, key_prefix="geo")

        await cache.set("kb-1", "Germany|Bavaria|Munich")

        client.set.assert_awaited_once_with("geo:kb-1", "Germany|Bavaria|Munich", ex=3600)

    async def test_get_returns_value(self, client):
        client.get.return_value = "Germany|Bavaria|Munich"
        cache = GeoCache(client, ttl_seconds=3600)

        assert await cache.get("kb-1") == "Germany|Bavaria|Munich"
        client.get.assert_awaited_once_with("geo:kb-1")

    async def test_get_decodes_bytes(self, client):
        client.get.return_value = b"Germany|Bavaria|Munich"
        cache = GeoCache(client, ttl_seconds=3600)

        assert await cache.get("kb-1") == "Germany|Bavaria|Munich"

    async def test_get_miss(self, client):
        client.get.return_value = None
        cache = GeoCache(client, ttl_seconds=3600)

        assert await cache.get("kb-1") is None

    async def test_redis_errors_are_wrapped(self, client):
        client.set.side_effect = RedisConnectionError("connection refused")
        client.get.side_effect = RedisConnectionError("connection refused")
        cache = GeoCache(client, ttl_seconds=3600)

        with pytest.raises(GeoCacheError) as exc_info:
            await cache.set("kb-1", "Germany||")
        assert exc_info.value.details["kb_id"] == "kb-1"

        with pytest.raises(GeoCacheError):
            await cache.get("kb-1")
