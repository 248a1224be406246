import asyncio
from uuid import uuid4

import pytest

from tenantkit.application.scoped_cache import FOREVER, TenantCacheFactory
from tenantkit.domain.entities import TenantIdentity
from tenantkit.domain.errors import NonNumericValue
from tenantkit.infrastructure.redis_cache.cache_store import RedisCacheStore


@pytest.fixture
def prefix():
    # unique per test so runs against a shared redis never collide
    return f"t-{uuid4().hex[:8]}"


@pytest.fixture
def factory(redis_client, prefix):
    return TenantCacheFactory(RedisCacheStore(redis_client), prefix=prefix, default_ttl=60)


@pytest.mark.asyncio
async def test_values_round_trip_as_json_under_namespaced_keys(factory, redis_client, prefix):
    cache = factory.for_tenant(TenantIdentity("acme"))

    await cache.put("profile", {"name": "Ada", "tags": [1, 2]})

    assert await cache.get("profile") == {"name": "Ada", "tags": [1, 2]}
    assert await redis_client.exists(f"{prefix}:acme:profile") == 1
    ttl = await redis_client.ttl(f"{prefix}:acme:profile")
    assert 0 < ttl <= 60
    assert await cache.get("missing", "dflt") == "dflt"


@pytest.mark.asyncio
async def test_flush_removes_only_the_tenant_keys(factory, redis_client, prefix):
    acme = factory.for_tenant(TenantIdentity("acme"))
    globex = factory.for_tenant(TenantIdentity("globex"))
    shared = factory.for_tenant(None)

    await acme.put_many({"a": 1, "b": 2})
    await acme.increment("hits", 3)
    await globex.put("a", 10)
    await shared.put("a", 100)

    assert await acme.flush() == 3
    assert await acme.many(["a", "b", "hits"]) == {"a": None, "b": None, "hits": None}
    assert await globex.get("a") == 10
    assert await shared.get("a") == 100
    assert await redis_client.exists(f"tagidx:{prefix}:acme") == 0


@pytest.mark.asyncio
async def test_forget_unlinks_the_key_from_the_tag_index(factory, redis_client, prefix):
    acme = factory.for_tenant(TenantIdentity("acme"))
    await acme.put("a", 1)
    await acme.put("b", 2)
    await acme.forget("a")

    assert await redis_client.zcard(f"tagidx:{prefix}:acme") == 1
    assert await acme.flush() == 1


@pytest.mark.asyncio
async def test_counters_are_atomic_and_reject_non_integers(factory):
    cache = factory.for_tenant(TenantIdentity("acme"))

    assert await cache.increment("n") == 1
    assert await cache.increment("n", 5) == 6
    assert await cache.decrement("n", 2) == 4
    assert await cache.get("n") == 4

    await cache.put("word", "abc")
    with pytest.raises(NonNumericValue):
        await cache.increment("word")


@pytest.mark.asyncio
async def test_has_and_forget(factory):
    cache = factory.for_tenant(TenantIdentity("acme"))
    await cache.put("k", 0)

    assert await cache.has("k") is True
    assert await cache.forget("k") is True
    assert await cache.forget("k") is False
    assert await cache.has("k") is False


@pytest.mark.asyncio
async def test_index_drops_lapsed_members_and_expires_with_the_last_one(
    factory, redis_client, prefix
):
    cache = factory.for_tenant(TenantIdentity("acme"))
    index = f"tagidx:{prefix}:acme"
    for i in range(20):
        await cache.put(f"k{i}", i, ttl=1)
    assert await redis_client.zcard(index) == 20

    await asyncio.sleep(1.2)
    await cache.put("fresh", "x", ttl=30)

    assert await redis_client.zrange(index, 0, -1) == [f"{prefix}:acme:fresh"]
    assert 0 < await redis_client.pttl(index) <= 30_000


@pytest.mark.asyncio
async def test_forever_entries_keep_the_index_persistent(factory, redis_client, prefix):
    cache = factory.for_tenant(TenantIdentity("acme"))
    await cache.put("short", 1, ttl=5)
    await cache.put("pinned", 2, ttl=FOREVER)

    assert await redis_client.ttl(f"{prefix}:acme:pinned") == -1
    assert await redis_client.ttl(f"tagidx:{prefix}:acme") == -1
    assert await cache.flush() == 2


@pytest.mark.asyncio
async def test_counter_keeps_its_expiry(factory, redis_client, prefix):
    cache = factory.for_tenant(TenantIdentity("acme"))
    await cache.put("hits", 1, ttl=30)

    assert await cache.increment("hits") == 2
    assert 0 < await redis_client.ttl(f"{prefix}:acme:hits") <= 30
