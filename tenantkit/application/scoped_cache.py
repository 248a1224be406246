from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Mapping, Union

from tenantkit.domain import namespace
from tenantkit.domain.entities import TenantIdentity
from tenantkit.domain.errors import CacheUnavailable, NonNumericValue
from tenantkit.domain.ports.cache_store import CacheStorePort

logger = logging.getLogger(__name__)

_MISSING = object()


class _Forever:
    def __repr__(self) -> str:
        return "FOREVER"


# pass as `ttl` to store without expiry, whatever the default TTL is
FOREVER = _Forever()

Ttl = Union[int, _Forever, None]


class KeyedLocks:
    """asyncio locks created on first use per name and dropped once idle."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, name: str) -> AsyncIterator[None]:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        self._users[name] = self._users.get(name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[name] -= 1
            if self._users[name] == 0:
                del self._users[name]
                del self._locks[name]

    def __len__(self) -> int:
        return len(self._locks)


class TagIndex:
    """
    Tag -> namespaced keys, for stores without native tag eviction.

    Writers register keys and flush reads them while holding the same
    per-tag lock, so a flush removes every key written before it started
    and nothing written after.

    The store expires keys on its own, so the index is pruned: a read that
    misses drops the key, and a tag whose index has doubled since its last
    prune is swept on the next write.
    """

    PRUNE_FLOOR = 64

    def __init__(self) -> None:
        self._keys: dict[str, set[str]] = {}
        self._pruned_at: dict[str, int] = {}
        self._locks = KeyedLocks()

    def locked(self, tag: str):
        return self._locks.hold(tag)

    def add(self, tag: str, keys: Iterable[str]) -> None:
        self._keys.setdefault(tag, set()).update(keys)

    def discard(self, tag: str, key: str) -> None:
        keys = self._keys.get(tag)
        if keys is None:
            return
        keys.discard(key)
        if not keys:
            del self._keys[tag]
            self._pruned_at.pop(tag, None)

    def contains(self, tag: str, key: str) -> bool:
        return key in self._keys.get(tag, ())

    def keys(self, tag: str) -> frozenset[str]:
        return frozenset(self._keys.get(tag, ()))

    def due_for_prune(self, tag: str) -> bool:
        size = len(self._keys.get(tag, ()))
        return size >= max(self.PRUNE_FLOOR, 2 * self._pruned_at.get(tag, 0))

    def mark_pruned(self, tag: str) -> None:
        if tag in self._keys:
            self._pruned_at[tag] = len(self._keys[tag])


def _as_counter(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise NonNumericValue("cached value is a boolean, not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise NonNumericValue(f"cached value of type {type(value).__name__} is not an integer")


class ScopedCache:
    """
    Cache facade bound to one tenant's namespace.

    Every key is translated through `namespace.namespaced_key` before it
    reaches the store, and `flush` only ever touches keys carrying this
    tenant's tag. Stores without native tags or atomic counters need the
    shared `TagIndex` / `KeyedLocks` of the factory that built this cache.

    `ttl=None` means the factory default; `ttl=FOREVER` stores without expiry.
    """

    def __init__(
        self,
        store: CacheStorePort,
        tenant: TenantIdentity | None,
        *,
        prefix: str = namespace.DEFAULT_PREFIX,
        default_ttl: int | None = None,
        read_failure_as_miss: bool = False,
        tag_index: TagIndex | None = None,
        key_locks: KeyedLocks | None = None,
    ) -> None:
        caps = store.capabilities
        if not caps.native_tags and tag_index is None:
            raise ValueError("store has no native tags; a shared TagIndex is required")
        if not caps.atomic_counters and key_locks is None:
            raise ValueError("store has no atomic counters; shared KeyedLocks are required")
        self._store = store
        self._caps = caps
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._read_failure_as_miss = read_failure_as_miss
        self._tag_index = tag_index
        self._key_locks = key_locks
        self.rebind(tenant)

    @property
    def tenant(self) -> TenantIdentity | None:
        return self._tenant

    @property
    def tag(self) -> str:
        return self._tag

    def rebind(self, tenant: TenantIdentity | None) -> "ScopedCache":
        self._tag = namespace.tag(tenant, self._prefix)
        self._tenant = tenant
        return self

    def _key(self, key: str) -> str:
        return namespace.namespaced_key(self._tenant, key, self._prefix)

    def _ttl(self, ttl: Ttl) -> int | None:
        if ttl is FOREVER:
            return None
        if ttl is None:
            return self._default_ttl
        if ttl <= 0:
            raise ValueError("ttl must be a positive number of seconds")
        return ttl

    async def _prune(self) -> None:
        """Drop index entries whose key is gone from the store. Caller holds the tag lock."""
        for nkey in self._tag_index.keys(self._tag):
            if not await self._store.has(nkey):
                self._tag_index.discard(self._tag, nkey)
        self._tag_index.mark_pruned(self._tag)

    async def _drop_if_gone(self, nkeys: Iterable[str]) -> None:
        if self._caps.native_tags:
            return
        indexed = [nkey for nkey in nkeys if self._tag_index.contains(self._tag, nkey)]
        if not indexed:
            return
        # re-check under the lock: a concurrent put may have just landed
        async with self._tag_index.locked(self._tag):
            for nkey in indexed:
                if not await self._store.has(nkey):
                    self._tag_index.discard(self._tag, nkey)

    @asynccontextmanager
    async def _tagged_write(self, keys: Iterable[str]) -> AsyncIterator[tuple[str, ...]]:
        """Yield the tags to hand to the store, registering keys when emulating."""
        if self._caps.native_tags:
            yield (self._tag,)
            return
        async with self._tag_index.locked(self._tag):
            if self._tag_index.due_for_prune(self._tag):
                await self._prune()
            self._tag_index.add(self._tag, keys)
            yield ()

    async def _read(self, op: Awaitable[Any], fallback: Any) -> Any:
        try:
            return await op
        except CacheUnavailable:
            if not self._read_failure_as_miss:
                raise
            logger.warning("cache read degraded to miss", extra={"tag": self._tag})
            return fallback

    async def _get(self, nkey: str, default: Any) -> Any:
        value = await self._store.get(nkey, _MISSING)
        if value is _MISSING:
            await self._drop_if_gone((nkey,))
            return default
        return value

    async def _has(self, nkey: str) -> bool:
        if await self._store.has(nkey):
            return True
        await self._drop_if_gone((nkey,))
        return False

    async def _many(self, nkeys: list[str]) -> dict[str, Any]:
        found = await self._store.many(nkeys)
        await self._drop_if_gone(nkey for nkey in nkeys if found.get(nkey) is None)
        return found

    async def get(self, key: str, default: Any = None) -> Any:
        return await self._read(self._get(self._key(key), default), default)

    async def has(self, key: str) -> bool:
        return await self._read(self._has(self._key(key)), False)

    async def many(self, keys: Iterable[str]) -> dict[str, Any]:
        mapping = {key: self._key(key) for key in keys}
        found = await self._read(self._many(list(mapping.values())), {})
        return {key: found.get(nkey) for key, nkey in mapping.items()}

    async def put(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        nkey = self._key(key)
        ttl = self._ttl(ttl)
        async with self._tagged_write((nkey,)) as tags:
            await self._store.put(nkey, value, ttl, tags=tags)
        return True

    async def put_many(self, values: Mapping[str, Any], ttl: Ttl = None) -> bool:
        prefixed = {self._key(key): value for key, value in values.items()}
        if not prefixed:
            return True
        ttl = self._ttl(ttl)
        async with self._tagged_write(prefixed) as tags:
            await self._store.put_many(prefixed, ttl, tags=tags)
        return True

    async def forget(self, key: str) -> bool:
        nkey = self._key(key)
        if self._caps.native_tags:
            return await self._store.forget(nkey, tags=(self._tag,))
        async with self._tag_index.locked(self._tag):
            removed = await self._store.forget(nkey)
            self._tag_index.discard(self._tag, nkey)
        return removed

    async def increment(self, key: str, delta: int = 1) -> int:
        nkey = self._key(key)
        async with self._tagged_write((nkey,)) as tags:
            if self._caps.atomic_counters:
                return await self._store.increment(nkey, delta, tags=tags)
            # no native counter: read-modify-write under a per-key lock,
            # keeping whatever expiry the key already had
            async with self._key_locks.hold(nkey):
                current, remaining = await self._store.get_with_ttl(nkey, None)
                value = _as_counter(current) + delta
                await self._store.put(nkey, value, remaining, tags=tags)
                return value

    async def decrement(self, key: str, delta: int = 1) -> int:
        return await self.increment(key, -delta)

    async def remember(
        self, key: str, ttl: Ttl, factory: Callable[[], Awaitable[Any]]
    ) -> Any:
        value = await self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        value = await factory()
        await self.put(key, value, ttl)
        return value

    async def remember_forever(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        return await self.remember(key, FOREVER, factory)

    async def flush(self) -> int:
        """Remove every entry of this tenant. Returns how many keys were removed."""
        if self._caps.native_tags:
            removed = await self._store.flush_tag(self._tag)
        else:
            removed = 0
            async with self._tag_index.locked(self._tag):
                for nkey in sorted(self._tag_index.keys(self._tag)):
                    if await self._store.forget(nkey):
                        removed += 1
                    self._tag_index.discard(self._tag, nkey)
        logger.info("tenant cache flushed", extra={"tag": self._tag, "removed": removed})
        return removed


class TenantCacheFactory:
    """Builds ScopedCache instances that share one store and its emulation state."""

    def __init__(
        self,
        store: CacheStorePort,
        *,
        prefix: str = namespace.DEFAULT_PREFIX,
        default_ttl: int | None = None,
        read_failure_as_miss: bool = False,
    ) -> None:
        self._store = store
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._read_failure_as_miss = read_failure_as_miss
        caps = store.capabilities
        self._tag_index = None if caps.native_tags else TagIndex()
        self._key_locks = None if caps.atomic_counters else KeyedLocks()

    @property
    def store(self) -> CacheStorePort:
        return self._store

    def for_tenant(self, tenant: TenantIdentity | None) -> ScopedCache:
        return ScopedCache(
            self._store,
            tenant,
            prefix=self._prefix,
            default_ttl=self._default_ttl,
            read_failure_as_miss=self._read_failure_as_miss,
            tag_index=self._tag_index,
            key_locks=self._key_locks,
        )
