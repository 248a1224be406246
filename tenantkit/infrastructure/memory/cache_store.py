from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Mapping

from tenantkit.domain.ports.cache_store import CacheCapabilities, CacheStorePort


def _unsupported(what: str) -> TypeError:
    return TypeError(f"InMemoryCacheStore has no {what} (see its capabilities)")


class InMemoryCacheStore(CacheStorePort):
    """
    Process-local store for development and single-process deployments.

    Plain key/value only: no tag index and no counter primitive, so the
    tenant cache emulates both on top of it. Expired entries are dropped
    when read, and swept every `sweep_every` writes.
    """

    capabilities = CacheCapabilities(native_tags=False, atomic_counters=False)

    def __init__(
        self, *, clock: Callable[[], float] = time.monotonic, sweep_every: int = 256
    ) -> None:
        self._clock = clock
        self._data: dict[str, tuple[Any, float | None]] = {}
        self._sweep_every = sweep_every
        self._writes = 0

    def _live(self, key: str) -> tuple[Any, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return entry

    def _deadline(self, ttl: float | None) -> float | None:
        return None if ttl is None else self._clock() + ttl

    def _wrote(self, count: int) -> None:
        self._writes += count
        if self._writes < self._sweep_every:
            return
        self._writes = 0
        now = self._clock()
        expired = [
            key
            for key, (_, expires_at) in self._data.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._data[key]

    async def get(self, key: str, default: Any = None) -> Any:
        entry = self._live(key)
        return default if entry is None else entry[0]

    async def get_with_ttl(self, key: str, default: Any = None) -> tuple[Any, float | None]:
        entry = self._live(key)
        if entry is None:
            return default, None
        value, expires_at = entry
        return value, None if expires_at is None else expires_at - self._clock()

    async def put(
        self, key: str, value: Any, ttl: float | None = None, tags: Iterable[str] = ()
    ) -> None:
        if tags:
            raise _unsupported("native tags")
        self._data[key] = (value, self._deadline(ttl))
        self._wrote(1)

    async def forget(self, key: str, tags: Iterable[str] = ()) -> bool:
        if tags:
            raise _unsupported("native tags")
        return self._live(key) is not None and self._data.pop(key, None) is not None

    async def has(self, key: str) -> bool:
        return self._live(key) is not None

    async def increment(self, key: str, delta: int, tags: Iterable[str] = ()) -> int:
        raise _unsupported("atomic counters")

    async def many(self, keys: Iterable[str]) -> dict[str, Any]:
        return {key: await self.get(key) for key in keys}

    async def put_many(
        self,
        values: Mapping[str, Any],
        ttl: float | None = None,
        tags: Iterable[str] = (),
    ) -> None:
        if tags:
            raise _unsupported("native tags")
        deadline = self._deadline(ttl)
        # no await between writes: the batch lands all at once
        self._data.update({key: (value, deadline) for key, value in values.items()})
        self._wrote(len(values))

    async def flush_tag(self, tag: str) -> int:
        raise _unsupported("native tags")

    def __len__(self) -> int:
        return len(self._data)
