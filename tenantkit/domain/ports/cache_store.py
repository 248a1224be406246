from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol


@dataclass(frozen=True)
class CacheCapabilities:
    """
    What a cache store can do natively. Fixed when the store is built;
    callers branch on it instead of probing the store per call.
    """

    native_tags: bool = False
    atomic_counters: bool = False


class CacheStorePort(Protocol):
    """
    Key/value backend under the tenant cache. Keys arrive already namespaced.
    Every method raises CacheUnavailable when the backend cannot answer.

    TTLs are in seconds; None means the entry never expires.
    """

    capabilities: CacheCapabilities

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value, or `default` on a miss."""

    async def get_with_ttl(self, key: str, default: Any = None) -> tuple[Any, float | None]:
        """
        Return (value, seconds left). A miss is (default, None); an entry
        without expiry reports None as well.
        """

    async def put(
        self, key: str, value: Any, ttl: float | None = None, tags: Iterable[str] = ()
    ) -> None:
        """Store a value. `tags` only with native_tags."""

    async def forget(self, key: str, tags: Iterable[str] = ()) -> bool:
        """Delete a key (and drop it from `tags`). True if something was removed."""

    async def has(self, key: str) -> bool:
        """True if the key is present and not expired."""

    async def increment(self, key: str, delta: int, tags: Iterable[str] = ()) -> int:
        """Atomically add delta (only with atomic_counters). Missing keys count from 0."""

    async def many(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return {key: value}; missing keys map to None."""

    async def put_many(
        self,
        values: Mapping[str, Any],
        ttl: float | None = None,
        tags: Iterable[str] = (),
    ) -> None:
        """Store all values or none of them."""

    async def flush_tag(self, tag: str) -> int:
        """Delete every key stored under `tag` (only with native_tags). Returns count."""
