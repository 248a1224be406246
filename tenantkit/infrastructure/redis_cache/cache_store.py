from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping

from redis.asyncio import Redis
from redis.exceptions import RedisError, ResponseError

from tenantkit.domain.errors import CacheUnavailable, NonNumericValue
from tenantkit.domain.ports.cache_store import CacheCapabilities, CacheStorePort


# Tag indexes are sorted sets scored by each member's expiry (ms since
# epoch, +inf when it never expires). Every write drops lapsed members and
# lets the index itself expire with its longest-lived member.
_LUA_INDEX = """
local function now_ms()
  local t = redis.call('TIME')
  return tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)
end

local function index(idx, member, deadline, now)
  redis.call('ZADD', idx, deadline, member)
  redis.call('ZREMRANGEBYSCORE', idx, '-inf', '(' .. now)
  local top = redis.call('ZRANGE', idx, -1, -1, 'WITHSCORES')
  local last = tonumber(top[2])
  if last == nil or last == math.huge then
    redis.call('PERSIST', idx)
  else
    redis.call('PEXPIREAT', idx, last)
  end
end
"""

_LUA_PUT = _LUA_INDEX + """
-- KEYS: ARGV[2] tag index sets, then the value keys
-- ARGV[1]: ttl in ms (0 = no expiry), ARGV[3..]: payloads in key order
local ttl = tonumber(ARGV[1])
local ntags = tonumber(ARGV[2])
local now = now_ms()
local deadline = '+inf'
if ttl > 0 then
  deadline = now + ttl
end
for i = ntags + 1, #KEYS do
  if ttl > 0 then
    redis.call('SET', KEYS[i], ARGV[i - ntags + 2], 'PX', ttl)
  else
    redis.call('SET', KEYS[i], ARGV[i - ntags + 2])
  end
  for j = 1, ntags do
    index(KEYS[j], KEYS[i], deadline, now)
  end
end
return #KEYS - ntags
"""

_LUA_INCR = _LUA_INDEX + """
-- KEYS[1]: counter, KEYS[2..]: tag index sets; ARGV[1]: delta
local value = redis.call('INCRBY', KEYS[1], ARGV[1])
if #KEYS > 1 then
  local now = now_ms()
  local pttl = redis.call('PTTL', KEYS[1])
  local deadline = '+inf'
  if pttl > 0 then
    deadline = now + pttl
  end
  for i = 2, #KEYS do
    index(KEYS[i], KEYS[1], deadline, now)
  end
end
return value
"""

_LUA_FLUSH_TAG = """
-- KEYS[1]: tag index set
local members = redis.call('ZRANGE', KEYS[1], 0, -1)
local removed = 0
for i = 1, #members, 500 do
  local last = math.min(i + 499, #members)
  removed = removed + redis.call('DEL', unpack(members, i, last))
end
redis.call('DEL', KEYS[1])
return removed
"""


@contextmanager
def _unavailable_on_error(op: str) -> Iterator[None]:
    try:
        yield
    except RedisError as e:
        raise CacheUnavailable(f"redis {op} failed: {e}") from e


def _decode(raw: str | None, default: Any = None) -> Any:
    if raw is None:
        return default
    return json.loads(raw)


def _ttl_ms(ttl: float | None) -> int:
    return 0 if ttl is None else max(1, int(ttl * 1000))


class RedisCacheStore(CacheStorePort):
    """
    Values are stored JSON-encoded. Each tag owns a sorted set of the keys
    written under it; writes update key and index in one Lua call, forget
    removes both in one MULTI/EXEC, and flush_tag deletes the members and
    the index in one Lua call.

    The flush script touches keys it does not declare, so this store
    targets a standalone Redis, not Redis Cluster.
    """

    capabilities = CacheCapabilities(native_tags=True, atomic_counters=True)

    def __init__(self, redis: Redis, *, index_prefix: str = "tagidx:") -> None:
        self._redis = redis
        self._index_prefix = index_prefix

    def _index_key(self, tag: str) -> str:
        return f"{self._index_prefix}{tag}"

    async def get(self, key: str, default: Any = None) -> Any:
        with _unavailable_on_error("get"):
            raw = await self._redis.get(key)
        return _decode(raw, default)

    async def get_with_ttl(self, key: str, default: Any = None) -> tuple[Any, float | None]:
        with _unavailable_on_error("get"):
            pipe = self._redis.pipeline(transaction=True)
            pipe.get(key)
            pipe.pttl(key)
            raw, pttl = await pipe.execute()
        if raw is None:
            return default, None
        # -1: no expiry
        return _decode(raw), pttl / 1000 if pttl > 0 else None

    async def _put_encoded(
        self, encoded: Mapping[str, str], ttl: float | None, tags: Iterable[str]
    ) -> None:
        indexes = [self._index_key(tag) for tag in tags]
        keys = [*indexes, *encoded]
        args = [_ttl_ms(ttl), len(indexes), *encoded.values()]
        await self._redis.eval(_LUA_PUT, len(keys), *keys, *args)

    async def put(
        self, key: str, value: Any, ttl: float | None = None, tags: Iterable[str] = ()
    ) -> None:
        payload = json.dumps(value)
        with _unavailable_on_error("put"):
            await self._put_encoded({key: payload}, ttl, tags)

    async def forget(self, key: str, tags: Iterable[str] = ()) -> bool:
        with _unavailable_on_error("forget"):
            pipe = self._redis.pipeline(transaction=True)
            pipe.delete(key)
            for tag in tags:
                pipe.zrem(self._index_key(tag), key)
            results = await pipe.execute()
        return int(results[0]) > 0

    async def has(self, key: str) -> bool:
        with _unavailable_on_error("has"):
            return int(await self._redis.exists(key)) == 1

    async def increment(self, key: str, delta: int, tags: Iterable[str] = ()) -> int:
        keys = [key, *(self._index_key(tag) for tag in tags)]
        with _unavailable_on_error("increment"):
            try:
                value = await self._redis.eval(_LUA_INCR, len(keys), *keys, delta)
            except ResponseError as e:
                if "not an integer" not in str(e):
                    raise
                raise NonNumericValue(f"{key} does not hold an integer") from e
        return int(value)

    async def many(self, keys: Iterable[str]) -> dict[str, Any]:
        keys = list(keys)
        if not keys:
            return {}
        with _unavailable_on_error("many"):
            raws = await self._redis.mget(keys)
        return {key: _decode(raw) for key, raw in zip(keys, raws)}

    async def put_many(
        self,
        values: Mapping[str, Any],
        ttl: float | None = None,
        tags: Iterable[str] = (),
    ) -> None:
        if not values:
            return
        encoded = {key: json.dumps(value) for key, value in values.items()}
        with _unavailable_on_error("put_many"):
            await self._put_encoded(encoded, ttl, tags)

    async def flush_tag(self, tag: str) -> int:
        with _unavailable_on_error("flush_tag"):
            removed = await self._redis.eval(_LUA_FLUSH_TAG, 1, self._index_key(tag))
        return int(removed)
