# app/core/redis.py
# Redis 客户端
#
# 仅在 LOCK_BACKEND=redis 时使用，为多实例部署提供流程级分布式锁。

import redis.asyncio as redis
from typing import Optional

# 比较并删除，GET 与 DEL 之间不会被其他客户端插入
_DELETE_IF_EQUALS = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisClient:
    """Async Redis client wrapper"""

    def __init__(self, url: str):
        self.url = url
        self._client: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Connect to Redis"""
        self._client = redis.from_url(
            self.url,
            encoding="utf-8",
            decode_responses=True,
        )
        # Test connection
        await self._client.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis"""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("Redis client not connected. Call connect() first.")
        return self._client

    async def ping(self) -> bool:
        return await self.client.ping()

    async def set(
        self,
        key: str,
        value: str,
        ex: Optional[int] = None,
        nx: bool = False
    ) -> bool:
        return await self.client.set(key, value, ex=ex, nx=nx)

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """值等于 value 时才删除 key（原子操作）"""
        return bool(await self.client.eval(_DELETE_IF_EQUALS, 1, key, value))
