# app/core/locks.py
# 流程级互斥锁
#
# 功能说明：
# 审批链接是 GET 请求，可能被浏览器刷新、代理重试、邮件安全扫描预取。
# "查询可用命令 -> 执行命令" 这一段必须按流程 ID 互斥：
# 同一流程的并发请求只有一个能完成流转，其余看到"命令不可用"。
# 不同流程之间完全并行。
#
# 两种实现：
# 1. LocalProcessLock：进程内 asyncio.Lock，单实例部署
# 2. RedisProcessLock：Redis SET NX 分布式锁，多实例部署
#
# 使用方法：
#   async with process_lock.hold(process_id):
#       commands = await engine.get_legal_commands(process_id)
#       ...

import asyncio
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Dict

from app.core.exceptions import LockTimeoutError
from app.core.logging import get_logger
from app.core.redis import RedisClient

logger = get_logger(__name__)

# 分布式锁前缀
LOCK_KEY_PREFIX = "lock:process:"

# 默认等待时间（秒）
DEFAULT_LOCK_TIMEOUT = 10


class ProcessLock(ABC):
    """按流程 ID 互斥的锁接口"""

    @abstractmethod
    def hold(self, key: str) -> AsyncContextManager[None]:
        """
        持有 key 对应的锁

        Raises:
            LockTimeoutError: 在超时时间内未能获取锁
        """


class LocalProcessLock(ProcessLock):
    """
    进程内锁

    每个 key 一个 asyncio.Lock，引用计数归零后移除，避免字典无限增长。
    """

    def __init__(self, timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.timeout = timeout
        # key -> [lock, 等待/持有者数量]
        self._locks: Dict[str, list] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._locks.setdefault(key, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            try:
                await asyncio.wait_for(entry[0].acquire(), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning(f"[ProcessLock] 等待锁超时: {key}")
                raise LockTimeoutError(key)

            try:
                yield
            finally:
                entry[0].release()
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


class RedisProcessLock(ProcessLock):
    """
    Redis 分布式锁

    使用 SET NX EX 获取锁，获取不到时按 poll_interval 轮询，
    直到 timeout。锁本身设置过期时间 lock_ttl，防止持有者崩溃后死锁。
    释放时校验 token，只删除自己持有的锁。
    """

    def __init__(
        self,
        redis_client: RedisClient,
        timeout: float = DEFAULT_LOCK_TIMEOUT,
        lock_ttl: int = 30,
        poll_interval: float = 0.05,
    ):
        self.redis = redis_client
        self.timeout = timeout
        self.lock_ttl = lock_ttl
        self.poll_interval = poll_interval

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        full_key = f"{LOCK_KEY_PREFIX}{key}"
        token = uuid.uuid4().hex

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout

        while not await self.redis.set(full_key, token, ex=self.lock_ttl, nx=True):
            if loop.time() >= deadline:
                logger.warning(f"[ProcessLock] 等待分布式锁超时: {key}")
                raise LockTimeoutError(key)
            await asyncio.sleep(self.poll_interval)

        logger.debug(f"[ProcessLock] 获取锁成功: {key}")
        try:
            yield
        finally:
            try:
                # 锁可能已过期并被其他请求拿走，只释放自己的
                if await self.redis.delete_if_equals(full_key, token):
                    logger.debug(f"[ProcessLock] 释放锁成功: {key}")
            except Exception as e:
                logger.warning(f"[ProcessLock] 释放锁失败: {key}, 错误: {e}")
