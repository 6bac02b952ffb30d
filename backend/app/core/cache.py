import pickle
import random
from typing import Any

from redis.asyncio import Redis, from_url

from app.core.config import settings
from app.core.logging import logger


class CacheService:
    """
    Redis 缓存服务

    只作为授权查询的加速层：任何 Redis 异常都记录日志后按未命中处理，
    调用方回落到数据库，鉴权结果不受缓存可用性影响。
    """

    def __init__(self):
        self._redis: Redis | None = None

    def init(self) -> None:
        """按 REDIS_URL 建立连接池；留空则禁用缓存"""
        if not settings.REDIS_URL:
            logger.warning("cache_disabled", extra={"reason": "REDIS_URL not set"})
            return
        self._redis = from_url(
            settings.REDIS_URL,
            encoding=settings.REDIS_ENCODING,
            decode_responses=False,  # 值为 pickle 后的授权快照
        )
        logger.info("cache_initialized", extra={"url": settings.REDIS_URL})

    async def close(self) -> None:
        if self._redis is None:
            return
        await self._redis.close()
        self._redis = None
        logger.info("cache_closed")

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    def _make_key(self, key: str) -> str:
        return f"{settings.CACHE_PREFIX}{key}"

    async def get(self, key: str) -> Any | None:
        if self._redis is None:
            return None
        try:
            data = await self._redis.get(self._make_key(key))
            return pickle.loads(data) if data else None
        except Exception as exc:
            logger.error("cache_get_failed", extra={"key": key, "error": str(exc)})
            return None

    async def set(self, key: str, value: Any, ttl: int | None = settings.CACHE_DEFAULT_TTL) -> bool:
        if self._redis is None:
            return False
        try:
            return bool(await self._redis.set(self._make_key(key), pickle.dumps(value), ex=ttl))
        except Exception as exc:
            logger.error("cache_set_failed", extra={"key": key, "error": str(exc)})
            return False

    async def delete(self, key: str) -> bool:
        if self._redis is None:
            return False
        try:
            await self._redis.delete(self._make_key(key))
            return True
        except Exception as exc:
            logger.error("cache_delete_failed", extra={"key": key, "error": str(exc)})
            return False

    @staticmethod
    def jitter_ttl(ttl: int, jitter_ratio: float = 0.1) -> int:
        """为 TTL 添加抖动，避免同一批授权缓存同时过期"""
        if ttl <= 0:
            return ttl
        delta = int(ttl * jitter_ratio)
        return ttl + random.randint(-delta, delta)


# 单例实例
cache = CacheService()
