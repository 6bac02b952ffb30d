"""
测试全局配置

- 默认禁用真实 Redis 连接，统一使用内存 DummyRedis
- 每个测试独立的内存 SQLite (aiosqlite)，业务逻辑跑真实 SQL
- 该文件在 backend/tests 下的所有测试生效
"""
from __future__ import annotations

import os
import sys
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# 确保 backend/ 在 sys.path，便于导入 app.*
BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

# 确保测试环境不读取外部 Redis，也不写日志文件
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("LOG_FILE_PATH", "")
os.environ.setdefault("LOG_ASYNC", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-session-secret")

from app.core.cache import cache
from app.core.config import settings
from app.models import Base
from app.schemas.identity import ZoUser
from app.services.rbac import RoleRegistry, get_role_registry

settings.REDIS_URL = ""
settings.LOG_FILE_PATH = ""
settings.LOG_ASYNC = False
settings.JWT_SECRET_KEY = settings.JWT_SECRET_KEY or "test-session-secret"

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class DummyRedis:
    """
    轻量内存 Redis 替身，覆盖 CacheService 用到的方法：
    - get/set/delete/keys/flushall
    - store 属性便于断言
    """

    def __init__(self):
        self.store: dict[str, Any] = {}
        self.ttls: dict[str, int | None] = {}

    async def get(self, key: str):
        return self.store.get(key)

    async def set(self, key: str, value, ex=None, nx: bool | None = None):
        if nx and key in self.store:
            return False
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        removed = 0
        for k in keys:
            removed += 1 if self.store.pop(k, None) is not None else 0
            self.ttls.pop(k, None)
        return removed

    async def keys(self, pattern: str):
        if pattern.endswith("*"):
            prefix = pattern[:-1]
            return [k for k in self.store if k.startswith(prefix)]
        return [k for k in self.store if k == pattern]

    async def flushall(self):
        self.store.clear()
        self.ttls.clear()

    async def close(self):
        return None


class BrokenRedis(DummyRedis):
    """所有操作都抛异常，用于验证缓存故障回落数据库"""

    async def get(self, key: str):
        raise ConnectionError("redis down")

    async def set(self, key: str, value, ex=None, nx: bool | None = None):
        raise ConnectionError("redis down")

    async def delete(self, *keys):
        raise ConnectionError("redis down")


@pytest.fixture(autouse=True)
def dummy_redis():
    """每个测试挂载一个干净的内存 Redis"""
    redis = DummyRedis()
    cache._redis = redis
    yield redis
    cache._redis = None


@pytest.fixture
def broken_redis(dummy_redis):
    """替换为一直报错的 Redis"""
    redis = BrokenRedis()
    cache._redis = redis
    return redis


@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def registry() -> RoleRegistry:
    return get_role_registry()


@pytest.fixture
def make_identity() -> Callable[..., ZoUser]:
    """构造外部身份对象，未指定的字段取无角色访客"""

    def _make(
        zo_id: str = "zo-guest",
        mobile_number: str = "5550000000",
        roles: list[str] | None = None,
        access_groups: list[str] | None = None,
        membership: str | None = None,
        **extra: Any,
    ) -> ZoUser:
        return ZoUser(
            id=zo_id,
            mobile_number=mobile_number,
            mobile_country_code="1",
            roles=roles or [],
            access_groups=access_groups or [],
            membership=membership,
            **extra,
        )

    return _make
