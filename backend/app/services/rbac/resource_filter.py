"""
播放器列表过滤

只做减法：保持输入顺序与重复项，不会新增元素；通配权限原样返回。
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from app.schemas.identity import ZoUser
from app.services.rbac.permission_resolver import EffectivePermissionSet, PermissionResolver

T = TypeVar("T")


def _default_keys(item: Any) -> tuple[str | None, str | None]:
    if isinstance(item, dict):
        return item.get("id") or item.get("_id"), item.get("name")
    return getattr(item, "id", None), getattr(item, "name", None)


def filter_allowed(
    permission_set: EffectivePermissionSet,
    items: Sequence[T],
    key: Callable[[T], tuple[str | None, str | None]] = _default_keys,
) -> list[T]:
    if permission_set.allows_all_players:
        return list(items)
    return [item for item in items if permission_set.is_allowed(*key(item))]


def filter_allowed_players_static(
    resolver: PermissionResolver,
    user: ZoUser,
    items: Sequence[T],
    key: Callable[[T], tuple[str | None, str | None]] = _default_keys,
) -> list[T]:
    """仅按角色过滤（界面乐观展示用）"""
    return filter_allowed(resolver.resolve_static(user), items, key)


async def filter_allowed_players(
    resolver: PermissionResolver,
    user: ZoUser,
    items: Sequence[T],
    key: Callable[[T], tuple[str | None, str | None]] = _default_keys,
) -> list[T]:
    """按角色 + 生效授权过滤"""
    return filter_allowed(await resolver.resolve(user), items, key)
