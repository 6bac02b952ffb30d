"""
权限解析

角色静态配置 + 播放器授权 => 有效权限集合。

- 同步接口只看角色配置，用于界面展示 / 乐观判断，不可作为鉴权依据
- 异步接口会查询授权存储，所有真正的访问控制都必须走异步接口
- 授权只扩展"可访问哪些播放器"，不改变角色的权限开关
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Protocol

from app.constants.permissions import (
    ALL_PLAYERS,
    AccessLevel,
    access_level_has_permission,
)
from app.schemas.identity import ZoUser
from app.services.rbac.role_extractor import extract_role
from app.services.rbac.role_registry import RoleConfig, RoleRegistry
from app.utils.time_utils import Datetime


@dataclass(frozen=True)
class GrantSnapshot:
    """解析用的授权快照（与 ORM 解耦，可安全缓存）"""

    player_id: str
    player_name: str
    access_level: AccessLevel
    granted_by: str
    granted_at: datetime
    expires_at: datetime | None = None
    notes: str | None = None

    def is_active_at(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now


@dataclass(frozen=True)
class PlayerAccess:
    allowed: bool
    access_level: AccessLevel | None = None

    @classmethod
    def denied(cls) -> PlayerAccess:
        return cls(allowed=False, access_level=None)


class GrantSource(Protocol):
    async def active_grants_for_identity(self, zo_user_id: str) -> list[GrantSnapshot]:
        ...


@dataclass(frozen=True)
class EffectivePermissionSet:
    role: str
    display_name: str
    permissions: dict[str, bool]
    allowed_players: Literal["*"] | tuple[str, ...]
    allowed_locations: tuple[str, ...]
    custom_grants: tuple[GrantSnapshot, ...] = ()
    _grant_levels_by_id: dict[str, AccessLevel] = field(default_factory=dict, repr=False)
    _grant_levels_by_name: dict[str, AccessLevel] = field(default_factory=dict, repr=False)

    @property
    def allows_all_players(self) -> bool:
        return self.allowed_players == ALL_PLAYERS

    @property
    def player_access_levels(self) -> dict[str, AccessLevel]:
        """播放器 ID/名称 -> 授权等级；静态列表默认 manage，授权等级覆盖之"""
        if self.allows_all_players:
            return {}
        levels = {key: AccessLevel.MANAGE for key in self.allowed_players}
        levels.update(self._grant_levels_by_name)
        levels.update(self._grant_levels_by_id)
        return levels

    def has_permission(self, permission: str) -> bool:
        return self.permissions.get(permission) is True

    def is_allowed(self, player_id: str | None, player_name: str | None = None) -> bool:
        if self.allows_all_players:
            return True
        allowed = set(self.allowed_players)
        return bool((player_id and player_id in allowed) or (player_name and player_name in allowed))

    def access_for(self, player_id: str | None, player_name: str | None = None) -> PlayerAccess:
        """
        单播放器访问判定
        - 通配角色: admin
        - 授权等级: ID 匹配优先，其次名称匹配
        - 仅静态列表命中: manage
        """
        if self.allows_all_players:
            return PlayerAccess(allowed=True, access_level=AccessLevel.ADMIN)
        if not self.is_allowed(player_id, player_name):
            return PlayerAccess.denied()
        if player_id and player_id in self._grant_levels_by_id:
            return PlayerAccess(allowed=True, access_level=self._grant_levels_by_id[player_id])
        for key in (player_name, player_id):
            if key and key in self._grant_levels_by_name:
                return PlayerAccess(allowed=True, access_level=self._grant_levels_by_name[key])
        return PlayerAccess(allowed=True, access_level=AccessLevel.MANAGE)


def _union_preserving_order(*groups: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for group in groups:
        for item in group:
            if item and item not in seen:
                seen[item] = None
    return tuple(seen)


def merge_permissions(
    role_id: str,
    role: RoleConfig,
    grants: Iterable[GrantSnapshot] = (),
    now: datetime | None = None,
) -> EffectivePermissionSet:
    """
    合并角色与授权

    allowed_players = 角色列表 ∪ 授权 ID ∪ 授权名称；只有角色本身的通配才会得到通配，
    授权中的 "*" 只按字面匹配，不会放大为全部播放器。
    过期授权在此再次过滤，缓存中的旧快照不会越过到期时间。
    """
    now = now or Datetime.now()
    active = tuple(g for g in grants if g.is_active_at(now))

    if role.allows_all_players:
        allowed_players: Literal["*"] | tuple[str, ...] = ALL_PLAYERS
    else:
        allowed_players = _union_preserving_order(
            role.allowed_players,
            (g.player_id for g in active),
            (g.player_name for g in active),
        )

    levels_by_id: dict[str, AccessLevel] = {}
    name_levels: dict[str, set[AccessLevel]] = {}
    for grant in active:
        levels_by_id[grant.player_id] = grant.access_level
        name_levels.setdefault(grant.player_name, set()).add(grant.access_level)
    # 同名播放器的多条授权等级不一致时按 manage 处理
    levels_by_name = {
        name: next(iter(levels)) if len(levels) == 1 else AccessLevel.MANAGE
        for name, levels in name_levels.items()
    }

    return EffectivePermissionSet(
        role=role_id,
        display_name=role.display_name,
        permissions=dict(role.permissions),
        allowed_players=allowed_players,
        allowed_locations=tuple(role.allowed_locations),
        custom_grants=active,
        _grant_levels_by_id=levels_by_id,
        _grant_levels_by_name=levels_by_name,
    )


class PermissionResolver:
    """
    权限解析器

    registry 为只读角色注册表；grants 为授权来源（通常是 GrantService），
    未提供时异步接口退化为仅角色判定（只会更严格，不会放宽）。
    """

    def __init__(self, registry: RoleRegistry, grants: GrantSource | None = None):
        self.registry = registry
        self.grants = grants

    def role_id_for(self, user: ZoUser) -> str:
        return extract_role(user, self.registry)

    # ===== 同步（仅角色） =====

    def resolve_static(self, user: ZoUser) -> EffectivePermissionSet:
        role_id = self.role_id_for(user)
        return merge_permissions(role_id, self.registry.get_role(role_id))

    def has_permission(self, user: ZoUser, permission: str) -> bool:
        """角色权限开关；授权不影响开关"""
        return self.registry.get_role(self.role_id_for(user)).has_permission(permission)

    def can_access_player_static(
        self,
        user: ZoUser,
        player_id: str | None,
        player_name: str | None = None,
    ) -> bool:
        return self.resolve_static(user).is_allowed(player_id, player_name)

    def can_access_location(self, user: ZoUser, location: str) -> bool:
        return location in self.registry.get_role(self.role_id_for(user)).allowed_locations

    # ===== 异步（角色 + 授权） =====

    async def _active_grants(self, user: ZoUser) -> list[GrantSnapshot]:
        if self.grants is None:
            return []
        return await self.grants.active_grants_for_identity(user.id)

    async def resolve(self, user: ZoUser) -> EffectivePermissionSet:
        role_id = self.role_id_for(user)
        role = self.registry.get_role(role_id)
        grants = await self._active_grants(user)
        return merge_permissions(role_id, role, grants)

    async def can_access_player(
        self,
        user: ZoUser,
        player_id: str | None,
        player_name: str | None = None,
    ) -> PlayerAccess:
        permission_set = await self.resolve(user)
        return permission_set.access_for(player_id, player_name)

    async def player_access_level(self, user: ZoUser, player_id: str) -> AccessLevel | None:
        """仅按授权（不含角色）查询某播放器的授权等级"""
        now = Datetime.now()
        for grant in await self._active_grants(user):
            if grant.player_id == player_id and grant.is_active_at(now):
                return grant.access_level
        return None

    async def can_perform_on_player(
        self,
        user: ZoUser,
        permission: str,
        player_id: str | None,
        player_name: str | None = None,
    ) -> bool:
        """
        针对单个播放器的操作判定：
        角色开关 && 可访问该播放器 && 授权等级覆盖该操作
        """
        if not self.has_permission(user, permission):
            return False
        access = await self.can_access_player(user, player_id, player_name)
        if not access.allowed or access.access_level is None:
            return False
        return access_level_has_permission(access.access_level, permission)
