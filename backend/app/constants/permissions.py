"""
权限注册表（单一真源）

- PERMISSION_REGISTRY: 角色开关的闭集，roles.yaml 必须逐项声明
- AccessLevel: 单播放器授权等级（view < manage < admin）
- ACCESS_LEVEL_PERMISSIONS: 授权等级在单个播放器上覆盖的操作
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

# 角色 allowed_players 的通配符，表示全部播放器
ALL_PLAYERS = "*"


@dataclass(frozen=True)
class PermissionItem:
    code: str
    description: str


PERMISSION_REGISTRY: List[PermissionItem] = [
    PermissionItem("canViewPlayers", "查看播放器列表与状态"),
    PermissionItem("canUploadContent", "上传素材"),
    PermissionItem("canScheduleContent", "编排播放计划"),
    PermissionItem("canDeleteContent", "删除素材"),
    PermissionItem("canDeployToPlayers", "向播放器下发播放列表"),
    PermissionItem("canControlPlayback", "播放控制（暂停/切换）"),
    PermissionItem("canViewAnalytics", "查看统计报表"),
    PermissionItem("canManageUsers", "管理用户与播放器授权"),
    PermissionItem("canViewAuditLogs", "查看审计日志"),
    PermissionItem("canEditPermissions", "编辑角色权限"),
]

PERMISSION_CODES: tuple[str, ...] = tuple(p.code for p in PERMISSION_REGISTRY)


class AccessLevel(str, Enum):
    """单播放器授权等级，按 rank 全序比较"""

    VIEW = "view"
    MANAGE = "manage"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    def implies(self, other: AccessLevel) -> bool:
        """当前等级是否覆盖 other（admin 覆盖 manage 覆盖 view）"""
        return self.rank >= AccessLevel(other).rank

    @classmethod
    def parse(cls, value: str | AccessLevel) -> AccessLevel:
        """
        解析外部输入的授权等级；未知取值抛 ValueError，不做静默兜底。
        """
        if isinstance(value, AccessLevel):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"unknown access level: {value!r}") from None


_LEVEL_RANK: dict[AccessLevel, int] = {
    AccessLevel.VIEW: 1,
    AccessLevel.MANAGE: 2,
    AccessLevel.ADMIN: 3,
}

_VIEW_PERMISSIONS = frozenset({"canViewPlayers", "canViewAnalytics"})
_MANAGE_PERMISSIONS = _VIEW_PERMISSIONS | {
    "canUploadContent",
    "canScheduleContent",
    "canControlPlayback",
}
_ADMIN_PERMISSIONS = _MANAGE_PERMISSIONS | {"canDeleteContent", "canDeployToPlayers"}

ACCESS_LEVEL_PERMISSIONS: dict[AccessLevel, frozenset[str]] = {
    AccessLevel.VIEW: _VIEW_PERMISSIONS,
    AccessLevel.MANAGE: frozenset(_MANAGE_PERMISSIONS),
    AccessLevel.ADMIN: frozenset(_ADMIN_PERMISSIONS),
}


def access_level_has_permission(level: AccessLevel | str, permission: str) -> bool:
    """授权等级是否覆盖某个操作（只作用于单个播放器）"""
    try:
        parsed = AccessLevel.parse(level)
    except ValueError:
        return False
    return permission in ACCESS_LEVEL_PERMISSIONS[parsed]
