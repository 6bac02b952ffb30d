"""
角色注册表

从 roles.yaml 加载静态角色定义，启动时完成全部校验：
- 每个角色必须声明全部权限开关，不允许缺失或未知开关
- 角色 ID 唯一（YAML 重复 key 直接报错）
- 保留角色 default 必须存在且拒绝一切
加载完成后只读，可被并发请求共享。
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from app.constants.permissions import ALL_PLAYERS, PERMISSION_CODES
from app.core.config import settings
from app.core.logging import logger
from app.services.rbac.exceptions import RoleConfigError

DEFAULT_ROLE = "default"
UNKNOWN_LOCATION = "UNKNOWN"


class _UniqueKeyLoader(yaml.SafeLoader):
    """拒绝重复 key 的 SafeLoader（PyYAML 默认后者覆盖前者）"""

    def construct_mapping(self, node, deep=False):
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


class RoleDefinition(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    display_name: str = Field(..., min_length=1)
    description: str = ""
    allowed_players: Literal["*"] | tuple[str, ...] = ()
    allowed_locations: tuple[str, ...] = ()
    permissions: dict[str, bool]

    @field_validator("allowed_players", mode="before")
    @classmethod
    def _wildcard_in_list(cls, value):
        # ["*", ...] 与 "*" 等价
        if isinstance(value, list) and ALL_PLAYERS in value:
            return ALL_PLAYERS
        return value

    @field_validator("permissions")
    @classmethod
    def _closed_permission_set(cls, value: dict[str, bool]) -> dict[str, bool]:
        missing = [code for code in PERMISSION_CODES if code not in value]
        unknown = sorted(set(value) - set(PERMISSION_CODES))
        if missing:
            raise ValueError(f"missing permission flags: {', '.join(missing)}")
        if unknown:
            raise ValueError(f"unknown permission flags: {', '.join(unknown)}")
        return {code: value[code] for code in PERMISSION_CODES}


class RoleConfig(RoleDefinition):
    id: str

    @property
    def allows_all_players(self) -> bool:
        return self.allowed_players == ALL_PLAYERS

    def has_permission(self, permission: str) -> bool:
        return self.permissions.get(permission) is True


class LocationKeyword(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    keyword: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)


class RoleFile(BaseModel):
    """roles.yaml 的整体结构"""

    model_config = ConfigDict(extra="forbid")

    super_admin_role: str = "cas-admin"
    group_priority: list[str] = Field(
        default_factory=lambda: ["property-manager", "activity-manager", "front-desk-manager", "marketing"]
    )
    membership_roles: dict[str, str] = Field(
        default_factory=lambda: {"founder": "founder", "citizen": "citizen"}
    )
    roles: dict[str, RoleDefinition]
    player_locations: dict[str, str] = Field(default_factory=dict)
    location_keywords: list[LocationKeyword] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> RoleFile:
        default = self.roles.get(DEFAULT_ROLE)
        if default is None:
            raise ValueError(f"reserved role '{DEFAULT_ROLE}' is missing")
        if any(default.permissions.values()) or default.allowed_players or default.allowed_locations:
            raise ValueError(f"reserved role '{DEFAULT_ROLE}' must deny everything")
        if self.super_admin_role not in self.roles:
            raise ValueError(f"super_admin_role '{self.super_admin_role}' is not a defined role")
        for tier, role_id in self.membership_roles.items():
            if role_id not in self.roles:
                raise ValueError(f"membership '{tier}' maps to undefined role '{role_id}'")
        return self


class RoleRegistry:
    """只读角色注册表，未知角色统一回落到 default"""

    def __init__(self, config: RoleFile):
        self._roles: dict[str, RoleConfig] = {
            role_id: RoleConfig(id=role_id, **definition.model_dump())
            for role_id, definition in config.roles.items()
        }
        self._super_admin_role = config.super_admin_role
        self._group_priority = tuple(config.group_priority)
        self._membership_roles = dict(config.membership_roles)
        self._player_locations = dict(config.player_locations)
        self._location_keywords = tuple(config.location_keywords)

    @classmethod
    def from_mapping(cls, data: Any) -> RoleRegistry:
        if not isinstance(data, dict):
            raise RoleConfigError("role configuration must be a mapping")
        try:
            return cls(RoleFile.model_validate(data))
        except ValidationError as exc:
            raise RoleConfigError(f"invalid role configuration: {exc}") from exc

    @property
    def role_ids(self) -> tuple[str, ...]:
        return tuple(self._roles)

    @property
    def super_admin_role(self) -> str:
        return self._super_admin_role

    @property
    def group_priority(self) -> tuple[str, ...]:
        return self._group_priority

    def is_valid_role(self, role_id: str) -> bool:
        return role_id in self._roles

    def get_role(self, role_id: str | None) -> RoleConfig:
        if role_id and role_id in self._roles:
            return self._roles[role_id]
        return self._roles[DEFAULT_ROLE]

    def membership_role(self, membership: str | None) -> str | None:
        if not membership:
            return None
        return self._membership_roles.get(membership)

    def location_for_player(self, player_name: str | None) -> str:
        """播放器所在地点：精确登记优先，其次按名称关键字推断"""
        if not player_name:
            return UNKNOWN_LOCATION
        if player_name in self._player_locations:
            return self._player_locations[player_name]
        lowered = player_name.lower()
        for item in self._location_keywords:
            if item.keyword.lower() in lowered:
                return item.location
        return UNKNOWN_LOCATION


def load_role_registry(path: str | Path) -> RoleRegistry:
    """读取并校验角色配置文件，任何问题都抛 RoleConfigError"""
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RoleConfigError(f"cannot read role configuration {config_path}: {exc}") from exc

    try:
        data = yaml.load(raw, Loader=_UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise RoleConfigError(f"malformed role configuration {config_path}: {exc}") from exc

    registry = RoleRegistry.from_mapping(data)
    logger.info(
        "role_registry_loaded",
        extra={"path": str(config_path), "roles": list(registry.role_ids)},
    )
    return registry


@lru_cache(maxsize=1)
def get_role_registry() -> RoleRegistry:
    """进程级单例，lifespan 启动时预热，配置错误直接阻止启动"""
    return load_role_registry(settings.ROLES_CONFIG_PATH)
