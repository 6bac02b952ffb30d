"""
权限核心：角色注册表 / 角色提取 / 权限解析 / 列表过滤 / 授权生命周期
"""
from app.services.rbac.audit import AuditEvent, AuditSink, DatabaseAuditSink, NullAuditSink
from app.services.rbac.exceptions import GrantValidationError, RoleConfigError, StorageError
from app.services.rbac.grant_service import GrantService
from app.services.rbac.permission_resolver import (
    EffectivePermissionSet,
    GrantSnapshot,
    PermissionResolver,
    PlayerAccess,
    merge_permissions,
)
from app.services.rbac.resource_filter import (
    filter_allowed,
    filter_allowed_players,
    filter_allowed_players_static,
)
from app.services.rbac.role_extractor import extract_role
from app.services.rbac.role_registry import (
    DEFAULT_ROLE,
    RoleConfig,
    RoleRegistry,
    get_role_registry,
    load_role_registry,
)

__all__ = [
    "AuditEvent",
    "AuditSink",
    "DEFAULT_ROLE",
    "DatabaseAuditSink",
    "EffectivePermissionSet",
    "GrantService",
    "GrantSnapshot",
    "GrantValidationError",
    "NullAuditSink",
    "PermissionResolver",
    "PlayerAccess",
    "RoleConfig",
    "RoleConfigError",
    "RoleRegistry",
    "StorageError",
    "extract_role",
    "filter_allowed",
    "filter_allowed_players",
    "filter_allowed_players_static",
    "get_role_registry",
    "load_role_registry",
    "merge_permissions",
]
