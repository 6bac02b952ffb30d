"""
Auth/ACL 依赖

认证模式（优先级从高到低）：
1. Authorization: Bearer <session token>
2. 会话 Cookie（settings.SESSION_COOKIE_NAME）

依赖使用：
- get_current_identity: 解析会话中的外部身份，缺失 / 无效 -> 401
- require_permission: 校验角色权限开关，缺失 -> 403
- get_permission_resolver / get_grant_service: 请求级权限核心实例

HTTP 三态：无身份 401 / 无权限 403 / 放行。
"""
from collections.abc import Callable

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.permissions import PERMISSION_CODES
from app.core.config import settings
from app.core.database import AsyncSessionLocal, get_db
from app.core.logging import logger
from app.schemas.identity import ZoUser
from app.services.rbac import (
    AuditSink,
    DatabaseAuditSink,
    GrantService,
    PermissionResolver,
    RoleRegistry,
    get_role_registry,
)
from app.utils.security import decode_session_token


async def get_current_identity(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> ZoUser:
    """获取当前会话身份"""
    token: str | None = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:]  # 移除 "Bearer " 前缀
    if not token:
        token = request.cookies.get(settings.SESSION_COOKIE_NAME)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_session_token(token)
    except ValueError as e:
        logger.warning("session_decode_failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_registry() -> RoleRegistry:
    return get_role_registry()


def get_audit_sink() -> AuditSink:
    return DatabaseAuditSink(AsyncSessionLocal)


def get_grant_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
) -> GrantService:
    return GrantService(db, audit=audit)


def get_permission_resolver(
    registry: RoleRegistry = Depends(get_registry),
    grants: GrantService = Depends(get_grant_service),
) -> PermissionResolver:
    return PermissionResolver(registry, grants=grants)


def require_permission(permission: str) -> Callable:
    """
    生成 FastAPI 依赖，校验当前身份的角色是否开启指定权限开关。
    """
    if permission not in PERMISSION_CODES:
        raise ValueError(f"unknown permission: {permission}")

    async def _dep(
        identity: ZoUser = Depends(get_current_identity),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> ZoUser:
        if not resolver.has_permission(identity, permission):
            logger.warning(
                "permission_denied",
                extra={
                    "zo_user_id": identity.id,
                    "role": resolver.role_id_for(identity),
                    "required": permission,
                },
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission}",
            )
        return identity

    return _dep
