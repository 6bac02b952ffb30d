"""
管理员播放器授权 API 路由 (/api/v1/admin/permissions)

端点:
- GET /admin/permissions - 授权列表（按播放器 / 用户筛选，默认仅生效授权）[权限: canManageUsers]
- POST /admin/permissions - 授权（按 user_id 或手机号，重复授权覆盖）[权限: canManageUsers]
- DELETE /admin/permissions - 撤销授权（幂等）[权限: canManageUsers]
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.deps.auth import get_grant_service, require_permission
from app.schemas.identity import ZoUser
from app.schemas.player_permission import (
    GrantCreate,
    GrantListResponse,
    GrantRead,
    GrantRevoke,
    RevokeResponse,
)
from app.services.rbac import GrantService

router = APIRouter(prefix="/admin", tags=["Admin - Permissions"])


@router.get("/permissions", response_model=GrantListResponse)
async def list_permissions(
    player_id: str | None = Query(None, description="播放器 ID"),
    user_id: UUID | None = Query(None, description="用户 ID"),
    include_expired: bool = Query(False, description="是否包含已过期授权"),
    _: ZoUser = Depends(require_permission("canManageUsers")),
    service: GrantService = Depends(get_grant_service),
) -> GrantListResponse:
    items = await service.list_grants(
        player_id=player_id,
        user_id=user_id,
        include_expired=include_expired,
    )
    return GrantListResponse(items=items, total=len(items))


@router.post("/permissions", response_model=GrantRead)
async def grant_permission(
    request: GrantCreate,
    admin: ZoUser = Depends(require_permission("canManageUsers")),
    service: GrantService = Depends(get_grant_service),
) -> GrantRead:
    """
    授予播放器访问权

    - 授权人记为当前管理员手机号
    - 手机号对应用户不存在时创建占位用户
    """
    return await service.create_grant(request, granted_by=admin.mobile_number)


@router.delete("/permissions", response_model=RevokeResponse)
async def revoke_permission(
    request: GrantRevoke,
    admin: ZoUser = Depends(require_permission("canManageUsers")),
    service: GrantService = Depends(get_grant_service),
) -> RevokeResponse:
    deleted = await service.revoke(
        user_id=request.user_id,
        player_id=request.player_id,
        revoked_by=admin.mobile_number,
    )
    return RevokeResponse(revoked=deleted)
