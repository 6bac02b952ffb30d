"""
当前用户 API 路由 (/api/v1/users)

端点:
- POST /users/me/sync - 同步会话身份到本地（认领占位用户）[需登录]
- GET /users/me/permissions - 当前有效权限（角色 + 生效授权）[需登录]
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.deps.auth import get_current_identity, get_permission_resolver, get_registry
from app.schemas.identity import ZoUser
from app.schemas.rbac import EffectivePermissionsRead
from app.schemas.user import UserSyncResponse
from app.services.rbac import PermissionResolver, RoleRegistry
from app.services.users import UserSyncService

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/me/sync", response_model=UserSyncResponse)
async def sync_me(
    identity: ZoUser = Depends(get_current_identity),
    registry: RoleRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db),
) -> UserSyncResponse:
    service = UserSyncService(db, registry)
    return await service.sync(identity)


@router.get("/me/permissions", response_model=EffectivePermissionsRead)
async def my_permissions(
    identity: ZoUser = Depends(get_current_identity),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> EffectivePermissionsRead:
    permission_set = await resolver.resolve(identity)
    return EffectivePermissionsRead.from_set(permission_set)
