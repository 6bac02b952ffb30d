"""
身份同步服务：把会话中的外部身份镜像到本地 users 表

- 首次登录创建镜像；同手机号存在占位用户时认领之，管理员预先授予的播放器权限随之生效
- 认领后清除该身份的授权缓存，避免之前缓存的空授权列表继续生效
"""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import logger
from app.repositories import StorageError, UserRepository
from app.schemas.identity import ZoUser
from app.schemas.user import UserRead, UserSyncResponse
from app.services.rbac.grant_service import invalidate_grant_cache
from app.services.rbac.role_extractor import extract_role
from app.services.rbac.role_registry import RoleRegistry


class UserSyncService:
    def __init__(self, db: AsyncSession, registry: RoleRegistry):
        self.db = db
        self.registry = registry
        self.user_repo = UserRepository(db)

    async def sync(self, identity: ZoUser) -> UserSyncResponse:
        try:
            user, adopted = await self.user_repo.upsert_from_identity(identity)
            await self.db.commit()
        except StorageError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StorageError("users.sync", exc) from exc

        await invalidate_grant_cache(identity.id)
        role = extract_role(identity, self.registry)
        if adopted:
            logger.info(
                "placeholder_user_adopted",
                extra={"user_id": str(user.id), "zo_user_id": identity.id},
            )
        logger.info("user_synced", extra={"zo_user_id": identity.id, "role": role})
        return UserSyncResponse(user=UserRead.model_validate(user), role=role, adopted_placeholder=adopted)
