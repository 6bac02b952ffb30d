from uuid import UUID

from sqlalchemy import select

from app.models import PENDING_ZO_USER_PREFIX, SignageUser
from app.repositories.base import BaseRepository
from app.schemas.identity import ZoUser
from app.utils.time_utils import Datetime


class UserRepository(BaseRepository[SignageUser]):
    """
    本地用户镜像的仓库封装，避免在业务层直接写 SQL/ORM。
    只 flush 不 commit，事务边界由 Service 控制。
    """

    model = SignageUser

    async def get_by_id(self, user_id: UUID) -> SignageUser | None:
        return await self.get(user_id)

    async def get_by_zo_user_id(self, zo_user_id: str) -> SignageUser | None:
        result = await self._execute(
            select(SignageUser).where(SignageUser.zo_user_id == zo_user_id),
            "users.get_by_zo_user_id",
        )
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone_number: str) -> SignageUser | None:
        """按手机号查询；同号存在多行时优先返回已登录过的真实用户"""
        result = await self._execute(
            select(SignageUser)
            .where(SignageUser.phone_number == phone_number)
            .order_by(SignageUser.created_at.asc()),
            "users.get_by_phone",
        )
        users = list(result.scalars().all())
        for user in users:
            if not user.is_placeholder:
                return user
        return users[0] if users else None

    async def create_placeholder(self, phone_number: str) -> SignageUser:
        """为尚未登录过的手机号创建占位用户，首次登录时由 upsert_from_identity 认领"""
        return await self.add(
            {
                "zo_user_id": f"{PENDING_ZO_USER_PREFIX}{phone_number}",
                "phone_number": phone_number,
                "membership": "none",
                "roles": [],
                "access_groups": [],
            }
        )

    async def get_or_create_by_phone(self, phone_number: str) -> tuple[SignageUser, bool]:
        user = await self.get_by_phone(phone_number)
        if user:
            return user, False
        return await self.create_placeholder(phone_number), True

    async def upsert_from_identity(self, identity: ZoUser) -> tuple[SignageUser, bool]:
        """
        同步外部身份到本地镜像，返回 (用户, 是否认领了占位用户)

        查找顺序: zo_user_id -> 同手机号的占位用户（认领并改写 zo_user_id）-> 新建
        """
        adopted = False
        user = await self.get_by_zo_user_id(identity.id)
        if user is None:
            user = await self.get_by_zo_user_id(f"{PENDING_ZO_USER_PREFIX}{identity.mobile_number}")
            if user is not None:
                user.zo_user_id = identity.id
                adopted = True
        if user is None:
            user = SignageUser(zo_user_id=identity.id, phone_number=identity.mobile_number)
            self.session.add(user)

        user.phone_number = identity.mobile_number
        user.mobile_country_code = identity.mobile_country_code
        user.first_name = identity.first_name
        user.last_name = identity.last_name
        user.email = identity.email_address
        user.membership = identity.membership
        user.roles = list(identity.roles)
        user.access_groups = list(identity.access_groups)
        user.last_login_at = Datetime.now()

        await self._flush("users.upsert_from_identity")
        return user, adopted
