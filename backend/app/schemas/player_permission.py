from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema


class GrantCreate(BaseSchema):
    """
    授权请求：user_id 与 phone_number 二选一
    phone_number 对应的用户不存在时创建占位用户，对方首次登录后自动认领
    """
    user_id: UUID | None = None
    phone_number: str | None = Field(None, description="被授权人手机号")
    player_id: str = Field(..., description="播放器 ID")
    player_name: str = Field(..., description="播放器名称")
    access_level: str = Field("view", description="授权等级: view/manage/admin")
    expires_at: datetime | None = Field(None, description="过期时间，空为永久")
    notes: str | None = None


class GrantRevoke(BaseSchema):
    user_id: UUID
    player_id: str = Field(..., min_length=1)


class GrantRead(BaseSchema):
    id: UUID
    user_id: UUID
    phone_number: str | None = None
    player_id: str
    player_name: str
    access_level: str
    granted_by: str
    granted_at: datetime
    expires_at: datetime | None = None
    notes: str | None = None
    is_active: bool = True


class GrantListResponse(BaseSchema):
    items: list[GrantRead]
    total: int


class RevokeResponse(BaseSchema):
    revoked: bool
