from datetime import datetime
from uuid import UUID

from app.schemas.base import BaseSchema


class UserRead(BaseSchema):
    id: UUID
    zo_user_id: str
    phone_number: str
    mobile_country_code: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    membership: str
    roles: list[str]
    access_groups: list[str]
    last_login_at: datetime | None = None


class UserSyncResponse(BaseSchema):
    user: UserRead
    role: str
    adopted_placeholder: bool = False
