"""
外部身份（Zo）用户对象

由会话令牌解析得到，对权限核心只读。
"""
from typing import Literal

from pydantic import Field, field_validator

from app.schemas.base import BaseSchema

Membership = Literal["founder", "citizen", "none"]


class ZoUser(BaseSchema):
    id: str = Field(..., min_length=1, description="外部身份 ID")
    pid: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    mobile_country_code: str | None = None
    mobile_number: str = Field(..., min_length=1, description="手机号（不含国家码）")
    email_address: str | None = None
    membership: Membership = "none"
    roles: list[str] = Field(default_factory=list)
    access_groups: list[str] = Field(default_factory=list)

    @field_validator("membership", mode="before")
    @classmethod
    def _normalize_membership(cls, value):
        # 身份服务可能返回 null 或未知等级，统一视为 none
        if value in ("founder", "citizen"):
            return value
        return "none"

    @field_validator("roles", "access_groups", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or []

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.mobile_number
