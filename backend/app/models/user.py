from datetime import datetime

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin

# 管理员按手机号授权、但对方尚未登录过时创建的占位用户 zo_user_id 前缀
PENDING_ZO_USER_PREFIX = "pending-"


class SignageUser(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """外部身份（Zo）在本地的镜像，只用于挂载播放器授权与审计"""

    __tablename__ = "users"

    zo_user_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True, comment="外部身份 ID（占位用户为 pending-<phone>）")
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False, index=True, comment="手机号（不含国家码）")
    mobile_country_code: Mapped[str | None] = mapped_column(String(8), nullable=True, comment="国家码")
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True, comment="名")
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True, comment="姓")
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, comment="邮箱")
    membership: Mapped[str] = mapped_column(String(20), nullable=False, default="none", server_default="none", comment="会员等级: founder/citizen/none")
    roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list, comment="外部身份携带的角色")
    access_groups: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list, comment="外部身份携带的访问分组")
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True, comment="最近一次同步身份的时间")

    player_permissions: Mapped[list["PlayerPermission"]] = relationship(
        "PlayerPermission",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_placeholder(self) -> bool:
        return self.zo_user_id.startswith(PENDING_ZO_USER_PREFIX)

    def __repr__(self) -> str:
        return f"<SignageUser(zo_user_id={self.zo_user_id})>"
