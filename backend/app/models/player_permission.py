import uuid
from datetime import datetime

from sqlalchemy import UUID as SA_UUID
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.utils.time_utils import Datetime

from .base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin


class PlayerPermission(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    单用户单播放器授权

    - (user_id, player_id) 唯一，重复授权走 upsert 覆盖
    - expires_at 为空表示永久；过期行保留但不参与鉴权
    """

    __tablename__ = "user_player_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "player_id", name="uq_user_player_permissions_user_player"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        SA_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="被授权用户",
    )
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True, comment="被授权用户手机号（冗余便于检索）")
    player_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True, comment="播放器 ID")
    player_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True, comment="播放器名称")
    access_level: Mapped[str] = mapped_column(String(16), nullable=False, default="view", comment="授权等级: view/manage/admin")
    granted_by: Mapped[str] = mapped_column(String(128), nullable=False, comment="授权人（手机号或 ID）")
    granted_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=Datetime.now, comment="授权时间")
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True, index=True, comment="过期时间（空为永久）")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True, comment="备注")

    user: Mapped["SignageUser"] = relationship("SignageUser", back_populates="player_permissions")

    def is_active_at(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now

    def __repr__(self) -> str:
        return f"<PlayerPermission(user_id={self.user_id}, player_id={self.player_id}, level={self.access_level})>"
