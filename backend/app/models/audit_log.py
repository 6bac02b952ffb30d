from datetime import datetime

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from app.utils.time_utils import Datetime

from .base import Base, UTCDateTime, UUIDPrimaryKeyMixin


class AuditLog(Base, UUIDPrimaryKeyMixin):
    """
    审计日志（只追加）
    记录授权变更与播放器控制等敏感操作
    """
    __tablename__ = "audit_logs"

    actor: Mapped[str] = mapped_column(String(128), nullable=False, index=True, comment="操作人（手机号或外部 ID）")
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True, comment="动作，如 permission.grant")
    resource_type: Mapped[str] = mapped_column(String(32), nullable=False, comment="资源类型，如 player")
    resource_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True, comment="资源 ID")
    outcome: Mapped[str] = mapped_column(String(16), nullable=False, default="success", comment="结果: success/failure")
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True, comment="附加信息")
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True, comment="来源 IP")
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True, comment="User-Agent")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=Datetime.now, index=True, comment="记录时间")

    def __repr__(self) -> str:
        return f"<AuditLog(action={self.action}, resource_id={self.resource_id})>"
