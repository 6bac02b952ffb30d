"""
审计事件与写入端

授权变更、播放器控制等操作产生 AuditEvent，交给注入的 AuditSink 处理。
DatabaseAuditSink 使用独立 Session 写入 audit_logs，自身失败只记日志，
不会回滚或阻断已经完成的业务操作。
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import logger
from app.repositories import AuditRepository, StorageError

ACTION_PERMISSION_GRANT = "permission.grant"
ACTION_PERMISSION_REVOKE = "permission.revoke"
ACTION_PLAYER_CONTROL = "player.control"


@dataclass(frozen=True)
class AuditEvent:
    actor: str
    action: str
    resource_type: str
    resource_id: str | None = None
    outcome: str = "success"
    details: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None


class AuditSink(Protocol):
    async def record(self, event: AuditEvent) -> None:
        ...


class NullAuditSink:
    """不落审计（脚本 / 只读调用方）"""

    async def record(self, event: AuditEvent) -> None:
        return None


class DatabaseAuditSink:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(self, event: AuditEvent) -> None:
        try:
            async with self._session_factory() as session:
                await AuditRepository(session).create(asdict(event))
                await session.commit()
        except (StorageError, SQLAlchemyError) as exc:
            logger.error(
                "audit_write_failed",
                extra={
                    "action": event.action,
                    "resource_id": event.resource_id,
                    "actor": event.actor,
                    "error": str(exc),
                },
            )
