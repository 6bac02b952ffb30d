"""
AuditRepository: 审计日志写入与查询

审计表只追加，不提供更新 / 删除。
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select

from app.models import AuditLog
from app.repositories.base import BaseRepository


class AuditRepository(BaseRepository[AuditLog]):
    model = AuditLog

    async def create(self, audit_data: dict[str, Any]) -> AuditLog:
        return await self.add(audit_data)

    async def list_recent(
        self,
        *,
        resource_id: str | None = None,
        action: str | None = None,
        limit: int = 50,
    ) -> list[AuditLog]:
        stmt = select(AuditLog)
        if resource_id is not None:
            stmt = stmt.where(AuditLog.resource_id == resource_id)
        if action is not None:
            stmt = stmt.where(AuditLog.action == action)
        stmt = stmt.order_by(AuditLog.created_at.desc()).limit(limit)
        result = await self._execute(stmt, "audit_logs.list_recent")
        return list(result.scalars().all())
