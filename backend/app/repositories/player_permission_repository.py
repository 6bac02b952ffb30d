"""
PlayerPermissionRepository: 播放器授权存取

- upsert 依赖 (user_id, player_id) 唯一约束，PostgreSQL / SQLite 走 ON CONFLICT DO UPDATE
- 所有 "生效" 查询在 SQL 中应用 expires_at IS NULL OR expires_at > now
- 只 flush 不 commit，事务边界由 GrantService 控制
"""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, insert as sa_insert, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from app.models import PlayerPermission, SignageUser
from app.repositories.base import BaseRepository, StorageError
from app.utils.time_utils import Datetime

# upsert 冲突时覆盖的字段
_UPSERT_FIELDS = (
    "phone_number",
    "player_name",
    "access_level",
    "granted_by",
    "granted_at",
    "expires_at",
    "notes",
    "updated_at",
)


def _active_clause(now: datetime):
    return or_(PlayerPermission.expires_at.is_(None), PlayerPermission.expires_at > now)


class PlayerPermissionRepository(BaseRepository[PlayerPermission]):
    model = PlayerPermission

    async def upsert(self, values: dict[str, Any]) -> PlayerPermission:
        """
        插入或覆盖 (user_id, player_id) 对应的授权，返回最新行。
        """
        now = Datetime.now()
        row = {**values}
        row.setdefault("granted_at", now)
        row["updated_at"] = now

        dialect = self.dialect_name
        if dialect in ("postgresql", "sqlite"):
            insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert_fn(PlayerPermission).values(**row)
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "player_id"],
                set_={field: getattr(stmt.excluded, field) for field in _UPSERT_FIELDS},
            )
            await self._execute(stmt, "user_player_permissions.upsert")
        else:
            existing = await self.get_for_user_and_player(row["user_id"], row["player_id"])
            if existing is None:
                await self._execute(sa_insert(PlayerPermission).values(**row), "user_player_permissions.insert")
            else:
                for field in _UPSERT_FIELDS:
                    if field in row:
                        setattr(existing, field, row[field])
                await self._flush("user_player_permissions.update")

        grant = await self.get_for_user_and_player(row["user_id"], row["player_id"], refresh=True)
        if grant is None:
            raise StorageError("user_player_permissions.upsert")
        return grant

    async def get_for_user_and_player(
        self,
        user_id: UUID,
        player_id: str,
        refresh: bool = False,
    ) -> PlayerPermission | None:
        stmt = select(PlayerPermission).where(
            PlayerPermission.user_id == user_id,
            PlayerPermission.player_id == player_id,
        )
        if refresh:
            # ON CONFLICT 更新绕过了 ORM，强制用数据库中的值覆盖 identity map
            stmt = stmt.execution_options(populate_existing=True)
        result = await self._execute(stmt, "user_player_permissions.get")
        return result.scalar_one_or_none()

    async def delete_for_user_and_player(self, user_id: UUID, player_id: str) -> bool:
        """硬删除，返回是否确有行被删除"""
        result = await self._execute(
            delete(PlayerPermission).where(
                PlayerPermission.user_id == user_id,
                PlayerPermission.player_id == player_id,
            ),
            "user_player_permissions.delete",
        )
        return bool(result.rowcount)

    async def list_grants(
        self,
        *,
        user_id: UUID | None = None,
        player_id: str | None = None,
        include_expired: bool = False,
        now: datetime | None = None,
    ) -> list[PlayerPermission]:
        """按用户 / 播放器筛选授权，granted_at 倒序"""
        stmt = select(PlayerPermission)
        if user_id is not None:
            stmt = stmt.where(PlayerPermission.user_id == user_id)
        if player_id is not None:
            stmt = stmt.where(PlayerPermission.player_id == player_id)
        if not include_expired:
            stmt = stmt.where(_active_clause(now or Datetime.now()))
        stmt = stmt.order_by(PlayerPermission.granted_at.desc())

        result = await self._execute(stmt, "user_player_permissions.list")
        return list(result.scalars().all())

    async def list_active_for_zo_user(
        self,
        zo_user_id: str,
        now: datetime | None = None,
    ) -> list[PlayerPermission]:
        """按外部身份 ID 查询当前生效授权（鉴权热路径）"""
        stmt = (
            select(PlayerPermission)
            .join(SignageUser, SignageUser.id == PlayerPermission.user_id)
            .where(SignageUser.zo_user_id == zo_user_id)
            .where(_active_clause(now or Datetime.now()))
            .order_by(PlayerPermission.granted_at.desc())
        )
        result = await self._execute(stmt, "user_player_permissions.list_active_for_zo_user")
        return list(result.scalars().all())
