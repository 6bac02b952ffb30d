"""
播放器授权生命周期

- grant: 校验 -> upsert (user_id, player_id) -> 提交 -> 失效缓存 -> 审计
- revoke: 硬删除，幂等（不存在也视为成功）
- 过期不做后台清理，查询时按 expires_at 过滤

事务边界在本服务内：每个写操作单独提交，失败回滚并抛 StorageError。
"""
from __future__ import annotations

import re
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.permissions import ALL_PLAYERS, AccessLevel
from app.core.cache import cache
from app.core.cache_keys import CacheKeys
from app.core.config import settings
from app.core.logging import logger
from app.models import PlayerPermission, SignageUser
from app.repositories import PlayerPermissionRepository, StorageError, UserRepository
from app.schemas.player_permission import GrantCreate, GrantRead
from app.services.rbac.audit import (
    ACTION_PERMISSION_GRANT,
    ACTION_PERMISSION_REVOKE,
    AuditEvent,
    AuditSink,
    NullAuditSink,
)
from app.services.rbac.exceptions import GrantValidationError
from app.services.rbac.permission_resolver import GrantSnapshot
from app.utils.time_utils import Datetime

PHONE_PATTERN = re.compile(r"^\+?\d{10,15}$")
INITIAL_GRANT_GENERATION = "0"


async def current_grant_cache_key(zo_user_id: str) -> str:
    generation = await cache.get(CacheKeys.player_grants_generation(zo_user_id))
    if not isinstance(generation, str):
        generation = INITIAL_GRANT_GENERATION
    return CacheKeys.player_grants(zo_user_id, generation)


async def invalidate_grant_cache(zo_user_id: str) -> None:
    """
    换代失效：先写入新代号，再删除旧代号下的快照。
    并发读取者若在换代前读到旧代号，其回写只会落在旧 key 上，不会再被读到。
    """
    previous_key = await current_grant_cache_key(zo_user_id)
    await cache.set(CacheKeys.player_grants_generation(zo_user_id), uuid4().hex, ttl=None)
    await cache.delete(previous_key)


def _require_text(field: str, value: str | None, max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise GrantValidationError(field, "must not be blank")
    if len(text) > max_length:
        raise GrantValidationError(field, f"must be at most {max_length} characters")
    return text


def _require_player_key(field: str, value: str | None, max_length: int) -> str:
    # 通配只属于角色配置，授权必须指向具体播放器
    text = _require_text(field, value, max_length)
    if text == ALL_PLAYERS:
        raise GrantValidationError(field, "must name a specific player, not a wildcard")
    return text


def _parse_level(value: str | AccessLevel) -> AccessLevel:
    try:
        return AccessLevel.parse(value)
    except ValueError:
        allowed = ", ".join(level.value for level in AccessLevel)
        raise GrantValidationError("access_level", f"must be one of: {allowed}") from None


def _normalize_expiry(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return Datetime.ensure_utc(value)


def _normalize_phone(value: str | None) -> str:
    phone = re.sub(r"[\s\-()]", "", value or "")
    if not PHONE_PATTERN.match(phone):
        raise GrantValidationError("phone_number", "must contain 10 to 15 digits")
    return phone


def to_snapshot(grant: PlayerPermission) -> GrantSnapshot:
    return GrantSnapshot(
        player_id=grant.player_id,
        player_name=grant.player_name,
        access_level=AccessLevel.parse(grant.access_level),
        granted_by=grant.granted_by,
        granted_at=grant.granted_at,
        expires_at=grant.expires_at,
        notes=grant.notes,
    )


def to_read(grant: PlayerPermission, now: datetime | None = None) -> GrantRead:
    read = GrantRead.model_validate(grant)
    read.is_active = grant.is_active_at(now or Datetime.now())
    return read


class GrantService:
    """播放器授权服务"""

    def __init__(self, db: AsyncSession, audit: AuditSink | None = None):
        self.db = db
        self.grant_repo = PlayerPermissionRepository(db)
        self.user_repo = UserRepository(db)
        self.audit = audit or NullAuditSink()

    # ===== 写操作 =====

    async def grant(
        self,
        *,
        user_id: UUID,
        player_id: str,
        player_name: str,
        access_level: str | AccessLevel,
        granted_by: str,
        expires_at: datetime | None = None,
        notes: str | None = None,
    ) -> GrantRead:
        """
        授权（upsert）
        同一 (user_id, player_id) 再次授权覆盖等级 / 过期时间 / 备注 / 授权人 / 授权时间。
        """
        values = self._validated_values(player_id, player_name, access_level, granted_by, expires_at, notes)
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise GrantValidationError("user_id", "user does not exist")
        return await self._apply_grant(user, values)

    async def grant_for_phone(
        self,
        *,
        phone_number: str,
        player_id: str,
        player_name: str,
        access_level: str | AccessLevel,
        granted_by: str,
        expires_at: datetime | None = None,
        notes: str | None = None,
    ) -> GrantRead:
        """按手机号授权；用户不存在时创建占位用户（与授权同一事务）"""
        phone = _normalize_phone(phone_number)
        values = self._validated_values(player_id, player_name, access_level, granted_by, expires_at, notes)
        try:
            user, created = await self.user_repo.get_or_create_by_phone(phone)
        except StorageError:
            await self.db.rollback()
            raise
        if created:
            logger.info("placeholder_user_created", extra={"phone_number": phone, "user_id": str(user.id)})
        return await self._apply_grant(user, values)

    async def create_grant(self, request: GrantCreate, granted_by: str) -> GrantRead:
        """管理端入口：user_id 优先，其次按手机号授权"""
        common = {
            "player_id": request.player_id,
            "player_name": request.player_name,
            "access_level": request.access_level,
            "granted_by": granted_by,
            "expires_at": request.expires_at,
            "notes": request.notes,
        }
        if request.user_id is not None:
            return await self.grant(user_id=request.user_id, **common)
        if request.phone_number:
            return await self.grant_for_phone(phone_number=request.phone_number, **common)
        raise GrantValidationError("user_id", "either user_id or phone_number is required")

    async def revoke(self, *, user_id: UUID, player_id: str, revoked_by: str) -> bool:
        """撤销授权，返回是否确有授权被删除；不存在不报错"""
        player_id = _require_text("player_id", player_id, 128)
        actor = _require_text("revoked_by", revoked_by, 128)
        details = {"user_id": str(user_id)}

        try:
            user = await self.user_repo.get_by_id(user_id)
            deleted = await self.grant_repo.delete_for_user_and_player(user_id, player_id)
            await self._commit("user_player_permissions.revoke")
        except StorageError:
            await self.db.rollback()
            await self._emit(actor, ACTION_PERMISSION_REVOKE, player_id, "failure", details)
            raise

        if user is not None:
            await self._invalidate(user.zo_user_id)
        logger.info(
            "grant_revoked",
            extra={"user_id": str(user_id), "player_id": player_id, "deleted": deleted, "actor": actor},
        )
        await self._emit(actor, ACTION_PERMISSION_REVOKE, player_id, "success", {**details, "deleted": deleted})
        return deleted

    # ===== 查询 =====

    async def list_grants_for_user(self, user_id: UUID, include_expired: bool = False) -> list[GrantRead]:
        return await self.list_grants(user_id=user_id, include_expired=include_expired)

    async def list_grants_for_player(self, player_id: str, include_expired: bool = False) -> list[GrantRead]:
        return await self.list_grants(player_id=player_id, include_expired=include_expired)

    async def list_grants(
        self,
        *,
        user_id: UUID | None = None,
        player_id: str | None = None,
        include_expired: bool = False,
    ) -> list[GrantRead]:
        now = Datetime.now()
        grants = await self.grant_repo.list_grants(
            user_id=user_id,
            player_id=player_id,
            include_expired=include_expired,
            now=now,
        )
        return [to_read(grant, now) for grant in grants]

    async def active_grants_for_identity(self, zo_user_id: str) -> list[GrantSnapshot]:
        """
        鉴权热路径：外部身份当前生效的授权
        缓存命中时仍按当前时间复核 expires_at；缓存异常时直接查库。
        代号必须在查库之前读取：查库期间发生的失效会换代，本次回写只会落在旧 key 上。
        存储中无法解析的授权行按 StorageError 上抛，不做静默跳过。
        """
        now = Datetime.now()
        cache_key = await current_grant_cache_key(zo_user_id)
        cached = await cache.get(cache_key)
        if isinstance(cached, list):
            return [grant for grant in cached if grant.is_active_at(now)]

        rows = await self.grant_repo.list_active_for_zo_user(zo_user_id, now=now)
        snapshots: list[GrantSnapshot] = []
        for row in rows:
            try:
                snapshots.append(to_snapshot(row))
            except ValueError as exc:
                logger.error(
                    "grant_decode_failed",
                    extra={"grant_id": str(row.id), "access_level": row.access_level},
                )
                raise StorageError("user_player_permissions.decode", exc) from exc
        await cache.set(cache_key, snapshots, ttl=cache.jitter_ttl(settings.GRANT_CACHE_TTL))
        return snapshots

    # ===== 内部 =====

    @staticmethod
    def _validated_values(
        player_id: str,
        player_name: str,
        access_level: str | AccessLevel,
        granted_by: str,
        expires_at: datetime | None,
        notes: str | None,
    ) -> dict:
        return {
            "player_id": _require_player_key("player_id", player_id, 128),
            "player_name": _require_player_key("player_name", player_name, 255),
            "access_level": _parse_level(access_level).value,
            "granted_by": _require_text("granted_by", granted_by, 128),
            "expires_at": _normalize_expiry(expires_at),
            "notes": (notes or "").strip() or None,
        }

    async def _apply_grant(self, user: SignageUser, values: dict) -> GrantRead:
        row = {
            **values,
            "user_id": user.id,
            "phone_number": user.phone_number,
            "granted_at": Datetime.now(),
        }
        details = {
            "user_id": str(user.id),
            "player_name": values["player_name"],
            "access_level": values["access_level"],
            "expires_at": values["expires_at"].isoformat() if values["expires_at"] else None,
        }
        try:
            grant = await self.grant_repo.upsert(row)
            await self._commit("user_player_permissions.grant")
        except StorageError:
            await self.db.rollback()
            await self._emit(values["granted_by"], ACTION_PERMISSION_GRANT, values["player_id"], "failure", details)
            raise

        await self._invalidate(user.zo_user_id)
        logger.info(
            "grant_upserted",
            extra={
                "user_id": str(user.id),
                "player_id": grant.player_id,
                "access_level": grant.access_level,
                "granted_by": grant.granted_by,
            },
        )
        await self._emit(values["granted_by"], ACTION_PERMISSION_GRANT, grant.player_id, "success", details)
        return to_read(grant)

    async def _commit(self, operation: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(operation, exc) from exc

    async def _invalidate(self, zo_user_id: str) -> None:
        await invalidate_grant_cache(zo_user_id)

    async def _emit(self, actor: str, action: str, player_id: str, outcome: str, details: dict) -> None:
        await self.audit.record(
            AuditEvent(
                actor=actor,
                action=action,
                resource_type="player",
                resource_id=player_id,
                outcome=outcome,
                details=details,
            )
        )
