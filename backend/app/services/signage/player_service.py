"""
播放器服务：信令服务器数据 + 权限核心

- 列表按角色 + 授权过滤；授权存储故障时降级为仅角色过滤（只会更严格）
- 单播放器读取 / 控制必须经过授权感知的判定，存储故障直接上抛（失败关闭）
- 播放控制写审计
"""
from fastapi import HTTPException, status

from app.core.logging import logger
from app.repositories import StorageError
from app.schemas.identity import ZoUser
from app.schemas.player import PlayerControlResponse, PlayerListResponse, PlayerRead
from app.services.rbac.audit import ACTION_PLAYER_CONTROL, AuditEvent, AuditSink, NullAuditSink
from app.services.rbac.permission_resolver import PermissionResolver
from app.services.rbac.resource_filter import filter_allowed_players, filter_allowed_players_static
from app.services.signage.client import SignageClient


def _player_keys(player: PlayerRead) -> tuple[str | None, str | None]:
    return player.id, player.name


class PlayerService:
    def __init__(
        self,
        client: SignageClient,
        resolver: PermissionResolver,
        audit: AuditSink | None = None,
    ):
        self.client = client
        self.resolver = resolver
        self.audit = audit or NullAuditSink()

    def _with_location(self, player: PlayerRead) -> PlayerRead:
        if player.location:
            return player
        return player.model_copy(update={"location": self.resolver.registry.location_for_player(player.name)})

    async def list_visible(self, identity: ZoUser) -> PlayerListResponse:
        players = [self._with_location(p) for p in await self.client.list_players()]
        try:
            visible = await filter_allowed_players(self.resolver, identity, players, key=_player_keys)
        except StorageError as exc:
            logger.warning(
                "player_filter_degraded",
                extra={"zo_user_id": identity.id, "error": str(exc)},
            )
            visible = filter_allowed_players_static(self.resolver, identity, players, key=_player_keys)
        return PlayerListResponse(items=visible, total=len(visible))

    async def _load_player(self, player_id: str) -> PlayerRead:
        player = await self.client.get_player(player_id)
        if player is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Player not found")
        return self._with_location(player)

    async def get_visible(self, identity: ZoUser, player_id: str) -> PlayerRead:
        player = await self._load_player(player_id)
        access = await self.resolver.can_access_player(identity, player.id, player.name)
        if not access.allowed:
            logger.warning(
                "player_access_denied",
                extra={"zo_user_id": identity.id, "player_id": player.id},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have access to this player",
            )
        return player

    async def control(
        self,
        identity: ZoUser,
        player_id: str,
        action: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> PlayerControlResponse:
        player = await self._load_player(player_id)
        allowed = await self.resolver.can_perform_on_player(
            identity, "canControlPlayback", player.id, player.name
        )
        if not allowed:
            logger.warning(
                "player_control_denied",
                extra={"zo_user_id": identity.id, "player_id": player.id, "action": action},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have access to control this player",
            )

        result = await self.client.control_playback(player.id, action)
        await self.audit.record(
            AuditEvent(
                actor=identity.mobile_number,
                action=ACTION_PLAYER_CONTROL,
                resource_type="player",
                resource_id=player.id,
                details={"action": action, "player_name": player.name, "zo_user_id": identity.id},
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )
        logger.info(
            "player_control",
            extra={"zo_user_id": identity.id, "player_id": player.id, "action": action},
        )
        return PlayerControlResponse(
            player_id=player.id,
            action=action,
            message=result.get("message"),
            data=result.get("data"),
        )
