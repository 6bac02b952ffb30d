"""
播放器 API 路由 (/api/v1/players)

端点:
- GET /players - 当前用户可见的播放器列表 [权限: canViewPlayers]
- GET /players/{player_id} - 播放器详情 [权限: canViewPlayers + 播放器访问权]
- POST /players/{player_id}/control - 播放控制 [权限: canControlPlayback + 授权等级 >= manage]

路由只做入参校验与依赖注入，判定逻辑在 PlayerService / PermissionResolver。
"""
from fastapi import APIRouter, Depends, Request

from app.deps.auth import get_audit_sink, get_permission_resolver, require_permission
from app.deps.signage import get_signage_client
from app.schemas.identity import ZoUser
from app.schemas.player import (
    PlayerControlRequest,
    PlayerControlResponse,
    PlayerListResponse,
    PlayerRead,
)
from app.services.rbac import AuditSink, PermissionResolver
from app.services.signage import PlayerService, SignageClient

router = APIRouter(prefix="/players", tags=["Players"])


def _player_service(
    client: SignageClient = Depends(get_signage_client),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    audit: AuditSink = Depends(get_audit_sink),
) -> PlayerService:
    return PlayerService(client, resolver, audit=audit)


@router.get("", response_model=PlayerListResponse)
async def list_players(
    identity: ZoUser = Depends(require_permission("canViewPlayers")),
    service: PlayerService = Depends(_player_service),
) -> PlayerListResponse:
    """获取可见播放器列表（角色 + 授权过滤）"""
    return await service.list_visible(identity)


@router.get("/{player_id}", response_model=PlayerRead)
async def get_player(
    player_id: str,
    identity: ZoUser = Depends(require_permission("canViewPlayers")),
    service: PlayerService = Depends(_player_service),
) -> PlayerRead:
    return await service.get_visible(identity, player_id)


@router.post("/{player_id}/control", response_model=PlayerControlResponse)
async def control_player(
    player_id: str,
    payload: PlayerControlRequest,
    request: Request,
    identity: ZoUser = Depends(require_permission("canControlPlayback")),
    service: PlayerService = Depends(_player_service),
) -> PlayerControlResponse:
    """
    播放控制（pause / forward / backward）

    - 需要角色开启 canControlPlayback
    - 且对该播放器的授权等级覆盖 canControlPlayback（manage 及以上）
    - 成功后写审计
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    ip_address = forwarded_for.split(",")[0].strip() if forwarded_for else (
        request.client.host if request.client else None
    )
    return await service.control(
        identity,
        player_id,
        payload.action,
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
    )
