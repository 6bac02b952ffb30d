"""
鉴权端到端场景：GrantService（真实数据库）作为 PermissionResolver 的授权来源

- 静态列表为空的前台角色：授权前拒绝，授权后按 ID / 名称均可访问
- 已过期授权等同于不存在
- 撤销后回到仅角色的判定
- 重复授权只保留一行，等级以最后一次为准
"""
from datetime import timedelta

import pytest

from app.constants.permissions import AccessLevel
from app.models import SignageUser
from app.services.rbac import GrantService, PermissionResolver, RoleRegistry, filter_allowed_players
from app.utils.time_utils import Datetime

ADMIN_PHONE = "5559990000"
PLAYERS = [
    {"_id": "p1", "name": "Entrance Lobby"},
    {"_id": "p2", "name": "Rooftop"},
    {"_id": "p1", "name": "Entrance Lobby"},
]


def _front_desk_registry(registry: RoleRegistry) -> RoleRegistry:
    """前台角色：可上传内容，但没有任何静态播放器"""
    roles = {}
    for role_id in registry.role_ids:
        role = registry.get_role(role_id)
        definition = role.model_dump(exclude={"id"})
        if role_id == "front-desk-manager":
            definition["allowed_players"] = []
        roles[role_id] = definition
    return RoleRegistry.from_mapping({"roles": roles})


@pytest.fixture
def front_desk_registry(registry: RoleRegistry) -> RoleRegistry:
    return _front_desk_registry(registry)


async def _mirror(db_session, zo_id: str) -> SignageUser:
    user = SignageUser(zo_user_id=zo_id, phone_number="5551112222", roles=["front-desk-manager"], access_groups=[])
    db_session.add(user)
    await db_session.commit()
    return user


class TestFrontDeskScenario:
    @pytest.mark.asyncio
    async def test_grant_by_id_then_match_by_name(self, db_session, front_desk_registry, make_identity):
        mirror = await _mirror(db_session, "zo-frontdesk")
        service = GrantService(db_session)
        resolver = PermissionResolver(front_desk_registry, grants=service)
        identity = make_identity(zo_id="zo-frontdesk", roles=["front-desk-manager"])

        assert resolver.has_permission(identity, "canUploadContent")
        assert not (await resolver.can_access_player(identity, "Entrance Lobby")).allowed

        await service.grant(
            user_id=mirror.id,
            player_id="p1",
            player_name="Entrance Lobby",
            access_level="manage",
            granted_by="admin@x",
        )

        by_id = await resolver.can_access_player(identity, "p1")
        by_name = await resolver.can_access_player(identity, "Entrance Lobby")
        assert by_id.allowed and by_id.access_level == AccessLevel.MANAGE
        assert by_name.allowed and by_name.access_level == AccessLevel.MANAGE
        # 同步接口只看角色
        assert not resolver.can_access_player_static(identity, "p1", "Entrance Lobby")

    @pytest.mark.asyncio
    async def test_revoke_restores_role_only_result(self, db_session, front_desk_registry, make_identity):
        mirror = await _mirror(db_session, "zo-frontdesk")
        service = GrantService(db_session)
        resolver = PermissionResolver(front_desk_registry, grants=service)
        identity = make_identity(zo_id="zo-frontdesk", roles=["front-desk-manager"])

        await service.grant(
            user_id=mirror.id, player_id="p1", player_name="Entrance Lobby",
            access_level="view", granted_by=ADMIN_PHONE,
        )
        assert (await resolver.can_access_player(identity, "p1")).access_level == AccessLevel.VIEW

        await service.revoke(user_id=mirror.id, player_id="p1", revoked_by=ADMIN_PHONE)
        assert not (await resolver.can_access_player(identity, "p1", "Entrance Lobby")).allowed
        assert await filter_allowed_players(resolver, identity, PLAYERS) == []

    @pytest.mark.asyncio
    async def test_regrant_keeps_single_row_with_latest_level(self, db_session, front_desk_registry, make_identity):
        mirror = await _mirror(db_session, "zo-frontdesk")
        service = GrantService(db_session)
        resolver = PermissionResolver(front_desk_registry, grants=service)
        identity = make_identity(zo_id="zo-frontdesk", roles=["front-desk-manager"])

        for level in ("view", "admin"):
            await service.grant(
                user_id=mirror.id, player_id="p1", player_name="Entrance Lobby",
                access_level=level, granted_by=ADMIN_PHONE,
            )

        rows = await service.list_grants_for_user(mirror.id, include_expired=True)
        assert [(g.player_id, g.access_level) for g in rows] == [("p1", "admin")]
        assert (await resolver.can_access_player(identity, "p1")).access_level == AccessLevel.ADMIN
        assert await filter_allowed_players(resolver, identity, PLAYERS) == [PLAYERS[0], PLAYERS[2]]


class TestExpiredGrantScenario:
    @pytest.mark.asyncio
    async def test_expired_grant_is_invisible_to_authorization(self, db_session, front_desk_registry, make_identity):
        mirror = await _mirror(db_session, "zo-frontdesk")
        service = GrantService(db_session)
        resolver = PermissionResolver(front_desk_registry, grants=service)
        identity = make_identity(zo_id="zo-frontdesk", roles=["front-desk-manager"])

        await service.grant(
            user_id=mirror.id, player_id="p2", player_name="Rooftop",
            access_level="admin", granted_by=ADMIN_PHONE,
            expires_at=Datetime.now() - timedelta(hours=1),
        )

        permission_set = await resolver.resolve(identity)
        assert "p2" not in permission_set.allowed_players
        assert "Rooftop" not in permission_set.allowed_players
        assert not (await resolver.can_access_player(identity, "p2", "Rooftop")).allowed
        assert await filter_allowed_players(resolver, identity, PLAYERS) == []

        history = await service.list_grants_for_user(mirror.id, include_expired=True)
        assert [(g.player_id, g.is_active) for g in history] == [("p2", False)]
