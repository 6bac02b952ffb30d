"""
播放器 API 测试

测试场景:
- 401: 无会话 / 会话无效
- 403: 角色缺少权限开关 / 无播放器访问权 / 授权等级不足
- 列表按角色 + 授权过滤，授权存储故障时降级为仅角色过滤
- 播放控制转发到信令服务器并写审计
"""
import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.deps.auth import get_permission_resolver
from app.deps.signage import get_signage_client
from app.repositories import AuditRepository, StorageError
from app.services.rbac import GrantService, PermissionResolver, get_role_registry
from app.utils.security import create_session_token
from main import app


class FailingGrants:
    async def active_grants_for_identity(self, zo_user_id: str):
        raise StorageError("user_player_permissions.list_active_for_zo_user")


async def _grant_by_phone(session_factory, phone: str, player_id: str, player_name: str, level: str):
    async with session_factory() as session:
        await GrantService(session).grant_for_phone(
            phone_number=phone,
            player_id=player_id,
            player_name=player_name,
            access_level=level,
            granted_by="5559990000",
        )


async def _sync(client: AsyncClient, headers: dict) -> None:
    response = await client.post("/api/v1/users/me/sync", headers=headers)
    assert response.status_code == 200


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_session_is_401(self, client: AsyncClient):
        response = await client.get("/api/v1/players")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_session_is_401(self, client: AsyncClient):
        response = await client.get("/api/v1/players", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_session_cookie_is_accepted(self, client: AsyncClient, admin_identity):
        cookie = f"{settings.SESSION_COOKIE_NAME}={create_session_token(admin_identity)}"
        response = await client.get("/api/v1/players", headers={"Cookie": cookie})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_guest_is_403(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/players", headers=auth_headers())
        assert response.status_code == 403
        assert "canViewPlayers" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_trace_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/api/v1/health", headers={settings.TRACE_ID_HEADER: "trace-123"})
        assert response.status_code == 200
        assert response.headers[settings.TRACE_ID_HEADER] == "trace-123"


class TestListPlayers:
    @pytest.mark.asyncio
    async def test_admin_sees_all_with_locations(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/v1/players", headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 4
        by_id = {p["id"]: p for p in body["items"]}
        assert by_id["p-1"]["status"] == "online"
        assert by_id["p-1"]["location"] == "SFO"
        assert by_id["p-4"]["location"] == "BLR"
        assert by_id["p-3"]["location"] == "UNKNOWN"

    @pytest.mark.asyncio
    async def test_role_list_filters_players(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/players", headers=auth_headers(roles=["activity-manager"]))
        assert response.status_code == 200
        assert [p["id"] for p in response.json()["items"]] == ["p-1"]

    @pytest.mark.asyncio
    async def test_grants_extend_the_list(self, client: AsyncClient, auth_headers, make_identity, session_factory):
        identity = make_identity(zo_id="zo-fay", mobile_number="5553334444", roles=["activity-manager"])
        headers = auth_headers(identity)
        await _sync(client, headers)
        await _grant_by_phone(session_factory, "5553334444", "p-3", "Kitchen Display", "view")

        response = await client.get("/api/v1/players", headers=headers)
        assert [p["id"] for p in response.json()["items"]] == ["p-1", "p-3"]

    @pytest.mark.asyncio
    async def test_storage_failure_degrades_to_role_filter(self, client: AsyncClient, auth_headers):
        app.dependency_overrides[get_permission_resolver] = lambda: PermissionResolver(
            get_role_registry(), grants=FailingGrants()
        )
        response = await client.get("/api/v1/players", headers=auth_headers(roles=["activity-manager"]))
        assert response.status_code == 200
        assert [p["id"] for p in response.json()["items"]] == ["p-1"]

    @pytest.mark.asyncio
    async def test_signage_not_configured_is_503(self, client: AsyncClient, admin_headers, monkeypatch):
        monkeypatch.setattr(settings, "SIGNAGE_API_URL", None)
        app.dependency_overrides.pop(get_signage_client)
        response = await client.get("/api/v1/players", headers=admin_headers)
        assert response.status_code == 503


class TestGetPlayer:
    @pytest.mark.asyncio
    async def test_visible_player(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/players/p-1", headers=auth_headers(roles=["activity-manager"]))
        assert response.status_code == 200
        assert response.json()["name"] == "Multiverse TV"

    @pytest.mark.asyncio
    async def test_invisible_player_is_403(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/players/p-2", headers=auth_headers(roles=["activity-manager"]))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_player_is_404(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/v1/players/p-404", headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_storage_failure_fails_closed(self, client: AsyncClient, auth_headers):
        app.dependency_overrides[get_permission_resolver] = lambda: PermissionResolver(
            get_role_registry(), grants=FailingGrants()
        )
        response = await client.get("/api/v1/players/p-1", headers=auth_headers(roles=["activity-manager"]))
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}


class TestControlPlayer:
    @pytest.mark.asyncio
    async def test_control_static_player(self, client: AsyncClient, auth_headers, signage_server, session_factory):
        response = await client.post(
            "/api/v1/players/p-1/control",
            json={"action": "pause"},
            headers={**auth_headers(roles=["activity-manager"]), "User-Agent": "pytest-agent"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["player_id"] == "p-1"
        assert body["message"] == "pause ok"
        assert signage_server.control_calls == ["/playlistmedia/p-1/pause"]
        assert signage_server.requests[-1].headers["x-access-token"] == "test-signage-token"

        async with session_factory() as session:
            rows = await AuditRepository(session).list_recent(action="player.control")
        assert len(rows) == 1
        assert rows[0].resource_id == "p-1"
        assert rows[0].details["action"] == "pause"
        assert rows[0].user_agent == "pytest-agent"

    @pytest.mark.asyncio
    async def test_view_grant_cannot_control(self, client: AsyncClient, auth_headers, make_identity, session_factory, signage_server):
        identity = make_identity(zo_id="zo-gus", mobile_number="5556667777", roles=["activity-manager"])
        headers = auth_headers(identity)
        await _sync(client, headers)
        await _grant_by_phone(session_factory, "5556667777", "p-3", "Kitchen Display", "view")

        response = await client.post("/api/v1/players/p-3/control", json={"action": "forward"}, headers=headers)
        assert response.status_code == 403
        assert signage_server.control_calls == []

    @pytest.mark.asyncio
    async def test_manage_grant_can_control(self, client: AsyncClient, auth_headers, make_identity, session_factory):
        identity = make_identity(zo_id="zo-hal", mobile_number="5558889999", roles=["activity-manager"])
        headers = auth_headers(identity)
        await _sync(client, headers)
        await _grant_by_phone(session_factory, "5558889999", "p-3", "Kitchen Display", "manage")

        response = await client.post("/api/v1/players/p-3/control", json={"action": "backward"}, headers=headers)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_role_without_flag_is_403(self, client: AsyncClient, auth_headers, signage_server):
        response = await client.post(
            "/api/v1/players/p-2/control",
            json={"action": "pause"},
            headers=auth_headers(roles=["front-desk-manager"]),
        )
        assert response.status_code == 403
        assert "canControlPlayback" in response.json()["detail"]
        assert signage_server.requests == []

    @pytest.mark.asyncio
    async def test_unknown_action_is_422(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/players/p-1/control", json={"action": "rewind"}, headers=admin_headers)
        assert response.status_code == 422
