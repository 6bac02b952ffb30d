"""
测试配置与 fixtures（API 层）

- 覆盖 get_db / get_audit_sink 依赖，使用每个测试独立的内存 SQLite
- 信令服务器用 httpx.MockTransport 模拟，记录收到的请求
- 会话令牌用 create_session_token 现场签发
"""
from collections.abc import Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.database import get_db
from app.deps.auth import get_audit_sink
from app.deps.signage import get_signage_client
from app.schemas.identity import ZoUser
from app.services.rbac import DatabaseAuditSink
from app.services.signage import SignageClient
from app.utils.security import create_session_token
from main import app

SIGNAGE_BASE_URL = "http://signage.test"

SIGNAGE_PLAYERS: list[dict[str, Any]] = [
    {"_id": "p-1", "name": "Multiverse TV", "isConnected": True, "currentPlaylist": "events"},
    {"_id": "p-2", "name": "Entrance Lobby", "isConnected": False},
    {"_id": "p-3", "name": "Kitchen Display", "isConnected": True},
    {"_id": "p-4", "name": "BLRxZo Entrance", "isConnected": True},
]


class FakeSignageServer:
    """最小化的 PiSignage 接口替身"""

    def __init__(self, players: list[dict[str, Any]]):
        self.players = {p["_id"]: p for p in players}
        self.requests: list[httpx.Request] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = [p for p in request.url.path.split("/") if p]

        if request.method == "GET" and parts == ["players"]:
            return httpx.Response(200, json={"data": {"objects": list(self.players.values())}})

        if request.method == "GET" and len(parts) == 2 and parts[0] == "players":
            player = self.players.get(parts[1])
            if player is None:
                return httpx.Response(404, json={"stat_message": "not found"})
            return httpx.Response(200, json={"data": player})

        if request.method == "POST" and len(parts) == 3 and parts[0] == "playlistmedia":
            return httpx.Response(
                200,
                json={"stat_message": f"{parts[2]} ok", "data": {"player": parts[1]}},
            )

        return httpx.Response(404, json={"stat_message": "unknown route"})

    @property
    def control_calls(self) -> list[str]:
        return [r.url.path for r in self.requests if r.method == "POST"]


@pytest.fixture
def signage_server() -> FakeSignageServer:
    return FakeSignageServer(SIGNAGE_PLAYERS)


@pytest_asyncio.fixture
async def client(session_factory, signage_server):
    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_audit_sink] = lambda: DatabaseAuditSink(session_factory)
    app.dependency_overrides[get_signage_client] = lambda: SignageClient(
        SIGNAGE_BASE_URL,
        token="test-signage-token",
        transport=httpx.MockTransport(signage_server.handle),
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(make_identity) -> Callable[..., dict[str, str]]:
    """auth_headers(roles=[...], ...) -> Authorization 头"""

    def _headers(identity: ZoUser | None = None, **kwargs: Any) -> dict[str, str]:
        identity = identity or make_identity(**kwargs)
        return {"Authorization": f"Bearer {create_session_token(identity)}"}

    return _headers


@pytest.fixture
def admin_identity(make_identity) -> ZoUser:
    return make_identity(zo_id="zo-admin", mobile_number="5559990000", roles=["cas-admin"])


@pytest.fixture
def admin_headers(auth_headers, admin_identity) -> dict[str, str]:
    return auth_headers(admin_identity)
