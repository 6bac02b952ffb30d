"""
信令服务器（PiSignage）客户端

显式构造并通过依赖注入提供，未配置 SIGNAGE_API_URL 时立即失败，
不存在隐式的全局单例。
"""
from __future__ import annotations

from typing import Any

import httpx

from app.core.config import settings
from app.core.logging import logger
from app.schemas.player import PlayerRead

PLAYBACK_ACTIONS = ("pause", "forward", "backward")


class SignageClientError(Exception):
    """信令服务器不可用或返回异常"""

    def __init__(self, message: str, status_code: int = 502):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class SignageClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url:
            raise SignageClientError("Signage server is not configured", status_code=503)
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> SignageClient:
        return cls(
            base_url=settings.SIGNAGE_API_URL or "",
            token=settings.SIGNAGE_API_TOKEN,
            timeout=settings.SIGNAGE_TIMEOUT_SECONDS,
        )

    def _client(self) -> httpx.AsyncClient:
        headers = {"x-access-token": self.token} if self.token else {}
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("signage_request_failed", extra={"method": method, "path": path, "error": str(exc)})
            raise SignageClientError("Signage server is unreachable") from exc

    @staticmethod
    def _json(response: httpx.Response, path: str) -> dict[str, Any]:
        if response.status_code >= 400:
            logger.error(
                "signage_bad_status",
                extra={"path": path, "status_code": response.status_code},
            )
            raise SignageClientError(f"Signage server returned {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise SignageClientError("Signage server returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise SignageClientError("Signage server returned an unexpected payload")
        return payload

    async def list_players(self) -> list[PlayerRead]:
        path = "/players"
        payload = self._json(await self._request("GET", path, params={"per_page": 100}), path)
        objects = (payload.get("data") or {}).get("objects") or []
        return [PlayerRead.from_signage(item) for item in objects if isinstance(item, dict)]

    async def get_player(self, player_id: str) -> PlayerRead | None:
        path = f"/players/{player_id}"
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        data = self._json(response, path).get("data")
        if not isinstance(data, dict) or not data:
            return None
        return PlayerRead.from_signage(data)

    async def control_playback(self, player_id: str, action: str) -> dict[str, Any]:
        if action not in PLAYBACK_ACTIONS:
            raise ValueError(f"unsupported playback action: {action}")
        path = f"/playlistmedia/{player_id}/{action}"
        payload = self._json(await self._request("POST", path, json={}), path)
        return {"message": payload.get("stat_message"), "data": payload.get("data")}
