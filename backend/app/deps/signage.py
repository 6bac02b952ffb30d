from __future__ import annotations

from fastapi import Depends

from app.services.signage import SignageClient


def get_signage_client() -> SignageClient:
    """FastAPI 依赖，按当前配置构造信令服务器客户端；未配置时抛 SignageClientError。"""
    return SignageClient.from_settings()


SignageClientDep = Depends(get_signage_client)


__all__ = ["get_signage_client", "SignageClientDep"]
