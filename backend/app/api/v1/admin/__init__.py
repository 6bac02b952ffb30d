"""
Admin API 路由包
"""
from app.api.v1.admin.permissions_route import router as permissions_router

__all__ = [
    "permissions_router",
]
