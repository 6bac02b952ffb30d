"""
v1 路由聚合
"""

from app.api.v1.admin import permissions_router as admin_permissions_router
from app.api.v1.health_route import router as health_router
from app.api.v1.players_route import router as players_router
from app.api.v1.users_route import router as users_router

__all__ = [
    "admin_permissions_router",
    "health_router",
    "players_router",
    "users_router",
]
