"""
用户服务模块
"""
from app.services.users.user_sync_service import UserSyncService

__all__ = [
    "UserSyncService",
]
