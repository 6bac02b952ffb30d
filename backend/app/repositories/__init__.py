from .audit_repository import AuditRepository
from .base import BaseRepository, StorageError
from .player_permission_repository import PlayerPermissionRepository
from .user_repository import UserRepository

__all__ = [
    "AuditRepository",
    "BaseRepository",
    "PlayerPermissionRepository",
    "StorageError",
    "UserRepository",
]
