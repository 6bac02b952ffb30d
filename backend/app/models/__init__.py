from .audit_log import AuditLog
from .base import Base
from .player_permission import PlayerPermission
from .user import PENDING_ZO_USER_PREFIX, SignageUser

__all__ = [
    "AuditLog",
    "Base",
    "PENDING_ZO_USER_PREFIX",
    "PlayerPermission",
    "SignageUser",
]
