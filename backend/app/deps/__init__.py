from .auth import (
    get_audit_sink,
    get_current_identity,
    get_grant_service,
    get_permission_resolver,
    get_registry,
    require_permission,
)
from .signage import SignageClientDep, get_signage_client

__all__ = [
    "get_audit_sink",
    "get_current_identity",
    "get_grant_service",
    "get_permission_resolver",
    "get_registry",
    "get_signage_client",
    "require_permission",
    "SignageClientDep",
]
