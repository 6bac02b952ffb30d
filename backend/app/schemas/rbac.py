from datetime import datetime
from typing import Literal

from app.schemas.base import BaseSchema
from app.services.rbac.permission_resolver import EffectivePermissionSet


class CustomGrantRead(BaseSchema):
    player_id: str
    player_name: str
    access_level: str
    granted_by: str
    granted_at: datetime
    expires_at: datetime | None = None
    notes: str | None = None


class EffectivePermissionsRead(BaseSchema):
    role: str
    display_name: str
    permissions: dict[str, bool]
    allowed_players: Literal["*"] | list[str]
    allowed_locations: list[str]
    player_access_levels: dict[str, str]
    custom_grants: list[CustomGrantRead]

    @classmethod
    def from_set(cls, permission_set: EffectivePermissionSet) -> "EffectivePermissionsRead":
        return cls(
            role=permission_set.role,
            display_name=permission_set.display_name,
            permissions=dict(permission_set.permissions),
            allowed_players=(
                "*" if permission_set.allows_all_players else list(permission_set.allowed_players)
            ),
            allowed_locations=list(permission_set.allowed_locations),
            player_access_levels={
                key: level.value for key, level in permission_set.player_access_levels.items()
            },
            custom_grants=[
                CustomGrantRead(
                    player_id=grant.player_id,
                    player_name=grant.player_name,
                    access_level=grant.access_level.value,
                    granted_by=grant.granted_by,
                    granted_at=grant.granted_at,
                    expires_at=grant.expires_at,
                    notes=grant.notes,
                )
                for grant in permission_set.custom_grants
            ],
        )
