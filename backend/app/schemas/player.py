from typing import Any, Literal

from pydantic import Field

from app.schemas.base import BaseSchema


class PlayerRead(BaseSchema):
    id: str
    name: str
    status: Literal["online", "offline"] = "offline"
    location: str | None = None
    current_playlist: str | None = None
    last_reported: str | None = None

    @classmethod
    def from_signage(cls, item: dict[str, Any]) -> "PlayerRead":
        """PiSignage 播放器对象 -> PlayerRead（_id/isConnected 等字段转换）"""
        return cls(
            id=str(item.get("_id") or item.get("id") or ""),
            name=str(item.get("name") or ""),
            status="online" if item.get("isConnected") else "offline",
            location=item.get("location") or None,
            current_playlist=item.get("currentPlaylist") or None,
            last_reported=item.get("lastReported") or None,
        )


class PlayerListResponse(BaseSchema):
    items: list[PlayerRead]
    total: int


class PlayerControlRequest(BaseSchema):
    action: Literal["pause", "forward", "backward"]


class PlayerControlResponse(BaseSchema):
    player_id: str
    action: str
    message: str | None = None
    data: Any = Field(default=None)
