"""
信令服务器集成
"""
from app.services.signage.client import PLAYBACK_ACTIONS, SignageClient, SignageClientError
from app.services.signage.player_service import PlayerService

__all__ = [
    "PLAYBACK_ACTIONS",
    "PlayerService",
    "SignageClient",
    "SignageClientError",
]
