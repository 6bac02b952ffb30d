"""
安全工具模块：会话令牌编解码

会话令牌由登录服务（OTP 流程）签发，payload 携带外部身份对象：
    {"sub": <zo_user_id>, "type": "session", "user": {...}, "exp": ..., "iat": ...}
"""
import secrets
from datetime import timedelta
from typing import Any

from jose import JWTError, jwt

from app.core.config import settings
from app.schemas.identity import ZoUser
from app.utils.time_utils import Datetime

SESSION_TOKEN_TYPE = "session"


def _secret() -> str:
    if not settings.JWT_SECRET_KEY:
        raise ValueError("JWT_SECRET_KEY is not configured")
    return settings.JWT_SECRET_KEY


def create_session_token(user: ZoUser, expires_minutes: int = 60 * 24 * 7) -> str:
    """签发会话令牌（供登录服务与测试使用）"""
    now = Datetime.now()
    payload = {
        "sub": user.id,
        "jti": secrets.token_urlsafe(16),
        "type": SESSION_TOKEN_TYPE,
        "user": user.model_dump(mode="json"),
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }
    return jwt.encode(payload, _secret(), algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """解码并验证 JWT token，返回 payload"""
    try:
        payload = jwt.decode(token, _secret(), algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}") from e


def decode_session_token(token: str) -> ZoUser:
    """解码会话令牌并还原外部身份对象，任何不一致都抛 ValueError"""
    payload = decode_token(token)
    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise ValueError("Invalid token type")
    user_data = payload.get("user")
    if not isinstance(user_data, dict):
        raise ValueError("Invalid token payload")
    user = ZoUser.model_validate(user_data)
    if payload.get("sub") != user.id:
        raise ValueError("Token subject mismatch")
    return user
