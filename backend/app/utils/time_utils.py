from datetime import UTC, datetime


class Datetime:
    """
    统一的时间处理工具类
    核心原则：
    1. 授权时间、过期判定、审计时间统一使用 UTC
    2. 所有参与比较的 datetime 必须带时区信息 (Timezone-aware)
    """

    @staticmethod
    def now() -> datetime:
        """
        获取当前 UTC 时间（带时区信息）
        替代 datetime.now() 或 datetime.utcnow()
        """
        return datetime.now(UTC)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """naive 视为 UTC，aware 换算到 UTC"""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """转换为 ISO 8601 格式字符串 (e.g., 2026-01-01T12:00:00+00:00)"""
        return Datetime.ensure_utc(dt).isoformat()
