"""缓存 Key 注册表实现。

禁止在业务代码中硬编码 Redis Key，统一从此处生成，便于失效管理。
"""

from __future__ import annotations


class CacheKeys:
    prefix = "sd"

    # ===== Player Grants =====
    @classmethod
    def player_grants(cls, zo_user_id: str, generation: str) -> str:
        """
        某外部身份当前生效的播放器授权列表缓存 key。
        缓存内容为授权快照，读取时仍需按 expires_at 复核。
        generation 取自 player_grants_generation，失效时换代。
        """
        return f"{cls.prefix}:grants:user:{zo_user_id}:g:{generation}"

    @classmethod
    def player_grants_generation(cls, zo_user_id: str) -> str:
        """授权快照的当前代号（不过期）"""
        return f"{cls.prefix}:grants:generation:{zo_user_id}"
