"""
权限核心异常

- StorageError: 存储不可用（定义于 repositories.base），一律上抛，边界按失败关闭处理
- GrantValidationError: 授权参数校验失败，发生在任何写入之前
- RoleConfigError: 角色配置非法，启动时抛出并拒绝启动
"""
from app.repositories.base import StorageError


class GrantValidationError(Exception):
    """授权参数校验失败"""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class RoleConfigError(Exception):
    """角色配置文件缺失、格式错误或违反约束"""


__all__ = ["GrantValidationError", "RoleConfigError", "StorageError"]
