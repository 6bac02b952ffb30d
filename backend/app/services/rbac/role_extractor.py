from app.schemas.identity import ZoUser
from app.services.rbac.role_registry import DEFAULT_ROLE, RoleRegistry


def extract_role(user: ZoUser, registry: RoleRegistry) -> str:
    """
    从外部身份对象推导单一主角色，优先级：
    1. roles 含超管角色
    2. roles 中第一个已登记角色；都未登记时取 roles[0]（后续解析回落到 default）
    3. roles 为空时按 group_priority 顺序匹配 access_groups
    4. membership 等级映射
    5. default
    """
    roles = [role for role in user.roles if role]
    if roles:
        if registry.super_admin_role in roles:
            return registry.super_admin_role
        for role in roles:
            if registry.is_valid_role(role):
                return role
        return roles[0]

    if user.access_groups:
        groups = set(user.access_groups)
        for group in registry.group_priority:
            if group in groups:
                return group

    membership_role = registry.membership_role(user.membership)
    if membership_role:
        return membership_role

    return DEFAULT_ROLE
