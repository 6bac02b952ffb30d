from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    基础 Schema
    配置:
    - from_attributes=True: 允许从 ORM 对象读取 (替代 V1 的 orm_mode)
    - populate_by_name=True: 同时接受字段名与别名（前端使用 camelCase）
    """
    model_config = ConfigDict(from_attributes=True, strict=False, populate_by_name=True, extra="ignore")


class MessageResponse(BaseSchema):
    message: str
