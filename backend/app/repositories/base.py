from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from app.core.logging import logger
from app.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class StorageError(Exception):
    """存储层异常（数据库不可用、约束冲突等），上抛到 HTTP 边界统一按 500 拒绝"""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Storage operation failed: {operation}")


class BaseRepository(Generic[ModelType]):
    """通用异步 Repository 基类

    仓库以 `Repo(session)` 的形式初始化，子类通过 `model` 属性声明模型。
    所有 SQL 执行经 `_execute` 包装，SQLAlchemyError 统一转换为 StorageError。
    """

    model: type[ModelType]  # 子类应覆盖

    def __init__(
        self,
        session: AsyncSession,
        model: type[ModelType] | None = None,
    ):
        self.session = session
        self.model = model or getattr(self, "model", None)
        if self.model is None:
            raise ValueError("model must be provided for BaseRepository")

    @property
    def dialect_name(self) -> str:
        bind = self.session.get_bind()
        return bind.dialect.name if bind is not None else "postgresql"

    async def _execute(self, stmt: Executable, operation: str) -> Result:
        try:
            return await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error(
                "storage_operation_failed",
                extra={"operation": operation, "error": str(exc)},
            )
            raise StorageError(operation, exc) from exc

    async def _flush(self, operation: str) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "storage_operation_failed",
                extra={"operation": operation, "error": str(exc)},
            )
            raise StorageError(operation, exc) from exc

    async def get(self, id: UUID) -> ModelType | None:
        result = await self._execute(
            select(self.model).where(self.model.id == id),
            f"{self.model.__tablename__}.get",
        )
        return result.scalars().first()

    async def add(self, obj_in: dict[str, Any]) -> ModelType:
        """新增一行并 flush（事务由调用方提交）"""
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self._flush(f"{self.model.__tablename__}.add")
        return db_obj
