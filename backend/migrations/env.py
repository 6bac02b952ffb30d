from __future__ import annotations

import asyncio
import pathlib
import sys
from logging.config import fileConfig

import sqlalchemy as sa
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

BASE_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from app.core.config import settings  # noqa: E402
from app.models import Base  # noqa: E402

target_metadata = Base.metadata


def _configure_alembic():
    """
    确保 Alembic Config 始终使用 settings.DATABASE_URL。
    仅在通过 Alembic CLI 执行时读取 alembic.ini 中的 logging 配置，
    避免覆盖应用进程内的 Loguru 初始化。
    """
    cfg = context.config
    if cfg.config_file_name is not None and pathlib.Path(sys.argv[0]).name.lower().endswith("alembic"):
        fileConfig(cfg.config_file_name, disable_existing_loggers=False)
    cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    return cfg


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""

    cfg = _configure_alembic()
    context.configure(
        url=cfg.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        version_table="alembic_version",
        version_column="version_num",
        version_column_type=sa.String(length=128),
    )

    with context.begin_transaction():
        context.run_migrations()


def _do_run_migrations(connection: sa.Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        version_table="alembic_version",
        version_column="version_num",
        version_column_type=sa.String(length=128),
    )

    with context.begin_transaction():
        context.run_migrations()


async def _run_async_migrations() -> None:
    cfg = _configure_alembic()
    connectable = async_engine_from_config(
        cfg.get_section(cfg.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(_do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode (asyncpg / aiosqlite)."""
    asyncio.run(_run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
