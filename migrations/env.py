# migrations/env.py

import os
import sys
import asyncio
from logging.config import fileConfig

from alembic import context

from sqlalchemy import pool, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel

# --- 1. 프로젝트 루트 경로 설정 ---
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# --- 2. 애플리케이션 설정 및 모든 모델 임포트 ---
# 모든 SQLModel 클래스가 metadata에 등록되어야 autogenerate가 동작합니다.
from tradeerp.core.config import settings        # noqa: E402
from tradeerp.core.database import SCHEMA        # noqa: E402
import tradeerp.domains.mst.models               # noqa: F401, E402
import tradeerp.domains.inv.models               # noqa: F401, E402
import tradeerp.domains.sales.models             # noqa: F401, E402

# --- 3. Alembic 기본 설정 ---
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def include_object(object, name, type_, reflected, compare_to):
    if type_ == "table" and name == "alembic_version":
        return False
    return True


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_schemas=True,  # 여러 스키마를 사용하는 프로젝트에서는 필수
        version_table_schema='public',
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """'온라인' 모드에서 마이그레이션을 실행합니다."""
    engine: AsyncEngine = create_async_engine(
        settings.DATABASE_URL.get_secret_value(),
        echo=settings.DEBUG_MODE,
        future=True,
        poolclass=pool.NullPool,
    )

    # --- 1단계: 스키마 생성 ---
    async with engine.connect() as connection:
        async with connection.begin():
            for schema_name in SCHEMA:
                await connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema_name}"))

    # --- 2단계: Alembic 마이그레이션 ---
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await engine.dispose()


if context.is_offline_mode():
    print("Offline mode is not supported.")
else:
    asyncio.run(run_migrations_online())
