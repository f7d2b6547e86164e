# tradeerp/core/database.py

"""
애플리케이션의 데이터베이스 연결 및 세션 관리를 담당하는 모듈입니다.

- SQLModel의 비동기 엔진을 설정합니다.
- 비동기 세션 생성을 위한 유틸리티 함수를 제공합니다.
- 애플리케이션 시작 시 스키마와 테이블을 생성하는 함수를 포함합니다 (개발용).
"""

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker
from sqlalchemy import text

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from tradeerp.core.config import settings

# 모든 SQLModel 클래스가 SQLModel.metadata에 등록되도록 명시적으로 임포트합니다.
from tradeerp.domains.mst import models as mst_models      # noqa: F401
from tradeerp.domains.inv import models as inv_models      # noqa: F401
from tradeerp.domains.sales import models as sales_models  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# 도메인별 PostgreSQL 스키마 (생성 순서 유지)
SCHEMA = ["mst", "inv", "sales"]

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL.get_secret_value(),
    echo=settings.DEBUG_MODE,
    future=True,
    pool_recycle=3600,
    pool_size=10,
    max_overflow=20
)

AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

metadata = SQLModel.metadata


async def create_db_and_tables(bind: AsyncEngine = engine) -> None:
    """
    데이터베이스 스키마 및 테이블을 생성합니다.
    개발 환경에서만 사용하며, 기존 테이블을 삭제하지는 않습니다.
    """
    async with bind.begin() as conn:
        for schema_name in SCHEMA:
            await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema_name}"))
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database schemas %s and tables are ready.", SCHEMA)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입을 위한 비동기 데이터베이스 세션 제너레이터입니다.
    요청마다 새로운 세션을 생성하고, 요청 처리 후 세션을 자동으로 닫습니다.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def get_async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    ARQ Task, CLI 스크립트 등에서 사용할 독립적인 비동기 DB 세션을 제공합니다.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
