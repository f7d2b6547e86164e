# tradeerp/core/dependencies.py

"""
FastAPI 애플리케이션의 의존성 주입(Dependency Injection)을 정의하는 모듈입니다.

- 데이터베이스 세션 (get_db_session).
- 요청 단위 작업 단위(Unit of Work) (get_uow).
"""

from typing import AsyncGenerator

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from tradeerp.core.database import get_session as get_main_app_session
from tradeerp.core.unit_of_work import SqlModelUnitOfWork


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입을 위한 비동기 데이터베이스 세션 제너레이터입니다.
    tradeerp.core.database.get_session을 래핑하여 사용합니다.
    """
    async for session in get_main_app_session():
        yield session


def get_uow(db: AsyncSession = Depends(get_db_session)) -> SqlModelUnitOfWork:
    """요청 세션에 바인딩된 작업 단위를 제공합니다."""
    return SqlModelUnitOfWork(db)
