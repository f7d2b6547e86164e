# tests/conftest.py

import asyncio
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlalchemy import text
from sqlmodel import SQLModel

from tradeerp.main import app as main_app
from tradeerp.core import dependencies as deps
from tradeerp.core.config import settings
from tradeerp.core.database import SCHEMA, get_session
from tradeerp.domains.mst import models as mst_models

from tests.fakes import FakeUnitOfWork


# --- 테스트용 데이터베이스 설정 ---
# 실제 운영 DB와 분리된 테스트 전용 DB URL을 사용합니다.
test_engine = create_async_engine(
    settings.TEST_DATABASE_URL.get_secret_value(),
    echo=False,
    future=True,
    poolclass=NullPool,     # 각 연결이 독립적으로 사용되고 바로 닫히도록 함
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def _recreate_tables() -> None:
    async with test_engine.begin() as conn:
        for schema_name in SCHEMA:
            await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema_name}"))
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)


async def _drop_tables() -> None:
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)


# --- 데이터베이스 픽스처 ---
@pytest.fixture(scope="session")
def setup_database():
    """
    통합 테스트 세션 시작 시 모든 테이블을 삭제하고 재생성합니다.
    테스트 데이터베이스에 연결할 수 없으면 통합 테스트를 건너뜁니다.
    """
    try:
        asyncio.run(_recreate_tables())
    except Exception as e:
        pytest.skip(f"test database unavailable: {e}")

    yield  # 테스트 실행

    asyncio.run(_drop_tables())


@pytest_asyncio.fixture(scope="function")
async def db_session(setup_database) -> AsyncGenerator[AsyncSession, None]:
    """
    각 테스트 함수마다 트랜잭션을 시작하고, 테스트 완료 후 롤백하여
    테스트 간의 격리를 보장하는 비동기 데이터베이스 세션을 제공합니다.
    """
    connection = await test_engine.connect()
    transaction = await connection.begin()
    session = TestingSessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    try:
        yield session
    finally:
        await session.close()
        await transaction.rollback()
        await connection.close()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    테스트용 비동기 DB 세션을 주입한 AsyncClient 인스턴스를 생성합니다.
    """

    def override_get_session_and_dependency():
        yield db_session

    original_overrides = main_app.dependency_overrides.copy()
    try:
        main_app.dependency_overrides[get_session] = override_get_session_and_dependency
        main_app.dependency_overrides[deps.get_db_session] = override_get_session_and_dependency

        async with AsyncClient(transport=ASGITransport(app=main_app), base_url="http://test") as async_client:
            yield async_client
    finally:
        main_app.dependency_overrides.clear()
        main_app.dependency_overrides.update(original_overrides)


# --- 통합 테스트용 기준 정보 픽스처 ---
@pytest_asyncio.fixture(scope="function")
async def test_vendor(db_session: AsyncSession) -> mst_models.Vendor:
    vendor = mst_models.Vendor(code="V-001", name="테스트 매입처")
    db_session.add(vendor)
    await db_session.commit()
    await db_session.refresh(vendor)
    return vendor


@pytest_asyncio.fixture(scope="function")
async def test_customer(db_session: AsyncSession) -> mst_models.Vendor:
    customer = mst_models.Vendor(code="C-001", name="테스트 매출처")
    db_session.add(customer)
    await db_session.commit()
    await db_session.refresh(customer)
    return customer


@pytest_asyncio.fixture(scope="function")
async def test_salesperson(db_session: AsyncSession) -> mst_models.Salesperson:
    salesperson = mst_models.Salesperson(code="S-001", name="테스트 영업사원")
    db_session.add(salesperson)
    await db_session.commit()
    await db_session.refresh(salesperson)
    return salesperson


@pytest_asyncio.fixture(scope="function")
async def test_product(db_session: AsyncSession) -> mst_models.Product:
    """기본 매입처가 없는 상품 (입고 시 자동 매입이 생성되지 않음)."""
    product = mst_models.Product(code="P-001", name="테스트 상품", default_sales_price=Decimal("15"))
    db_session.add(product)
    await db_session.commit()
    await db_session.refresh(product)
    return product


@pytest_asyncio.fixture(scope="function")
async def test_linked_product(db_session: AsyncSession, test_vendor: mst_models.Vendor) -> mst_models.Product:
    """기본 매입처와 기본 매입가가 있는 상품."""
    product = mst_models.Product(
        code="P-002",
        name="매입처 연결 상품",
        default_purchase_price=Decimal("8"),
        default_sales_price=Decimal("12"),
        purchase_vendor_id=test_vendor.id,
    )
    db_session.add(product)
    await db_session.commit()
    await db_session.refresh(product)
    return product


# --- 메모리 내 작업 단위 픽스처 ---
@pytest.fixture
def uow() -> FakeUnitOfWork:
    return FakeUnitOfWork()


@pytest_asyncio.fixture
async def seeded_uow(uow: FakeUnitOfWork) -> FakeUnitOfWork:
    """
    상품 1(매입처 없음), 상품 2(기본 매입처 1, 매입가 8), 거래처 1, 2, 영업사원 1이 준비된 작업 단위.
    """
    await uow.seed(
        mst_models.Vendor(id=1, code="V-001", name="매입처"),
        mst_models.Vendor(id=2, code="C-001", name="매출처"),
        mst_models.Salesperson(id=1, code="S-001", name="영업사원"),
        mst_models.Product(id=1, code="P-001", name="상품 1", default_sales_price=Decimal("15")),
        mst_models.Product(
            id=2,
            code="P-002",
            name="상품 2",
            default_purchase_price=Decimal("8"),
            default_sales_price=Decimal("12"),
            purchase_vendor_id=1,
        ),
        mst_models.Item(id=1, code="I-001", name="구 품목"),
    )
    return uow
