# tradeerp/domains/mst/models.py

"""
'mst' 도메인 (PostgreSQL 'mst' 스키마)의 기준정보 ORM 모델을 정의하는 모듈입니다.

기준정보의 등록/수정 화면은 이 애플리케이션의 범위가 아니며,
재고 원가 엔진이 읽는 항목(카테고리, 기본 단가, 매입처, 현재 원가)만 정의합니다.
"""

from typing import Optional
from datetime import datetime, date, UTC
from decimal import Decimal
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Numeric, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP, DATE


def _utcnow() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# 1. mst.categories 테이블 모델
# =============================================================================
class Category(SQLModel, table=True):
    __tablename__ = "categories"
    __table_args__ = {'schema': 'mst'}

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(max_length=50, unique=True, index=True)
    name: str = Field(max_length=100)
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )


# =============================================================================
# 2. mst.vendors 테이블 모델
# =============================================================================
class Vendor(SQLModel, table=True):
    __tablename__ = "vendors"
    __table_args__ = {'schema': 'mst'}

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(max_length=50, unique=True, index=True)
    name: str = Field(max_length=100)
    vendor_type: str = Field(default="DOMESTIC", max_length=20, description="DOMESTIC / OVERSEAS")
    is_active: bool = Field(default=True)
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )


# =============================================================================
# 3. mst.salespersons 테이블 모델
# =============================================================================
class Salesperson(SQLModel, table=True):
    __tablename__ = "salespersons"
    __table_args__ = {'schema': 'mst'}

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(max_length=50, unique=True, index=True)
    name: str = Field(max_length=100)
    is_active: bool = Field(default=True)
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )


# =============================================================================
# 4. mst.items 테이블 모델 (구 품목 체계)
# =============================================================================
class Item(SQLModel, table=True):
    """상품(Product) 체계 도입 이전의 품목. 입고/출고 대상으로만 사용됩니다."""
    __tablename__ = "items"
    __table_args__ = {'schema': 'mst'}

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(max_length=50, unique=True, index=True)
    name: str = Field(max_length=200)
    unit: str = Field(default="EA", max_length=20)
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )


# =============================================================================
# 5. mst.products 테이블 모델
# =============================================================================
class Product(SQLModel, table=True):
    __tablename__ = "products"
    __table_args__ = {'schema': 'mst'}

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(max_length=50, unique=True, index=True)
    name: str = Field(max_length=200)
    unit: str = Field(default="EA", max_length=20)
    category_id: Optional[int] = Field(default=None, foreign_key="mst.categories.id")
    default_purchase_price: Optional[Decimal] = Field(
        default=None, sa_column=Column(Numeric(19, 6)), description="기본 매입 단가 (기본 원가)"
    )
    default_sales_price: Optional[Decimal] = Field(
        default=None, sa_column=Column(Numeric(19, 6)), description="기본 판매 단가"
    )
    purchase_vendor_id: Optional[int] = Field(
        default=None, foreign_key="mst.vendors.id", description="기본 매입처 (자동 매입 기록 대상)"
    )
    current_cost: Optional[Decimal] = Field(
        default=None, sa_column=Column(Numeric(19, 6)), description="창고 로트 기준 현재 원가 (보관료 포함)"
    )
    last_cost_updated_at: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True))
    )
    is_active: bool = Field(default=True)
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=_utcnow),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 6. mst.vendor_product_prices 테이블 모델
# =============================================================================
class VendorProductPrice(SQLModel, table=True):
    """거래처별 상품 단가. 적용일(effective_date) 이후 가장 최근 단가가 유효합니다."""
    __tablename__ = "vendor_product_prices"
    __table_args__ = (
        UniqueConstraint("vendor_id", "product_id", "effective_date", name="uq_vendor_product_price_date"),
        {'schema': 'mst'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    vendor_id: int = Field(foreign_key="mst.vendors.id", index=True)
    product_id: int = Field(foreign_key="mst.products.id", index=True)
    purchase_price: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(19, 6)))
    sales_price: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(19, 6)))
    effective_date: date = Field(sa_column=Column(DATE, nullable=False))
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )


# =============================================================================
# 7. mst.product_monthly_costs 테이블 모델
# =============================================================================
class ProductMonthlyCost(SQLModel, table=True):
    """상품별 월간 원가 이력 (원가 갱신 시 해당 월 행을 upsert)."""
    __tablename__ = "product_monthly_costs"
    __table_args__ = (
        UniqueConstraint("product_id", "year_month", name="uq_product_monthly_cost"),
        {'schema': 'mst'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="mst.products.id", index=True)
    year_month: str = Field(max_length=7, description="YYYY-MM")
    base_cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    storage_cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    total_cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    quantity: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 4), nullable=False))
    updated_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=_utcnow),
        description="레코드 마지막 업데이트 일시"
    )
