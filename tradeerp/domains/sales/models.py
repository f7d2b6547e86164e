# tradeerp/domains/sales/models.py

"""
'sales' 도메인 (PostgreSQL 'sales' 스키마)의 매입/매출 통합 장부 모델입니다.
"""

from enum import Enum
from typing import Optional
from datetime import datetime, date, UTC
from decimal import Decimal
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Numeric
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP, DATE


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RecordType(str, Enum):
    PURCHASE = "PURCHASE"
    SALES = "SALES"


class CostSource(str, Enum):
    """장부 항목의 출처(provenance) 표시."""
    MANUAL = "MANUAL"              # 수기 입력
    FIFO = "FIFO"                  # 선입선출 출고에서 생성된 매출
    INBOUND_AUTO = "INBOUND_AUTO"  # 로트 입고 시 자동 생성된 매입
    SALES_AUTO = "SALES_AUTO"      # 매출 등록 시 자동 생성된 연결 매입
    IMPORT_AUTO = "IMPORT_AUTO"    # 입고 전표 처리 시 자동 생성된 매입


# =============================================================================
# 1. sales.sales_records 테이블 모델
# =============================================================================
class SalesRecord(SQLModel, table=True):
    """
    매입(PURCHASE)과 매출(SALES)을 함께 담는 장부 항목.

    linked_sales_id는 자동 생성된 매입이 자신을 만든 매출을 가리키는 단방향 참조입니다.
    매출을 삭제하면 연결된 SALES_AUTO 매입도 삭제되지만, 반대 방향으로는 전파되지 않습니다.
    """
    __tablename__ = "sales_records"
    __table_args__ = {'schema': 'sales'}

    id: Optional[int] = Field(default=None, primary_key=True)
    record_date: date = Field(sa_column=Column(DATE, nullable=False, index=True))
    record_type: str = Field(max_length=20, index=True, description="PURCHASE / SALES")
    product_id: Optional[int] = Field(default=None, foreign_key="mst.products.id", index=True)
    vendor_id: Optional[int] = Field(default=None, foreign_key="mst.vendors.id")
    salesperson_id: Optional[int] = Field(default=None, foreign_key="mst.salespersons.id")
    category_id: Optional[int] = Field(default=None, foreign_key="mst.categories.id")
    item_name: str = Field(default="", max_length=200)
    quantity: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    unit_price: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    amount: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    margin: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    margin_rate: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 2), nullable=False))
    cost_source: str = Field(default=CostSource.MANUAL.value, max_length=20, index=True)
    linked_sales_id: Optional[int] = Field(
        default=None, foreign_key="sales.sales_records.id", index=True,
        description="자동 생성된 매입이 가리키는 원 매출"
    )
    source_lot_id: Optional[int] = Field(default=None, foreign_key="inv.inventory_lots.id", index=True)
    receipt_id: Optional[int] = Field(default=None, foreign_key="inv.goods_receipts.id", index=True)
    notes: Optional[str] = Field(default=None)
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
