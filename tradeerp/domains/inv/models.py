# tradeerp/domains/inv/models.py

"""
'inv' 도메인 (PostgreSQL 'inv' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- InventoryLot: 하나의 상품을 하나의 입고일에 받은 원가 단위(로트).
- InventoryMovement: 로트 수량 변동(입고/출고) 감사 기록.
- WarehouseFee / WarehouseFeeDistribution: 월별 창고 보관료와 로트별 배부 내역.
- GoodsReceipt / GoodsReceiptItem: 여러 상품을 한 번에 받는 입고 전표.

세션 지연 로딩을 피하기 위해 Relationship은 두지 않고, 연관 레코드는 저장소에서 명시적으로 조회합니다.
"""

from enum import Enum
from typing import Optional
from datetime import datetime, date, UTC
from decimal import Decimal
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import CheckConstraint, Numeric, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP, DATE


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StorageLocation(str, Enum):
    WAREHOUSE = "WAREHOUSE"
    OFFICE = "OFFICE"


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"


# =============================================================================
# 1. inv.goods_receipts 테이블 모델
# =============================================================================
class GoodsReceipt(SQLModel, table=True):
    """
    입고 전표 헤더. 물품대금은 외화, 관세/국내운송비/기타비용은 장부 통화로 보관합니다.
    """
    __tablename__ = "goods_receipts"
    __table_args__ = {'schema': 'inv'}

    id: Optional[int] = Field(default=None, primary_key=True)
    receipt_no: str = Field(max_length=50, unique=True, index=True)
    vendor_id: Optional[int] = Field(default=None, foreign_key="mst.vendors.id")
    salesperson_id: Optional[int] = Field(default=None, foreign_key="mst.salespersons.id")
    received_date: date = Field(sa_column=Column(DATE, nullable=False))
    exchange_rate: Decimal = Field(default=Decimal("1"), sa_column=Column(Numeric(19, 6), nullable=False))
    goods_amount: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    duty_amount: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    domestic_freight: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    other_cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    storage_location: str = Field(default=StorageLocation.WAREHOUSE.value, max_length=20)
    posted_at: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True)), description="입고 처리(로트 생성) 일시"
    )
    notes: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )


# =============================================================================
# 2. inv.goods_receipt_items 테이블 모델
# =============================================================================
class GoodsReceiptItem(SQLModel, table=True):
    __tablename__ = "goods_receipt_items"
    __table_args__ = {'schema': 'inv'}

    id: Optional[int] = Field(default=None, primary_key=True)
    receipt_id: int = Field(foreign_key="inv.goods_receipts.id", index=True)
    product_id: int = Field(foreign_key="mst.products.id")
    quantity: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    unit_price: Decimal = Field(
        default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False), description="외화 단가"
    )


# =============================================================================
# 3. inv.inventory_lots 테이블 모델
# =============================================================================
class InventoryLot(SQLModel, table=True):
    """
    원가를 가진 재고 로트.
    unit_cost는 생성 시 한 번 계산되며, warehouse_fee는 보관료 배부로만 증가합니다.
    """
    __tablename__ = "inventory_lots"
    __table_args__ = (
        CheckConstraint("quantity_remaining >= 0", name="ck_lot_remaining_non_negative"),
        CheckConstraint("quantity_remaining <= quantity_received", name="ck_lot_remaining_le_received"),
        CheckConstraint(
            "(product_id IS NOT NULL) <> (item_id IS NOT NULL)", name="ck_lot_single_owner"
        ),
        {'schema': 'inv'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: Optional[int] = Field(default=None, foreign_key="mst.products.id", index=True)
    item_id: Optional[int] = Field(default=None, foreign_key="mst.items.id", index=True)
    receipt_id: Optional[int] = Field(default=None, foreign_key="inv.goods_receipts.id", index=True)
    vendor_id: Optional[int] = Field(default=None, foreign_key="mst.vendors.id")
    salesperson_id: Optional[int] = Field(default=None, foreign_key="mst.salespersons.id")
    lot_code: str = Field(max_length=100, unique=True, index=True)
    received_date: date = Field(sa_column=Column(DATE, nullable=False, index=True))
    quantity_received: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    quantity_remaining: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    storage_location: str = Field(default=StorageLocation.WAREHOUSE.value, max_length=20, index=True)
    goods_amount: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    duty_amount: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    domestic_freight: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    other_cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    unit_cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    warehouse_fee: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
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


# =============================================================================
# 4. inv.inventory_movements 테이블 모델
# =============================================================================
class InventoryMovement(SQLModel, table=True):
    __tablename__ = "inventory_movements"
    __table_args__ = {'schema': 'inv'}

    id: Optional[int] = Field(default=None, primary_key=True)
    lot_id: int = Field(foreign_key="inv.inventory_lots.id", index=True)
    movement_type: str = Field(max_length=10, description="IN / OUT")
    quantity: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    unit_cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    total_cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 6), nullable=False))
    movement_date: date = Field(sa_column=Column(DATE, nullable=False))
    sales_record_id: Optional[int] = Field(default=None, foreign_key="sales.sales_records.id", index=True)
    vendor_id: Optional[int] = Field(default=None, foreign_key="mst.vendors.id")
    salesperson_id: Optional[int] = Field(default=None, foreign_key="mst.salespersons.id")
    notes: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )


# =============================================================================
# 5. inv.warehouse_fees 테이블 모델
# =============================================================================
class WarehouseFee(SQLModel, table=True):
    """월별 창고 보관료. distributed_at이 기록되면 수정/삭제/재배부할 수 없습니다."""
    __tablename__ = "warehouse_fees"
    __table_args__ = {'schema': 'inv'}

    id: Optional[int] = Field(default=None, primary_key=True)
    year_month: str = Field(max_length=7, unique=True, index=True, description="YYYY-MM")
    total_fee: Decimal = Field(sa_column=Column(Numeric(19, 6), nullable=False))
    distributed_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
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


# =============================================================================
# 6. inv.warehouse_fee_distributions 테이블 모델
# =============================================================================
class WarehouseFeeDistribution(SQLModel, table=True):
    __tablename__ = "warehouse_fee_distributions"
    __table_args__ = (
        UniqueConstraint("warehouse_fee_id", "lot_id", name="uq_fee_distribution_lot"),
        {'schema': 'inv'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    warehouse_fee_id: int = Field(foreign_key="inv.warehouse_fees.id", index=True)
    lot_id: int = Field(foreign_key="inv.inventory_lots.id", index=True)
    distributed_fee: Decimal = Field(sa_column=Column(Numeric(19, 6), nullable=False))
    quantity_at_time: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    storage_days: int = Field(default=1)
    weight: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(24, 4), nullable=False))
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
