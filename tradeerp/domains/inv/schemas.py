# tradeerp/domains/inv/schemas.py

"""
'inv' 도메인 (PostgreSQL 'inv' 스키마)의 Pydantic 스키마를 정의하는 모듈입니다.

수량과 금액은 요청/응답에서 float로 주고받고, 서비스 계층에서 Decimal로 변환합니다.
값의 범위(양수, 음수 아님) 검증은 전송 방식과 무관하게 서비스 계층이 수행합니다.
"""

from typing import List, Optional
from datetime import datetime, date
from pydantic import Field
from sqlmodel import SQLModel


# =============================================================================
# 1. inv.inventory_lots 테이블 스키마
# =============================================================================
class LotCreate(SQLModel):
    product_id: Optional[int] = Field(None, description="상품 ID (item_id와 둘 중 하나)")
    item_id: Optional[int] = Field(None, description="구 품목 ID (product_id와 둘 중 하나)")
    lot_code: Optional[str] = Field(None, max_length=100, description="로트 코드 (생략 시 자동 생성)")
    received_date: date = Field(..., description="입고일")
    quantity: float = Field(..., description="입고 수량")
    goods_amount: float = Field(0, description="물품대금 (장부 통화)")
    duty_amount: float = Field(0, description="관세")
    domestic_freight: float = Field(0, description="국내 운송비")
    other_cost: float = Field(0, description="기타 비용")
    storage_location: str = Field("WAREHOUSE", description="보관 위치 (WAREHOUSE / OFFICE)")
    receipt_id: Optional[int] = Field(None, description="원 입고 전표 ID")
    vendor_id: Optional[int] = None
    salesperson_id: Optional[int] = None
    notes: Optional[str] = None


class LotResponse(SQLModel):
    id: int
    product_id: Optional[int] = None
    item_id: Optional[int] = None
    receipt_id: Optional[int] = None
    vendor_id: Optional[int] = None
    salesperson_id: Optional[int] = None
    lot_code: str
    received_date: date
    quantity_received: float
    quantity_remaining: float
    storage_location: str
    goods_amount: float
    duty_amount: float
    domestic_freight: float
    other_cost: float
    unit_cost: float
    warehouse_fee: float
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LotBulkDelete(SQLModel):
    lot_ids: List[int] = Field(..., description="삭제할 로트 ID 목록")


class LotBulkDeleteResult(SQLModel):
    deleted_lot_ids: List[int]


# =============================================================================
# 2. 출고 (FIFO) 스키마
# =============================================================================
class OutboundSaleContext(SQLModel):
    vendor_id: Optional[int] = Field(None, description="매출 거래처 ID")
    salesperson_id: Optional[int] = Field(None, description="담당 영업사원 ID")
    notes: Optional[str] = None


class OutboundCreate(SQLModel):
    product_id: Optional[int] = None
    item_id: Optional[int] = None
    quantity: float = Field(..., description="출고 요청 수량")
    outbound_date: date = Field(..., description="출고일")
    storage_location: Optional[str] = Field(None, description="출고 대상 보관 위치 (생략 시 전체)")
    sale_context: Optional[OutboundSaleContext] = Field(None, description="매출 출고일 때의 매출 정보")
    notes: Optional[str] = None


class OutboundAllocation(SQLModel):
    lot_id: int
    lot_code: str
    received_date: date
    quantity: float
    unit_cost: float = Field(..., description="보관료가 반영된 실질 단가")
    total_cost: float
    movement_id: int


class OutboundResult(SQLModel):
    total_quantity: float
    total_cost: float
    allocations: List[OutboundAllocation]
    sales_record_id: Optional[int] = None


class MovementResponse(SQLModel):
    id: int
    lot_id: int
    movement_type: str
    quantity: float
    unit_cost: float
    total_cost: float
    movement_date: date
    sales_record_id: Optional[int] = None
    vendor_id: Optional[int] = None
    salesperson_id: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class OutboundBulkReverse(SQLModel):
    movement_ids: List[int] = Field(..., description="취소할 출고 이동 ID 목록")


class OutboundReversal(SQLModel):
    movement_id: int
    lot_id: int
    restored_quantity: float
    quantity_remaining: float


# =============================================================================
# 3. inv.warehouse_fees 테이블 스키마
# =============================================================================
class WarehouseFeeCreate(SQLModel):
    year_month: str = Field(..., description="대상 월 (YYYY-MM)")
    total_fee: float = Field(..., description="월 보관료 총액")
    notes: Optional[str] = None


class WarehouseFeeUpdate(SQLModel):
    total_fee: Optional[float] = None
    notes: Optional[str] = None


class WarehouseFeeDistribute(SQLModel):
    total_fee: Optional[float] = Field(None, description="배부 직전에 확정할 총액 (생략 시 등록된 금액)")


class WarehouseFeeResponse(SQLModel):
    id: int
    year_month: str
    total_fee: float
    distributed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WarehouseFeeDistributionResponse(SQLModel):
    id: int
    warehouse_fee_id: int
    lot_id: int
    distributed_fee: float
    quantity_at_time: float
    storage_days: int
    weight: float

    class Config:
        from_attributes = True


class WarehouseFeeDetail(WarehouseFeeResponse):
    distributions: List[WarehouseFeeDistributionResponse] = []
    lot_count: int = 0


# =============================================================================
# 4. inv.goods_receipts 테이블 스키마
# =============================================================================
class GoodsReceiptItemCreate(SQLModel):
    product_id: int
    quantity: float
    unit_price: float = Field(0, description="외화 단가")


class GoodsReceiptCreate(SQLModel):
    receipt_no: str = Field(..., max_length=50)
    vendor_id: Optional[int] = None
    salesperson_id: Optional[int] = None
    received_date: date
    exchange_rate: float = Field(1, description="외화 → 장부 통화 환율")
    goods_amount: float = Field(0, description="물품대금 (외화)")
    duty_amount: float = 0
    domestic_freight: float = 0
    other_cost: float = 0
    storage_location: str = "WAREHOUSE"
    notes: Optional[str] = None
    items: List[GoodsReceiptItemCreate] = []


class GoodsReceiptItemResponse(SQLModel):
    id: int
    receipt_id: int
    product_id: int
    quantity: float
    unit_price: float

    class Config:
        from_attributes = True


class GoodsReceiptResponse(SQLModel):
    id: int
    receipt_no: str
    vendor_id: Optional[int] = None
    salesperson_id: Optional[int] = None
    received_date: date
    exchange_rate: float
    goods_amount: float
    duty_amount: float
    domestic_freight: float
    other_cost: float
    storage_location: str
    posted_at: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[GoodsReceiptItemResponse] = []

    class Config:
        from_attributes = True


class GoodsReceiptPostResult(SQLModel):
    receipt_id: int
    lots: List[LotResponse]


# =============================================================================
# 5. 재고 조회 스키마
# =============================================================================
class InventorySummary(SQLModel):
    product_id: Optional[int] = None
    item_id: Optional[int] = None
    total_quantity: float
    lot_count: int
    base_avg_unit_cost: float = Field(..., description="보관료 제외 평균 단가")
    avg_unit_cost: float = Field(..., description="보관료 포함 평균 단가")
    total_warehouse_fee: float
    total_value: float = Field(..., description="보관료 제외 재고 금액")
    total_value_with_fee: float


class ProductInventoryDetail(InventorySummary):
    lots: List[LotResponse] = []


class InventoryValuation(SQLModel):
    storage_location: Optional[str] = None
    product_count: int
    lot_count: int
    total_quantity: float
    total_value: float
    total_warehouse_fee: float
    total_value_with_fee: float
