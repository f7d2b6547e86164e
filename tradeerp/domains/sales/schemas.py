# tradeerp/domains/sales/schemas.py

"""
'sales' 도메인의 Pydantic 스키마를 정의하는 모듈입니다.
"""

from typing import Optional
from datetime import datetime, date
from pydantic import Field
from sqlmodel import SQLModel


class SaleCreate(SQLModel):
    """수기 매출 등록. 원가는 상품 현재 원가 → 기본 원가 → manual_cost 순으로 결정됩니다."""
    record_date: date
    product_id: int
    vendor_id: Optional[int] = Field(None, description="매출 거래처 ID")
    salesperson_id: Optional[int] = Field(None, description="담당 영업사원 ID")
    item_name: Optional[str] = Field(None, max_length=200)
    quantity: float
    unit_price: float = 0
    manual_cost: Optional[float] = Field(None, description="상품에 원가 정보가 없을 때 사용할 단위 원가")
    purchase_price_override: Optional[float] = Field(
        None, description="자동 연결 매입에 사용할 매입 단가 (생략 시 상품 기본 매입가)"
    )
    notes: Optional[str] = None


class LinkPurchase(SQLModel):
    purchase_id: int


class SalesRecordResponse(SQLModel):
    id: int
    record_date: date
    record_type: str
    product_id: Optional[int] = None
    vendor_id: Optional[int] = None
    salesperson_id: Optional[int] = None
    category_id: Optional[int] = None
    item_name: str
    quantity: float
    unit_price: float
    amount: float
    cost: float
    margin: float
    margin_rate: float
    cost_source: str
    linked_sales_id: Optional[int] = None
    source_lot_id: Optional[int] = None
    receipt_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductCostResponse(SQLModel):
    product_id: int
    unit_cost: float
    source: str = Field(..., description="CURRENT / DEFAULT / MANUAL / NONE")
    last_cost_updated_at: Optional[datetime] = None
