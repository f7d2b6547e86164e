# tradeerp/services/events.py

"""
서비스 계층이 작업 단위에 수집하는 도메인 이벤트 정의입니다.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from tradeerp.core.events import DomainEvent


@dataclass(frozen=True)
class LotReceived(DomainEvent):
    lot_id: int
    product_id: Optional[int] = None
    receipt_id: Optional[int] = None


@dataclass(frozen=True)
class SaleRecorded(DomainEvent):
    sales_record_id: int
    # 재고 로트에서 출고된 매출 (매입은 입고 시 이미 기록됨)
    stock_backed: bool = False
    purchase_price_override: Optional[Decimal] = None
