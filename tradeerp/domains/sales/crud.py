# tradeerp/domains/sales/crud.py

"""
'sales' 도메인의 저장소(Repository) 클래스를 정의하는 모듈입니다.
"""

from typing import List, Optional

from sqlmodel import select

from tradeerp.core.crud_base import CRUDBase
from tradeerp.domains.sales import models as sales_models


class SalesRecordCRUD(CRUDBase[sales_models.SalesRecord]):
    async def list_linked_purchases(
        self, sales_id: int, *, cost_source: Optional[str] = None
    ) -> List[sales_models.SalesRecord]:
        """매출 항목을 가리키는(linked_sales_id) 매입 항목 목록."""
        record = sales_models.SalesRecord
        statement = (
            select(record)
            .where(record.linked_sales_id == sales_id)
            .where(record.record_type == sales_models.RecordType.PURCHASE.value)
        )
        if cost_source is not None:
            statement = statement.where(record.cost_source == cost_source)
        result = await self.db.execute(statement.order_by(record.id))
        return list(result.scalars().all())

    async def list_by_source_lot(
        self, lot_id: int, *, cost_source: Optional[str] = None
    ) -> List[sales_models.SalesRecord]:
        record = sales_models.SalesRecord
        statement = select(record).where(record.source_lot_id == lot_id)
        if cost_source is not None:
            statement = statement.where(record.cost_source == cost_source)
        result = await self.db.execute(statement.order_by(record.id))
        return list(result.scalars().all())

    async def list_by_receipt(
        self, receipt_id: int, *, cost_source: Optional[str] = None
    ) -> List[sales_models.SalesRecord]:
        record = sales_models.SalesRecord
        statement = select(record).where(record.receipt_id == receipt_id)
        if cost_source is not None:
            statement = statement.where(record.cost_source == cost_source)
        result = await self.db.execute(statement.order_by(record.id))
        return list(result.scalars().all())
