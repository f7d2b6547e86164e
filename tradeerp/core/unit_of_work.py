# tradeerp/core/unit_of_work.py

"""
트랜잭션 작업 단위(Unit of Work) 모듈입니다.

모든 서비스 연산은 작업 단위를 명시적으로 주입받아 그 안의 저장소만 사용합니다.
`async with uow:` 블록 안에서 예외가 발생하면 전체 트랜잭션이 롤백되고,
`commit()`은 주 트랜잭션을 커밋한 뒤 수집된 이벤트를 구독 핸들러에 전달합니다.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from tradeerp.core.events import DomainEvent, EventBus, event_bus as default_event_bus
from tradeerp.domains.inv import crud as inv_crud
from tradeerp.domains.inv import models as inv_models
from tradeerp.domains.mst import crud as mst_crud
from tradeerp.domains.mst import models as mst_models
from tradeerp.domains.sales import crud as sales_crud
from tradeerp.domains.sales import models as sales_models

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class AbstractUnitOfWork:
    """
    저장소 묶음과 트랜잭션 경계를 제공하는 작업 단위의 공통 동작.

    하위 클래스는 저장소 속성(lots, movements, warehouse_fees, fee_distributions,
    goods_receipts, goods_receipt_items, sales_records, products, items, vendors,
    salespersons, vendor_prices, monthly_costs)을 채우고 `_commit`/`_rollback`을 구현합니다.
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        self.event_bus = event_bus or default_event_bus
        self._pending_events: List[DomainEvent] = []

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self.rollback()

    def collect(self, event: DomainEvent) -> None:
        """커밋 후 발행할 이벤트를 수집합니다."""
        self._pending_events.append(event)

    async def commit(self) -> None:
        await self._commit()
        await self._publish()

    async def rollback(self) -> None:
        self._pending_events.clear()
        await self._rollback()

    async def _publish(self) -> None:
        """
        커밋된 이벤트를 핸들러에 전달합니다.
        각 핸들러는 `_handler_scope` 안에서 따로 커밋되며, 실패하면 해당 핸들러의 변경만 되돌리고 기록합니다.
        """
        events, self._pending_events = self._pending_events, []
        for event in events:
            for handler in self.event_bus.handlers_for(event):
                try:
                    async with self._handler_scope():
                        await handler(self, event)
                except Exception:
                    logger.error(
                        "Post-commit handler %s failed for %s",
                        getattr(handler, "__qualname__", repr(handler)), event,
                        exc_info=True,
                    )

    @asynccontextmanager
    async def _handler_scope(self) -> AsyncIterator[None]:
        try:
            yield
        except Exception:
            await self._rollback()
            raise
        await self._commit()

    async def _commit(self) -> None:
        raise NotImplementedError

    async def _rollback(self) -> None:
        raise NotImplementedError


class SqlModelUnitOfWork(AbstractUnitOfWork):
    """AsyncSession 하나에 바인딩된 작업 단위."""

    def __init__(self, session: AsyncSession, event_bus: Optional[EventBus] = None):
        super().__init__(event_bus)
        self.session = session

        self.lots = inv_crud.InventoryLotCRUD(inv_models.InventoryLot, session)
        self.movements = inv_crud.InventoryMovementCRUD(inv_models.InventoryMovement, session)
        self.warehouse_fees = inv_crud.WarehouseFeeCRUD(inv_models.WarehouseFee, session)
        self.fee_distributions = inv_crud.WarehouseFeeDistributionCRUD(
            inv_models.WarehouseFeeDistribution, session
        )
        self.goods_receipts = inv_crud.GoodsReceiptCRUD(inv_models.GoodsReceipt, session)
        self.goods_receipt_items = inv_crud.GoodsReceiptItemCRUD(inv_models.GoodsReceiptItem, session)

        self.products = mst_crud.ProductCRUD(mst_models.Product, session)
        self.items = mst_crud.ItemCRUD(mst_models.Item, session)
        self.vendors = mst_crud.VendorCRUD(mst_models.Vendor, session)
        self.salespersons = mst_crud.SalespersonCRUD(mst_models.Salesperson, session)
        self.vendor_prices = mst_crud.VendorProductPriceCRUD(mst_models.VendorProductPrice, session)
        self.monthly_costs = mst_crud.ProductMonthlyCostCRUD(mst_models.ProductMonthlyCost, session)

        self.sales_records = sales_crud.SalesRecordCRUD(sales_models.SalesRecord, session)

    async def _commit(self) -> None:
        await self.session.commit()

    async def _rollback(self) -> None:
        await self.session.rollback()

    @asynccontextmanager
    async def _handler_scope(self) -> AsyncIterator[None]:
        """
        핸들러를 SAVEPOINT 안에서 실행합니다.
        세션 전체 롤백은 주 작업이 반환할 객체까지 만료시키므로, 실패 시 SAVEPOINT만 되돌립니다.
        """
        async with self.session.begin_nested():
            yield
        await self.session.commit()
