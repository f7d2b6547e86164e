# tradeerp/services/inventory_query.py

"""
재고 조회(Inventory Query) 서비스 모듈입니다. 읽기 전용입니다.

평균 단가 = Σ(잔량 × 기본 단가) / Σ잔량 + Σ누적 보관료 / Σ잔량
"""

from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from fastapi import Depends

from tradeerp.core.dependencies import get_uow
from tradeerp.core.exceptions import NotFoundError
from tradeerp.core.unit_of_work import AbstractUnitOfWork
from tradeerp.domains.inv import costing
from tradeerp.domains.inv import models as inv_models
from tradeerp.domains.inv import schemas as inv_schemas
from tradeerp.services.inbound_receiver import validate_storage_location


def summarize_lots(
    lots: Sequence[inv_models.InventoryLot],
    product_id: Optional[int] = None,
    item_id: Optional[int] = None,
) -> inv_schemas.InventorySummary:
    quantity = sum((lot.quantity_remaining for lot in lots), costing.ZERO)
    base_value = sum((lot.quantity_remaining * lot.unit_cost for lot in lots), costing.ZERO)
    fee = sum((lot.warehouse_fee for lot in lots), costing.ZERO)
    if quantity > 0:
        base_avg = costing.quantize_cost(base_value / quantity)
        avg = costing.quantize_cost(base_value / quantity + fee / quantity)
    else:
        base_avg = avg = costing.ZERO
    return inv_schemas.InventorySummary(
        product_id=product_id,
        item_id=item_id,
        total_quantity=float(quantity),
        lot_count=len(lots),
        base_avg_unit_cost=float(base_avg),
        avg_unit_cost=float(avg),
        total_warehouse_fee=float(costing.quantize_cost(fee)),
        total_value=float(costing.quantize_cost(base_value)),
        total_value_with_fee=float(costing.quantize_cost(base_value + fee)),
    )


def _group_key(lot: inv_models.InventoryLot) -> Tuple[int, int]:
    # 상품 로트를 먼저, 구 품목 로트를 나중에
    if lot.product_id is not None:
        return 0, lot.product_id
    return 1, lot.item_id


class InventoryQueryService:
    def __init__(self, uow: AbstractUnitOfWork):
        self.uow = uow

    async def query(
        self,
        *,
        product_id: Optional[int] = None,
        storage_location: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[inv_schemas.InventorySummary]:
        """잔량이 있는 로트를 상품(또는 구 품목)별로 집계합니다. 페이지는 상품 단위입니다."""
        if storage_location is not None:
            validate_storage_location(storage_location)
        lots = await self.uow.lots.get_open_lots(product_id=product_id, storage_location=storage_location)
        groups: Dict[Tuple[int, int], List[inv_models.InventoryLot]] = {}
        for lot in lots:
            groups.setdefault(_group_key(lot), []).append(lot)

        summaries = []
        for key in sorted(groups)[skip:skip + limit]:
            kind, owner_id = key
            summaries.append(
                summarize_lots(
                    groups[key],
                    product_id=owner_id if kind == 0 else None,
                    item_id=owner_id if kind == 1 else None,
                )
            )
        return summaries

    async def get_product_inventory(
        self, product_id: int, storage_location: Optional[str] = None
    ) -> inv_schemas.ProductInventoryDetail:
        if storage_location is not None:
            validate_storage_location(storage_location)
        if await self.uow.products.get(product_id) is None:
            raise NotFoundError(f"Product {product_id} not found.")
        lots = await self.uow.lots.get_open_lots(product_id=product_id, storage_location=storage_location)
        summary = summarize_lots(lots, product_id=product_id)
        return inv_schemas.ProductInventoryDetail(
            **summary.model_dump(),
            lots=[inv_schemas.LotResponse.model_validate(lot) for lot in lots],
        )

    async def valuation(self, storage_location: Optional[str] = None) -> inv_schemas.InventoryValuation:
        if storage_location is not None:
            validate_storage_location(storage_location)
        lots = await self.uow.lots.get_open_lots(storage_location=storage_location)
        quantity = sum((lot.quantity_remaining for lot in lots), costing.ZERO)
        value = sum((lot.quantity_remaining * lot.unit_cost for lot in lots), costing.ZERO)
        fee = sum((lot.warehouse_fee for lot in lots), costing.ZERO)
        return inv_schemas.InventoryValuation(
            storage_location=storage_location,
            product_count=len({_group_key(lot) for lot in lots}),
            lot_count=len(lots),
            total_quantity=float(quantity),
            total_value=float(costing.quantize_cost(value)),
            total_warehouse_fee=float(costing.quantize_cost(fee)),
            total_value_with_fee=float(costing.quantize_cost(value + fee)),
        )


def get_inventory_query_service(uow: AbstractUnitOfWork = Depends(get_uow)) -> InventoryQueryService:
    return InventoryQueryService(uow)
