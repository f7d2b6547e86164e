# tradeerp/services/outbound_allocator.py

"""
선입선출(FIFO) 출고 서비스 모듈입니다.

출고 요청 수량을 가장 오래된 로트부터 소비하고, 로트마다 출고(OUT) 이동 기록을 남깁니다.
매출 정보가 함께 오면 출고 전체에 대한 매출 한 건을 만들고 이동 기록을 그 매출에 연결합니다.
"""

import logging
from collections import OrderedDict
from typing import List, Optional, Sequence

from fastapi import Depends

from tradeerp.core.dependencies import get_uow
from tradeerp.core.exceptions import (
    BusinessRuleError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from tradeerp.core.unit_of_work import AbstractUnitOfWork
from tradeerp.domains.inv import costing
from tradeerp.domains.inv import models as inv_models
from tradeerp.domains.inv import schemas as inv_schemas
from tradeerp.services.cost_propagator import CostPropagator
from tradeerp.services.inbound_receiver import validate_storage_location

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class OutboundAllocator:
    def __init__(self, uow: AbstractUnitOfWork):
        self.uow = uow

    async def allocate(self, obj_in: inv_schemas.OutboundCreate) -> inv_schemas.OutboundResult:
        """
        요청 수량을 선입선출로 출고합니다.

        가용 수량이 부족하면 어떤 로트도 변경하지 않고 InsufficientStockError를 발생시킵니다.
        """
        quantity = costing.quantize_quantity(obj_in.quantity)
        if quantity <= 0:
            raise ValidationError("quantity must be greater than 0.", field="quantity")
        if obj_in.product_id is None and obj_in.item_id is None:
            raise ValidationError("product_id or item_id is required.", field="product_id")
        if obj_in.product_id is not None and obj_in.item_id is not None:
            raise ValidationError("Only one of product_id and item_id may be given.", field="item_id")
        if obj_in.storage_location is not None:
            validate_storage_location(obj_in.storage_location)
        sale = obj_in.sale_context
        if sale is not None:
            if obj_in.product_id is None:
                raise ValidationError("A sale outbound requires product_id.", field="product_id")
            if sale.vendor_id is None:
                raise ValidationError("sale_context.vendor_id is required.", field="sale_context.vendor_id")
            if sale.salesperson_id is None:
                raise ValidationError(
                    "sale_context.salesperson_id is required.", field="sale_context.salesperson_id"
                )

        async with self.uow:
            product = None
            if obj_in.product_id is not None:
                product = await self.uow.products.get(obj_in.product_id)
                if product is None:
                    raise NotFoundError(f"Product {obj_in.product_id} not found.")
            elif await self.uow.items.get(obj_in.item_id) is None:
                raise NotFoundError(f"Item {obj_in.item_id} not found.")

            # 1. 잔량 로트 잠금 + 가용 수량 확인
            lots = await self.uow.lots.get_open_lots(
                product_id=obj_in.product_id,
                item_id=obj_in.item_id,
                storage_location=obj_in.storage_location,
                for_update=True,
            )
            available = sum((lot.quantity_remaining for lot in lots), costing.ZERO)
            if available < quantity:
                raise InsufficientStockError(available=available, requested=quantity)

            # 2. 오래된 로트부터 소비
            slices = []
            remaining = quantity
            for lot in lots:
                if remaining <= 0:
                    break
                take = min(lot.quantity_remaining, remaining)
                unit_cost = costing.effective_unit_cost(lot.unit_cost, lot.warehouse_fee, lot.quantity_remaining)
                slices.append((lot, take, unit_cost, costing.quantize_cost(take * unit_cost)))
                lot.quantity_remaining -= take
                await self.uow.lots.save(lot)
                remaining -= take
            total_cost = sum((slice_total for _, _, _, slice_total in slices), costing.ZERO)

            # 3. 매출 출고면 매출 한 건
            sales_record = None
            if sale is not None:
                sales_record = await CostPropagator(self.uow).create_stock_sale_entry(
                    product=product,
                    quantity=quantity,
                    sale_date=obj_in.outbound_date,
                    vendor_id=sale.vendor_id,
                    salesperson_id=sale.salesperson_id,
                    total_cost=total_cost,
                    notes=sale.notes or obj_in.notes,
                )

            # 4. 로트별 출고 이동 기록
            allocations = []
            for lot, take, unit_cost, slice_total in slices:
                movement = inv_models.InventoryMovement(
                    lot_id=lot.id,
                    movement_type=inv_models.MovementType.OUT.value,
                    quantity=take,
                    unit_cost=unit_cost,
                    total_cost=slice_total,
                    movement_date=obj_in.outbound_date,
                    sales_record_id=sales_record.id if sales_record else None,
                    vendor_id=sale.vendor_id if sale else None,
                    salesperson_id=sale.salesperson_id if sale else None,
                    notes=obj_in.notes,
                )
                movement = await self.uow.movements.add(movement)
                allocations.append(
                    inv_schemas.OutboundAllocation(
                        lot_id=lot.id,
                        lot_code=lot.lot_code,
                        received_date=lot.received_date,
                        quantity=float(take),
                        unit_cost=float(unit_cost),
                        total_cost=float(slice_total),
                        movement_id=movement.id,
                    )
                )

            if product is not None:
                await CostPropagator(self.uow).refresh_product_cost(product.id)
            await self.uow.commit()

        logger.info(
            "Outbound allocated: product=%s item=%s qty=%s lots=%d cost=%s sale=%s",
            obj_in.product_id, obj_in.item_id, quantity, len(allocations), total_cost,
            sales_record.id if sales_record else None,
        )
        return inv_schemas.OutboundResult(
            total_quantity=float(quantity),
            total_cost=float(total_cost),
            allocations=allocations,
            sales_record_id=sales_record.id if sales_record else None,
        )

    async def reverse(self, movement_id: int) -> inv_schemas.OutboundReversal:
        reversals = await self.reverse_many([movement_id])
        return reversals[0]

    async def reverse_many(self, movement_ids: Sequence[int]) -> List[inv_schemas.OutboundReversal]:
        """
        출고 이동 기록을 취소합니다. 전부 성공하거나 전부 실패합니다.

        로트 잔량을 되돌리고 이동 기록을 삭제하며, 더 이상 출고 기록이 남지 않은 매출은
        연결된 자동 매입과 함께 삭제합니다.
        """
        ids = list(dict.fromkeys(movement_ids))
        if not ids:
            raise ValidationError("movement_ids must not be empty.", field="movement_ids")

        async with self.uow:
            # 잠금 대기 중 다른 트랜잭션이 먼저 취소한 이동 기록은 조회되지 않음 → NotFoundError
            movements = await self.uow.movements.get_many(ids, for_update=True)
            missing = sorted(set(ids) - {movement.id for movement in movements})
            if missing:
                raise NotFoundError(f"Movements not found: {missing}")
            for movement in movements:
                if movement.movement_type != inv_models.MovementType.OUT.value:
                    raise BusinessRuleError(
                        f"Movement {movement.id} is an {movement.movement_type} movement; only OUT can be reversed."
                    )

            lots = {
                lot.id: lot
                for lot in await self.uow.lots.get_many(
                    sorted({movement.lot_id for movement in movements}), for_update=True
                )
            }
            sales_record_ids: "OrderedDict[int, None]" = OrderedDict()
            product_ids: "OrderedDict[int, None]" = OrderedDict()
            reversals = []
            for movement in movements:
                lot = lots[movement.lot_id]
                lot.quantity_remaining += movement.quantity
                if lot.quantity_remaining > lot.quantity_received:
                    raise BusinessRuleError(
                        f"Reversing movement {movement.id} would exceed the received quantity of lot {lot.lot_code}."
                    )
                await self.uow.lots.save(lot)
                if movement.sales_record_id is not None:
                    sales_record_ids[movement.sales_record_id] = None
                if lot.product_id is not None:
                    product_ids[lot.product_id] = None
                reversals.append(
                    inv_schemas.OutboundReversal(
                        movement_id=movement.id,
                        lot_id=lot.id,
                        restored_quantity=float(movement.quantity),
                        quantity_remaining=float(lot.quantity_remaining),
                    )
                )
                await self.uow.movements.delete(movement)

            propagator = CostPropagator(self.uow)
            for sales_record_id in sales_record_ids:
                if await self.uow.movements.count_by_sales_record(sales_record_id):
                    continue
                record = await self.uow.sales_records.get(sales_record_id, for_update=True)
                if record is not None:
                    await propagator.remove_sales_record(record)
            for product_id in product_ids:
                await propagator.refresh_product_cost(product_id)
            await self.uow.commit()

        logger.info("Outbound reversed: movements=%s", ids)
        return reversals

    async def list_movements(
        self,
        *,
        product_id: Optional[int] = None,
        movement_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[inv_models.InventoryMovement]:
        if movement_type is not None and movement_type not in {t.value for t in inv_models.MovementType}:
            raise ValidationError(f"Unknown movement_type {movement_type!r}.", field="movement_type")
        return await self.uow.movements.list_movements(
            product_id=product_id, movement_type=movement_type, skip=skip, limit=limit
        )


def get_outbound_allocator(uow: AbstractUnitOfWork = Depends(get_uow)) -> OutboundAllocator:
    """
    FastAPI 의존성 주입을 통해 OutboundAllocator 인스턴스를 제공합니다.
    """
    return OutboundAllocator(uow)
