# tradeerp/services/inbound_receiver.py

"""
입고(Inbound Receiver) 서비스 모듈입니다.

입고 한 건은 정확히 하나의 로트와 하나의 입고(IN) 이동 기록을 만듭니다.
다품목 입고 전표는 헤더의 부대비용을 품목별로 배부한 뒤 같은 트랜잭션에서 로트를 만듭니다.
"""

import logging
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from fastapi import Depends

from tradeerp.core.config import settings
from tradeerp.core.dependencies import get_uow
from tradeerp.core.exceptions import (
    BusinessRuleError,
    IntegrityConflictError,
    NotFoundError,
    ValidationError,
)
from tradeerp.core.unit_of_work import AbstractUnitOfWork
from tradeerp.domains.inv import costing
from tradeerp.domains.inv import models as inv_models
from tradeerp.domains.inv import schemas as inv_schemas
from tradeerp.domains.sales import models as sales_models
from tradeerp.services.cost_propagator import CostPropagator
from tradeerp.services.events import LotReceived

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

STORAGE_LOCATIONS = {location.value for location in inv_models.StorageLocation}

# 로트 삭제 시 함께 지워지는 자동 매입 기록
_LOT_BOUND_PURCHASES = {
    sales_models.CostSource.INBOUND_AUTO.value,
    sales_models.CostSource.IMPORT_AUTO.value,
}


def validate_storage_location(value: str, field: str = "storage_location") -> str:
    if value not in STORAGE_LOCATIONS:
        raise ValidationError(
            f"{field} must be one of {sorted(STORAGE_LOCATIONS)}, got {value!r}.", field=field
        )
    return value


class InboundReceiver:
    """로트 생성/삭제와 입고 전표 처리를 담당하는 서비스 클래스입니다."""

    def __init__(self, uow: AbstractUnitOfWork, landed_cost_policy: Optional[str] = None):
        self.uow = uow
        self.landed_cost_policy = landed_cost_policy or settings.LANDED_COST_POLICY

    # ------------------------------------------------------------------
    # 단건 입고
    # ------------------------------------------------------------------
    async def receive(self, obj_in: inv_schemas.LotCreate) -> inv_models.InventoryLot:
        """
        로트 하나를 생성합니다.

        Raises:
            ValidationError: 상품/품목 참조 누락, 수량 0 이하, 음수 원가 항목, 잘못된 보관 위치.
            NotFoundError: 존재하지 않는 상품/품목.
            IntegrityConflictError: 중복 로트 코드.
        """
        async with self.uow:
            lot = await self._receive(
                product_id=obj_in.product_id,
                item_id=obj_in.item_id,
                lot_code=obj_in.lot_code,
                received_date=obj_in.received_date,
                quantity=costing.quantize_quantity(obj_in.quantity),
                costs={
                    "goods_amount": costing.to_decimal(obj_in.goods_amount),
                    "duty_amount": costing.to_decimal(obj_in.duty_amount),
                    "domestic_freight": costing.to_decimal(obj_in.domestic_freight),
                    "other_cost": costing.to_decimal(obj_in.other_cost),
                },
                storage_location=obj_in.storage_location,
                receipt_id=obj_in.receipt_id,
                vendor_id=obj_in.vendor_id,
                salesperson_id=obj_in.salesperson_id,
                notes=obj_in.notes,
            )
            await self.uow.commit()
        return lot

    async def _receive(
        self,
        *,
        product_id: Optional[int],
        item_id: Optional[int],
        lot_code: Optional[str],
        received_date: date,
        quantity: Decimal,
        costs: Dict[str, Decimal],
        storage_location: str,
        receipt_id: Optional[int] = None,
        vendor_id: Optional[int] = None,
        salesperson_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> inv_models.InventoryLot:
        # 1. 쓰기 전 검증
        if product_id is None and item_id is None:
            raise ValidationError("product_id or item_id is required.", field="product_id")
        if product_id is not None and item_id is not None:
            raise ValidationError("Only one of product_id and item_id may be given.", field="item_id")
        if quantity <= 0:
            raise ValidationError("quantity must be greater than 0.", field="quantity")
        for component in costing.LANDED_COST_COMPONENTS:
            if costs[component] < 0:
                raise ValidationError(f"{component} must not be negative.", field=component)
        validate_storage_location(storage_location)

        if product_id is not None and await self.uow.products.get(product_id) is None:
            raise NotFoundError(f"Product {product_id} not found.")
        if item_id is not None and await self.uow.items.get(item_id) is None:
            raise NotFoundError(f"Item {item_id} not found.")

        if lot_code:
            lot_code = lot_code.strip()
            if await self.uow.lots.get_by_lot_code(lot_code) is not None:
                raise IntegrityConflictError(f"Lot code '{lot_code}' already exists.")
        else:
            lot_code = await self._generate_lot_code(received_date)

        # 2. 로트 + 입고 이동 기록
        unit_cost = costing.calculate_unit_cost(
            costs["goods_amount"], costs["duty_amount"], costs["domestic_freight"], costs["other_cost"], quantity
        )
        lot = inv_models.InventoryLot(
            product_id=product_id,
            item_id=item_id,
            receipt_id=receipt_id,
            vendor_id=vendor_id,
            salesperson_id=salesperson_id,
            lot_code=lot_code,
            received_date=received_date,
            quantity_received=quantity,
            quantity_remaining=quantity,
            storage_location=storage_location,
            unit_cost=unit_cost,
            warehouse_fee=costing.ZERO,
            notes=notes,
            **costs,
        )
        lot = await self.uow.lots.add(lot)

        movement = inv_models.InventoryMovement(
            lot_id=lot.id,
            movement_type=inv_models.MovementType.IN.value,
            quantity=quantity,
            unit_cost=unit_cost,
            total_cost=costing.quantize_cost(quantity * unit_cost),
            movement_date=received_date,
            vendor_id=vendor_id,
            salesperson_id=salesperson_id,
            notes=notes,
        )
        await self.uow.movements.add(movement)

        if product_id is not None:
            await CostPropagator(self.uow).refresh_product_cost(product_id)
        self.uow.collect(LotReceived(lot_id=lot.id, product_id=product_id, receipt_id=receipt_id))

        logger.info(
            "Lot received: %s qty=%s unit_cost=%s location=%s", lot.lot_code, quantity, unit_cost, storage_location
        )
        return lot

    async def _generate_lot_code(self, received_date: date) -> str:
        """LOT-YYYYMMDD-NNN 형식의 로트 코드를 만듭니다."""
        prefix = f"LOT-{received_date:%Y%m%d}-"
        sequence = await self.uow.lots.count_with_code_prefix(prefix) + 1
        lot_code = f"{prefix}{sequence:03d}"
        while await self.uow.lots.get_by_lot_code(lot_code) is not None:
            sequence += 1
            lot_code = f"{prefix}{sequence:03d}"
        return lot_code

    # ------------------------------------------------------------------
    # 로트 삭제
    # ------------------------------------------------------------------
    async def delete_lot(self, lot_id: int) -> None:
        async with self.uow:
            lot = await self.uow.lots.get(lot_id, for_update=True)
            if lot is None:
                raise NotFoundError(f"Lot {lot_id} not found.")
            await self._delete_lot(lot)
            await self.uow.commit()

    async def delete_lots(self, lot_ids: Sequence[int]) -> List[int]:
        """여러 로트를 한 트랜잭션에서 삭제합니다. 하나라도 실패하면 아무것도 삭제되지 않습니다."""
        ids = list(dict.fromkeys(lot_ids))
        if not ids:
            raise ValidationError("lot_ids must not be empty.", field="lot_ids")
        async with self.uow:
            lots = await self.uow.lots.get_many(ids, for_update=True)
            missing = sorted(set(ids) - {lot.id for lot in lots})
            if missing:
                raise NotFoundError(f"Lots not found: {missing}")
            for lot in lots:
                await self._delete_lot(lot)
            await self.uow.commit()
        return ids

    async def _delete_lot(self, lot: inv_models.InventoryLot) -> None:
        """
        한 번도 출고되지 않았고 보관료를 배부받지 않은 로트만 삭제합니다.
        입고 이동 기록과 로트에 묶인 자동 매입 기록을 함께 지웁니다.
        """
        if lot.quantity_remaining != lot.quantity_received:
            raise BusinessRuleError(
                f"Lot {lot.lot_code} (id={lot.id}) has been consumed: "
                f"remaining {lot.quantity_remaining} of {lot.quantity_received}."
            )
        # 배부 내역을 지우면 해당 월의 배부 합계가 보관료 총액과 어긋남
        if await self.uow.fee_distributions.list_by_lot(lot.id):
            raise BusinessRuleError(
                f"Lot {lot.lot_code} (id={lot.id}) has warehouse fee distributions and cannot be deleted."
            )
        for movement in await self.uow.movements.list_by_lot(lot.id):
            await self.uow.movements.delete(movement)
        for record in await self.uow.sales_records.list_by_source_lot(lot.id):
            if record.cost_source in _LOT_BOUND_PURCHASES:
                await self.uow.sales_records.delete(record)
            else:
                record.source_lot_id = None
                await self.uow.sales_records.save(record)

        product_id = lot.product_id
        await self.uow.lots.delete(lot)
        if product_id is not None:
            await CostPropagator(self.uow).refresh_product_cost(product_id)
        logger.info("Lot deleted: %s (id=%s)", lot.lot_code, lot.id)

    # ------------------------------------------------------------------
    # 입고 전표
    # ------------------------------------------------------------------
    async def create_goods_receipt(
        self, obj_in: inv_schemas.GoodsReceiptCreate
    ) -> Tuple[inv_models.GoodsReceipt, List[inv_models.GoodsReceiptItem]]:
        receipt_no = (obj_in.receipt_no or "").strip()
        if not receipt_no:
            raise ValidationError("receipt_no is required.", field="receipt_no")
        exchange_rate = costing.to_decimal(obj_in.exchange_rate)
        if exchange_rate <= 0:
            raise ValidationError("exchange_rate must be greater than 0.", field="exchange_rate")
        header = {component: costing.to_decimal(getattr(obj_in, component)) for component in costing.LANDED_COST_COMPONENTS}
        for component, amount in header.items():
            if amount < 0:
                raise ValidationError(f"{component} must not be negative.", field=component)
        validate_storage_location(obj_in.storage_location)
        for index, line in enumerate(obj_in.items):
            if costing.quantize_quantity(line.quantity) <= 0:
                raise ValidationError("quantity must be greater than 0.", field=f"items[{index}].quantity")
            if costing.to_decimal(line.unit_price) < 0:
                raise ValidationError("unit_price must not be negative.", field=f"items[{index}].unit_price")

        async with self.uow:
            if await self.uow.goods_receipts.get_by_receipt_no(receipt_no) is not None:
                raise IntegrityConflictError(f"Goods receipt '{receipt_no}' already exists.")
            for line in obj_in.items:
                if await self.uow.products.get(line.product_id) is None:
                    raise NotFoundError(f"Product {line.product_id} not found.")

            receipt = inv_models.GoodsReceipt(
                receipt_no=receipt_no,
                vendor_id=obj_in.vendor_id,
                salesperson_id=obj_in.salesperson_id,
                received_date=obj_in.received_date,
                exchange_rate=exchange_rate,
                storage_location=obj_in.storage_location,
                notes=obj_in.notes,
                **header,
            )
            receipt = await self.uow.goods_receipts.add(receipt)
            items = []
            for line in obj_in.items:
                item = inv_models.GoodsReceiptItem(
                    receipt_id=receipt.id,
                    product_id=line.product_id,
                    quantity=costing.quantize_quantity(line.quantity),
                    unit_price=costing.to_decimal(line.unit_price),
                )
                items.append(await self.uow.goods_receipt_items.add(item))
            await self.uow.commit()
        return receipt, items

    async def get_goods_receipt(
        self, receipt_id: int
    ) -> Tuple[inv_models.GoodsReceipt, List[inv_models.GoodsReceiptItem]]:
        receipt = await self.uow.goods_receipts.get(receipt_id)
        if receipt is None:
            raise NotFoundError(f"Goods receipt {receipt_id} not found.")
        return receipt, await self.uow.goods_receipt_items.list_by_receipt(receipt_id)

    async def post_goods_receipt(self, receipt_id: int) -> List[inv_models.InventoryLot]:
        """
        입고 전표를 처리하여 품목별 로트를 생성합니다.

        헤더의 물품대금(외화 × 환율)과 관세/운송비/기타비용을 배부 정책에 따라 품목에 나누고,
        품목마다 로트와 매입 기록(IMPORT_AUTO)을 만든 뒤 전표에 처리 일시를 기록합니다.
        """
        async with self.uow:
            receipt = await self.uow.goods_receipts.get(receipt_id, for_update=True)
            if receipt is None:
                raise NotFoundError(f"Goods receipt {receipt_id} not found.")
            if receipt.posted_at is not None:
                raise BusinessRuleError(
                    f"Goods receipt {receipt.receipt_no} was already posted at {receipt.posted_at}."
                )
            items = await self.uow.goods_receipt_items.list_by_receipt(receipt.id)
            if not items:
                raise BusinessRuleError(f"Goods receipt {receipt.receipt_no} has no items.")

            header = {
                "goods_amount": costing.quantize_cost(receipt.goods_amount * receipt.exchange_rate),
                "duty_amount": receipt.duty_amount,
                "domestic_freight": receipt.domestic_freight,
                "other_cost": receipt.other_cost,
            }
            lines = [(item.quantity, item.quantity * item.unit_price) for item in items]
            splits = costing.split_landed_costs(header, lines, policy=self.landed_cost_policy)

            propagator = CostPropagator(self.uow)
            lots = []
            for sequence, (item, costs) in enumerate(zip(items, splits), start=1):
                lot = await self._receive(
                    product_id=item.product_id,
                    item_id=None,
                    lot_code=f"{receipt.receipt_no}-{sequence}",
                    received_date=receipt.received_date,
                    quantity=item.quantity,
                    costs=costs,
                    storage_location=receipt.storage_location,
                    receipt_id=receipt.id,
                    vendor_id=receipt.vendor_id,
                    salesperson_id=receipt.salesperson_id,
                )
                await propagator.record_receipt_purchase(lot, receipt)
                lots.append(lot)

            receipt.posted_at = datetime.now(UTC)
            await self.uow.goods_receipts.save(receipt)
            await self.uow.commit()

        logger.info(
            "Goods receipt %s posted: %d lots (%s policy)", receipt.receipt_no, len(lots), self.landed_cost_policy
        )
        return lots


def get_inbound_receiver(uow: AbstractUnitOfWork = Depends(get_uow)) -> InboundReceiver:
    """
    FastAPI 의존성 주입을 통해 InboundReceiver 인스턴스를 제공합니다.
    """
    return InboundReceiver(uow)
