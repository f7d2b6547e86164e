# tradeerp/services/cost_propagator.py

"""
원가 전파(Cost Propagator) 서비스 모듈입니다.

- 매출 원가 결정: 상품 현재 원가 → 기본 원가(기본 매입가) → 수기 원가 → 0 순서.
- 창고 로트 기준 상품 현재 원가 갱신과 월간 원가 이력 upsert.
- 매출/매입 장부 항목 생성, 삭제(매출 → 자동 매입 방향으로만 연쇄), 수동 연결.
- 커밋 후 이벤트 구독: 입고 시 자동 매입(INBOUND_AUTO), 매출 시 연결 매입(SALES_AUTO).
"""

import logging
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Optional, Tuple

from fastapi import Depends

from tradeerp.core.dependencies import get_uow
from tradeerp.core.events import event_bus
from tradeerp.core.exceptions import BusinessRuleError, NotFoundError, ValidationError
from tradeerp.core.unit_of_work import AbstractUnitOfWork
from tradeerp.domains.inv import costing
from tradeerp.domains.inv import models as inv_models
from tradeerp.domains.mst import models as mst_models
from tradeerp.domains.sales import models as sales_models
from tradeerp.domains.sales import schemas as sales_schemas
from tradeerp.services.events import LotReceived, SaleRecorded

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

COST_SOURCE_CURRENT = "CURRENT"
COST_SOURCE_DEFAULT = "DEFAULT"
COST_SOURCE_MANUAL = "MANUAL"
COST_SOURCE_NONE = "NONE"


class CostPropagator:
    """
    매출 원가 결정과 장부 항목 연결을 담당하는 서비스 클래스입니다.

    이름이 `_`로 시작하지 않는 공개 메서드 중 트랜잭션을 여는 것은
    record_sale, delete_sales_record, link_purchase 뿐이며,
    나머지는 호출한 서비스의 트랜잭션 안에서 실행됩니다.
    """

    def __init__(self, uow: AbstractUnitOfWork):
        self.uow = uow

    # ------------------------------------------------------------------
    # 원가 결정
    # ------------------------------------------------------------------
    @staticmethod
    def resolve_unit_cost(
        product: mst_models.Product, manual_cost: Optional[Decimal] = None
    ) -> Tuple[Decimal, str]:
        if product.current_cost is not None:
            return product.current_cost, COST_SOURCE_CURRENT
        if product.default_purchase_price is not None:
            return product.default_purchase_price, COST_SOURCE_DEFAULT
        if manual_cost is not None:
            return manual_cost, COST_SOURCE_MANUAL
        return costing.ZERO, COST_SOURCE_NONE

    async def get_product_cost(
        self, product_id: int, manual_cost: Optional[float] = None
    ) -> sales_schemas.ProductCostResponse:
        product = await self._get_product(product_id)
        manual = costing.to_decimal(manual_cost) if manual_cost is not None else None
        unit_cost, source = self.resolve_unit_cost(product, manual)
        return sales_schemas.ProductCostResponse(
            product_id=product.id,
            unit_cost=unit_cost,
            source=source,
            last_cost_updated_at=product.last_cost_updated_at,
        )

    async def resolve_sale_price(
        self, product: mst_models.Product, vendor_id: Optional[int], on_date: date
    ) -> Decimal:
        """거래처 단가(적용일 이전 최신) → 상품 기본 판매가 → 0."""
        if vendor_id is not None:
            price = await self.uow.vendor_prices.get_effective(
                vendor_id=vendor_id, product_id=product.id, on_date=on_date
            )
            if price is not None and price.sales_price is not None:
                return price.sales_price
        if product.default_sales_price is not None:
            return product.default_sales_price
        return costing.ZERO

    async def refresh_product_cost(self, product_id: int, today: Optional[date] = None) -> Optional[Decimal]:
        """
        창고(WAREHOUSE) 잔량 로트 기준으로 상품 현재 원가를 다시 계산합니다.

        현재 원가 = Σ(잔량 × 단가 + 누적 보관료) / Σ잔량.
        잔량이 있는 창고 로트가 없으면 기존 값을 그대로 둡니다.
        """
        product = await self.uow.products.get(product_id)
        if product is None:
            return None
        lots = await self.uow.lots.get_open_lots(
            product_id=product_id, storage_location=inv_models.StorageLocation.WAREHOUSE.value
        )
        quantity = sum((lot.quantity_remaining for lot in lots), costing.ZERO)
        if quantity <= 0:
            return product.current_cost

        base_total = sum((lot.quantity_remaining * lot.unit_cost for lot in lots), costing.ZERO)
        fee_total = sum((lot.warehouse_fee for lot in lots), costing.ZERO)
        current_cost = costing.quantize_cost((base_total + fee_total) / quantity)

        product.current_cost = current_cost
        product.last_cost_updated_at = datetime.now(UTC)
        await self.uow.products.save(product)

        year_month = costing.year_month_of(today or date.today())
        monthly = await self.uow.monthly_costs.get_by_product_month(product_id=product_id, year_month=year_month)
        if monthly is None:
            monthly = mst_models.ProductMonthlyCost(product_id=product_id, year_month=year_month)
            monthly.base_cost = costing.quantize_cost(base_total / quantity)
            monthly.storage_cost = costing.quantize_cost(fee_total / quantity)
            monthly.total_cost = current_cost
            monthly.quantity = quantity
            await self.uow.monthly_costs.add(monthly)
        else:
            monthly.base_cost = costing.quantize_cost(base_total / quantity)
            monthly.storage_cost = costing.quantize_cost(fee_total / quantity)
            monthly.total_cost = current_cost
            monthly.quantity = quantity
            await self.uow.monthly_costs.save(monthly)
        return current_cost

    # ------------------------------------------------------------------
    # 장부 항목 생성
    # ------------------------------------------------------------------
    async def record_sale(self, obj_in: sales_schemas.SaleCreate) -> sales_models.SalesRecord:
        """수기 매출을 등록합니다. 커밋 후 연결 매입 생성 이벤트가 발행됩니다."""
        quantity = costing.quantize_quantity(obj_in.quantity)
        unit_price = costing.to_decimal(obj_in.unit_price)
        if quantity <= 0:
            raise ValidationError("quantity must be greater than 0.", field="quantity")
        if unit_price < 0:
            raise ValidationError("unit_price must not be negative.", field="unit_price")
        manual_cost = None
        if obj_in.manual_cost is not None:
            manual_cost = costing.to_decimal(obj_in.manual_cost)
            if manual_cost < 0:
                raise ValidationError("manual_cost must not be negative.", field="manual_cost")
        override = None
        if obj_in.purchase_price_override is not None:
            override = costing.to_decimal(obj_in.purchase_price_override)
            if override < 0:
                raise ValidationError(
                    "purchase_price_override must not be negative.", field="purchase_price_override"
                )
        if obj_in.salesperson_id is None:
            raise ValidationError("salesperson_id is required for a sale.", field="salesperson_id")

        async with self.uow:
            product = await self._get_product(obj_in.product_id)
            unit_cost, source = self.resolve_unit_cost(product, manual_cost)
            amount = costing.quantize_cost(quantity * unit_price)
            cost = costing.quantize_cost(quantity * unit_cost)
            margin, margin_rate = costing.sales_margin(amount, cost)

            record = sales_models.SalesRecord(
                record_date=obj_in.record_date,
                record_type=sales_models.RecordType.SALES.value,
                product_id=product.id,
                vendor_id=obj_in.vendor_id,
                salesperson_id=obj_in.salesperson_id,
                category_id=product.category_id,
                item_name=obj_in.item_name or product.name,
                quantity=quantity,
                unit_price=unit_price,
                amount=amount,
                cost=cost,
                margin=margin,
                margin_rate=margin_rate,
                cost_source=sales_models.CostSource.MANUAL.value,
                notes=obj_in.notes,
            )
            record = await self.uow.sales_records.add(record)
            self.uow.collect(SaleRecorded(sales_record_id=record.id, purchase_price_override=override))
            await self.uow.commit()

        logger.info(
            "Sale recorded: id=%s product=%s qty=%s cost=%s (%s)",
            record.id, record.product_id, quantity, cost, source,
        )
        return record

    async def create_stock_sale_entry(
        self,
        *,
        product: mst_models.Product,
        quantity: Decimal,
        sale_date: date,
        vendor_id: int,
        salesperson_id: int,
        total_cost: Decimal,
        notes: Optional[str] = None,
    ) -> sales_models.SalesRecord:
        """선입선출 출고 전체에 대한 매출 한 건. 원가는 로트별 출고 원가의 합계입니다."""
        unit_price = await self.resolve_sale_price(product, vendor_id, sale_date)
        amount = costing.quantize_cost(quantity * unit_price)
        cost = costing.quantize_cost(total_cost)
        margin, margin_rate = costing.sales_margin(amount, cost)
        record = sales_models.SalesRecord(
            record_date=sale_date,
            record_type=sales_models.RecordType.SALES.value,
            product_id=product.id,
            vendor_id=vendor_id,
            salesperson_id=salesperson_id,
            category_id=product.category_id,
            item_name=product.name,
            quantity=quantity,
            unit_price=unit_price,
            amount=amount,
            cost=cost,
            margin=margin,
            margin_rate=margin_rate,
            cost_source=sales_models.CostSource.FIFO.value,
            notes=notes,
        )
        record = await self.uow.sales_records.add(record)
        self.uow.collect(SaleRecorded(sales_record_id=record.id, stock_backed=True))
        return record

    async def record_receipt_purchase(
        self, lot: inv_models.InventoryLot, receipt: inv_models.GoodsReceipt
    ) -> sales_models.SalesRecord:
        """입고 전표 처리 시 품목별 매입(IMPORT_AUTO)을 기록합니다."""
        product = await self._get_product(lot.product_id)
        record = self._purchase_entry(
            product=product,
            record_date=lot.received_date,
            quantity=lot.quantity_received,
            unit_price=lot.unit_cost,
            vendor_id=receipt.vendor_id,
            salesperson_id=receipt.salesperson_id,
            cost_source=sales_models.CostSource.IMPORT_AUTO,
        )
        record.source_lot_id = lot.id
        record.receipt_id = receipt.id
        record.notes = f"Goods receipt {receipt.receipt_no}"
        return await self.uow.sales_records.add(record)

    async def create_inbound_purchase(self, lot_id: int) -> Optional[sales_models.SalesRecord]:
        """
        입고된 로트의 상품에 기본 매입처가 있으면 로트 단가로 매입(INBOUND_AUTO)을 기록합니다.
        입고 전표가 이미 매입을 기록한 로트나 이미 자동 매입이 있는 로트는 건너뜁니다.
        """
        lot = await self.uow.lots.get(lot_id)
        if lot is None or lot.product_id is None:
            return None
        product = await self.uow.products.get(lot.product_id)
        if product is None or product.purchase_vendor_id is None:
            return None
        if lot.receipt_id is not None:
            if await self.uow.sales_records.list_by_receipt(
                lot.receipt_id, cost_source=sales_models.CostSource.IMPORT_AUTO.value
            ):
                return None
        if await self.uow.sales_records.list_by_source_lot(
            lot.id, cost_source=sales_models.CostSource.INBOUND_AUTO.value
        ):
            return None

        record = self._purchase_entry(
            product=product,
            record_date=lot.received_date,
            quantity=lot.quantity_received,
            unit_price=lot.unit_cost,
            vendor_id=product.purchase_vendor_id,
            salesperson_id=lot.salesperson_id,
            cost_source=sales_models.CostSource.INBOUND_AUTO,
        )
        record.source_lot_id = lot.id
        record.receipt_id = lot.receipt_id
        record.notes = f"Inbound lot {lot.lot_code}"
        record = await self.uow.sales_records.add(record)
        logger.info("Inbound-auto purchase %s created for lot %s", record.id, lot.lot_code)
        return record

    async def create_sale_linked_purchase(
        self, sales_id: int, purchase_price_override: Optional[Decimal] = None
    ) -> Optional[sales_models.SalesRecord]:
        """
        매출 상품에 기본 매입처와 매입 단가(또는 override)가 있으면 같은 수량의 연결 매입을 생성합니다.
        이미 연결된 매입이 있으면 새로 만들지 않습니다.
        """
        sale = await self.uow.sales_records.get(sales_id)
        if sale is None or sale.record_type != sales_models.RecordType.SALES.value or sale.product_id is None:
            return None
        if await self.uow.sales_records.list_linked_purchases(sale.id):
            return None
        product = await self.uow.products.get(sale.product_id)
        if product is None or product.purchase_vendor_id is None:
            return None
        unit_price = purchase_price_override
        if unit_price is None:
            unit_price = product.default_purchase_price
        if unit_price is None:
            return None

        record = self._purchase_entry(
            product=product,
            record_date=sale.record_date,
            quantity=sale.quantity,
            unit_price=unit_price,
            vendor_id=product.purchase_vendor_id,
            salesperson_id=sale.salesperson_id,
            cost_source=sales_models.CostSource.SALES_AUTO,
        )
        record.linked_sales_id = sale.id
        record.notes = f"Linked to sale {sale.id}"
        record = await self.uow.sales_records.add(record)
        logger.info("Sale-auto purchase %s linked to sale %s", record.id, sale.id)
        return record

    @staticmethod
    def _purchase_entry(
        *,
        product: mst_models.Product,
        record_date: date,
        quantity: Decimal,
        unit_price: Decimal,
        vendor_id: Optional[int],
        salesperson_id: Optional[int],
        cost_source: sales_models.CostSource,
    ) -> sales_models.SalesRecord:
        return sales_models.SalesRecord(
            record_date=record_date,
            record_type=sales_models.RecordType.PURCHASE.value,
            product_id=product.id,
            vendor_id=vendor_id,
            salesperson_id=salesperson_id,
            category_id=product.category_id,
            item_name=product.name,
            quantity=quantity,
            unit_price=unit_price,
            amount=costing.quantize_cost(quantity * unit_price),
            cost=costing.ZERO,
            margin=costing.ZERO,
            margin_rate=costing.ZERO,
            cost_source=cost_source.value,
        )

    # ------------------------------------------------------------------
    # 연결 / 삭제
    # ------------------------------------------------------------------
    async def link_purchase(self, sales_id: int, purchase_id: int) -> sales_models.SalesRecord:
        """기존 매입 항목을 매출에 수동으로 연결합니다. 이미 연결된 매입은 거부합니다."""
        async with self.uow:
            sale = await self.uow.sales_records.get(sales_id, for_update=True)
            if sale is None:
                raise NotFoundError(f"Sales record {sales_id} not found.")
            if sale.record_type != sales_models.RecordType.SALES.value:
                raise BusinessRuleError(f"Sales record {sales_id} is not a SALES entry.")
            purchase = await self.uow.sales_records.get(purchase_id, for_update=True)
            if purchase is None:
                raise NotFoundError(f"Sales record {purchase_id} not found.")
            if purchase.record_type != sales_models.RecordType.PURCHASE.value:
                raise BusinessRuleError(f"Sales record {purchase_id} is not a PURCHASE entry.")
            if purchase.linked_sales_id is not None:
                raise BusinessRuleError(
                    f"Purchase {purchase_id} is already linked to sale {purchase.linked_sales_id}."
                )
            purchase.linked_sales_id = sale.id
            await self.uow.sales_records.save(purchase)
            await self.uow.commit()
        return purchase

    async def delete_sales_record(self, record_id: int) -> None:
        async with self.uow:
            record = await self.uow.sales_records.get(record_id, for_update=True)
            if record is None:
                raise NotFoundError(f"Sales record {record_id} not found.")
            if record.record_type == sales_models.RecordType.SALES.value:
                if await self.uow.movements.count_by_sales_record(record.id):
                    raise BusinessRuleError(
                        f"Sales record {record_id} still has outbound movements; reverse the outbound instead."
                    )
            await self.remove_sales_record(record)
            await self.uow.commit()
        logger.info("Sales record %s deleted", record_id)

    async def remove_sales_record(self, record: sales_models.SalesRecord) -> None:
        """
        장부 항목을 삭제합니다. 매출이면 자동 생성된 연결 매입(SALES_AUTO)을 함께 삭제하고,
        수동으로 연결된 매입은 연결만 해제합니다. 매입 삭제는 매출에 영향을 주지 않습니다.
        """
        if record.record_type == sales_models.RecordType.SALES.value:
            for purchase in await self.uow.sales_records.list_linked_purchases(record.id):
                if purchase.cost_source == sales_models.CostSource.SALES_AUTO.value:
                    await self.uow.sales_records.delete(purchase)
                else:
                    purchase.linked_sales_id = None
                    await self.uow.sales_records.save(purchase)
        await self.uow.sales_records.delete(record)

    async def _get_product(self, product_id: Optional[int]) -> mst_models.Product:
        product = await self.uow.products.get(product_id) if product_id is not None else None
        if product is None:
            raise NotFoundError(f"Product {product_id} not found.")
        return product


# =============================================================================
# 커밋 후 이벤트 구독
# =============================================================================
@event_bus.subscribe(LotReceived)
async def link_inbound_purchase(uow: AbstractUnitOfWork, event: LotReceived) -> None:
    await CostPropagator(uow).create_inbound_purchase(event.lot_id)


@event_bus.subscribe(SaleRecorded)
async def link_sale_purchase(uow: AbstractUnitOfWork, event: SaleRecorded) -> None:
    # 재고 출고 매출의 매입은 입고 시점에 이미 기록되어 있음
    if event.stock_backed:
        return
    await CostPropagator(uow).create_sale_linked_purchase(
        event.sales_record_id, purchase_price_override=event.purchase_price_override
    )


def get_cost_propagator(uow: AbstractUnitOfWork = Depends(get_uow)) -> CostPropagator:
    """
    FastAPI 의존성 주입을 통해 CostPropagator 인스턴스를 제공합니다.
    """
    return CostPropagator(uow)
