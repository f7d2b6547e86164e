# tradeerp/domains/inv/crud.py

"""
'inv' 도메인의 저장소(Repository) 클래스를 정의하는 모듈입니다.

로트 원장(Lot Ledger)의 조회 조건(선입선출 순서, 행 잠금)은 모두 여기에 모여 있고,
수량/원가를 바꾸는 업무 로직은 services 계층이 담당합니다.
"""

from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlmodel import select

from tradeerp.core.crud_base import CRUDBase
from tradeerp.domains.inv import models as inv_models


# =============================================================================
# 1. inv.inventory_lots
# =============================================================================
class InventoryLotCRUD(CRUDBase[inv_models.InventoryLot]):
    async def get_by_lot_code(self, lot_code: str) -> Optional[inv_models.InventoryLot]:
        return await self.get_by_attribute(attribute="lot_code", value=lot_code)

    async def count_with_code_prefix(self, prefix: str) -> int:
        """자동 로트 코드 일련번호 계산용: 접두사가 같은 로트 수."""
        statement = select(func.count()).select_from(inv_models.InventoryLot).where(
            inv_models.InventoryLot.lot_code.startswith(prefix)
        )
        result = await self.db.execute(statement)
        return int(result.scalar_one())

    async def get_many(self, ids: Sequence[int], *, for_update: bool = False) -> List[inv_models.InventoryLot]:
        if not ids:
            return []
        statement = (
            select(inv_models.InventoryLot)
            .where(inv_models.InventoryLot.id.in_(list(ids)))
            .order_by(inv_models.InventoryLot.id)
        )
        if for_update:
            statement = statement.with_for_update()
        result = await self.db.execute(statement)
        return list(result.scalars().all())

    async def get_open_lots(
        self,
        *,
        product_id: Optional[int] = None,
        item_id: Optional[int] = None,
        storage_location: Optional[str] = None,
        received_on_or_before: Optional[date] = None,
        for_update: bool = False,
    ) -> List[inv_models.InventoryLot]:
        """
        잔량이 남은 로트를 선입선출 순서(입고일 오름차순, ID 오름차순)로 조회합니다.
        for_update=True면 선택된 로트에 행 잠금을 걸어 동시 출고가 같은 수량을 소비하지 못하게 합니다.
        """
        lot = inv_models.InventoryLot
        statement = select(lot).where(lot.quantity_remaining > 0)
        if product_id is not None:
            statement = statement.where(lot.product_id == product_id)
        if item_id is not None:
            statement = statement.where(lot.item_id == item_id)
        if storage_location is not None:
            statement = statement.where(lot.storage_location == storage_location)
        if received_on_or_before is not None:
            statement = statement.where(lot.received_date <= received_on_or_before)
        statement = statement.order_by(lot.received_date.asc(), lot.id.asc())
        if for_update:
            statement = statement.with_for_update()
        result = await self.db.execute(statement)
        return list(result.scalars().all())


# =============================================================================
# 2. inv.inventory_movements
# =============================================================================
class InventoryMovementCRUD(CRUDBase[inv_models.InventoryMovement]):
    async def get_many(
        self, ids: Sequence[int], *, for_update: bool = False
    ) -> List[inv_models.InventoryMovement]:
        """for_update=True면 이동 기록 행을 잠가 같은 출고의 동시 취소가 잔량을 두 번 되돌리지 못하게 합니다."""
        if not ids:
            return []
        statement = (
            select(inv_models.InventoryMovement)
            .where(inv_models.InventoryMovement.id.in_(list(ids)))
            .order_by(inv_models.InventoryMovement.id)
        )
        if for_update:
            statement = statement.with_for_update()
        result = await self.db.execute(statement)
        return list(result.scalars().all())

    async def list_by_lot(self, lot_id: int) -> List[inv_models.InventoryMovement]:
        statement = (
            select(inv_models.InventoryMovement)
            .where(inv_models.InventoryMovement.lot_id == lot_id)
            .order_by(inv_models.InventoryMovement.id)
        )
        result = await self.db.execute(statement)
        return list(result.scalars().all())

    async def count_by_sales_record(self, sales_record_id: int) -> int:
        statement = select(func.count()).select_from(inv_models.InventoryMovement).where(
            inv_models.InventoryMovement.sales_record_id == sales_record_id
        )
        result = await self.db.execute(statement)
        return int(result.scalar_one())

    async def list_movements(
        self,
        *,
        product_id: Optional[int] = None,
        movement_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[inv_models.InventoryMovement]:
        movement = inv_models.InventoryMovement
        statement = select(movement)
        if product_id is not None:
            statement = statement.join(
                inv_models.InventoryLot, inv_models.InventoryLot.id == movement.lot_id
            ).where(inv_models.InventoryLot.product_id == product_id)
        if movement_type is not None:
            statement = statement.where(movement.movement_type == movement_type)
        statement = statement.order_by(movement.movement_date.desc(), movement.id.desc()).offset(skip).limit(limit)
        result = await self.db.execute(statement)
        return list(result.scalars().all())


# =============================================================================
# 3. inv.warehouse_fees / inv.warehouse_fee_distributions
# =============================================================================
class WarehouseFeeCRUD(CRUDBase[inv_models.WarehouseFee]):
    async def get_by_year_month(
        self, year_month: str, *, for_update: bool = False
    ) -> Optional[inv_models.WarehouseFee]:
        statement = select(inv_models.WarehouseFee).where(inv_models.WarehouseFee.year_month == year_month)
        if for_update:
            statement = statement.with_for_update()
        result = await self.db.execute(statement)
        return result.scalar_one_or_none()

    async def list_fees(self, *, skip: int = 0, limit: int = 100) -> List[inv_models.WarehouseFee]:
        statement = (
            select(inv_models.WarehouseFee)
            .order_by(inv_models.WarehouseFee.year_month.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(statement)
        return list(result.scalars().all())


class WarehouseFeeDistributionCRUD(CRUDBase[inv_models.WarehouseFeeDistribution]):
    async def list_by_fee(self, warehouse_fee_id: int) -> List[inv_models.WarehouseFeeDistribution]:
        statement = (
            select(inv_models.WarehouseFeeDistribution)
            .where(inv_models.WarehouseFeeDistribution.warehouse_fee_id == warehouse_fee_id)
            .order_by(inv_models.WarehouseFeeDistribution.id)
        )
        result = await self.db.execute(statement)
        return list(result.scalars().all())

    async def list_by_lot(self, lot_id: int) -> List[inv_models.WarehouseFeeDistribution]:
        statement = (
            select(inv_models.WarehouseFeeDistribution)
            .where(inv_models.WarehouseFeeDistribution.lot_id == lot_id)
            .order_by(inv_models.WarehouseFeeDistribution.id)
        )
        result = await self.db.execute(statement)
        return list(result.scalars().all())


# =============================================================================
# 4. inv.goods_receipts / inv.goods_receipt_items
# =============================================================================
class GoodsReceiptCRUD(CRUDBase[inv_models.GoodsReceipt]):
    async def get_by_receipt_no(self, receipt_no: str) -> Optional[inv_models.GoodsReceipt]:
        return await self.get_by_attribute(attribute="receipt_no", value=receipt_no)


class GoodsReceiptItemCRUD(CRUDBase[inv_models.GoodsReceiptItem]):
    async def list_by_receipt(self, receipt_id: int) -> List[inv_models.GoodsReceiptItem]:
        statement = (
            select(inv_models.GoodsReceiptItem)
            .where(inv_models.GoodsReceiptItem.receipt_id == receipt_id)
            .order_by(inv_models.GoodsReceiptItem.id)
        )
        result = await self.db.execute(statement)
        return list(result.scalars().all())
