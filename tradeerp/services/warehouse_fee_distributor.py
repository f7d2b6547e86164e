# tradeerp/services/warehouse_fee_distributor.py

"""
창고 보관료 배부(Warehouse Fee Distributor) 서비스 모듈입니다.

월별 보관료 총액을 기준일 현재 창고에 잔량이 있는 로트에 (잔량 × 보관 일수) 가중치로 나누어
각 로트의 누적 보관료에 더합니다. 한 달의 보관료는 한 번만 배부할 수 있습니다.
"""

import logging
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import List, Optional

from fastapi import Depends

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
from tradeerp.services.cost_propagator import CostPropagator

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _validate_year_month(year_month: str) -> str:
    try:
        costing.parse_year_month(year_month)
    except ValueError as e:
        raise ValidationError(str(e), field="year_month") from e
    return year_month


def _positive_fee(value) -> Decimal:
    total_fee = costing.to_decimal(value)
    if total_fee <= 0:
        raise ValidationError("total_fee must be greater than 0.", field="total_fee")
    return total_fee


class WarehouseFeeDistributor:
    def __init__(self, uow: AbstractUnitOfWork):
        self.uow = uow

    # ------------------------------------------------------------------
    # 보관료 레코드 관리
    # ------------------------------------------------------------------
    async def create_fee(self, obj_in: inv_schemas.WarehouseFeeCreate) -> inv_models.WarehouseFee:
        year_month = _validate_year_month(obj_in.year_month)
        total_fee = _positive_fee(obj_in.total_fee)
        async with self.uow:
            if await self.uow.warehouse_fees.get_by_year_month(year_month) is not None:
                raise IntegrityConflictError(f"Warehouse fee for {year_month} already exists.")
            fee = inv_models.WarehouseFee(year_month=year_month, total_fee=total_fee, notes=obj_in.notes)
            fee = await self.uow.warehouse_fees.add(fee)
            await self.uow.commit()
        logger.info("Warehouse fee registered: %s total=%s", year_month, total_fee)
        return fee

    async def update_fee(
        self, year_month: str, obj_in: inv_schemas.WarehouseFeeUpdate
    ) -> inv_models.WarehouseFee:
        _validate_year_month(year_month)
        async with self.uow:
            fee = await self._get_undistributed(year_month)
            update_data = obj_in.model_dump(exclude_unset=True)
            if update_data.get("total_fee") is not None:
                fee.total_fee = _positive_fee(update_data["total_fee"])
            if "notes" in update_data:
                fee.notes = update_data["notes"]
            await self.uow.warehouse_fees.save(fee)
            await self.uow.commit()
        return fee

    async def delete_fee(self, year_month: str) -> None:
        _validate_year_month(year_month)
        async with self.uow:
            fee = await self._get_undistributed(year_month)
            await self.uow.warehouse_fees.delete(fee)
            await self.uow.commit()
        logger.info("Warehouse fee deleted: %s", year_month)

    async def get_fee(self, year_month: str) -> inv_schemas.WarehouseFeeDetail:
        _validate_year_month(year_month)
        fee = await self.uow.warehouse_fees.get_by_year_month(year_month)
        if fee is None:
            raise NotFoundError(f"Warehouse fee for {year_month} not found.")
        distributions = await self.uow.fee_distributions.list_by_fee(fee.id)
        detail = inv_schemas.WarehouseFeeDetail.model_validate(fee)
        detail.distributions = [
            inv_schemas.WarehouseFeeDistributionResponse.model_validate(row) for row in distributions
        ]
        detail.lot_count = len(distributions)
        return detail

    async def list_fees(self, *, skip: int = 0, limit: int = 100) -> List[inv_models.WarehouseFee]:
        return await self.uow.warehouse_fees.list_fees(skip=skip, limit=limit)

    async def _get_undistributed(self, year_month: str) -> inv_models.WarehouseFee:
        fee = await self.uow.warehouse_fees.get_by_year_month(year_month, for_update=True)
        if fee is None:
            raise NotFoundError(f"Warehouse fee for {year_month} not found.")
        if fee.distributed_at is not None:
            raise BusinessRuleError(
                f"Warehouse fee for {year_month} was distributed at {fee.distributed_at} and can no longer change."
            )
        return fee

    # ------------------------------------------------------------------
    # 배부
    # ------------------------------------------------------------------
    async def distribute(
        self,
        year_month: str,
        total_fee: Optional[float] = None,
        today: Optional[date] = None,
    ) -> List[inv_models.WarehouseFeeDistribution]:
        """
        월 보관료를 창고 로트에 배부합니다.

        Args:
            year_month: 'YYYY-MM'.
            total_fee: 주어지면 배부 직전에 등록된 총액을 이 값으로 확정합니다.
            today: 기준일 계산용 오늘 날짜 (테스트 주입용).

        Raises:
            ValidationError: 월 형식 오류, 0 이하 총액.
            NotFoundError: 해당 월 보관료 미등록.
            BusinessRuleError: 이미 배부됨, 배부 대상 로트 없음.
        """
        _validate_year_month(year_month)
        override = _positive_fee(total_fee) if total_fee is not None else None
        base_date = costing.distribution_base_date(year_month, today or date.today())

        async with self.uow:
            fee = await self._get_undistributed(year_month)
            if override is not None:
                fee.total_fee = override

            warehouse = inv_models.StorageLocation.WAREHOUSE.value
            lots = await self.uow.lots.get_open_lots(
                storage_location=warehouse, received_on_or_before=base_date, for_update=True
            )
            if not lots:
                if await self.uow.lots.get_open_lots(storage_location=warehouse):
                    raise BusinessRuleError(
                        f"No warehouse lots were received on or before {base_date} for {year_month}."
                    )
                raise BusinessRuleError("There are no open warehouse lots to distribute the fee to.")

            days = [costing.storage_days(lot.received_date, base_date) for lot in lots]
            weights = [lot.quantity_remaining * day for lot, day in zip(lots, days)]
            shares = costing.allocate_proportionally(fee.total_fee, weights)

            distributions = []
            product_ids = []
            for lot, day, weight, share in zip(lots, days, weights, shares):
                distribution = inv_models.WarehouseFeeDistribution(
                    warehouse_fee_id=fee.id,
                    lot_id=lot.id,
                    distributed_fee=share,
                    quantity_at_time=lot.quantity_remaining,
                    storage_days=day,
                    weight=weight,
                )
                distributions.append(await self.uow.fee_distributions.add(distribution))
                lot.warehouse_fee += share
                await self.uow.lots.save(lot)
                if lot.product_id is not None and lot.product_id not in product_ids:
                    product_ids.append(lot.product_id)

            fee.distributed_at = datetime.now(UTC)
            await self.uow.warehouse_fees.save(fee)

            propagator = CostPropagator(self.uow)
            for product_id in product_ids:
                await propagator.refresh_product_cost(product_id, today=base_date)
            await self.uow.commit()

        logger.info(
            "Warehouse fee %s distributed: total=%s lots=%d base_date=%s",
            year_month, fee.total_fee, len(distributions), base_date,
        )
        return distributions


def get_warehouse_fee_distributor(uow: AbstractUnitOfWork = Depends(get_uow)) -> WarehouseFeeDistributor:
    """
    FastAPI 의존성 주입을 통해 WarehouseFeeDistributor 인스턴스를 제공합니다.
    """
    return WarehouseFeeDistributor(uow)
