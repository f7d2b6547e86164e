# tradeerp/domains/inv/tasks.py

"""
'inv' 도메인의 ARQ 백그라운드 작업입니다.

보관료 배부는 스스로 예약되지 않습니다. 운영자가 작업을 큐에 넣거나 CLI 스크립트를 실행합니다.
"""

import logging
from typing import Any, Dict, Optional

from tradeerp.core.database import get_async_session_context
from tradeerp.core.exceptions import DomainError
from tradeerp.core.unit_of_work import SqlModelUnitOfWork
from tradeerp.domains.inv import models as inv_models
from tradeerp.services.cost_propagator import CostPropagator
from tradeerp.services.warehouse_fee_distributor import WarehouseFeeDistributor

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def distribute_warehouse_fee_task(
    ctx: Dict[str, Any], year_month: str, total_fee: Optional[float] = None
) -> Dict[str, Any]:
    """월 보관료를 창고 로트에 배부합니다."""
    logger.info("백그라운드 작업 시작: %s 보관료 배부", year_month)
    async with get_async_session_context() as db:
        uow = SqlModelUnitOfWork(db)
        try:
            distributions = await WarehouseFeeDistributor(uow).distribute(year_month, total_fee=total_fee)
        except DomainError as e:
            logger.error("보관료 배부 실패 (%s): %s", year_month, e.message)
            return {"status": "error", "message": e.message}

    total = sum(float(row.distributed_fee) for row in distributions)
    logger.info("작업 완료! %s 보관료 %s를 %d개 로트에 배부함.", year_month, total, len(distributions))
    return {"status": "ok", "lot_count": len(distributions), "total_fee": total}


async def refresh_product_costs_task(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """창고 잔량이 있는 모든 상품의 현재 원가를 다시 계산합니다."""
    async with get_async_session_context() as db:
        uow = SqlModelUnitOfWork(db)
        propagator = CostPropagator(uow)
        async with uow:
            lots = await uow.lots.get_open_lots(storage_location=inv_models.StorageLocation.WAREHOUSE.value)
            product_ids = sorted({lot.product_id for lot in lots if lot.product_id is not None})
            for product_id in product_ids:
                await propagator.refresh_product_cost(product_id)
            await uow.commit()

    logger.info("작업 완료! 총 %d개 상품의 현재 원가를 갱신함.", len(product_ids))
    return {"status": "ok", "updated_count": len(product_ids)}
