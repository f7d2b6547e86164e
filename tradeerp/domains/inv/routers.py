# tradeerp/domains/inv/routers.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from tradeerp.core import dependencies as deps
from tradeerp.core.exceptions import NotFoundError
from tradeerp.core.unit_of_work import AbstractUnitOfWork
from tradeerp.domains.inv import schemas as inv_schemas
from tradeerp.services.inbound_receiver import InboundReceiver, get_inbound_receiver
from tradeerp.services.inventory_query import InventoryQueryService, get_inventory_query_service
from tradeerp.services.outbound_allocator import OutboundAllocator, get_outbound_allocator
from tradeerp.services.warehouse_fee_distributor import (
    WarehouseFeeDistributor,
    get_warehouse_fee_distributor,
)

router = APIRouter(
    tags=["Inventory Costing (재고 원가 관리)"],
    responses={404: {"description": "Not found"}},
)


def _receipt_response(receipt, items) -> inv_schemas.GoodsReceiptResponse:
    response = inv_schemas.GoodsReceiptResponse.model_validate(receipt)
    response.items = [inv_schemas.GoodsReceiptItemResponse.model_validate(item) for item in items]
    return response


# =============================================================================
# 1. inv.inventory_lots 엔드포인트
# =============================================================================
@router.post(
    "/lots",
    response_model=inv_schemas.LotResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_lot(
    lot_create: inv_schemas.LotCreate,
    receiver: InboundReceiver = Depends(get_inbound_receiver),
):
    """입고 로트를 생성합니다. 로트 코드를 생략하면 LOT-YYYYMMDD-NNN 형식으로 생성됩니다."""
    return await receiver.receive(lot_create)


@router.get("/lots", response_model=List[inv_schemas.LotResponse])
async def read_lots(
    product_id: Optional[int] = None,
    item_id: Optional[int] = None,
    storage_location: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    uow: AbstractUnitOfWork = Depends(deps.get_uow),
):
    """로트 목록을 입고일 오름차순으로 조회합니다."""
    return await uow.lots.get_filtered(
        filters={"product_id": product_id, "item_id": item_id, "storage_location": storage_location},
        order_by_field="received_date",
        order_desc=False,
        skip=skip,
        limit=limit,
    )


@router.get("/lots/{lot_id}", response_model=inv_schemas.LotResponse)
async def read_lot(lot_id: int, uow: AbstractUnitOfWork = Depends(deps.get_uow)):
    db_lot = await uow.lots.get(lot_id)
    if db_lot is None:
        raise NotFoundError(f"Lot {lot_id} not found.")
    return db_lot


@router.delete("/lots/{lot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lot(lot_id: int, receiver: InboundReceiver = Depends(get_inbound_receiver)):
    """한 번도 출고되지 않은 로트를 삭제합니다."""
    await receiver.delete_lot(lot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/lots/bulk_delete", response_model=inv_schemas.LotBulkDeleteResult)
async def bulk_delete_lots(
    bulk_delete: inv_schemas.LotBulkDelete,
    receiver: InboundReceiver = Depends(get_inbound_receiver),
):
    """여러 로트를 한 번에 삭제합니다. 하나라도 삭제할 수 없으면 아무것도 삭제되지 않습니다."""
    deleted = await receiver.delete_lots(bulk_delete.lot_ids)
    return inv_schemas.LotBulkDeleteResult(deleted_lot_ids=deleted)


# =============================================================================
# 2. inv.goods_receipts 엔드포인트
# =============================================================================
@router.post(
    "/goods_receipts",
    response_model=inv_schemas.GoodsReceiptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_goods_receipt(
    receipt_create: inv_schemas.GoodsReceiptCreate,
    receiver: InboundReceiver = Depends(get_inbound_receiver),
):
    receipt, items = await receiver.create_goods_receipt(receipt_create)
    return _receipt_response(receipt, items)


@router.get("/goods_receipts/{receipt_id}", response_model=inv_schemas.GoodsReceiptResponse)
async def read_goods_receipt(receipt_id: int, receiver: InboundReceiver = Depends(get_inbound_receiver)):
    receipt, items = await receiver.get_goods_receipt(receipt_id)
    return _receipt_response(receipt, items)


@router.post("/goods_receipts/{receipt_id}/post", response_model=inv_schemas.GoodsReceiptPostResult)
async def post_goods_receipt(receipt_id: int, receiver: InboundReceiver = Depends(get_inbound_receiver)):
    """입고 전표를 처리하여 품목별 로트를 생성합니다. 부대비용은 배부 정책에 따라 나뉩니다."""
    lots = await receiver.post_goods_receipt(receipt_id)
    return inv_schemas.GoodsReceiptPostResult(
        receipt_id=receipt_id,
        lots=[inv_schemas.LotResponse.model_validate(lot) for lot in lots],
    )


# =============================================================================
# 3. 출고 (FIFO) / 이동 기록 엔드포인트
# =============================================================================
@router.post(
    "/outbound",
    response_model=inv_schemas.OutboundResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_outbound(
    outbound_create: inv_schemas.OutboundCreate,
    allocator: OutboundAllocator = Depends(get_outbound_allocator),
):
    """
    선입선출로 재고를 출고합니다.
    sale_context가 있으면 출고 전체에 대한 매출(FIFO)을 한 건 생성합니다.
    """
    return await allocator.allocate(outbound_create)


@router.get("/movements", response_model=List[inv_schemas.MovementResponse])
async def read_movements(
    product_id: Optional[int] = None,
    movement_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    allocator: OutboundAllocator = Depends(get_outbound_allocator),
):
    return await allocator.list_movements(
        product_id=product_id, movement_type=movement_type, skip=skip, limit=limit
    )


@router.delete("/outbound/{movement_id}", response_model=inv_schemas.OutboundReversal)
async def reverse_outbound(movement_id: int, allocator: OutboundAllocator = Depends(get_outbound_allocator)):
    """출고를 취소하여 로트 잔량을 복원합니다."""
    return await allocator.reverse(movement_id)


@router.post("/outbound/bulk_reverse", response_model=List[inv_schemas.OutboundReversal])
async def bulk_reverse_outbound(
    bulk_reverse: inv_schemas.OutboundBulkReverse,
    allocator: OutboundAllocator = Depends(get_outbound_allocator),
):
    return await allocator.reverse_many(bulk_reverse.movement_ids)


# =============================================================================
# 4. inv.warehouse_fees 엔드포인트
# =============================================================================
@router.post(
    "/warehouse_fees",
    response_model=inv_schemas.WarehouseFeeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_warehouse_fee(
    fee_create: inv_schemas.WarehouseFeeCreate,
    distributor: WarehouseFeeDistributor = Depends(get_warehouse_fee_distributor),
):
    return await distributor.create_fee(fee_create)


@router.get("/warehouse_fees", response_model=List[inv_schemas.WarehouseFeeResponse])
async def read_warehouse_fees(
    skip: int = 0,
    limit: int = 100,
    distributor: WarehouseFeeDistributor = Depends(get_warehouse_fee_distributor),
):
    return await distributor.list_fees(skip=skip, limit=limit)


@router.get("/warehouse_fees/{year_month}", response_model=inv_schemas.WarehouseFeeDetail)
async def read_warehouse_fee(
    year_month: str,
    distributor: WarehouseFeeDistributor = Depends(get_warehouse_fee_distributor),
):
    """월 보관료와 로트별 배부 내역을 조회합니다."""
    return await distributor.get_fee(year_month)


@router.put("/warehouse_fees/{year_month}", response_model=inv_schemas.WarehouseFeeResponse)
async def update_warehouse_fee(
    year_month: str,
    fee_update: inv_schemas.WarehouseFeeUpdate,
    distributor: WarehouseFeeDistributor = Depends(get_warehouse_fee_distributor),
):
    """배부 전의 월 보관료만 수정할 수 있습니다."""
    return await distributor.update_fee(year_month, fee_update)


@router.delete("/warehouse_fees/{year_month}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_warehouse_fee(
    year_month: str,
    distributor: WarehouseFeeDistributor = Depends(get_warehouse_fee_distributor),
):
    await distributor.delete_fee(year_month)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/warehouse_fees/{year_month}/distribute",
    response_model=List[inv_schemas.WarehouseFeeDistributionResponse],
)
async def distribute_warehouse_fee(
    year_month: str,
    distribute: Optional[inv_schemas.WarehouseFeeDistribute] = None,
    distributor: WarehouseFeeDistributor = Depends(get_warehouse_fee_distributor),
):
    """
    월 보관료를 창고 로트에 (잔량 × 보관 일수) 비중으로 배부합니다.
    한 달의 보관료는 한 번만 배부할 수 있습니다.
    """
    total_fee = distribute.total_fee if distribute is not None else None
    return await distributor.distribute(year_month, total_fee=total_fee)


# =============================================================================
# 5. 재고 조회 엔드포인트
# =============================================================================
@router.get("/inventory", response_model=List[inv_schemas.InventorySummary])
async def read_inventory(
    product_id: Optional[int] = None,
    storage_location: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    query_service: InventoryQueryService = Depends(get_inventory_query_service),
):
    """잔량이 있는 로트를 상품별로 집계합니다."""
    return await query_service.query(
        product_id=product_id, storage_location=storage_location, skip=skip, limit=limit
    )


@router.get("/inventory/{product_id}", response_model=inv_schemas.ProductInventoryDetail)
async def read_product_inventory(
    product_id: int,
    storage_location: Optional[str] = None,
    query_service: InventoryQueryService = Depends(get_inventory_query_service),
):
    return await query_service.get_product_inventory(product_id, storage_location=storage_location)


@router.get("/inventory_valuation", response_model=inv_schemas.InventoryValuation)
async def read_inventory_valuation(
    storage_location: Optional[str] = None,
    query_service: InventoryQueryService = Depends(get_inventory_query_service),
):
    return await query_service.valuation(storage_location=storage_location)
