# tradeerp/domains/sales/routers.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from tradeerp.core import dependencies as deps
from tradeerp.core.exceptions import ValidationError
from tradeerp.core.unit_of_work import AbstractUnitOfWork
from tradeerp.domains.sales import models as sales_models
from tradeerp.domains.sales import schemas as sales_schemas
from tradeerp.services.cost_propagator import CostPropagator, get_cost_propagator

router = APIRouter(
    tags=["Sales Ledger (매입/매출 장부)"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "/sales_records",
    response_model=sales_schemas.SalesRecordResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_sales_record(
    sale_create: sales_schemas.SaleCreate,
    propagator: CostPropagator = Depends(get_cost_propagator),
):
    """
    수기 매출을 등록합니다.
    상품에 기본 매입처가 있으면 커밋 후 같은 수량의 연결 매입(SALES_AUTO)이 생성됩니다.
    """
    return await propagator.record_sale(sale_create)


@router.get("/sales_records", response_model=List[sales_schemas.SalesRecordResponse])
async def read_sales_records(
    record_type: Optional[str] = None,
    product_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
    uow: AbstractUnitOfWork = Depends(deps.get_uow),
):
    """장부 항목을 기록일 최신순으로 조회합니다."""
    if record_type is not None and record_type not in {t.value for t in sales_models.RecordType}:
        raise ValidationError(f"Unknown record_type {record_type!r}.", field="record_type")
    return await uow.sales_records.get_filtered(
        filters={"record_type": record_type, "product_id": product_id},
        date_range_field="record_date",
        start_date=start_date,
        end_date=end_date,
        order_by_field="record_date",
        order_desc=True,
        skip=skip,
        limit=limit,
    )


@router.delete("/sales_records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_sales_record(record_id: int, propagator: CostPropagator = Depends(get_cost_propagator)):
    """장부 항목을 삭제합니다. 매출을 삭제하면 자동 생성된 연결 매입도 함께 삭제됩니다."""
    await propagator.delete_sales_record(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sales_records/{record_id}/link_purchase", response_model=sales_schemas.SalesRecordResponse)
async def link_purchase(
    record_id: int,
    link: sales_schemas.LinkPurchase,
    propagator: CostPropagator = Depends(get_cost_propagator),
):
    return await propagator.link_purchase(record_id, link.purchase_id)


@router.get("/products/{product_id}/cost", response_model=sales_schemas.ProductCostResponse)
async def read_product_cost(
    product_id: int,
    manual_cost: Optional[float] = None,
    propagator: CostPropagator = Depends(get_cost_propagator),
):
    """매출 원가에 사용될 상품 단위 원가와 그 출처(CURRENT/DEFAULT/MANUAL/NONE)를 조회합니다."""
    return await propagator.get_product_cost(product_id, manual_cost=manual_cost)
