# tests/domains/test_inv_n.py

"""
'inv' 도메인 (로트 원가 관리) API 엔드포인트에 대한 통합 테스트 모듈입니다.

- 로트 입고/조회/삭제
- 입고 전표 등록/처리
- 선입선출 출고와 출고 취소
- 월 보관료 등록/배부
- 재고 조회/평가
- 커밋 후 핸들러 실패 격리 (실제 세션)
"""

import logging
from datetime import date

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from tradeerp.core.events import EventBus
from tradeerp.core.unit_of_work import SqlModelUnitOfWork
from tradeerp.domains.inv import schemas as inv_schemas
from tradeerp.domains.mst import models as mst_models
from tradeerp.services.events import LotReceived
from tradeerp.services.inbound_receiver import InboundReceiver

INV = "/api/v1/inv"


async def create_lot(client: AsyncClient, product_id: int, **data):
    payload = {"product_id": product_id, "received_date": "2024-01-01", "quantity": 100, "goods_amount": 1000}
    payload.update(data)
    response = await client.post(f"{INV}/lots", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


# =================================================================================
# 1. 로트 입고 테스트
# =================================================================================
@pytest.mark.asyncio
async def test_create_lot_success(client: AsyncClient, test_product: mst_models.Product):
    """(성공) 로트 입고: 단가 계산과 로트 코드 자동 생성"""
    lot_data = {
        "product_id": test_product.id,
        "received_date": "2024-01-01",
        "quantity": 100,
        "goods_amount": 1000,
        "duty_amount": 80,
        "domestic_freight": 15,
        "other_cost": 5,
    }
    response = await client.post(f"{INV}/lots", json=lot_data)

    assert response.status_code == 201
    created = response.json()
    assert created["lot_code"] == "LOT-20240101-001"
    assert created["unit_cost"] == 11
    assert created["quantity_remaining"] == 100
    assert created["warehouse_fee"] == 0
    assert created["storage_location"] == "WAREHOUSE"

    response = await client.get(f"{INV}/movements", params={"product_id": test_product.id, "movement_type": "IN"})
    assert response.status_code == 200
    assert len(response.json()) == 1


@pytest.mark.asyncio
async def test_create_lot_duplicate_code(client: AsyncClient, test_product: mst_models.Product):
    """(실패) 예외: 중복 로트 코드 → 409"""
    await create_lot(client, test_product.id, lot_code="DUP-1")

    response = await client.post(
        f"{INV}/lots",
        json={"product_id": test_product.id, "lot_code": "DUP-1", "received_date": "2024-01-02", "quantity": 1},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "integrity_conflict"


@pytest.mark.asyncio
async def test_create_lot_invalid_quantity(client: AsyncClient, test_product: mst_models.Product):
    """(실패) 예외: 수량 0 → 400, 문제 필드 표시"""
    response = await client.post(
        f"{INV}/lots", json={"product_id": test_product.id, "received_date": "2024-01-01", "quantity": 0}
    )

    assert response.status_code == 400
    assert response.json()["field"] == "quantity"


@pytest.mark.asyncio
async def test_create_lot_unknown_product(client: AsyncClient):
    """(실패) 예외: 존재하지 않는 상품 → 404"""
    response = await client.post(
        f"{INV}/lots", json={"product_id": 999999, "received_date": "2024-01-01", "quantity": 1}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_lot_records_inbound_purchase(client: AsyncClient, test_linked_product: mst_models.Product):
    """(성공) 기본 매입처가 있는 상품 입고 시 INBOUND_AUTO 매입 생성"""
    lot = await create_lot(client, test_linked_product.id, quantity=10, goods_amount=85)

    response = await client.get(
        "/api/v1/sales/sales_records", params={"record_type": "PURCHASE", "product_id": test_linked_product.id}
    )

    assert response.status_code == 200
    purchases = response.json()
    assert len(purchases) == 1
    assert purchases[0]["cost_source"] == "INBOUND_AUTO"
    assert purchases[0]["source_lot_id"] == lot["id"]
    assert purchases[0]["unit_price"] == 8.5


# =================================================================================
# 2. 로트 조회/삭제 테스트
# =================================================================================
@pytest.mark.asyncio
async def test_read_lots_ordered_by_received_date(client: AsyncClient, test_product: mst_models.Product):
    """(성공) 로트 목록은 입고일 오름차순"""
    await create_lot(client, test_product.id, lot_code="LATE", received_date="2024-01-05")
    await create_lot(client, test_product.id, lot_code="EARLY", received_date="2024-01-01")

    response = await client.get(f"{INV}/lots", params={"product_id": test_product.id})

    assert response.status_code == 200
    assert [lot["lot_code"] for lot in response.json()] == ["EARLY", "LATE"]


@pytest.mark.asyncio
async def test_read_lot_not_found(client: AsyncClient):
    """(실패) 예외: 존재하지 않는 로트 → 404"""
    response = await client.get(f"{INV}/lots/999999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_lot_success(client: AsyncClient, test_product: mst_models.Product):
    """(성공) 미출고 로트 삭제 → 204"""
    lot = await create_lot(client, test_product.id)

    response = await client.delete(f"{INV}/lots/{lot['id']}")
    assert response.status_code == 204

    response = await client.get(f"{INV}/lots/{lot['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_consumed_lot_rejected(client: AsyncClient, test_product: mst_models.Product):
    """(실패) 예외: 출고된 로트 삭제 → 400"""
    lot = await create_lot(client, test_product.id)
    await client.post(
        f"{INV}/outbound", json={"product_id": test_product.id, "quantity": 1, "outbound_date": "2024-01-02"}
    )

    response = await client.delete(f"{INV}/lots/{lot['id']}")

    assert response.status_code == 400
    assert response.json()["code"] == "business_rule_violation"


@pytest.mark.asyncio
async def test_bulk_delete_lots(client: AsyncClient, test_product: mst_models.Product):
    """(성공/실패) 일괄 삭제: 없는 ID가 섞이면 404, 아무것도 삭제되지 않음"""
    first = await create_lot(client, test_product.id, lot_code="B-1")
    second = await create_lot(client, test_product.id, lot_code="B-2")

    response = await client.post(f"{INV}/lots/bulk_delete", json={"lot_ids": [first["id"], 999999]})
    assert response.status_code == 404
    assert (await client.get(f"{INV}/lots/{first['id']}")).status_code == 200

    response = await client.post(f"{INV}/lots/bulk_delete", json={"lot_ids": [first["id"], second["id"]]})
    assert response.status_code == 200
    assert response.json()["deleted_lot_ids"] == [first["id"], second["id"]]


# =================================================================================
# 3. 입고 전표 테스트
# =================================================================================
@pytest.mark.asyncio
async def test_goods_receipt_post_creates_lots(
    client: AsyncClient,
    test_product: mst_models.Product,
    test_linked_product: mst_models.Product,
    test_vendor: mst_models.Vendor,
):
    """(성공) 입고 전표 처리: 부대비용을 품목별로 배부하여 로트 생성"""
    receipt_data = {
        "receipt_no": "GR-2024-001",
        "vendor_id": test_vendor.id,
        "received_date": "2024-01-10",
        "exchange_rate": 2,
        "goods_amount": 500,
        "duty_amount": 90,
        "domestic_freight": 30,
        "items": [
            {"product_id": test_product.id, "quantity": 20, "unit_price": 10},
            {"product_id": test_linked_product.id, "quantity": 10, "unit_price": 30},
        ],
    }
    response = await client.post(f"{INV}/goods_receipts", json=receipt_data)
    assert response.status_code == 201
    receipt = response.json()
    assert len(receipt["items"]) == 2
    assert receipt["posted_at"] is None

    response = await client.post(f"{INV}/goods_receipts/{receipt['id']}/post")
    assert response.status_code == 200
    lots = response.json()["lots"]
    assert [lot["lot_code"] for lot in lots] == ["GR-2024-001-1", "GR-2024-001-2"]
    assert [lot["unit_cost"] for lot in lots] == [24, 64]

    response = await client.get(f"{INV}/goods_receipts/{receipt['id']}")
    assert response.json()["posted_at"] is not None

    response = await client.post(f"{INV}/goods_receipts/{receipt['id']}/post")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_goods_receipt_duplicate_number(client: AsyncClient, test_product: mst_models.Product):
    """(실패) 예외: 중복 전표 번호 → 409"""
    receipt_data = {"receipt_no": "GR-DUP", "received_date": "2024-01-10", "items": []}
    assert (await client.post(f"{INV}/goods_receipts", json=receipt_data)).status_code == 201

    response = await client.post(f"{INV}/goods_receipts", json=receipt_data)
    assert response.status_code == 409


# =================================================================================
# 4. 선입선출 출고 테스트
# =================================================================================
@pytest.mark.asyncio
async def test_outbound_fifo(client: AsyncClient, test_product: mst_models.Product):
    """(성공) A(100 @ 10), B(50 @ 12)에서 120개 출고 → 원가 1240, A 소진, B 30 남음"""
    lot_a = await create_lot(client, test_product.id, lot_code="FIFO-A", received_date="2024-01-01")
    lot_b = await create_lot(
        client, test_product.id, lot_code="FIFO-B", received_date="2024-01-05", quantity=50, goods_amount=600
    )

    response = await client.post(
        f"{INV}/outbound", json={"product_id": test_product.id, "quantity": 120, "outbound_date": "2024-02-01"}
    )

    assert response.status_code == 201
    result = response.json()
    assert result["total_cost"] == 1240
    assert [(a["lot_id"], a["quantity"]) for a in result["allocations"]] == [(lot_a["id"], 100), (lot_b["id"], 20)]
    assert (await client.get(f"{INV}/lots/{lot_a['id']}")).json()["quantity_remaining"] == 0
    assert (await client.get(f"{INV}/lots/{lot_b['id']}")).json()["quantity_remaining"] == 30


@pytest.mark.asyncio
async def test_outbound_insufficient_stock(client: AsyncClient, test_product: mst_models.Product):
    """(실패) 예외: 재고 부족 → 400, 가용/요청 수량 포함, 로트 변경 없음"""
    lot = await create_lot(client, test_product.id, quantity=120)

    response = await client.post(
        f"{INV}/outbound", json={"product_id": test_product.id, "quantity": 150, "outbound_date": "2024-02-01"}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "insufficient_stock"
    assert body["available"] == 120
    assert body["requested"] == 150
    assert (await client.get(f"{INV}/lots/{lot['id']}")).json()["quantity_remaining"] == 120


@pytest.mark.asyncio
async def test_outbound_with_sale_and_reverse(
    client: AsyncClient,
    test_product: mst_models.Product,
    test_customer: mst_models.Vendor,
    test_salesperson: mst_models.Salesperson,
):
    """(성공) 매출 출고 후 출고 취소: 잔량 복원과 매출 삭제"""
    lot = await create_lot(client, test_product.id, quantity=10, goods_amount=100)

    response = await client.post(
        f"{INV}/outbound",
        json={
            "product_id": test_product.id,
            "quantity": 4,
            "outbound_date": "2024-02-01",
            "sale_context": {"vendor_id": test_customer.id, "salesperson_id": test_salesperson.id},
        },
    )
    assert response.status_code == 201
    result = response.json()
    assert result["sales_record_id"] is not None

    sales = (await client.get("/api/v1/sales/sales_records", params={"record_type": "SALES"})).json()
    assert len(sales) == 1
    assert sales[0]["cost_source"] == "FIFO"
    assert sales[0]["amount"] == 60     # 4 × 기본 판매가 15
    assert sales[0]["cost"] == 40

    movement_id = result["allocations"][0]["movement_id"]
    response = await client.delete(f"{INV}/outbound/{movement_id}")
    assert response.status_code == 200
    assert response.json()["quantity_remaining"] == 10

    assert (await client.get(f"{INV}/lots/{lot['id']}")).json()["quantity_remaining"] == 10
    sales = (await client.get("/api/v1/sales/sales_records", params={"record_type": "SALES"})).json()
    assert sales == []


@pytest.mark.asyncio
async def test_bulk_reverse_rejects_inbound_movement(client: AsyncClient, test_product: mst_models.Product):
    """(실패) 예외: 입고 이동 기록 취소 시도 → 400"""
    await create_lot(client, test_product.id)
    inbound = (await client.get(f"{INV}/movements", params={"movement_type": "IN"})).json()[0]

    response = await client.post(f"{INV}/outbound/bulk_reverse", json={"movement_ids": [inbound["id"]]})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_read_movements_invalid_type(client: AsyncClient):
    """(실패) 예외: 알 수 없는 이동 유형 → 400"""
    response = await client.get(f"{INV}/movements", params={"movement_type": "SIDEWAYS"})
    assert response.status_code == 400


# =================================================================================
# 5. 월 보관료 테스트
# =================================================================================
@pytest.mark.asyncio
async def test_warehouse_fee_distribution(client: AsyncClient, test_product: mst_models.Product):
    """(성공) 10000을 (100 × 10일) : (50 × 5일) 로 배부 → 8000 / 2000, 재배부 불가"""
    lot1 = await create_lot(client, test_product.id, lot_code="FEE-1", received_date="2024-01-21")
    lot2 = await create_lot(
        client, test_product.id, lot_code="FEE-2", received_date="2024-01-26", quantity=50, goods_amount=600
    )

    response = await client.post(f"{INV}/warehouse_fees", json={"year_month": "2024-01", "total_fee": 10000})
    assert response.status_code == 201

    response = await client.post(f"{INV}/warehouse_fees/2024-01/distribute")
    assert response.status_code == 200
    shares = {row["lot_id"]: row["distributed_fee"] for row in response.json()}
    assert shares == {lot1["id"]: 8000, lot2["id"]: 2000}

    assert (await client.get(f"{INV}/lots/{lot1['id']}")).json()["warehouse_fee"] == 8000

    detail = (await client.get(f"{INV}/warehouse_fees/2024-01")).json()
    assert detail["lot_count"] == 2
    assert detail["distributed_at"] is not None

    response = await client.post(f"{INV}/warehouse_fees/2024-01/distribute")
    assert response.status_code == 400
    response = await client.put(f"{INV}/warehouse_fees/2024-01", json={"total_fee": 1})
    assert response.status_code == 400
    response = await client.delete(f"{INV}/warehouse_fees/2024-01")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_warehouse_fee_errors(client: AsyncClient):
    """(실패) 예외: 잘못된 월 형식 400, 미등록 월 404, 중복 등록 409"""
    response = await client.post(f"{INV}/warehouse_fees", json={"year_month": "2024-13", "total_fee": 1})
    assert response.status_code == 400

    response = await client.post(f"{INV}/warehouse_fees/2023-11/distribute")
    assert response.status_code == 404

    assert (
        await client.post(f"{INV}/warehouse_fees", json={"year_month": "2023-12", "total_fee": 1})
    ).status_code == 201
    response = await client.post(f"{INV}/warehouse_fees", json={"year_month": "2023-12", "total_fee": 2})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_warehouse_fee_update_and_delete(client: AsyncClient):
    """(성공) 배부 전 보관료 수정/삭제"""
    await client.post(f"{INV}/warehouse_fees", json={"year_month": "2023-10", "total_fee": 100})

    response = await client.put(f"{INV}/warehouse_fees/2023-10", json={"total_fee": 150, "notes": "정정"})
    assert response.status_code == 200
    assert response.json()["total_fee"] == 150

    response = await client.delete(f"{INV}/warehouse_fees/2023-10")
    assert response.status_code == 204
    assert (await client.get(f"{INV}/warehouse_fees/2023-10")).status_code == 404


# =================================================================================
# 6. 재고 조회 테스트
# =================================================================================
@pytest.mark.asyncio
async def test_inventory_query_and_valuation(client: AsyncClient, test_product: mst_models.Product):
    """(성공) 상품별 재고 집계와 보관 위치별 평가"""
    await create_lot(client, test_product.id, lot_code="INV-W")
    await create_lot(client, test_product.id, lot_code="INV-O", quantity=10, goods_amount=200, storage_location="OFFICE")

    response = await client.get(f"{INV}/inventory", params={"product_id": test_product.id})
    assert response.status_code == 200
    (summary,) = response.json()
    assert summary["total_quantity"] == 110
    assert summary["lot_count"] == 2
    assert summary["total_value"] == 1200

    detail = (await client.get(f"{INV}/inventory/{test_product.id}", params={"storage_location": "OFFICE"})).json()
    assert [lot["lot_code"] for lot in detail["lots"]] == ["INV-O"]
    assert detail["avg_unit_cost"] == 20

    valuation = (await client.get(f"{INV}/inventory_valuation", params={"storage_location": "WAREHOUSE"})).json()
    assert valuation["total_value"] == 1000

    response = await client.get(f"{INV}/inventory_valuation", params={"storage_location": "ROOF"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_product_inventory_not_found(client: AsyncClient):
    """(실패) 예외: 존재하지 않는 상품 재고 조회 → 404"""
    response = await client.get(f"{INV}/inventory/999999")
    assert response.status_code == 404


# =================================================================================
# 7. 커밋 후 핸들러 실패 격리 테스트
# =================================================================================
@pytest.mark.asyncio
async def test_failing_lot_received_handler_keeps_lot_loaded(
    db_session: AsyncSession, test_product: mst_models.Product, caplog
):
    """(성공) 조회 후 실패한 핸들러는 자기 변경만 되돌리고, 커밋된 로트는 그대로 응답으로 직렬화됨"""
    bus = EventBus()

    @bus.subscribe(LotReceived)
    async def failing_link(uow, event):
        await uow.sales_records.list_by_source_lot(event.lot_id)
        product = await uow.products.get(event.product_id)
        product.name = "핸들러가 바꾼 이름"
        await uow.products.save(product)
        raise RuntimeError("link failed")

    uow = SqlModelUnitOfWork(db_session, event_bus=bus)
    with caplog.at_level(logging.ERROR, logger="tradeerp.core.unit_of_work"):
        lot = await InboundReceiver(uow).receive(
            inv_schemas.LotCreate(
                product_id=test_product.id, received_date=date(2024, 1, 1), quantity=10, goods_amount=100
            )
        )

    response = inv_schemas.LotResponse.model_validate(lot)
    assert response.lot_code == "LOT-20240101-001"
    assert response.unit_cost == 10
    assert response.quantity_remaining == 10
    assert "failing_link" in caplog.text

    await db_session.refresh(test_product)
    assert test_product.name == "테스트 상품"
    assert (await uow.lots.get(lot.id)) is not None
