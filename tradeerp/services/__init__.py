# tradeerp/services/__init__.py

"""
재고 원가 엔진의 서비스 계층 패키지입니다.

저장소(crud)는 조회와 영속화만 담당하고, 수량/원가를 바꾸는 업무 규칙은 모두 이 계층에 있습니다.
각 서비스는 작업 단위(UnitOfWork)를 주입받아 하나의 트랜잭션 안에서 동작합니다.

- `inbound_receiver.py`: 로트 입고, 입고 전표 처리, 미출고 로트 삭제.
- `outbound_allocator.py`: 선입선출 출고와 출고 취소.
- `warehouse_fee_distributor.py`: 월 보관료 등록과 로트 배부.
- `cost_propagator.py`: 상품 원가 결정/갱신, 매입·매출 장부 항목과 자동 연결.
- `inventory_query.py`: 읽기 전용 재고 집계.
"""

# 커밋 후 이벤트 핸들러 등록
from tradeerp.services import cost_propagator  # noqa: F401

__title__ = "Trade ERP Services"
__description__ = "Lot-costing business logic for the Trade ERP application."
__version__ = "0.1.0"
__all__ = []
