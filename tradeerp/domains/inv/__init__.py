# tradeerp/domains/inv/__init__.py

"""
'inv' 도메인 패키지입니다.

로트 원장(InventoryLot, InventoryMovement), 월별 창고 보관료(WarehouseFee)와 배부 내역,
입고 전표(GoodsReceipt)를 관리합니다. 선입선출 출고와 보관료 배부 로직은 services 계층에 있습니다.

주요 서브모듈:
- `models.py`: 'inv' 스키마의 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 Pydantic 모델.
- `crud.py`: 'inv' 스키마 테이블 저장소 (선입선출 순서 조회, 행 잠금).
- `costing.py`: 단가/배부/마진 계산용 순수 함수.
- `routers.py`: '/inv' API 엔드포인트.
- `tasks.py`: 보관료 배부, 원가 갱신 ARQ 작업.
"""

__title__ = "Trade ERP Inventory Domain"
__description__ = "Lot ledger, warehouse fees and goods receipts with FIFO consumption."
__version__ = "0.1.0"
__all__ = []
