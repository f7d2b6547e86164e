# tradeerp/domains/mst/__init__.py

"""
'mst' 도메인 패키지입니다.

재고 원가 엔진이 읽는 기준 정보(상품, 구 품목, 카테고리, 거래처, 영업사원, 거래처별 단가)와
상품별 월간 원가 이력을 담습니다. 기준 정보의 등록/수정 API는 이 패키지에 두지 않습니다.

주요 서브모듈:
- `models.py`: 'mst' 스키마의 테이블에 매핑되는 SQLModel 정의.
- `crud.py`: 'mst' 스키마 테이블 저장소.
"""

__title__ = "Trade ERP Master Data Domain"
__description__ = "Products, vendors, salespersons and price master data read by the costing engine."
__version__ = "0.1.0"
__all__ = []
