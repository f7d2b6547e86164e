# tests/domains/__init__.py

"""
도메인별 테스트 패키지입니다.

- `test_costing.py`: 로트 원가 산술 함수 (데이터베이스 불필요).
- `test_inv_n.py`: 'inv' 도메인 (로트, 입고 전표, 출고, 보관료, 재고 조회) API 통합 테스트.
- `test_sales_n.py`: 'sales' 도메인 (매입/매출 장부, 상품 원가) API 통합 테스트.

통합 테스트는 TEST_DATABASE_URL의 PostgreSQL에 연결할 수 없으면 건너뜁니다.
"""

__title__ = "TradeERP Domain Tests"
__description__ = "Arithmetic and HTTP integration tests for the inv and sales domains."
__version__ = "0.1.0"
__all__ = []
