# tests/__init__.py

"""
재고 원가 API의 테스트 스위트 패키지입니다.

- `services/`: 메모리 내 작업 단위(fakes.FakeUnitOfWork)로 서비스 계층의 업무 규칙을 검증합니다.
- `domains/`: 순수 원가 계산 함수와 HTTP 엔드포인트(테스트 PostgreSQL 필요)를 검증합니다.
- `conftest.py`: 데이터베이스 세션, 테스트 클라이언트, 기준 정보 픽스처.
"""

__title__ = "Trade ERP API Tests"
__description__ = "Test suite for the Trade ERP inventory costing application."
__version__ = "0.1.0"
__all__ = []
