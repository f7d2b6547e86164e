# tradeerp/__init__.py

"""
무역회사 ERP의 재고 원가/선입선출(FIFO) 엔진 FastAPI 애플리케이션 메인 패키지입니다.

이 패키지는 공통 설정, 데이터베이스 연결, 작업 단위(Unit of Work)를 담는 core 서브패키지,
각 비즈니스 도메인(mst, inv, sales)을 대표하는 domains 서브패키지,
그리고 로트 원가 계산 로직을 수행하는 services 서브패키지로 구성됩니다.
"""

APP_NAME = "Trade ERP Inventory Costing API"
APP_VERSION = "0.1.0"
API_PREFIX = "/api/v1"  # API 라우트의 공통 접두사 (main.py에서 적용)

__version__ = APP_VERSION
__title__ = APP_NAME
__description__ = "Inventory lot-costing and FIFO consumption engine for a trading-company ERP."
__license__ = "MIT"
__all__ = []
