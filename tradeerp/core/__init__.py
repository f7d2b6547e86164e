# tradeerp/core/__init__.py

"""
애플리케이션 전반에서 사용되는 핵심 구성 요소 패키지입니다.

- `config.py`: 애플리케이션 설정 및 환경 변수 관리 (Pydantic Settings).
- `database.py`: 비동기 엔진, 세션 팩토리, 스키마/테이블 생성.
- `crud_base.py`: 세션에 바인딩된 공통 저장소(Repository) 기본 클래스.
- `unit_of_work.py`: 트랜잭션 단위 작업(Unit of Work)과 커밋 후 이벤트 발행.
- `events.py`: 커밋 후 이벤트 구독자 레지스트리.
- `exceptions.py`: 도메인 오류 분류 (검증, 업무 규칙, 무결성, 미존재).
- `dependencies.py`: FastAPI 의존성 주입 함수.
"""

__title__ = "Trade ERP Core"
__description__ = "Core components for the Trade ERP inventory costing application."
__version__ = "0.1.0"
__all__ = []
