# tradeerp/domains/__init__.py

"""
비즈니스 도메인 패키지입니다. 각 서브패키지는 같은 이름의 PostgreSQL 스키마에 대응합니다.

- `mst`: 기준 정보 (상품, 거래처, 영업사원, 거래처 단가, 월간 원가 이력).
- `inv`: 로트 원장, 이동 기록, 창고 보관료, 입고 전표.
- `sales`: 매입/매출 통합 장부.
"""

__all__ = []
