# tradeerp/core/exceptions.py

"""
도메인 서비스가 발생시키는 오류 분류입니다.

서비스 계층은 전송 방식(HTTP 등)에 독립적이므로 HTTPException 대신 아래 예외를 발생시키고,
main.py의 예외 핸들러가 HTTP 상태 코드로 변환합니다.
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class DomainError(Exception):
    """모든 도메인 오류의 기본 클래스."""
    code: str = "domain_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class ValidationError(DomainError):
    """쓰기 전에 거부되는 입력 오류. 문제가 된 필드 이름을 함께 전달합니다."""
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["field"] = self.field
        return body


class BusinessRuleError(DomainError):
    """업무 규칙 위반 (이미 배부된 보관료, 소진된 로트 삭제 등)."""
    code = "business_rule_violation"


class InsufficientStockError(BusinessRuleError):
    """요청 수량이 가용 재고를 초과할 때 발생합니다."""
    code = "insufficient_stock"

    def __init__(self, available: Decimal, requested: Decimal):
        super().__init__(
            f"Insufficient stock. available={available}, requested={requested}"
        )
        self.available = available
        self.requested = requested

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["available"] = float(self.available)
        body["requested"] = float(self.requested)
        return body


class NotFoundError(DomainError):
    code = "not_found"


class IntegrityConflictError(DomainError):
    """고유성 충돌 (중복 로트 코드, 중복 보관료 월 등)."""
    code = "integrity_conflict"
