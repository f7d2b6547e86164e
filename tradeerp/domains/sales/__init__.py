# tradeerp/domains/sales/__init__.py

"""
'sales' 도메인 패키지입니다.

매입(PURCHASE)과 매출(SALES)을 하나의 장부(SalesRecord)에 담고, 각 항목의 출처(cost_source)와
자동 생성된 매입이 가리키는 원 매출(linked_sales_id)을 기록합니다.
"""

__title__ = "Trade ERP Sales Ledger Domain"
__description__ = "Unified purchase and sales ledger entries."
__version__ = "0.1.0"
__all__ = []
