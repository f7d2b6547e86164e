# tradeerp/domains/inv/costing.py

"""
로트 원가 계산에 쓰이는 순수 산술 함수 모음입니다.

데이터베이스나 세션에 의존하지 않으므로 서비스 계층과 테스트에서 그대로 사용합니다.
금액은 소수점 6자리, 마진율은 2자리로 반올림(ROUND_HALF_UP)합니다.
"""

import calendar
import re
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Sequence, Tuple

COST_QUANT = Decimal("0.000001")
QUANTITY_QUANT = Decimal("0.0001")
RATE_QUANT = Decimal("0.01")
ZERO = Decimal("0")

LANDED_COST_COMPONENTS = ("goods_amount", "duty_amount", "domestic_freight", "other_cost")

_YEAR_MONTH_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def to_decimal(value) -> Decimal:
    """float/int/str 값을 Decimal로 변환합니다. float는 문자열을 거쳐 이진 오차를 피합니다."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_cost(value: Decimal) -> Decimal:
    return to_decimal(value).quantize(COST_QUANT, rounding=ROUND_HALF_UP)


def quantize_quantity(value) -> Decimal:
    """수량을 저장 정밀도(소수점 4자리)로 반올림합니다. 검증과 원가 계산 전에 적용합니다."""
    return to_decimal(value).quantize(QUANTITY_QUANT, rounding=ROUND_HALF_UP)


def calculate_unit_cost(
    goods_amount: Decimal,
    duty_amount: Decimal,
    domestic_freight: Decimal,
    other_cost: Decimal,
    quantity: Decimal,
) -> Decimal:
    """(물품대금 + 관세 + 국내운송비 + 기타비용) / 수량. 수량이 0 이하이면 0."""
    if quantity <= 0:
        return ZERO
    landed = goods_amount + duty_amount + domestic_freight + other_cost
    return quantize_cost(landed / quantity)


def effective_unit_cost(unit_cost: Decimal, warehouse_fee: Decimal, quantity_remaining: Decimal) -> Decimal:
    """
    출고 시점의 실질 단가: 기본 단가 + 누적 보관료 / 현재 잔량.
    잔량은 이번 출고로 차감하기 전의 값이어야 합니다.
    """
    if quantity_remaining <= 0:
        return quantize_cost(unit_cost)
    return quantize_cost(unit_cost + warehouse_fee / quantity_remaining)


def parse_year_month(year_month: str) -> Tuple[int, int]:
    """'YYYY-MM' 문자열을 (연, 월)로 분해합니다. 형식이 틀리면 ValueError."""
    match = _YEAR_MONTH_PATTERN.match(year_month or "")
    if match is None:
        raise ValueError(f"year_month must be formatted as YYYY-MM: {year_month!r}")
    return int(match.group(1)), int(match.group(2))


def year_month_of(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def distribution_base_date(year_month: str, today: date) -> date:
    """해당 월의 말일. 말일이 아직 오지 않았으면 오늘."""
    year, month = parse_year_month(year_month)
    last_day = date(year, month, calendar.monthrange(year, month)[1])
    return today if last_day > today else last_day


def storage_days(received_date: date, base_date: date) -> int:
    """보관 일수. 기준일 당일 입고분도 최소 1일로 계산합니다."""
    return max(1, (base_date - received_date).days)


def allocate_proportionally(total: Decimal, weights: Sequence[Decimal]) -> List[Decimal]:
    """
    total을 weights 비율대로 나눕니다.
    각 몫은 소수점 6자리로 반올림하고, 반올림 잔차는 마지막 몫에 더해 합계가 total과 정확히 같게 합니다.
    """
    if not weights:
        return []
    weight_sum = sum(weights, ZERO)
    if weight_sum <= 0:
        raise ValueError("weights must sum to a positive value")
    shares = [quantize_cost(total * weight / weight_sum) for weight in weights]
    shares[-1] += quantize_cost(total) - sum(shares, ZERO)
    return shares


def split_evenly(total: Decimal, count: int) -> List[Decimal]:
    return allocate_proportionally(total, [Decimal("1")] * count)


def split_landed_costs(
    header: Dict[str, Decimal],
    lines: Sequence[Tuple[Decimal, Decimal]],
    policy: str = "weighted",
) -> List[Dict[str, Decimal]]:
    """
    입고 전표 헤더의 부대비용을 품목 라인에 배부합니다.

    Args:
        header: LANDED_COST_COMPONENTS 키를 가진 장부 통화 금액.
        lines: (수량, 금액) 튜플 목록. 금액은 물품대금 배부 비중에만 쓰입니다.
        policy: "weighted"는 물품대금을 금액 비중(모두 0이면 수량 비중)으로,
            관세/운송비/기타비용을 수량 비중으로 배부합니다.
            "equal"은 모든 항목을 품목 수로 균등 배부합니다.

    Returns:
        라인별 {구성요소: 배부 금액} 목록 (입력 순서 유지).
    """
    if not lines:
        return []
    if policy not in ("weighted", "equal"):
        raise ValueError(f"unknown landed cost policy: {policy!r}")

    quantities = [quantity for quantity, _ in lines]
    values = [value for _, value in lines]
    if sum(values, ZERO) <= 0:
        values = quantities

    result: List[Dict[str, Decimal]] = [{} for _ in lines]
    for component in LANDED_COST_COMPONENTS:
        amount = to_decimal(header.get(component))
        if policy == "equal":
            shares = split_evenly(amount, len(lines))
        elif component == "goods_amount":
            shares = allocate_proportionally(amount, values)
        else:
            shares = allocate_proportionally(amount, quantities)
        for line_result, share in zip(result, shares):
            line_result[component] = share
    return result


def sales_margin(amount: Decimal, cost: Decimal) -> Tuple[Decimal, Decimal]:
    """(마진, 마진율%) 계산. 매출액이 0 이하이면 마진율은 0."""
    margin = quantize_cost(amount - cost)
    if amount <= 0:
        return margin, ZERO
    rate = (margin / amount * Decimal("100")).quantize(RATE_QUANT, rounding=ROUND_HALF_UP)
    return margin, rate
