# tests/domains/test_costing.py

"""
로트 원가 산술 함수(tradeerp.domains.inv.costing) 테스트 모듈입니다.
"""

from datetime import date
from decimal import Decimal

import pytest

from tradeerp.domains.inv import costing

D = Decimal


def test_to_decimal_avoids_binary_float_error():
    assert costing.to_decimal(0.1) == D("0.1")
    assert costing.to_decimal(None) == D("0")
    assert costing.to_decimal(D("1.5")) == D("1.5")


def test_quantize_cost_rounds_half_up():
    assert costing.quantize_cost(D("1.0000005")) == D("1.000001")
    assert costing.quantize_cost(D("1.0000004")) == D("1.000000")


def test_quantize_quantity_matches_stored_precision():
    assert costing.quantize_quantity(0.00004) == D("0")
    assert costing.quantize_quantity(0.00005) == D("0.0001")
    assert costing.quantize_quantity(D("12.34567")) == D("12.3457")


def test_calculate_unit_cost():
    """(물품대금 + 관세 + 국내운송비 + 기타비용) / 수량"""
    assert costing.calculate_unit_cost(D("1000"), D("80"), D("15"), D("5"), D("100")) == D("11")
    assert costing.calculate_unit_cost(D("100"), D("0"), D("0"), D("0"), D("3")) == D("33.333333")
    assert costing.calculate_unit_cost(D("100"), D("0"), D("0"), D("0"), D("0")) == D("0")


def test_effective_unit_cost():
    """기본 단가 + 누적 보관료 / 현재 잔량"""
    assert costing.effective_unit_cost(D("10"), D("8000"), D("100")) == D("90")
    assert costing.effective_unit_cost(D("10"), D("0"), D("100")) == D("10")
    assert costing.effective_unit_cost(D("10"), D("50"), D("0")) == D("10")


@pytest.mark.parametrize(
    "year_month, expected",
    [("2024-01", (2024, 1)), ("1999-12", (1999, 12))],
)
def test_parse_year_month(year_month, expected):
    assert costing.parse_year_month(year_month) == expected


@pytest.mark.parametrize("year_month", ["2024-00", "2024-13", "2024-1", "2024/01", "", None])
def test_parse_year_month_rejects_bad_format(year_month):
    with pytest.raises(ValueError):
        costing.parse_year_month(year_month)


def test_distribution_base_date():
    """말일이 지났으면 말일, 아니면 오늘"""
    assert costing.distribution_base_date("2024-02", date(2024, 5, 1)) == date(2024, 2, 29)
    assert costing.distribution_base_date("2024-05", date(2024, 5, 10)) == date(2024, 5, 10)
    assert costing.distribution_base_date("2024-05", date(2024, 5, 31)) == date(2024, 5, 31)


def test_storage_days_is_at_least_one():
    assert costing.storage_days(date(2024, 1, 21), date(2024, 1, 31)) == 10
    assert costing.storage_days(date(2024, 1, 31), date(2024, 1, 31)) == 1


def test_allocate_proportionally():
    assert costing.allocate_proportionally(D("10000"), [D("1000"), D("250")]) == [D("8000"), D("2000")]
    assert costing.allocate_proportionally(D("1"), []) == []


def test_allocate_proportionally_puts_residue_on_last_share():
    shares = costing.allocate_proportionally(D("100"), [D("1"), D("1"), D("1")])
    assert shares == [D("33.333333"), D("33.333333"), D("33.333334")]
    assert sum(shares) == D("100")


def test_allocate_proportionally_requires_positive_weights():
    with pytest.raises(ValueError):
        costing.allocate_proportionally(D("100"), [D("0"), D("0")])


def test_split_landed_costs_weighted():
    header = {"goods_amount": D("1000"), "duty_amount": D("90"), "domestic_freight": D("30"), "other_cost": D("0")}
    lines = [(D("20"), D("200")), (D("10"), D("300"))]

    first, second = costing.split_landed_costs(header, lines, policy="weighted")

    assert (first["goods_amount"], second["goods_amount"]) == (D("400"), D("600"))
    assert (first["duty_amount"], second["duty_amount"]) == (D("60"), D("30"))
    assert (first["domestic_freight"], second["domestic_freight"]) == (D("20"), D("10"))
    assert first["other_cost"] == second["other_cost"] == D("0")


def test_split_landed_costs_weighted_falls_back_to_quantity():
    """라인 금액이 모두 0이면 물품대금도 수량 비중"""
    header = {"goods_amount": D("300")}
    first, second = costing.split_landed_costs(header, [(D("2"), D("0")), (D("1"), D("0"))])
    assert (first["goods_amount"], second["goods_amount"]) == (D("200"), D("100"))


def test_split_landed_costs_equal():
    header = {"goods_amount": D("100"), "duty_amount": D("10"), "domestic_freight": D("0"), "other_cost": D("1")}
    splits = costing.split_landed_costs(header, [(D("1"), D("1")), (D("5"), D("99")), (D("2"), D("0"))], policy="equal")

    assert [s["goods_amount"] for s in splits] == [D("33.333333"), D("33.333333"), D("33.333334")]
    assert sum(s["other_cost"] for s in splits) == D("1")


def test_split_landed_costs_rejects_unknown_policy():
    with pytest.raises(ValueError):
        costing.split_landed_costs({}, [(D("1"), D("1"))], policy="random")


def test_sales_margin():
    assert costing.sales_margin(D("1800"), D("1240")) == (D("560"), D("31.11"))
    assert costing.sales_margin(D("0"), D("10")) == (D("-10"), D("0"))
