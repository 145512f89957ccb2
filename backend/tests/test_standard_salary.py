from decimal import Decimal

import pytest

from payroll_engine.core.errors import ComputationInvariantError, ValidationError
from payroll_engine.models.enums import SalaryType
from payroll_engine.services.standard_salary import calculate_standard_salary
from payroll_engine.services.tax_tables import DEFAULT_TAX_TABLES


def test_basic_25000_breakdown():
    breakdown = calculate_standard_salary(basic="25000")

    assert breakdown.salary_type == SalaryType.STANDARD
    assert breakdown.earnings.items == {
        "basic_salary": Decimal("25000.00"),
        "hra": Decimal("7500.00"),
        "da": Decimal("2000.00"),
        "special_allowance": Decimal("0.00"),
        "other_allowance": Decimal("0.00"),
    }
    assert breakdown.earnings.gross == Decimal("34500.00")

    deductions = breakdown.deductions.items
    assert deductions["pf"] == Decimal("3240.00")
    assert deductions["professional_tax"] == Decimal("300.00")
    assert deductions["esi"] == Decimal("0.00")
    assert deductions["income_tax"] == Decimal("0.00")
    assert breakdown.deductions.total == Decimal("3540.00")

    assert breakdown.net_pay == Decimal("30960.00")
    assert breakdown.annual_ctc == Decimal("414000.00")
    assert breakdown.fixed is None
    assert breakdown.variable is None


def test_low_basic_pays_esi_and_lower_pt_band():
    breakdown = calculate_standard_salary(basic=10000)

    assert breakdown.earnings.gross == Decimal("13800.00")
    assert breakdown.deductions.items["pf"] == Decimal("1296.00")
    assert breakdown.deductions.items["professional_tax"] == Decimal("100.00")
    assert breakdown.deductions.items["esi"] == Decimal("103.50")
    assert breakdown.deductions.total == Decimal("1499.50")
    assert breakdown.net_pay == Decimal("12300.50")


def test_allowances_and_supplied_deductions_are_itemised():
    breakdown = calculate_standard_salary(
        basic="25000",
        special_allowance="2000",
        other_allowance="500.50",
        income_tax="1500",
        other_deductions="250",
    )

    assert breakdown.earnings.gross == Decimal("37000.50")
    assert breakdown.deductions.items["income_tax"] == Decimal("1500.00")
    assert breakdown.deductions.items["other_deductions"] == Decimal("250.00")
    # pf is on basic + da only, allowances do not move it
    assert breakdown.deductions.items["pf"] == Decimal("3240.00")
    assert breakdown.deductions.total == Decimal("5290.00")
    assert breakdown.net_pay == Decimal("31710.50")


def test_breakdown_balances():
    breakdown = calculate_standard_salary(basic="18333.33", special_allowance="1111.11")

    assert sum(breakdown.earnings.items.values()) == breakdown.earnings.gross
    assert sum(breakdown.deductions.items.values()) == breakdown.deductions.total
    assert breakdown.earnings.gross - breakdown.deductions.total == breakdown.net_pay


def test_percent_pt_scheme_changes_only_pt():
    tables = DEFAULT_TAX_TABLES.with_pt_scheme("PERCENT")
    breakdown = calculate_standard_salary(basic="25000", tables=tables)

    assert breakdown.deductions.items["professional_tax"] == Decimal("690.00")
    assert breakdown.deductions.items["pf"] == Decimal("3240.00")


@pytest.mark.parametrize("basic", [0, "0.00", -100, "abc", None])
def test_rejects_non_positive_or_invalid_basic(basic):
    with pytest.raises(ValidationError) as exc_info:
        calculate_standard_salary(basic=basic)
    assert exc_info.value.field == "basic_salary"


def test_rejects_negative_allowance():
    with pytest.raises(ValidationError) as exc_info:
        calculate_standard_salary(basic="25000", special_allowance="-1")
    assert exc_info.value.field == "special_allowance"


def test_deductions_exceeding_gross_fail_invariant():
    with pytest.raises(ComputationInvariantError) as exc_info:
        calculate_standard_salary(basic="10000", other_deductions="20000")
    assert exc_info.value.http_status == 500
    assert any("negative" in d["message"] for d in exc_info.value.details)


def test_same_input_gives_identical_breakdown():
    kwargs = {"basic": "18333.33", "special_allowance": "1111.11", "income_tax": "725.50"}

    assert calculate_standard_salary(**kwargs).snapshot() == calculate_standard_salary(**kwargs).snapshot()
