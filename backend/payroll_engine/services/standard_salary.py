"""
Standard Salary Calculation

Formula:
  hra = basic * 30%            da = basic * 8%
  gross = basic + hra + da + special_allowance + other_allowance
  deductions = pf(basic, da) + pt(gross) + esi(gross) + income_tax + other
  net_pay = gross - deductions
  annual_ctc = gross * 12
"""

from __future__ import annotations

from payroll_engine.core.errors import ValidationError
from payroll_engine.models.enums import SalaryType
from payroll_engine.schemas.breakdown import Deductions, Earnings, SalaryBreakdown
from payroll_engine.services import statutory
from payroll_engine.services.invariants import ensure_balanced
from payroll_engine.services.money import Amount, apply_rate, from_paise, to_paise
from payroll_engine.services.tax_tables import DEFAULT_TAX_TABLES, TaxTables


def calculate_standard_salary(
    *,
    basic: Amount,
    special_allowance: Amount = 0,
    other_allowance: Amount = 0,
    income_tax: Amount = 0,
    other_deductions: Amount = 0,
    tables: TaxTables = DEFAULT_TAX_TABLES,
) -> SalaryBreakdown:
    basic_paise = to_paise(basic, field="basic_salary")
    if basic_paise <= 0:
        raise ValidationError("basic_salary must be greater than 0", field="basic_salary")
    special_paise = to_paise(special_allowance, field="special_allowance")
    other_allowance_paise = to_paise(other_allowance, field="other_allowance")
    it_paise = to_paise(income_tax, field="income_tax")
    other_deductions_paise = to_paise(other_deductions, field="other_deductions")

    # 1. Earnings
    hra = apply_rate(basic_paise, tables.hra_rate)
    da = apply_rate(basic_paise, tables.da_rate)
    earnings = {
        "basic_salary": basic_paise,
        "hra": hra,
        "da": da,
        "special_allowance": special_paise,
        "other_allowance": other_allowance_paise,
    }
    gross = sum(earnings.values())

    # 2. Deductions
    deductions = {
        "pf": statutory.pf(basic_paise, da, tables),
        "professional_tax": statutory.professional_tax(gross, tables),
        "esi": statutory.esi(gross, tables),
        "income_tax": statutory.income_tax(it_paise),
        "other_deductions": other_deductions_paise,
    }
    total_deductions = sum(deductions.values())

    # 3. Net & CTC
    net = gross - total_deductions
    annual_ctc = gross * 12

    ensure_balanced(
        salary_type=SalaryType.STANDARD.value,
        earnings=earnings,
        gross=gross,
        deductions=deductions,
        total_deductions=total_deductions,
        net=net,
    )

    return SalaryBreakdown(
        salary_type=SalaryType.STANDARD,
        earnings=Earnings(
            items={key: from_paise(value) for key, value in earnings.items()},
            gross=from_paise(gross),
        ),
        deductions=Deductions(
            items={key: from_paise(value) for key, value in deductions.items()},
            total=from_paise(total_deductions),
        ),
        net_pay=from_paise(net),
        annual_ctc=from_paise(annual_ctc),
    )
