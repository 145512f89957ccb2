"""
Sales Salary Calculation

  fixed = career-stage base pay + skill/medical/wellness allowances
  commission = tier walk over the sales count (each tier consumes up to its capacity)
  milestone_bonus = flat bonuses at absolute sales thresholds per career stage
  referral_bonus = (sum of first 4 referral tiers) / 3, capped at 30,000 (established only)
  gross = fixed + commission + milestone_bonus + referral_bonus
  net_pay = gross - welfare fund - communication
"""

from __future__ import annotations

from typing import List, Tuple

from payroll_engine.core.errors import ValidationError
from payroll_engine.models.enums import CareerStage, SalaryType
from payroll_engine.schemas.breakdown import (
    CommissionTierLine,
    Deductions,
    Earnings,
    FixedComponent,
    SalaryBreakdown,
    SalesVariable,
)
from payroll_engine.services.invariants import ensure_balanced
from payroll_engine.services.money import divide, from_paise
from payroll_engine.services.tax_tables import DEFAULT_TAX_TABLES, TaxTables


def resolve_career_stage(value: object) -> CareerStage:
    try:
        return CareerStage(value)
    except ValueError:
        raise ValidationError(
            f"career_stage must be one of {[stage.value for stage in CareerStage]}, got {value!r}",
            field="career_stage",
        )


def _require_count(value: object, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field=field)
    if value < 0:
        raise ValidationError(f"{field} must be non-negative", field=field)
    return value


def commission_breakdown(sales_count: int, tables: TaxTables = DEFAULT_TAX_TABLES) -> Tuple[List[CommissionTierLine], int]:
    """Walk the tiers in order; returns the per-tier lines and the total in paise."""
    lines: List[CommissionTierLine] = []
    total = 0
    remaining = sales_count

    for tier in tables.commission_tiers:
        if remaining <= 0:
            break
        consumed = remaining if tier.capacity is None else min(remaining, tier.capacity)
        amount = consumed * tier.rate_per_sale_paise
        lines.append(
            CommissionTierLine(
                tier=tier.tier_number,
                range=tier.label,
                rate_per_sale=from_paise(tier.rate_per_sale_paise),
                sales_count=consumed,
                commission=from_paise(amount),
            )
        )
        total += amount
        remaining -= consumed

    return lines, total


def milestone_bonus(career_stage: CareerStage, sales_count: int, tables: TaxTables = DEFAULT_TAX_TABLES) -> int:
    return sum(
        milestone.bonus_paise
        for milestone in tables.milestones.get(career_stage, ())
        if sales_count >= milestone.sales_threshold
    )


def referral_bonus(career_stage: CareerStage, referral_count: int, tables: TaxTables = DEFAULT_TAX_TABLES) -> Tuple[int, int]:
    """Returns (referrals counted, bonus in paise). Average first, then cap."""
    if career_stage != CareerStage.ESTABLISHED or referral_count <= 0:
        return 0, 0
    counted = min(referral_count, tables.referral_limit)
    total = sum(tables.referral_bonuses[:counted])
    averaged = divide(total, tables.referral_averaging_months)
    return counted, min(averaged, tables.referral_cap_paise)


def calculate_sales_salary(
    *,
    career_stage: object,
    sales_count: int = 0,
    referral_count: int = 0,
    tables: TaxTables = DEFAULT_TAX_TABLES,
) -> SalaryBreakdown:
    stage = resolve_career_stage(career_stage)
    sales = _require_count(sales_count, "sales_count")
    referrals = _require_count(referral_count, "referral_count")

    # 1. Fixed component
    base_pay = tables.sales_base_pay[stage]
    allowances = tables.sales_allowances
    fixed_total = base_pay + sum(allowances.values())

    # 2-4. Variable component
    tier_lines, total_commission = commission_breakdown(sales, tables)
    milestone = milestone_bonus(stage, sales, tables)
    referrals_counted, referral = referral_bonus(stage, referrals, tables)
    variable_total = total_commission + milestone + referral

    earnings = {
        "base_salary": base_pay,
        **allowances,
        "commission": total_commission,
        "milestone_bonus": milestone,
        "referral_bonus": referral,
    }
    gross = fixed_total + variable_total

    # 5. Fixed deductions
    deductions = dict(tables.sales_deductions)
    total_deductions = sum(deductions.values())

    net = gross - total_deductions
    annual_ctc = gross * 12

    ensure_balanced(
        salary_type=SalaryType.SALES.value,
        earnings=earnings,
        gross=gross,
        deductions=deductions,
        total_deductions=total_deductions,
        net=net,
    )

    return SalaryBreakdown(
        salary_type=SalaryType.SALES,
        career_stage=stage,
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
        fixed=FixedComponent(
            base_salary=from_paise(base_pay),
            skill_allowance=from_paise(allowances.get("skill_allowance", 0)),
            medical_allowance=from_paise(allowances.get("medical_allowance", 0)),
            wellness_allowance=from_paise(allowances.get("wellness_allowance", 0)),
            total=from_paise(fixed_total),
        ),
        variable=SalesVariable(
            sales_count=sales,
            commission_tiers=tier_lines,
            total_commission=from_paise(total_commission),
            milestone_bonus=from_paise(milestone),
            referral_count=referrals_counted,
            referral_bonus=from_paise(referral),
            total=from_paise(variable_total),
        ),
    )
