"""
Salary breakdown value objects
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from payroll_engine.models.enums import CareerStage, SalaryType


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# ============ SECTIONS ============

class Earnings(FrozenModel):
    items: Dict[str, Decimal]
    gross: Decimal


class Deductions(FrozenModel):
    items: Dict[str, Decimal]
    total: Decimal


class FixedComponent(FrozenModel):
    base_salary: Decimal
    skill_allowance: Decimal
    medical_allowance: Decimal
    wellness_allowance: Decimal
    total: Decimal


class CommissionTierLine(FrozenModel):
    tier: int
    range: str
    rate_per_sale: Decimal
    sales_count: int
    commission: Decimal


class SalesVariable(FrozenModel):
    sales_count: int
    commission_tiers: List[CommissionTierLine]
    total_commission: Decimal
    milestone_bonus: Decimal
    referral_count: int
    referral_bonus: Decimal
    total: Decimal


# ============ BREAKDOWN ============

class SalaryBreakdown(FrozenModel):
    salary_type: SalaryType
    career_stage: Optional[CareerStage] = None
    earnings: Earnings
    deductions: Deductions
    net_pay: Decimal
    annual_ctc: Decimal

    # SALES only
    fixed: Optional[FixedComponent] = None
    variable: Optional[SalesVariable] = None

    def snapshot(self) -> dict:
        """JSON-safe dict for persistence; amounts serialise as strings."""
        return self.model_dump(mode="json")


class EmployerCost(FrozenModel):
    gross: Decimal
    employer_pf: Decimal
    employer_esi: Decimal
    monthly_ctc: Decimal
    annual_ctc: Decimal
