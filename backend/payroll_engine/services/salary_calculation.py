"""
Salary calculation entry point.

Routes an employee's compensation snapshot to the Standard or Sales
calculator by salary type. An unrecognised salary type is rejected rather
than defaulted.
"""

from __future__ import annotations

import logging
from typing import Any, Union

from payroll_engine.core.errors import UnknownSalaryTypeError, ValidationError
from payroll_engine.core.observability import record_calculation
from payroll_engine.models.enums import SalaryType
from payroll_engine.schemas.breakdown import EmployerCost, SalaryBreakdown
from payroll_engine.schemas.compensation import EmployeeCompensation
from payroll_engine.services.money import apply_rate, from_paise, to_paise
from payroll_engine.services.sales_salary import calculate_sales_salary, resolve_career_stage
from payroll_engine.services.standard_salary import calculate_standard_salary
from payroll_engine.services.tax_tables import DEFAULT_TAX_TABLES, TaxTables


logger = logging.getLogger("payroll.calculation")


def resolve_salary_type(value: Any) -> SalaryType:
    try:
        return SalaryType(value)
    except ValueError:
        raise UnknownSalaryTypeError(value)


def _as_compensation(compensation: Union[EmployeeCompensation, dict, Any]) -> EmployeeCompensation:
    if isinstance(compensation, EmployeeCompensation):
        return compensation
    return EmployeeCompensation.from_snapshot(compensation)


def validate_compensation(compensation: Union[EmployeeCompensation, dict, Any]) -> EmployeeCompensation:
    """Check a snapshot before any calculation runs."""
    comp = _as_compensation(compensation)
    salary_type = resolve_salary_type(comp.salary_type)

    if salary_type == SalaryType.STANDARD:
        if to_paise(comp.basic_salary, field="basic_salary") <= 0:
            raise ValidationError("basic_salary must be greater than 0", field="basic_salary")
    elif salary_type == SalaryType.SALES:
        resolve_career_stage(comp.career_stage)
        for field in ("sales_count", "referral_count"):
            if getattr(comp, field) < 0:
                raise ValidationError(f"{field} must be non-negative", field=field)

    return comp


def calculate_salary(
    compensation: Union[EmployeeCompensation, dict, Any],
    *,
    tables: TaxTables = DEFAULT_TAX_TABLES,
) -> SalaryBreakdown:
    comp = _as_compensation(compensation)
    salary_type = resolve_salary_type(comp.salary_type)

    match salary_type:
        case SalaryType.STANDARD:
            breakdown = calculate_standard_salary(
                basic=comp.basic_salary,
                special_allowance=comp.special_allowance,
                other_allowance=comp.other_allowance,
                income_tax=comp.income_tax,
                other_deductions=comp.other_deductions,
                tables=tables,
            )
        case SalaryType.SALES:
            breakdown = calculate_sales_salary(
                career_stage=comp.career_stage,
                sales_count=comp.sales_count,
                referral_count=comp.referral_count,
                tables=tables,
            )
        case _:
            raise UnknownSalaryTypeError(salary_type)

    record_calculation(salary_type.value)
    logger.debug(
        "salary_calculated",
        extra={
            "company_id": comp.company_id,
            "employee_id": comp.employee_id,
            "salary_type": salary_type.value,
        },
    )
    return breakdown


def estimate_employer_ctc(breakdown: SalaryBreakdown, tables: TaxTables = DEFAULT_TAX_TABLES) -> EmployerCost:
    """Gross plus employer PF and, when the employee pays ESI, employer ESI.

    ``SalaryBreakdown.annual_ctc`` stays gross * 12; this is the fuller
    employer-side view for offer letters.
    """
    gross = to_paise(breakdown.earnings.gross, field="gross")
    employer_pf = apply_rate(gross, tables.employer_pf_rate)
    employee_esi = breakdown.deductions.items.get("esi")
    employer_esi = apply_rate(gross, tables.employer_esi_rate) if employee_esi and employee_esi > 0 else 0
    monthly = gross + employer_pf + employer_esi
    return EmployerCost(
        gross=from_paise(gross),
        employer_pf=from_paise(employer_pf),
        employer_esi=from_paise(employer_esi),
        monthly_ctc=from_paise(monthly),
        annual_ctc=from_paise(monthly * 12),
    )
