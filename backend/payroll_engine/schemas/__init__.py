from payroll_engine.schemas.breakdown import (
    CommissionTierLine,
    Deductions,
    Earnings,
    EmployerCost,
    FixedComponent,
    SalaryBreakdown,
    SalesVariable,
)
from payroll_engine.schemas.compensation import EmployeeCompensation

__all__ = [
    "CommissionTierLine",
    "Deductions",
    "Earnings",
    "EmployeeCompensation",
    "EmployerCost",
    "FixedComponent",
    "SalaryBreakdown",
    "SalesVariable",
]
