from payroll_engine.models.enums import CareerStage, PayrollStatus, SalaryType
from payroll_engine.models.payroll_record import PayrollRecord

__all__ = [
    "CareerStage",
    "PayrollRecord",
    "PayrollStatus",
    "SalaryType",
]
