"""
Compensation snapshot consumed by the salary calculators
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from payroll_engine.core.errors import ValidationError


class EmployeeCompensation(BaseModel):
    """Per-employee compensation inputs for one calculation.

    ``salary_type`` and ``career_stage`` stay plain strings here; the
    calculators resolve them against their enums and reject anything else.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    company_id: Optional[str] = None
    employee_id: Optional[str] = None
    salary_type: str
    career_stage: Optional[str] = None

    basic_salary: Decimal = Decimal("0")
    special_allowance: Decimal = Decimal("0")
    other_allowance: Decimal = Decimal("0")
    income_tax: Decimal = Decimal("0")
    other_deductions: Decimal = Decimal("0")

    sales_count: int = 0
    referral_count: int = 0

    @classmethod
    def from_snapshot(cls, data: Union[dict, Any]) -> "EmployeeCompensation":
        """Build from a dict or an ORM-like object, mapping schema errors to ``ValidationError``."""
        try:
            if isinstance(data, dict):
                return cls.model_validate(data)
            return cls.model_validate(data, from_attributes=True)
        except PydanticValidationError as exc:
            details = [
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ]
            first_field = details[0]["field"] if details else None
            raise ValidationError("Invalid compensation snapshot", field=first_field, details=details) from exc
