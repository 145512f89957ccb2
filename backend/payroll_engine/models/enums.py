from __future__ import annotations

import enum


class SalaryType(str, enum.Enum):
    STANDARD = "STANDARD"
    SALES = "SALES"


class CareerStage(str, enum.Enum):
    PROBATION = "probation"
    ESTABLISHED = "established"


class PayrollStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    CALCULATED = "CALCULATED"
    APPROVED = "APPROVED"
    PROCESSED = "PROCESSED"
    PAID = "PAID"
    ARCHIVED = "ARCHIVED"
