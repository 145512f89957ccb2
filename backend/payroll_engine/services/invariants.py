from __future__ import annotations

import logging
from typing import Mapping

from payroll_engine.core.errors import ComputationInvariantError
from payroll_engine.core.observability import record_invariant_failure


logger = logging.getLogger("payroll.invariants")


def ensure_balanced(
    *,
    salary_type: str,
    earnings: Mapping[str, int],
    gross: int,
    deductions: Mapping[str, int],
    total_deductions: int,
    net: int,
) -> None:
    """Fail loudly when a breakdown does not add up or pays out a negative net."""
    problems = []
    if gross != sum(earnings.values()):
        problems.append(f"gross {gross} != sum of earnings {sum(earnings.values())}")
    if total_deductions != sum(deductions.values()):
        problems.append(f"total deductions {total_deductions} != sum of deductions {sum(deductions.values())}")
    if net != gross - total_deductions:
        problems.append(f"net {net} != gross {gross} - deductions {total_deductions}")
    if net < 0:
        problems.append(f"net {net} is negative")

    if not problems:
        return

    record_invariant_failure(salary_type)
    logger.critical(
        "salary_invariant_violation",
        extra={"salary_type": salary_type, "error_code": ComputationInvariantError.code},
    )
    raise ComputationInvariantError(
        "Salary breakdown failed balance checks",
        details=[{"field": "breakdown", "message": problem} for problem in problems],
    )
