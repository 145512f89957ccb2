"""
Prometheus instrumentation for the payroll engine.

Counters cover calculations, lifecycle transitions, rejected operations and
invariant breaches. Exposition is left to the hosting process.
"""

from __future__ import annotations

from prometheus_client import Counter


payroll_calculations_total = Counter(
    "payroll_calculations_total",
    "Total salary breakdowns computed",
    ["salary_type"]
)

payroll_transitions_total = Counter(
    "payroll_transitions_total",
    "Total payroll status transitions applied",
    ["from_status", "to_status"]
)

payroll_conflicts_total = Counter(
    "payroll_conflicts_total",
    "Payroll operations rejected because of an existing record or a disallowed status",
    ["operation"]
)

payroll_invariant_failures_total = Counter(
    "payroll_invariant_failures_total",
    "Salary breakdowns that failed the balance checks",
    ["salary_type"]
)


def record_calculation(salary_type: str) -> None:
    payroll_calculations_total.labels(salary_type=salary_type).inc()


def record_transition(from_status: str, to_status: str) -> None:
    payroll_transitions_total.labels(from_status=from_status, to_status=to_status).inc()


def record_conflict(operation: str) -> None:
    payroll_conflicts_total.labels(operation=operation).inc()


def record_invariant_failure(salary_type: str) -> None:
    payroll_invariant_failures_total.labels(salary_type=salary_type).inc()
