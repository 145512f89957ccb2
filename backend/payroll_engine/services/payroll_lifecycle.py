"""
Payroll lifecycle

  DRAFT → CALCULATED → APPROVED → PROCESSED → PAID → ARCHIVED

Core flows:
  1. calculate: compute a breakdown and persist it as CALCULATED; a second
     calculation for the same (company, employee, month) is a conflict
  2. approve / process / archive / close: one forward step each, guarded by
     the transition table
  3. register queries: get a record, list a company's records by month/status

Transitions only touch status, actor and timestamp columns. The breakdown
snapshot written at calculation time is never recomputed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, NoReturn, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from payroll_engine.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from payroll_engine.core.observability import record_conflict, record_transition
from payroll_engine.core.settings import settings
from payroll_engine.db.base import utcnow
from payroll_engine.models.enums import PayrollStatus
from payroll_engine.models.payroll_record import PayrollRecord
from payroll_engine.schemas.breakdown import SalaryBreakdown
from payroll_engine.schemas.compensation import EmployeeCompensation
from payroll_engine.services.payroll_store import (
    PayrollStore,
    SqlAlchemyPayrollStore,
    existing_employee_ids,
)
from payroll_engine.services.salary_calculation import calculate_salary, resolve_salary_type
from payroll_engine.services.tax_tables import TaxTables, tables_from_settings


logger = logging.getLogger("payroll.lifecycle")

MonthLike = Union[str, date, datetime]

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})(?:-(\d{2}))?$")


@dataclass(frozen=True)
class Transition:
    operation: str
    from_status: PayrollStatus
    to_status: PayrollStatus
    # Column prefix for the <stamp>_by / <stamp>_at audit pair
    stamp: str


TRANSITIONS: Dict[str, Transition] = {
    t.operation: t
    for t in (
        Transition("calculate", PayrollStatus.DRAFT, PayrollStatus.CALCULATED, "calculated"),
        Transition("approve", PayrollStatus.CALCULATED, PayrollStatus.APPROVED, "approved"),
        Transition("process", PayrollStatus.APPROVED, PayrollStatus.PROCESSED, "processed"),
        Transition("archive", PayrollStatus.PROCESSED, PayrollStatus.PAID, "paid"),
        Transition("close", PayrollStatus.PAID, PayrollStatus.ARCHIVED, "archived"),
    )
}


def allowed_operations(status: PayrollStatus) -> List[str]:
    return [t.operation for t in TRANSITIONS.values() if t.from_status == status]


def can_transition(from_status: PayrollStatus, to_status: PayrollStatus) -> bool:
    return any(
        t.from_status == from_status and t.to_status == to_status
        for t in TRANSITIONS.values()
    )


def month_key(value: MonthLike) -> Tuple[str, int, int]:
    """Normalise a month to ("YYYY-MM", year, month_num).

    Accepts "YYYY-MM", a "YYYY-MM-DD" date string (the day must exist but
    is otherwise ignored), a ``date`` or a ``datetime``.
    """
    if isinstance(value, (date, datetime)):
        year, month_num = value.year, value.month
    elif isinstance(value, str):
        match = _MONTH_RE.match(value.strip())
        if not match:
            raise ValidationError("month must be YYYY-MM format", field="month")
        year, month_num = int(match.group(1)), int(match.group(2))
        if match.group(3) is not None:
            try:
                date(year, month_num, int(match.group(3)))
            except ValueError:
                raise ValidationError("month must be YYYY-MM or a valid YYYY-MM-DD date", field="month")
    else:
        raise ValidationError("month must be a YYYY-MM string or a date", field="month")

    if not 1 <= month_num <= 12:
        raise ValidationError("month must be between 01 and 12", field="month")
    return f"{year:04d}-{month_num:02d}", year, month_num


class PayrollLifecycle:
    def __init__(
        self,
        db: Optional[Session] = None,
        *,
        store: Optional[PayrollStore] = None,
        tables: Optional[TaxTables] = None,
    ) -> None:
        if store is None:
            if db is None:
                raise ValueError("PayrollLifecycle needs a session or a store")
            store = SqlAlchemyPayrollStore(db)
        self.store = store
        self.tables = tables or tables_from_settings()

    # ============ CALCULATION ============

    def calculate(
        self,
        compensation: Union[EmployeeCompensation, dict, Any],
        month: MonthLike,
        *,
        company_id: Optional[str] = None,
        employee_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> PayrollRecord:
        """Calculate and persist payroll for one employee and month."""
        comp = self._compensation(compensation)
        company_id = self._require_id(company_id or comp.company_id, "company_id")
        employee_id = self._require_id(employee_id or comp.employee_id, "employee_id")
        key, _, _ = month_key(month)

        if self.store.find(company_id, employee_id, key) is not None:
            self._reject_existing("calculate", company_id, key, [employee_id])

        record = self._build_record(comp, company_id, employee_id, month, actor_id)
        try:
            (created,) = self.store.create_all([record])
        except ConflictError:
            # Lost a race with a concurrent calculation for the same key.
            self._reject_existing("calculate", company_id, key, [employee_id])

        self._log_calculated(created)
        return created

    def calculate_batch(
        self,
        company_id: str,
        month: MonthLike,
        compensations: Sequence[Union[EmployeeCompensation, dict, Any]],
        *,
        actor_id: Optional[str] = None,
    ) -> List[PayrollRecord]:
        """Payroll run for several employees of one company.

        All-or-nothing: an existing record for any employee, or a calculation
        error for any employee, rejects the whole batch before anything is
        written.
        """
        company_id = self._require_id(company_id, "company_id")
        key, _, _ = month_key(month)
        comps = [self._compensation(c) for c in compensations]
        if not comps:
            raise NotFoundError("No employees to calculate payroll for")

        employee_ids = [self._require_id(c.employee_id, "employee_id") for c in comps]
        duplicates = sorted({e for e in employee_ids if employee_ids.count(e) > 1})
        if duplicates:
            raise ValidationError(
                "Duplicate employees in payroll batch",
                field="employee_id",
                details=[{"field": "employee_id", "message": f"{e} appears more than once"} for e in duplicates],
            )

        existing = self.store.find_existing(company_id, employee_ids, key)
        if existing:
            self._reject_existing("calculate", company_id, key, existing_employee_ids(existing))

        records = [
            self._build_record(comp, company_id, employee_id, month, actor_id)
            for comp, employee_id in zip(comps, employee_ids)
        ]
        try:
            created = self.store.create_all(records)
        except ConflictError:
            self._reject_existing("calculate", company_id, key, employee_ids)

        for record in created:
            self._log_calculated(record)
        return created

    # ============ TRANSITIONS ============

    def approve(self, company_id: str, payroll_id: int, *, actor_id: Optional[str] = None) -> PayrollRecord:
        return self._transition("approve", company_id, payroll_id, actor_id)

    def process(self, company_id: str, payroll_id: int, *, actor_id: Optional[str] = None) -> PayrollRecord:
        return self._transition("process", company_id, payroll_id, actor_id)

    def archive(self, company_id: str, payroll_id: int, *, actor_id: Optional[str] = None) -> PayrollRecord:
        """PROCESSED → PAID."""
        return self._transition("archive", company_id, payroll_id, actor_id)

    def close(self, company_id: str, payroll_id: int, *, actor_id: Optional[str] = None) -> PayrollRecord:
        """PAID → ARCHIVED, for retention processes."""
        return self._transition("close", company_id, payroll_id, actor_id)

    # ============ REGISTER ============

    def get_payroll(self, company_id: str, payroll_id: int) -> PayrollRecord:
        record = self.store.get(company_id, payroll_id)
        if record is None:
            raise NotFoundError("Payroll not found")
        return record

    def list_payrolls(
        self,
        company_id: str,
        *,
        month: Optional[MonthLike] = None,
        status: Optional[Union[PayrollStatus, str]] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Tuple[int, List[PayrollRecord]]:
        limit = settings.default_page_size if limit is None else limit
        if page < 1:
            raise ValidationError("page must be at least 1", field="page")
        if not 1 <= limit <= settings.max_page_size:
            raise ValidationError(f"limit must be between 1 and {settings.max_page_size}", field="limit")

        month_filter = month_key(month)[0] if month is not None else None
        status_filter = None
        if status is not None:
            try:
                status_filter = PayrollStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown payroll status: {status!r}", field="status")

        return self.store.list(
            company_id,
            month=month_filter,
            status=status_filter,
            offset=(page - 1) * limit,
            limit=limit,
        )

    @staticmethod
    def breakdown_of(record: PayrollRecord) -> SalaryBreakdown:
        return SalaryBreakdown.model_validate(record.breakdown)

    # ============ INTERNALS ============

    def _transition(self, operation: str, company_id: str, payroll_id: int, actor_id: Optional[str]) -> PayrollRecord:
        transition = TRANSITIONS[operation]
        record = self.get_payroll(company_id, payroll_id)
        if record.status != transition.from_status:
            self._reject_transition(operation, record)

        changes = {
            f"{transition.stamp}_by": actor_id,
            f"{transition.stamp}_at": utcnow(),
        }
        updated = self.store.update_status(
            company_id,
            payroll_id,
            from_status=transition.from_status,
            to_status=transition.to_status,
            changes=changes,
        )
        if updated is None:
            # Status moved (or the row vanished) between the read and the update.
            current = self.store.get(company_id, payroll_id)
            if current is None:
                raise NotFoundError("Payroll not found")
            self._reject_transition(operation, current)

        record_transition(transition.from_status.value, transition.to_status.value)
        logger.info(
            "payroll_transition",
            extra={
                "payroll_id": updated.id,
                "company_id": company_id,
                "employee_id": updated.employee_id,
                "month": updated.month,
                "operation": operation,
                "from_status": transition.from_status.value,
                "to_status": transition.to_status.value,
                "actor_id": actor_id,
            },
        )
        return updated

    def _build_record(
        self,
        comp: EmployeeCompensation,
        company_id: str,
        employee_id: str,
        month: MonthLike,
        actor_id: Optional[str],
    ) -> PayrollRecord:
        key, year, month_num = month_key(month)
        breakdown = calculate_salary(comp, tables=self.tables)
        return PayrollRecord(
            company_id=company_id,
            employee_id=employee_id,
            month=key,
            year=year,
            month_num=month_num,
            status=TRANSITIONS["calculate"].to_status,
            salary_type=resolve_salary_type(comp.salary_type),
            breakdown=breakdown.snapshot(),
            gross_pay=breakdown.earnings.gross,
            total_deductions=breakdown.deductions.total,
            net_pay=breakdown.net_pay,
            annual_ctc=breakdown.annual_ctc,
            calculated_by=actor_id,
            calculated_at=utcnow(),
        )

    @staticmethod
    def _compensation(compensation: Union[EmployeeCompensation, dict, Any]) -> EmployeeCompensation:
        if isinstance(compensation, EmployeeCompensation):
            return compensation
        return EmployeeCompensation.from_snapshot(compensation)

    @staticmethod
    def _require_id(value: Optional[str], field: str) -> str:
        if value is None or not str(value).strip():
            raise ValidationError(f"{field} is required", field=field)
        return str(value)

    def _reject_existing(self, operation: str, company_id: str, month: str, employee_ids: List[str]) -> NoReturn:
        record_conflict(operation)
        logger.warning(
            "payroll_already_exists",
            extra={"company_id": company_id, "month": month, "operation": operation},
        )
        raise ConflictError(
            f"Payroll already exists for {len(employee_ids)} employee(s) in {month}",
            details=[{"field": "employee_id", "message": employee_id} for employee_id in employee_ids],
        )

    def _reject_transition(self, operation: str, record: PayrollRecord) -> NoReturn:
        record_conflict(operation)
        logger.warning(
            "payroll_transition_rejected",
            extra={
                "payroll_id": record.id,
                "company_id": record.company_id,
                "operation": operation,
                "status": record.status.value,
            },
        )
        raise InvalidTransitionError(operation, record.status)

    def _log_calculated(self, record: PayrollRecord) -> None:
        logger.info(
            "payroll_calculated",
            extra={
                "payroll_id": record.id,
                "company_id": record.company_id,
                "employee_id": record.employee_id,
                "month": record.month,
                "salary_type": record.salary_type.value,
                "status": record.status.value,
                "actor_id": record.calculated_by,
            },
        )
