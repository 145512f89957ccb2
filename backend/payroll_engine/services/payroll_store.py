from __future__ import annotations

from typing import Any, Iterable, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payroll_engine.core.errors import ConflictError
from payroll_engine.db.base import utcnow
from payroll_engine.models.enums import PayrollStatus
from payroll_engine.models.payroll_record import PAYROLL_KEY_CONSTRAINT, PayrollRecord


class PayrollStore(Protocol):
    """Persistence the payroll lifecycle relies on.

    ``get`` must read the stored row, not a cached copy. ``create_all`` and a
    successful ``update_status`` commit the session. A failed ``create_all``
    rolls it back. An ``update_status`` that matches no row leaves the session
    untouched.
    """

    def find(self, company_id: str, employee_id: str, month: str) -> Optional[PayrollRecord]: ...

    def find_existing(self, company_id: str, employee_ids: Sequence[str], month: str) -> List[PayrollRecord]: ...

    def get(self, company_id: str, payroll_id: int) -> Optional[PayrollRecord]: ...

    def create_all(self, records: Sequence[PayrollRecord]) -> List[PayrollRecord]: ...

    def update_status(
        self,
        company_id: str,
        payroll_id: int,
        *,
        from_status: PayrollStatus,
        to_status: PayrollStatus,
        changes: dict[str, Any],
    ) -> Optional[PayrollRecord]: ...

    def list(
        self,
        company_id: str,
        *,
        month: Optional[str] = None,
        status: Optional[PayrollStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[int, List[PayrollRecord]]: ...


class SqlAlchemyPayrollStore:
    """PayrollStore on a SQLAlchemy session.

    Uniqueness of (company, employee, month) is enforced by the table's unique
    constraint; status changes are a single conditional UPDATE.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def find(self, company_id: str, employee_id: str, month: str) -> Optional[PayrollRecord]:
        return self.db.query(PayrollRecord).filter(
            PayrollRecord.company_id == company_id,
            PayrollRecord.employee_id == employee_id,
            PayrollRecord.month == month,
        ).first()

    def find_existing(self, company_id: str, employee_ids: Sequence[str], month: str) -> List[PayrollRecord]:
        if not employee_ids:
            return []
        return self.db.query(PayrollRecord).filter(
            PayrollRecord.company_id == company_id,
            PayrollRecord.month == month,
            PayrollRecord.employee_id.in_(list(employee_ids)),
        ).all()

    def get(self, company_id: str, payroll_id: int) -> Optional[PayrollRecord]:
        return self.db.query(PayrollRecord).populate_existing().filter(
            PayrollRecord.id == payroll_id,
            PayrollRecord.company_id == company_id,
        ).first()

    def create_all(self, records: Sequence[PayrollRecord]) -> List[PayrollRecord]:
        """Insert every record or none of them."""
        try:
            for record in records:
                self.db.add(record)
            self.db.flush()
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if not _is_duplicate_key(exc):
                raise
            raise ConflictError(
                "Payroll already exists for this employee and month",
                details=[{"field": "employee_id", "message": "unique constraint violation"}],
            ) from exc

        for record in records:
            self.db.refresh(record)
        return list(records)

    def update_status(
        self,
        company_id: str,
        payroll_id: int,
        *,
        from_status: PayrollStatus,
        to_status: PayrollStatus,
        changes: dict[str, Any],
    ) -> Optional[PayrollRecord]:
        """Move ``payroll_id`` from ``from_status`` to ``to_status``.

        Returns ``None`` when no row matched: the record is missing or its
        status is no longer ``from_status``.
        """
        result = self.db.execute(
            update(PayrollRecord)
            .where(
                PayrollRecord.id == payroll_id,
                PayrollRecord.company_id == company_id,
                PayrollRecord.status == from_status,
            )
            .values(status=to_status, updated_at=utcnow(), **changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None

        self.db.commit()
        return self.get(company_id, payroll_id)

    def list(
        self,
        company_id: str,
        *,
        month: Optional[str] = None,
        status: Optional[PayrollStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[int, List[PayrollRecord]]:
        filters = [PayrollRecord.company_id == company_id]
        if month:
            filters.append(PayrollRecord.month == month)
        if status:
            filters.append(PayrollRecord.status == status)

        total = self.db.execute(
            select(func.count()).select_from(PayrollRecord).where(*filters)
        ).scalar_one()
        records = self.db.execute(
            select(PayrollRecord)
            .where(*filters)
            .order_by(desc(PayrollRecord.month), PayrollRecord.employee_id)
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return total, list(records)


def _is_duplicate_key(exc: IntegrityError) -> bool:
    """True when ``exc`` is the (company, employee, month) unique key firing."""
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint is not None:
        return constraint == PAYROLL_KEY_CONSTRAINT
    # SQLite names the columns, not the constraint.
    message = str(exc.orig)
    return "UNIQUE constraint failed" in message and "payroll_records.month" in message


def existing_employee_ids(records: Iterable[PayrollRecord]) -> List[str]:
    return sorted({record.employee_id for record in records})
