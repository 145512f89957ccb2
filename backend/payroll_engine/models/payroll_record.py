from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Enum, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_engine.db.base import Base, IDMixin, JSONDocument, TimestampMixin, money_column
from payroll_engine.models.enums import PayrollStatus, SalaryType


PAYROLL_KEY_CONSTRAINT = "uq_payroll_records_company_id_employee_id_month"


class PayrollRecord(IDMixin, TimestampMixin, Base):
    """One employee's payroll for one month, with a frozen salary snapshot"""
    __tablename__ = "payroll_records"
    __table_args__ = (
        UniqueConstraint("company_id", "employee_id", "month", name=PAYROLL_KEY_CONSTRAINT),
    )

    # Identity
    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    month: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        index=True,
        comment="YYYY-MM format"
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month_num: Mapped[int] = mapped_column(Integer, nullable=False)

    # Status and workflow
    status: Mapped[PayrollStatus] = mapped_column(
        Enum(PayrollStatus, name="payroll_status"),
        nullable=False,
        default=PayrollStatus.DRAFT,
        index=True
    )
    salary_type: Mapped[SalaryType] = mapped_column(
        Enum(SalaryType, name="salary_type"),
        nullable=False,
    )

    # Snapshot taken at calculation time; later transitions never touch it
    breakdown: Mapped[dict] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
        comment="SalaryBreakdown at time of calculation"
    )
    gross_pay: Mapped[Decimal] = money_column()
    total_deductions: Mapped[Decimal] = money_column()
    net_pay: Mapped[Decimal] = money_column()
    annual_ctc: Mapped[Decimal] = money_column(16)

    # Audit trail
    calculated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    calculated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    approved_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    processed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    paid_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    archived_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
