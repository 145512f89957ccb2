from datetime import date, datetime
from decimal import Decimal

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import IntegrityError

from payroll_engine.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from payroll_engine.models.enums import PayrollStatus, SalaryType
from payroll_engine.models.payroll_record import PayrollRecord
from payroll_engine.services.payroll_lifecycle import (
    PayrollLifecycle,
    allowed_operations,
    can_transition,
    month_key,
)
from payroll_engine.services.payroll_store import SqlAlchemyPayrollStore
from payroll_engine.services.tax_tables import DEFAULT_TAX_TABLES


def _standard(employee_id: str, basic: str = "25000") -> dict:
    return {"employee_id": employee_id, "salary_type": "STANDARD", "basic_salary": basic}


def _count(db) -> int:
    return db.query(PayrollRecord).count()


# ============ CALCULATE ============

def test_calculate_persists_snapshot(lifecycle, standard_comp):
    record = lifecycle.calculate(standard_comp, "2024-03", actor_id="hr-1")

    assert record.id is not None
    assert record.company_id == "acme"
    assert record.employee_id == "emp-001"
    assert (record.month, record.year, record.month_num) == ("2024-03", 2024, 3)
    assert record.status == PayrollStatus.CALCULATED
    assert record.salary_type == SalaryType.STANDARD
    assert record.gross_pay == Decimal("34500.00")
    assert record.total_deductions == Decimal("3540.00")
    assert record.net_pay == Decimal("30960.00")
    assert record.annual_ctc == Decimal("414000.00")
    assert record.breakdown["net_pay"] == "30960.00"
    assert record.calculated_by == "hr-1"
    assert record.calculated_at is not None
    assert record.approved_at is None


def test_calculate_sales_and_read_back_breakdown(lifecycle, sales_comp):
    record = lifecycle.calculate(sales_comp, date(2024, 3, 15))

    breakdown = lifecycle.breakdown_of(record)
    assert record.month == "2024-03"
    assert breakdown.salary_type == SalaryType.SALES
    assert breakdown.variable.total_commission == Decimal("89500.00")
    assert breakdown.net_pay == Decimal("117200.00")


def test_second_calculation_for_same_month_conflicts(lifecycle, db, standard_comp):
    lifecycle.calculate(standard_comp, "2024-03")

    with pytest.raises(ConflictError) as exc_info:
        lifecycle.calculate(standard_comp, "2024-03-01")

    assert exc_info.value.code == "CONFLICT"
    assert exc_info.value.http_status == 409
    assert _count(db) == 1


def test_other_month_and_other_company_are_independent(lifecycle, db, standard_comp):
    lifecycle.calculate(standard_comp, "2024-03")
    lifecycle.calculate(standard_comp, "2024-04")
    lifecycle.calculate(standard_comp, "2024-03", company_id="globex")

    assert _count(db) == 3


def test_calculate_requires_identity(lifecycle):
    with pytest.raises(ValidationError) as exc_info:
        lifecycle.calculate({"salary_type": "STANDARD", "basic_salary": "25000"}, "2024-03", company_id="acme")
    assert exc_info.value.field == "employee_id"


def test_failed_calculation_writes_nothing(lifecycle, db):
    with pytest.raises(ValidationError):
        lifecycle.calculate(
            {"salary_type": "SALES", "career_stage": "Established"},
            "2024-03",
            company_id="acme",
            employee_id="emp-9",
        )
    assert _count(db) == 0


# ============ TRANSITIONS ============

def test_full_lifecycle_stamps_each_step(lifecycle, standard_comp):
    record = lifecycle.calculate(standard_comp, "2024-03", actor_id="hr-1")

    record = lifecycle.approve("acme", record.id, actor_id="mgr-1")
    assert record.status == PayrollStatus.APPROVED
    assert record.approved_by == "mgr-1"
    assert record.approved_at is not None

    record = lifecycle.process("acme", record.id, actor_id="fin-1")
    assert record.status == PayrollStatus.PROCESSED
    assert record.processed_by == "fin-1"

    record = lifecycle.archive("acme", record.id, actor_id="fin-2")
    assert record.status == PayrollStatus.PAID
    assert record.paid_by == "fin-2"
    assert record.paid_at is not None

    record = lifecycle.close("acme", record.id, actor_id="ops-1")
    assert record.status == PayrollStatus.ARCHIVED
    assert record.archived_by == "ops-1"
    assert record.calculated_by == "hr-1"


def test_transition_counter(lifecycle, standard_comp):
    labels = {"from_status": "CALCULATED", "to_status": "APPROVED"}
    before = REGISTRY.get_sample_value("payroll_transitions_total", labels) or 0.0

    record = lifecycle.calculate(standard_comp, "2024-03")
    lifecycle.approve("acme", record.id)

    assert REGISTRY.get_sample_value("payroll_transitions_total", labels) == before + 1


@pytest.mark.parametrize(
    "steps, operation, status",
    [
        ([], "process", "CALCULATED"),
        ([], "archive", "CALCULATED"),
        ([], "close", "CALCULATED"),
        (["approve"], "approve", "APPROVED"),
        (["approve", "process"], "close", "PROCESSED"),
        (["approve", "process", "archive"], "process", "PAID"),
        (["approve", "process", "archive", "close"], "archive", "ARCHIVED"),
    ],
)
def test_out_of_order_operations_are_rejected(lifecycle, standard_comp, steps, operation, status):
    record = lifecycle.calculate(standard_comp, "2024-03")
    for step in steps:
        getattr(lifecycle, step)("acme", record.id)

    with pytest.raises(InvalidTransitionError) as exc_info:
        getattr(lifecycle, operation)("acme", record.id)

    assert exc_info.value.code == "INVALID_OPERATION"
    assert exc_info.value.message == f"Cannot {operation} payroll in {status} status"
    assert lifecycle.get_payroll("acme", record.id).status == PayrollStatus(status)


def test_transition_on_missing_or_foreign_payroll(lifecycle, standard_comp):
    record = lifecycle.calculate(standard_comp, "2024-03")

    with pytest.raises(NotFoundError):
        lifecycle.approve("acme", record.id + 100)
    with pytest.raises(NotFoundError):
        lifecycle.approve("globex", record.id)
    with pytest.raises(NotFoundError):
        lifecycle.get_payroll("globex", record.id)


def test_transitions_never_recompute_the_snapshot(db, lifecycle, standard_comp):
    record = lifecycle.calculate(standard_comp, "2024-03")
    snapshot = dict(record.breakdown)

    # Tables change after calculation; later steps must not notice.
    later = PayrollLifecycle(db, tables=DEFAULT_TAX_TABLES.with_pt_scheme("PERCENT"))
    record = later.approve("acme", record.id)
    record = later.process("acme", record.id)

    assert record.breakdown == snapshot
    assert record.breakdown["deductions"]["items"]["professional_tax"] == "300.00"
    assert record.net_pay == Decimal("30960.00")


def test_lost_race_on_status_update_is_invalid_operation(db, lifecycle, standard_comp):
    class RacingStore(SqlAlchemyPayrollStore):
        def update_status(self, company_id, payroll_id, **kwargs):
            # A concurrent approver commits first.
            super().update_status(company_id, payroll_id, **kwargs)
            return super().update_status(company_id, payroll_id, **kwargs)

    record = lifecycle.calculate(standard_comp, "2024-03")
    racing = PayrollLifecycle(store=RacingStore(db))

    with pytest.raises(InvalidTransitionError) as exc_info:
        racing.approve("acme", record.id, actor_id="mgr-2")

    assert exc_info.value.current_status == PayrollStatus.APPROVED
    assert lifecycle.get_payroll("acme", record.id).status == PayrollStatus.APPROVED


def test_lost_race_on_insert_is_conflict(db, lifecycle, standard_comp):
    class BlindStore(SqlAlchemyPayrollStore):
        def find(self, company_id, employee_id, month):
            # Pre-check runs before the competing insert is visible.
            return None

    lifecycle.calculate(standard_comp, "2024-03")
    blind = PayrollLifecycle(store=BlindStore(db))

    with pytest.raises(ConflictError) as exc_info:
        blind.calculate(standard_comp, "2024-03")

    assert not isinstance(exc_info.value, InvalidTransitionError)
    assert _count(db) == 1


def test_transition_sees_status_committed_by_another_session(session_factory, standard_comp):
    first, second = session_factory(), session_factory()
    try:
        record = PayrollLifecycle(first).calculate(standard_comp, "2024-03")
        PayrollLifecycle(second).approve("acme", record.id, actor_id="mgr-1")

        # first still holds the CALCULATED copy it loaded before the approval
        processed = PayrollLifecycle(first).process("acme", record.id, actor_id="fin-1")
        assert processed.status == PayrollStatus.PROCESSED
        assert processed.approved_by == "mgr-1"

        with pytest.raises(InvalidTransitionError) as exc_info:
            PayrollLifecycle(second).approve("acme", record.id)
        assert exc_info.value.current_status == PayrollStatus.PROCESSED
    finally:
        first.close()
        second.close()


def test_unmatched_status_update_keeps_pending_work(db, lifecycle, standard_comp):
    record = lifecycle.calculate(standard_comp, "2024-03")
    pending = PayrollRecord(
        company_id="acme",
        employee_id="emp-9",
        month="2024-03",
        year=2024,
        month_num=3,
        salary_type=SalaryType.STANDARD,
    )
    db.add(pending)

    result = SqlAlchemyPayrollStore(db).update_status(
        "acme",
        record.id,
        from_status=PayrollStatus.APPROVED,
        to_status=PayrollStatus.PROCESSED,
        changes={},
    )

    assert result is None
    assert pending in db.new


def test_non_key_integrity_errors_are_not_conflicts(db):
    record = PayrollRecord(
        company_id="acme",
        employee_id="emp-1",
        month="2024-03",
        year=2024,
        month_num=3,
        salary_type=None,
    )

    with pytest.raises(IntegrityError):
        SqlAlchemyPayrollStore(db).create_all([record])
    assert _count(db) == 0


def test_lifecycle_needs_a_session_or_store():
    with pytest.raises(ValueError):
        PayrollLifecycle()


# ============ BATCH ============

def test_calculate_batch(lifecycle, db):
    records = lifecycle.calculate_batch(
        "acme",
        "2024-03",
        [_standard("emp-1"), _standard("emp-2", "10000")],
        actor_id="hr-1",
    )

    assert [r.employee_id for r in records] == ["emp-1", "emp-2"]
    assert all(r.status == PayrollStatus.CALCULATED for r in records)
    assert records[1].net_pay == Decimal("12300.50")
    assert _count(db) == 2


def test_batch_is_all_or_nothing_on_existing_record(lifecycle, db):
    lifecycle.calculate_batch("acme", "2024-03", [_standard("emp-2")])

    with pytest.raises(ConflictError) as exc_info:
        lifecycle.calculate_batch("acme", "2024-03", [_standard("emp-1"), _standard("emp-2"), _standard("emp-3")])

    assert exc_info.value.details == [{"field": "employee_id", "message": "emp-2"}]
    assert _count(db) == 1


def test_batch_is_all_or_nothing_on_calculation_error(lifecycle, db):
    with pytest.raises(ValidationError):
        lifecycle.calculate_batch("acme", "2024-03", [_standard("emp-1"), _standard("emp-2", "0")])
    assert _count(db) == 0


def test_batch_rejects_empty_and_duplicates(lifecycle):
    with pytest.raises(NotFoundError):
        lifecycle.calculate_batch("acme", "2024-03", [])

    with pytest.raises(ValidationError) as exc_info:
        lifecycle.calculate_batch("acme", "2024-03", [_standard("emp-1"), _standard("emp-1")])
    assert exc_info.value.field == "employee_id"


# ============ REGISTER ============

def test_list_payrolls_filters_and_pages(lifecycle):
    lifecycle.calculate_batch("acme", "2024-03", [_standard(f"emp-{i}") for i in range(1, 4)])
    lifecycle.calculate_batch("acme", "2024-04", [_standard("emp-1")])
    lifecycle.calculate_batch("globex", "2024-03", [_standard("emp-1")])
    first = lifecycle.list_payrolls("acme", month="2024-03")[1][0]
    lifecycle.approve("acme", first.id)

    total, records = lifecycle.list_payrolls("acme")
    assert total == 4
    assert [(r.month, r.employee_id) for r in records] == [
        ("2024-04", "emp-1"),
        ("2024-03", "emp-1"),
        ("2024-03", "emp-2"),
        ("2024-03", "emp-3"),
    ]

    total, records = lifecycle.list_payrolls("acme", month="2024-03", page=2, limit=2)
    assert total == 3
    assert [r.employee_id for r in records] == ["emp-3"]

    total, records = lifecycle.list_payrolls("acme", status="APPROVED")
    assert total == 1
    assert records[0].id == first.id


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"page": 0}, "page"),
        ({"limit": 0}, "limit"),
        ({"limit": 101}, "limit"),
        ({"status": "PENDING"}, "status"),
        ({"month": "March"}, "month"),
    ],
)
def test_list_payrolls_rejects_bad_arguments(lifecycle, kwargs, field):
    with pytest.raises(ValidationError) as exc_info:
        lifecycle.list_payrolls("acme", **kwargs)
    assert exc_info.value.field == field


# ============ HELPERS ============

@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-03", ("2024-03", 2024, 3)),
        ("2024-12-31", ("2024-12", 2024, 12)),
        (" 2025-01 ", ("2025-01", 2025, 1)),
        (date(2024, 2, 29), ("2024-02", 2024, 2)),
        (datetime(2023, 11, 5, 10, 30), ("2023-11", 2023, 11)),
        ("2024-02-29", ("2024-02", 2024, 2)),
    ],
)
def test_month_key(value, expected):
    assert month_key(value) == expected


@pytest.mark.parametrize(
    "value",
    [
        "2024-13",
        "2024-00",
        "24-03",
        "2024/03",
        "",
        None,
        202403,
        "2024-03-99",
        "2024-04-31",
        "2023-02-29",
        "2024-03-00",
    ],
)
def test_month_key_rejects_bad_input(value):
    with pytest.raises(ValidationError):
        month_key(value)


def test_transition_table():
    assert allowed_operations(PayrollStatus.DRAFT) == ["calculate"]
    assert allowed_operations(PayrollStatus.PROCESSED) == ["archive"]
    assert allowed_operations(PayrollStatus.ARCHIVED) == []
    assert can_transition(PayrollStatus.PAID, PayrollStatus.ARCHIVED)
    assert not can_transition(PayrollStatus.CALCULATED, PayrollStatus.PROCESSED)
    assert not can_transition(PayrollStatus.APPROVED, PayrollStatus.CALCULATED)
