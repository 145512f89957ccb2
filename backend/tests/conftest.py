from __future__ import annotations

import os

# Settings are read once at import; point the engine at SQLite before anything imports it.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from sqlalchemy.orm import sessionmaker

import payroll_engine.models  # noqa: F401
from payroll_engine.db.base import Base
from payroll_engine.db.session import build_engine
from payroll_engine.schemas.compensation import EmployeeCompensation
from payroll_engine.services.payroll_lifecycle import PayrollLifecycle


@pytest.fixture()
def engine():
    engine = build_engine("sqlite+pysqlite://")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def session_factory(engine):
    # Same options as SessionLocal: objects keep their loaded state across commits.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture()
def lifecycle(db):
    return PayrollLifecycle(db)


@pytest.fixture()
def standard_comp():
    return EmployeeCompensation(
        company_id="acme",
        employee_id="emp-001",
        salary_type="STANDARD",
        basic_salary="25000",
    )


@pytest.fixture()
def sales_comp():
    return EmployeeCompensation(
        company_id="acme",
        employee_id="emp-002",
        salary_type="SALES",
        career_stage="established",
        sales_count=35,
        referral_count=5,
    )
