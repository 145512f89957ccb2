import json
import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from payroll_engine.core.logging import JsonFormatter, configure_logging
from payroll_engine.core.settings import Settings, get_settings
from payroll_engine.db.session import get_db
from payroll_engine.services.tax_tables import FLAT_PT_SLABS, PERCENT_PT_SLABS, tables_from_settings


@pytest.mark.parametrize(
    "value, expected",
    [("percent", "PERCENT"), (" Flat ", "FLAT"), ("PERCENT", "PERCENT")],
)
def test_pt_scheme_is_normalised(value, expected):
    assert Settings(PAYROLL_PT_SCHEME=value).pt_scheme == expected


@pytest.mark.parametrize("value", ["PERCENTAGE", "slab", ""])
def test_unknown_pt_scheme_is_rejected(value):
    with pytest.raises(PydanticValidationError) as exc_info:
        Settings(PAYROLL_PT_SCHEME=value)
    assert "pt_scheme must be one of" in str(exc_info.value)


def test_pt_scheme_from_environment(monkeypatch):
    monkeypatch.setenv("PAYROLL_PT_SCHEME", "percent")
    assert Settings().pt_scheme == "PERCENT"


def test_tables_follow_settings():
    assert tables_from_settings(Settings(PAYROLL_PT_SCHEME="PERCENT")).pt_slabs == PERCENT_PT_SLABS
    assert tables_from_settings(Settings(PAYROLL_PT_SCHEME="FLAT")).pt_slabs == FLAT_PT_SLABS


def test_error_details_hidden_in_production():
    assert Settings(ENV="production").expose_error_details is False
    assert Settings(ENVIRONMENT="prod").expose_error_details is False
    assert Settings(ENV="development").expose_error_details is True


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_json_formatter_includes_payroll_fields():
    record = logging.LogRecord("payroll.lifecycle", logging.INFO, __file__, 1, "payroll_transition", None, None)
    record.payroll_id = 7
    record.from_status = "CALCULATED"
    record.to_status = "APPROVED"
    record.unrelated = "dropped"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "payroll.lifecycle"
    assert payload["message"] == "payroll_transition"
    assert payload["payroll_id"] == 7
    assert payload["from_status"] == "CALCULATED"
    assert payload["to_status"] == "APPROVED"
    assert "unrelated" not in payload
    assert "timestamp" in payload


def test_configure_logging_installs_json_handler():
    configure_logging("DEBUG")
    root = logging.getLogger()

    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, JsonFormatter)


def test_get_db_yields_and_closes_a_session():
    gen = get_db()
    session = next(gen)
    assert session.is_active
    with pytest.raises(StopIteration):
        next(gen)


def test_build_engine_shares_one_connection_for_in_memory_sqlite():
    from sqlalchemy.pool import StaticPool

    from payroll_engine.db.session import build_engine

    engine = build_engine("sqlite+pysqlite:///:memory:")
    try:
        assert isinstance(engine.pool, StaticPool)
    finally:
        engine.dispose()
