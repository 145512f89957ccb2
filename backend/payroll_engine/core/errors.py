"""
Typed errors raised by the calculation engine and the payroll lifecycle.

Each error carries a stable ``code`` and the HTTP status a transport layer
should answer with (400 / 404 / 409 / 500).
"""

from __future__ import annotations

from typing import Any, Optional


class PayrollError(Exception):
    code = "INTERNAL_SERVER_ERROR"
    http_status = 500

    def __init__(self, message: str, *, details: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationError(PayrollError):
    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(self, message: str, *, field: Optional[str] = None, details: Optional[list[dict[str, Any]]] = None) -> None:
        if details is None and field is not None:
            details = [{"field": field, "message": message}]
        super().__init__(message, details=details)
        self.field = field


class UnknownSalaryTypeError(ValidationError):
    def __init__(self, salary_type: Any) -> None:
        super().__init__(f"Unknown salary type: {salary_type!r}", field="salary_type")
        self.salary_type = salary_type


class ConflictError(PayrollError):
    code = "CONFLICT"
    http_status = 409


class InvalidTransitionError(ConflictError):
    code = "INVALID_OPERATION"

    def __init__(self, operation: str, current_status: Any) -> None:
        status_value = getattr(current_status, "value", current_status)
        super().__init__(
            f"Cannot {operation} payroll in {status_value} status",
            details=[{"field": "status", "message": f"current status is {status_value}"}],
        )
        self.operation = operation
        self.current_status = current_status


class NotFoundError(PayrollError):
    code = "NOT_FOUND"
    http_status = 404


class ComputationInvariantError(PayrollError):
    """A calculator produced an unbalanced or negative breakdown. Always a bug."""

    code = "COMPUTATION_INVARIANT"
    http_status = 500


def error_payload(exc: Exception, *, expose_internal: bool = True) -> dict[str, Any]:
    """Render the standard error envelope for a transport layer."""
    if isinstance(exc, PayrollError) and exc.http_status < 500:
        return {
            "error": {
                "code": exc.code,
                "message": exc.message,
                "status_code": exc.http_status,
                "details": exc.details,
            }
        }

    status_code = getattr(exc, "http_status", 500)
    message = str(exc) if expose_internal else "An error occurred processing your request"
    return {
        "error": {
            "code": "INTERNAL_SERVER_ERROR",
            "message": message,
            "status_code": status_code,
        }
    }
