"""Payroll calculation engine and payroll lifecycle."""

__version__ = "1.0.0"
