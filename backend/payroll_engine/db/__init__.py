from payroll_engine.db.base import Base, IDMixin, JSONDocument, TimestampMixin, money_column, utcnow

__all__ = [
    "Base",
    "IDMixin",
    "JSONDocument",
    "TimestampMixin",
    "money_column",
    "utcnow",
]
