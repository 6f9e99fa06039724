"""
Column types that behave the same on PostgreSQL and SQLite.
"""

from sqlalchemy import JSON, TypeDecorator
from sqlalchemy.dialects import postgresql


class KeywordList(TypeDecorator):
    """
    Ordered keyword tuple stored as a JSON array (JSONB on PostgreSQL).

    Values come back as tuples so rows compare equal to ``Incident.keywords``.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value, dialect):
        if value is None:
            return []
        return [str(k) for k in value]

    def process_result_value(self, value, dialect):
        return tuple(value or ())
