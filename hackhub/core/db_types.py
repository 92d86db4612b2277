"""
Dialect-aware column types.

JSON columns become JSONB on PostgreSQL and plain JSON elsewhere.
StringList stores skill and tag lists in a normalized form.
"""
from typing import Any, List

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator


def normalize_string_list(value: Any) -> List[str]:
    """Coerce a tag/skill value (list or comma separated string) into a clean list."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(item).strip() for item in value if str(item).strip()]


class UniversalJSON(TypeDecorator):
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


class StringList(UniversalJSON):
    """JSON list of non-empty, stripped strings. Order is preserved."""
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return normalize_string_list(value)

    def process_result_value(self, value, dialect):
        return normalize_string_list(value)
