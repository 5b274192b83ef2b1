"""
Query builder for equality filtering, ordering and offset pagination.

Provides SQL generation for the list endpoint's ``filter``/``sort``/``range``
conventions. Filter values follow ORM equality semantics: a scalar compares
with ``=``, a list becomes ``IN (...)`` and ``null`` becomes ``IS NULL``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

# Valid SQL identifier pattern (alphanumeric and underscore, not starting with digit)
_VALID_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_sql_identifier(name: str, context: str = "identifier") -> str:
    """
    Validate that a string is a safe SQL identifier.

    Args:
        name: The identifier to validate
        context: Description of what's being validated (for error messages)

    Returns:
        The validated name

    Raises:
        ValueError: If the name contains invalid characters
    """
    if not name:
        raise ValueError(f"SQL {context} cannot be empty")
    if not _VALID_IDENTIFIER_PATTERN.match(name):
        raise ValueError(
            f"Invalid SQL {context} '{name}': must contain only letters, digits, "
            "and underscores, and cannot start with a digit"
        )
    return name


def quote_identifier(name: str, context: str = "identifier") -> str:
    """Validate and double-quote an identifier."""
    return f'"{validate_sql_identifier(name, context)}"'


def to_sql_value(value: Any) -> Any:
    """Convert Python value to SQLite-compatible value."""
    if value is None:
        return None
    elif isinstance(value, UUID):
        return str(value)
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, Decimal):
        return float(value)
    elif isinstance(value, bool):
        return 1 if value else 0
    else:
        return value


@dataclass
class FilterCondition:
    """A single equality condition."""

    field: str
    value: Any

    def to_sql(self) -> tuple[str, list[Any]]:
        """
        Convert condition to SQL fragment and parameters.

        Examples:
            - ("status", "active") -> ('"status" = ?', ["active"])
            - ("id", [1, 2]) -> ('"id" IN (?, ?)', [1, 2])
            - ("deleted_at", None) -> ('"deleted_at" IS NULL', [])
        """
        field_ref = quote_identifier(self.field, "filter field")

        if self.value is None:
            return f"{field_ref} IS NULL", []

        if isinstance(self.value, (list, tuple)):
            if not self.value:
                # Empty IN list matches nothing
                return "1 = 0", []
            placeholders = ", ".join("?" * len(self.value))
            return f"{field_ref} IN ({placeholders})", [to_sql_value(v) for v in self.value]

        if isinstance(self.value, dict):
            raise ValueError(f"Unsupported filter value for '{self.field}': nested objects")

        return f"{field_ref} = ?", [to_sql_value(self.value)]


@dataclass
class SortField:
    """A single sort field."""

    field: str
    descending: bool = False

    @classmethod
    def parse(cls, field_name: str, direction: str = "ASC") -> SortField:
        """
        Build a SortField from a ``(field, direction)`` pair.

        Examples:
            - ("created_at", "ASC") -> SortField(field="created_at", descending=False)
            - ("created_at", "desc") -> SortField(field="created_at", descending=True)
        """
        normalized = direction.upper()
        if normalized not in ("ASC", "DESC"):
            raise ValueError(f"Invalid sort direction '{direction}'")
        return cls(field=field_name, descending=normalized == "DESC")

    def to_sql(self) -> str:
        """Convert to SQL ORDER BY fragment."""
        field_ref = quote_identifier(self.field, "sort field")
        direction = "DESC" if self.descending else "ASC"
        return f"{field_ref} {direction}"


@dataclass
class QueryBuilder:
    """
    Builds SQL queries with filters, sorting, and pagination.

    Example:
        builder = QueryBuilder(table_name="users")
        builder.add_filters({"role": "admin", "team_id": [1, 2]})
        builder.add_sort("created_at", "DESC")
        builder.set_window(offset=0, limit=10)

        sql, params = builder.build_select()
    """

    table_name: str
    conditions: list[FilterCondition] = field(default_factory=list)
    sorts: list[SortField] = field(default_factory=list)
    offset: int = 0
    limit: int | None = None

    def __post_init__(self) -> None:
        """Validate table name on initialization."""
        validate_sql_identifier(self.table_name, "table name")

    def add_filter(self, key: str, value: Any) -> QueryBuilder:
        """Add an equality condition."""
        self.conditions.append(FilterCondition(field=key, value=value))
        return self

    def add_filters(self, filters: dict[str, Any]) -> QueryBuilder:
        """Add multiple equality conditions."""
        for key, value in filters.items():
            self.add_filter(key, value)
        return self

    def add_sort(self, field_name: str, direction: str = "ASC") -> QueryBuilder:
        """Add a sort field."""
        self.sorts.append(SortField.parse(field_name, direction))
        return self

    def add_sorts(self, order: list[tuple[str, str]]) -> QueryBuilder:
        """Add multiple ``(field, direction)`` sort fields."""
        for field_name, direction in order:
            self.add_sort(field_name, direction)
        return self

    def set_window(self, offset: int, limit: int | None) -> QueryBuilder:
        """Set offset/limit pagination."""
        self.offset = max(0, offset)
        self.limit = None if limit is None else max(0, limit)
        return self

    def build_where_clause(self) -> tuple[str, list[Any]]:
        """
        Build the WHERE clause from conditions.

        Returns:
            Tuple of (where_clause, parameters)
        """
        if not self.conditions:
            return "", []

        fragments = []
        params: list[Any] = []

        for condition in self.conditions:
            sql, condition_params = condition.to_sql()
            fragments.append(sql)
            params.extend(condition_params)

        where_clause = " AND ".join(fragments)
        return f"WHERE {where_clause}", params

    def build_order_clause(self) -> str:
        """Build the ORDER BY clause."""
        if not self.sorts:
            return ""

        order_parts = [sort.to_sql() for sort in self.sorts]
        return f"ORDER BY {', '.join(order_parts)}"

    def build_limit_offset(self) -> tuple[str, list[int]]:
        """Build LIMIT/OFFSET clause."""
        # SQLite requires a LIMIT before OFFSET; -1 means unbounded
        limit = -1 if self.limit is None else self.limit
        return "LIMIT ? OFFSET ?", [limit, self.offset]

    def build_select(self, count_only: bool = False) -> tuple[str, list[Any]]:
        """
        Build complete SELECT query.

        Args:
            count_only: If True, build COUNT(*) query instead

        Returns:
            Tuple of (sql, parameters)
        """
        params: list[Any] = []
        table = quote_identifier(self.table_name, "table name")

        if count_only:
            select = f"SELECT COUNT(*) FROM {table}"
        else:
            select = f"SELECT * FROM {table}"

        where_clause, where_params = self.build_where_clause()
        params.extend(where_params)

        query_parts = [select]
        if where_clause:
            query_parts.append(where_clause)

        if not count_only:
            order_clause = self.build_order_clause()
            if order_clause:
                query_parts.append(order_clause)

            limit_clause, limit_params = self.build_limit_offset()
            query_parts.append(limit_clause)
            params.extend(limit_params)

        return " ".join(query_parts), params

    def build_count(self) -> tuple[str, list[Any]]:
        """Build COUNT query."""
        return self.build_select(count_only=True)
