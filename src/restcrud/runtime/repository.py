"""
SQLite model adapter - a CrudModel backed by a SQLite table.

This module implements the model capability protocol over the standard
library ``sqlite3`` driver so any existing SQLite table can be exposed as a
resource. Rows are returned as plain dicts keyed by column name.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from restcrud.runtime.errors import ConstraintViolationError
from restcrud.runtime.logging import get_db_logger, log_with_context
from restcrud.runtime.model import CountResult, OrderSpec, WhereSpec
from restcrud.runtime.query_builder import (
    FilterCondition,
    QueryBuilder,
    quote_identifier,
    to_sql_value,
    validate_sql_identifier,
)

logger = get_db_logger()


def _parse_constraint_error(exc: Exception) -> tuple[str, str | None]:
    """Parse a SQLite integrity error message to extract type and field.

    Returns:
        (constraint_type, field_name_or_none)
    """
    err = str(exc)

    # "UNIQUE constraint failed: users.email"
    if "UNIQUE constraint failed:" in err:
        parts = err.split("UNIQUE constraint failed:")[-1].strip()
        field_name = parts.split(",")[0].split(".")[-1].strip() if parts else None
        return "unique", field_name or None

    # "NOT NULL constraint failed: users.name"
    if "NOT NULL constraint failed:" in err:
        parts = err.split("NOT NULL constraint failed:")[-1].strip()
        field_name = parts.split(".")[-1].strip() if parts else None
        return "not_null", field_name or None

    if "FOREIGN KEY constraint failed" in err:
        return "foreign_key", None

    return "integrity", None


def _constraint_violation(exc: sqlite3.IntegrityError, table_name: str) -> ConstraintViolationError:
    ctype, field = _parse_constraint_error(exc)
    if ctype == "unique":
        msg = (
            f"A {table_name} record with this {field} already exists"
            if field
            else f"Duplicate value violates unique constraint on {table_name}"
        )
    elif ctype == "not_null":
        msg = f"Field '{field}' is required on {table_name}"
    elif ctype == "foreign_key":
        msg = f"Referenced record does not exist for {table_name}"
    else:
        msg = f"Integrity constraint violated on {table_name}: {exc}"
    log_with_context(
        logger,
        logging.WARNING,
        f"Constraint violation on {table_name}",
        constraint_type=ctype,
        field=field,
    )
    return ConstraintViolationError(msg, field=field, constraint_type=ctype)


def _column_value(value: Any) -> Any:
    """Convert a Python value for storage; structured values are stored as JSON."""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return to_sql_value(value)


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """
    Manages SQLite database connections and schema introspection.
    """

    def __init__(self, db_path: str | Path = ".restcrud/data.db"):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection context manager.

        Commits on success, rolls back on error.

        Yields:
            SQLite connection
        """
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute_script(self, sql: str) -> None:
        """Run a multi-statement SQL script (schema setup, fixtures)."""
        with self.connection() as conn:
            conn.executescript(sql)

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table_name,)
            )
            return cursor.fetchone() is not None

    def list_tables(self) -> list[str]:
        """List user tables, excluding SQLite internals."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master "
                "WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
            return [row[0] for row in cursor.fetchall()]

    def get_table_columns(self, table_name: str) -> list[str]:
        """Get column names for a table."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"PRAGMA table_info({quote_identifier(table_name)})")
            return [row[1] for row in cursor.fetchall()]

    def get_primary_key(self, table_name: str) -> str | None:
        """Get the single-column primary key of a table, if any."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"PRAGMA table_info({quote_identifier(table_name)})")
            pk_columns = [row[1] for row in cursor.fetchall() if row[5]]
        return pk_columns[0] if len(pk_columns) == 1 else None


# =============================================================================
# Model Adapter
# =============================================================================


class SQLiteModel:
    """
    CrudModel implementation for a single SQLite table.

    Unknown keys in create/update values are ignored, matching ORM
    attribute handling. ``update`` returns ``[affected_count, updated_rows]``.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        table_name: str,
        primary_key: str | None = None,
    ):
        """
        Initialize the model.

        Args:
            db_manager: Database manager instance
            table_name: Table to expose
            primary_key: Primary key column (default: detected, else "id")
        """
        self.db = db_manager
        self.table_name = validate_sql_identifier(table_name, "table name")
        if not self.db.table_exists(table_name):
            raise ValueError(f"Table not found: {table_name}")
        self.columns = self.db.get_table_columns(table_name)
        self.primary_key = primary_key or self.db.get_primary_key(table_name) or "id"
        self._table = quote_identifier(table_name)

    def __repr__(self) -> str:
        return f"SQLiteModel({self.table_name!r}, primary_key={self.primary_key!r})"

    def _known_values(self, values: dict[str, Any]) -> dict[str, Any]:
        known = {k: _column_value(v) for k, v in values.items() if k in self.columns}
        ignored = set(values) - set(known)
        if ignored:
            logger.debug("Ignoring unknown columns for %s: %s", self.table_name, sorted(ignored))
        return known

    def _column(self, key: str) -> str:
        # "id" addresses the primary key when the table has no id column
        if key == "id" and "id" not in self.columns:
            return self.primary_key
        return key

    def _where(self, where: WhereSpec) -> tuple[str, list[Any]]:
        fragments: list[str] = []
        params: list[Any] = []
        for key, value in where.items():
            sql, condition_params = FilterCondition(field=self._column(key), value=value).to_sql()
            fragments.append(sql)
            params.extend(condition_params)
        return " AND ".join(fragments), params

    async def find_and_count_all(
        self,
        *,
        offset: int = 0,
        limit: int | None = None,
        order: OrderSpec | None = None,
        where: WhereSpec | None = None,
    ) -> CountResult:
        """
        Count all matching rows and fetch one page of them.

        Args:
            offset: Rows to skip
            limit: Maximum rows to return (None for all)
            order: ``(field, direction)`` pairs
            where: Equality filter map

        Returns:
            CountResult with total count and the page of rows
        """
        builder = QueryBuilder(table_name=self.table_name)
        builder.set_window(offset, limit)
        if where:
            builder.add_filters({self._column(k): v for k, v in where.items()})
        if order:
            builder.add_sorts([(self._column(f), d) for f, d in order])

        count_sql, count_params = builder.build_count()
        items_sql, items_params = builder.build_select()

        start = time.perf_counter()
        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(count_sql, count_params)
            total = cursor.fetchone()[0]
            cursor.execute(items_sql, items_params)
            rows = [dict(row) for row in cursor.fetchall()]
        latency_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            "Listed %s: %d of %d rows in %.1fms", self.table_name, len(rows), total, latency_ms
        )

        return CountResult(count=total, rows=rows)

    async def find_by_pk(self, pk: Any) -> dict[str, Any] | None:
        """
        Read a row by primary key.

        Returns:
            Row dict, or None if not found
        """
        pk_col = quote_identifier(self.primary_key)
        sql = f"SELECT * FROM {self._table} WHERE {pk_col} = ?"

        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, (to_sql_value(pk),))
            row = cursor.fetchone()

        return dict(row) if row else None

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new row.

        Args:
            values: Column values

        Returns:
            The inserted row as stored (including generated keys and defaults)
        """
        data = self._known_values(values)
        if data:
            columns = ", ".join(quote_identifier(k) for k in data)
            placeholders = ", ".join("?" for _ in data)
            sql = f"INSERT INTO {self._table} ({columns}) VALUES ({placeholders})"
        else:
            sql = f"INSERT INTO {self._table} DEFAULT VALUES"

        try:
            with self.db.connection() as conn:
                cursor = conn.cursor()
                cursor.execute(sql, list(data.values()))
                cursor.execute(f"SELECT * FROM {self._table} WHERE rowid = ?", (cursor.lastrowid,))
                row = cursor.fetchone()
        except sqlite3.IntegrityError as exc:
            raise _constraint_violation(exc, self.table_name) from exc

        logger.debug("Created %s row", self.table_name)
        return dict(row) if row else data

    async def update(self, values: dict[str, Any], *, where: WhereSpec) -> list[Any]:
        """
        Update matching rows.

        Args:
            values: Column values to set
            where: Equality filter selecting the rows

        Returns:
            ``[affected_count, updated_rows]``
        """
        data = self._known_values(values)
        if not data:
            return [0, []]

        where_sql, where_params = self._where(where)
        where_clause = f" WHERE {where_sql}" if where_sql else ""
        set_clause = ", ".join(f"{quote_identifier(k)} = ?" for k in data)

        try:
            with self.db.connection() as conn:
                cursor = conn.cursor()
                # Capture rowids first so rows stay addressable if the key changes
                cursor.execute(f"SELECT rowid FROM {self._table}{where_clause}", where_params)
                rowids = [row[0] for row in cursor.fetchall()]
                if not rowids:
                    return [0, []]
                id_placeholders = ", ".join("?" for _ in rowids)
                cursor.execute(
                    f"UPDATE {self._table} SET {set_clause} WHERE rowid IN ({id_placeholders})",
                    [*data.values(), *rowids],
                )
                affected = cursor.rowcount
                cursor.execute(
                    f"SELECT * FROM {self._table} WHERE rowid IN ({id_placeholders})", rowids
                )
                rows = [dict(row) for row in cursor.fetchall()]
        except sqlite3.IntegrityError as exc:
            raise _constraint_violation(exc, self.table_name) from exc

        logger.debug("Updated %d %s row(s)", affected, self.table_name)
        return [affected, rows]

    async def destroy(self, *, where: WhereSpec) -> int:
        """
        Delete matching rows.

        Returns:
            Number of rows deleted

        Raises:
            ValueError: If where is empty
        """
        if not where:
            raise ValueError(f"Refusing to delete from {self.table_name} without a where clause")

        where_sql, where_params = self._where(where)
        sql = f"DELETE FROM {self._table} WHERE {where_sql}"

        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, where_params)
            rowcount = cursor.rowcount

        logger.debug("Deleted %d %s row(s)", rowcount, self.table_name)
        return rowcount


# =============================================================================
# Model Factory
# =============================================================================


class ModelFactory:
    """
    Factory for creating SQLite models for the tables of one database.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self._models: dict[str, SQLiteModel] = {}

    def create_model(self, table_name: str) -> SQLiteModel:
        """Create (or reuse) the model for a table."""
        if table_name not in self._models:
            self._models[table_name] = SQLiteModel(self.db, table_name)
        return self._models[table_name]

    def create_all_models(self, tables: list[str] | None = None) -> dict[str, SQLiteModel]:
        """
        Create models for the given tables, or every table in the database.

        Returns:
            Dictionary mapping table names to models
        """
        for table_name in tables or self.db.list_tables():
            self.create_model(table_name)
        return dict(self._models)

    def get_model(self, table_name: str) -> SQLiteModel | None:
        """Get a model by table name."""
        return self._models.get(table_name)
