"""Shared pytest fixtures for restcrud tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from restcrud.runtime.model import CountResult
from restcrud.runtime.repository import DatabaseManager

USERS_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT UNIQUE,
    role TEXT DEFAULT 'member'
);
INSERT INTO users (name, email, role) VALUES ('Ada', 'ada@example.com', 'admin');
INSERT INTO users (name, email, role) VALUES ('Brian', 'brian@example.com', 'member');
INSERT INTO users (name, email, role) VALUES ('Cleo', 'cleo@example.com', 'member');
INSERT INTO users (name, email, role) VALUES ('Dmitri', 'dmitri@example.com', 'admin');
INSERT INTO users (name, email, role) VALUES ('Esme', NULL, 'guest');

CREATE TABLE tags (
    slug TEXT PRIMARY KEY,
    label TEXT NOT NULL
);
INSERT INTO tags (slug, label) VALUES ('red', 'Red');
INSERT INTO tags (slug, label) VALUES ('blue', 'Blue');
"""


class RecordingModel:
    """In-memory CrudModel that records every call it receives."""

    def __init__(self, records: list[dict[str, Any]] | None = None, total: int | None = None):
        self.records = {str(r["id"]): dict(r) for r in (records or [])}
        self.total = total
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.update_result: Any = [1]

    async def find_and_count_all(self, *, offset, limit, order, where) -> CountResult:
        self.calls.append(
            ("find_and_count_all", {"offset": offset, "limit": limit, "order": order, "where": where})
        )
        rows = list(self.records.values())[offset : offset + limit]
        total = self.total if self.total is not None else len(self.records)
        return CountResult(count=total, rows=rows)

    async def find_by_pk(self, pk: Any) -> dict[str, Any] | None:
        self.calls.append(("find_by_pk", {"pk": pk}))
        return self.records.get(str(pk))

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("create", {"values": values}))
        record = {"id": len(self.records) + 1, **values}
        self.records[str(record["id"])] = record
        return record

    async def update(self, values: dict[str, Any], *, where: dict[str, Any]) -> Any:
        self.calls.append(("update", {"values": values, "where": where}))
        return self.update_result

    async def destroy(self, *, where: dict[str, Any]) -> int:
        self.calls.append(("destroy", {"where": where}))
        return 1 if self.records.pop(str(where["id"]), None) else 0

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def recording_model() -> RecordingModel:
    """Return an in-memory model seeded with three users."""
    return RecordingModel(
        [
            {"id": 1, "name": "Ada"},
            {"id": 2, "name": "Brian"},
            {"id": 3, "name": "Cleo"},
        ]
    )


@pytest.fixture
def sample_db_path(tmp_path: Path) -> Path:
    """Create a SQLite database with users and tags tables."""
    db_path = tmp_path / "sample.db"
    DatabaseManager(db_path).execute_script(USERS_SCHEMA)
    return db_path


@pytest.fixture
def db_manager(sample_db_path: Path) -> DatabaseManager:
    """Return a DatabaseManager for the sample database."""
    return DatabaseManager(sample_db_path)
