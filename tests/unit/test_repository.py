"""
Tests for the SQLite model adapter.

Runs each CrudModel operation against a real SQLite file seeded by the
``sample_db_path`` fixture (users with an integer key, tags with a text key).
"""

from __future__ import annotations

from typing import Any

import pytest

from restcrud.runtime.errors import ConstraintViolationError
from restcrud.runtime.model import CountResult, CrudModel
from restcrud.runtime.repository import DatabaseManager, ModelFactory, SQLiteModel


@pytest.fixture
def users(db_manager: DatabaseManager) -> SQLiteModel:
    return SQLiteModel(db_manager, "users")


@pytest.fixture
def tags(db_manager: DatabaseManager) -> SQLiteModel:
    return SQLiteModel(db_manager, "tags")


class TestDatabaseManager:
    def test_list_tables_skips_internals(self, db_manager: DatabaseManager) -> None:
        # AUTOINCREMENT creates sqlite_sequence
        assert db_manager.list_tables() == ["tags", "users"]

    def test_introspection(self, db_manager: DatabaseManager) -> None:
        assert db_manager.table_exists("users")
        assert not db_manager.table_exists("orders")
        assert db_manager.get_table_columns("users") == ["id", "name", "email", "role"]
        assert db_manager.get_primary_key("users") == "id"
        assert db_manager.get_primary_key("tags") == "slug"

    def test_rollback_on_error(self, db_manager: DatabaseManager) -> None:
        with pytest.raises(RuntimeError):
            with db_manager.connection() as conn:
                conn.execute("DELETE FROM users")
                raise RuntimeError("abort")

        with db_manager.connection() as conn:
            assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 5


class TestSQLiteModel:
    def test_satisfies_protocol(self, users: SQLiteModel) -> None:
        assert isinstance(users, CrudModel)

    def test_missing_table(self, db_manager: DatabaseManager) -> None:
        with pytest.raises(ValueError, match="Table not found"):
            SQLiteModel(db_manager, "orders")

    @pytest.mark.asyncio
    async def test_find_and_count_all_window(self, users: SQLiteModel) -> None:
        result = await users.find_and_count_all(offset=1, limit=2, order=[("id", "ASC")], where={})

        assert isinstance(result, CountResult)
        assert result.count == 5
        assert [r["name"] for r in result.rows] == ["Brian", "Cleo"]

    @pytest.mark.asyncio
    async def test_find_and_count_all_filter_and_sort(self, users: SQLiteModel) -> None:
        result = await users.find_and_count_all(
            offset=0, limit=101, order=[("name", "DESC")], where={"role": "admin"}
        )

        assert result.count == 2
        assert [r["name"] for r in result.rows] == ["Dmitri", "Ada"]

    @pytest.mark.asyncio
    async def test_filter_list_and_null(self, users: SQLiteModel) -> None:
        by_ids = await users.find_and_count_all(
            offset=0, limit=10, order=[("id", "ASC")], where={"id": [1, 3]}
        )
        no_email = await users.find_and_count_all(
            offset=0, limit=10, order=[("id", "ASC")], where={"email": None}
        )

        assert [r["id"] for r in by_ids.rows] == [1, 3]
        assert [r["name"] for r in no_email.rows] == ["Esme"]

    @pytest.mark.asyncio
    async def test_id_maps_to_text_primary_key(self, tags: SQLiteModel) -> None:
        result = await tags.find_and_count_all(
            offset=0, limit=10, order=[("id", "DESC")], where={"id": "red"}
        )

        assert result.rows == [{"slug": "red", "label": "Red"}]

    @pytest.mark.asyncio
    async def test_find_by_pk_accepts_string_id(self, users: SQLiteModel) -> None:
        record = await users.find_by_pk("2")

        assert record is not None
        assert record["name"] == "Brian"
        assert await users.find_by_pk("99") is None

    @pytest.mark.asyncio
    async def test_create_returns_stored_row(self, users: SQLiteModel) -> None:
        record = await users.create({"name": "Farah", "unknown_field": "ignored"})

        assert record == {"id": 6, "name": "Farah", "email": None, "role": "member"}

    @pytest.mark.asyncio
    async def test_create_with_text_key(self, tags: SQLiteModel) -> None:
        record = await tags.create({"slug": "green", "label": "Green"})

        assert record == {"slug": "green", "label": "Green"}

    @pytest.mark.asyncio
    async def test_create_unique_violation(self, users: SQLiteModel) -> None:
        with pytest.raises(ConstraintViolationError) as exc_info:
            await users.create({"name": "Ada II", "email": "ada@example.com"})

        assert exc_info.value.constraint_type == "unique"
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_create_not_null_violation(self, users: SQLiteModel) -> None:
        with pytest.raises(ConstraintViolationError) as exc_info:
            await users.create({"email": "anon@example.com"})

        assert exc_info.value.constraint_type == "not_null"
        assert exc_info.value.field == "name"

    @pytest.mark.asyncio
    async def test_update_returns_count_and_rows(self, users: SQLiteModel) -> None:
        result = await users.update({"role": "admin"}, where={"id": "2"})

        assert result[0] == 1
        assert result[1] == [
            {"id": 2, "name": "Brian", "email": "brian@example.com", "role": "admin"}
        ]

    @pytest.mark.asyncio
    async def test_update_primary_key_change(self, tags: SQLiteModel) -> None:
        result = await tags.update({"slug": "crimson"}, where={"id": "red"})

        assert result == [1, [{"slug": "crimson", "label": "Red"}]]
        assert await tags.find_by_pk("red") is None

    @pytest.mark.asyncio
    async def test_update_no_match_or_no_values(self, users: SQLiteModel) -> None:
        assert await users.update({"role": "admin"}, where={"id": "99"}) == [0, []]
        assert await users.update({"bogus": 1}, where={"id": "1"}) == [0, []]

    @pytest.mark.asyncio
    async def test_destroy(self, users: SQLiteModel) -> None:
        assert await users.destroy(where={"id": "5"}) == 1
        assert await users.destroy(where={"id": "5"}) == 0
        assert await users.find_by_pk(5) is None

    @pytest.mark.asyncio
    async def test_destroy_requires_where(self, users: SQLiteModel) -> None:
        with pytest.raises(ValueError):
            await users.destroy(where={})


class TestModelFactory:
    def test_create_all_models(self, db_manager: DatabaseManager) -> None:
        models = ModelFactory(db_manager).create_all_models()

        assert sorted(models) == ["tags", "users"]
        assert models["tags"].primary_key == "slug"

    def test_selected_tables_and_reuse(self, db_manager: DatabaseManager) -> None:
        factory = ModelFactory(db_manager)
        models = factory.create_all_models(["users"])

        assert list(models) == ["users"]
        assert factory.get_model("users") is factory.create_model("users")
        assert factory.get_model("tags") is None

    def test_unknown_table(self, db_manager: DatabaseManager) -> None:
        with pytest.raises(ValueError):
            ModelFactory(db_manager).create_all_models(["orders"])


def _names(rows: list[dict[str, Any]]) -> list[str]:
    return [r["name"] for r in rows]


@pytest.mark.asyncio
async def test_round_trip_through_model(users: SQLiteModel) -> None:
    created = await users.create({"name": "Gus", "role": "guest"})
    listed = await users.find_and_count_all(
        offset=0, limit=10, order=[("id", "ASC")], where={"role": "guest"}
    )

    assert _names(listed.rows) == ["Esme", "Gus"]
    assert await users.destroy(where={"id": str(created["id"])}) == 1
