"""App factory functions.

Convenience functions for creating and running restcrud applications,
including the SQLite-backed app used by the CLI.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from restcrud.runtime.repository import DatabaseManager, ModelFactory
from restcrud.runtime.server import CrudBackendApp, ServerConfig
from restcrud.specs.crud import ActionType, CrudOptions, ResourceSpec

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

READ_ONLY_ACTIONS = [ActionType.GET_LIST, ActionType.GET_ONE]


def create_app(
    resources: list[ResourceSpec],
    config: ServerConfig | None = None,
) -> FastAPI:
    """
    Create a FastAPI application exposing CRUD routes for each resource.

    Args:
        resources: Resources to expose
        config: Server configuration (default: ServerConfig())

    Returns:
        FastAPI application

    Example:
        >>> db = DatabaseManager("app.db")
        >>> app = create_app([ResourceSpec(name="users", model=SQLiteModel(db, "users"))])
        >>> # Run with uvicorn: uvicorn mymodule:app
    """
    return CrudBackendApp(resources, config).build()


def build_sqlite_resources(config: ServerConfig) -> list[ResourceSpec]:
    """
    Build one resource per table of the configured SQLite database.

    Uses ``config.resources`` when set, otherwise every table.

    Raises:
        FileNotFoundError: If the database file does not exist
        ValueError: If a requested table does not exist
    """
    if not config.database_path.exists():
        raise FileNotFoundError(f"Database not found: {config.database_path}")

    db = DatabaseManager(config.database_path)
    models = ModelFactory(db).create_all_models(config.resources or None)
    options = CrudOptions(action_types=READ_ONLY_ACTIONS) if config.read_only else CrudOptions()

    logger.info("Exposing %d table(s) from %s", len(models), config.database_path)
    return [ResourceSpec(name=name, model=model, options=options) for name, model in models.items()]


def create_sqlite_app(config: ServerConfig | None = None) -> FastAPI:
    """
    Create an application exposing the tables of a SQLite database.

    Args:
        config: Server configuration (default: read from RESTCRUD_* env vars)

    Returns:
        FastAPI application
    """
    config = config or ServerConfig.from_env()
    return create_app(build_sqlite_resources(config), config)


def run_app(config: ServerConfig | None = None) -> None:
    """
    Run the SQLite-backed application with uvicorn.

    Args:
        config: Server configuration (default: read from RESTCRUD_* env vars)
    """
    import uvicorn

    from restcrud.runtime.logging import setup_logging

    config = config or ServerConfig.from_env()
    setup_logging(config.log_dir, config.log_level)

    app = create_sqlite_app(config)
    uvicorn.run(app, host=config.host, port=config.port)
