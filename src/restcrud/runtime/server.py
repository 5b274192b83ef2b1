"""
restcrud server - assembles a FastAPI application from resource specs.

Wires together, in order:
- the generic exception handlers
- the unhandled-error middleware (innermost, so 500s get the headers below)
- CORS (exposing Content-Range)
- the Content-Range header middleware (outermost)
- one CRUD router per resource
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from restcrud._version import get_version
from restcrud.runtime.exception_handlers import (
    create_error_middleware,
    register_exception_handlers,
)
from restcrud.runtime.headers import CONTENT_RANGE, create_content_range_middleware
from restcrud.runtime.route_generator import crud
from restcrud.specs.crud import ResourceSpec

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration
# =============================================================================


def _env_list(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class ServerConfig:
    """
    Configuration for CrudBackendApp.

    Groups all initialization options into a single object for cleaner APIs.
    """

    # Database settings
    database_path: Path = field(default_factory=lambda: Path(".restcrud/data.db"))
    resources: list[str] = field(default_factory=list)  # Tables to expose (empty: all)
    read_only: bool = False  # Register only GET_LIST and GET_ONE

    # HTTP settings
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] | None = field(default_factory=lambda: ["*"])  # None disables CORS
    mount_path: str = ""  # Prefix for every resource router (e.g. /api)

    # Logging
    log_dir: Path = field(default_factory=lambda: Path(".restcrud/logs"))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides: Any) -> ServerConfig:
        """
        Build a config from RESTCRUD_* environment variables.

        Recognised variables: RESTCRUD_DATABASE, RESTCRUD_RESOURCES,
        RESTCRUD_READ_ONLY, RESTCRUD_HOST, RESTCRUD_PORT,
        RESTCRUD_CORS_ORIGINS, RESTCRUD_MOUNT_PATH, RESTCRUD_LOG_DIR,
        RESTCRUD_LOG_LEVEL. Keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if "RESTCRUD_DATABASE" in env:
            config.database_path = Path(env["RESTCRUD_DATABASE"])
        if "RESTCRUD_RESOURCES" in env:
            config.resources = _env_list(env["RESTCRUD_RESOURCES"]) or []
        if "RESTCRUD_READ_ONLY" in env:
            config.read_only = env["RESTCRUD_READ_ONLY"].lower() in ("1", "true", "yes")
        if "RESTCRUD_HOST" in env:
            config.host = env["RESTCRUD_HOST"]
        if "RESTCRUD_PORT" in env:
            config.port = int(env["RESTCRUD_PORT"])
        if "RESTCRUD_CORS_ORIGINS" in env:
            config.cors_origins = _env_list(env["RESTCRUD_CORS_ORIGINS"]) or None
        if "RESTCRUD_MOUNT_PATH" in env:
            config.mount_path = env["RESTCRUD_MOUNT_PATH"]
        if "RESTCRUD_LOG_DIR" in env:
            config.log_dir = Path(env["RESTCRUD_LOG_DIR"])
        if "RESTCRUD_LOG_LEVEL" in env:
            config.log_level = env["RESTCRUD_LOG_LEVEL"].upper()

        for key, value in overrides.items():
            if value is None:
                continue
            if not hasattr(config, key):
                raise TypeError(f"Unknown ServerConfig option: {key}")
            setattr(config, key, value)
        return config


# =============================================================================
# Application Builder
# =============================================================================


class CrudBackendApp:
    """
    restcrud backend application.

    Creates a FastAPI application exposing CRUD routes for each resource.
    """

    def __init__(
        self,
        resources: list[ResourceSpec],
        config: ServerConfig | None = None,
        *,
        title: str = "restcrud",
    ):
        """
        Initialize the backend application.

        Args:
            resources: Resources to expose
            config: Server configuration (default: ServerConfig())
            title: OpenAPI title
        """
        self.resources = resources
        self.config = config or ServerConfig()
        self.title = title
        self._app: FastAPI | None = None

        names = [r.name for r in resources]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate resource names: {', '.join(duplicates)}")

    def _create_app(self) -> FastAPI:
        app = FastAPI(title=self.title, version=get_version())
        register_exception_handlers(app)
        app.add_middleware(create_error_middleware())

        if self.config.cors_origins:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=self.config.cors_origins,
                allow_methods=["*"],
                allow_headers=["*"],
                expose_headers=[CONTENT_RANGE],
            )

        # Added last so it wraps CORS and sees the headers it sets
        app.add_middleware(create_content_range_middleware())
        return app

    @property
    def prefix(self) -> str:
        """Route prefix applied to every resource router."""
        return self.config.mount_path.rstrip("/")

    def build_routers(self) -> list[tuple[ResourceSpec, APIRouter]]:
        """
        Generate one CRUD router per resource, without mounting them.

        Raises:
            UnknownActionTypeError: If any resource selects an unknown action
        """
        return [(r, crud(r.name, r.model, r.options)) for r in self.resources]

    def _include_resources(self, app: FastAPI) -> None:
        prefix = self.prefix
        for resource, router in self.build_routers():
            app.include_router(router, prefix=prefix)
            logger.info("Mounted resource %s/%s", prefix, resource.name)

    def build(self) -> FastAPI:
        """
        Build and return the FastAPI application.

        Routers are generated for every resource before any is mounted, so a
        misconfigured resource prevents the app from being built at all.
        """
        app = self._create_app()
        self._include_resources(app)
        self._app = app
        return app

    @property
    def app(self) -> FastAPI:
        """Get the built application, building it on first access."""
        if self._app is None:
            return self.build()
        return self._app
