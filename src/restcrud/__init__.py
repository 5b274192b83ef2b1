"""
restcrud - REST CRUD routes for any model.

Generates list/get-one/create/update/delete endpoints on FastAPI, wiring the
``range``/``sort``/``filter`` query conventions into paginated, sorted,
filtered model queries and answering with ``Content-Range`` headers.
"""

from restcrud._version import get_version as _get_version

__version__ = _get_version()

from restcrud.runtime import (
    CountResult,
    CrudModel,
    DatabaseManager,
    SQLiteModel,
    ServerConfig,
    UnknownActionTypeError,
    create_app,
    crud,
    expose_content_range,
)
from restcrud.specs import ActionType, CrudOptions, ResourceSpec

__all__ = [
    "__version__",
    "crud",
    "ActionType",
    "CrudOptions",
    "ResourceSpec",
    "CrudModel",
    "CountResult",
    "DatabaseManager",
    "SQLiteModel",
    "ServerConfig",
    "UnknownActionTypeError",
    "create_app",
    "expose_content_range",
]
