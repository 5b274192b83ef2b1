"""
restcrud Runtime

CRUD route generation over FastAPI.

This module provides:
- Route generation (``crud()``: five handlers per resource)
- The CrudModel protocol and a SQLite adapter
- Content-Range header exposure for CORS clients
- Application assembly and the generic error path

Example usage:
    >>> from restcrud.runtime import (
    ...     DatabaseManager, SQLiteModel, create_content_range_middleware, crud,
    ... )
    >>>
    >>> db = DatabaseManager("app.db")
    >>> app = FastAPI()
    >>> app.add_middleware(create_content_range_middleware())
    >>> app.include_router(crud("users", SQLiteModel(db, "users")))
"""

from restcrud.runtime.app_factory import (
    build_sqlite_resources,
    create_app,
    create_sqlite_app,
    run_app,
)
from restcrud.runtime.errors import (
    ConstraintViolationError,
    CrudError,
    InvalidQueryParameterError,
    InvalidRequestBodyError,
    UnknownActionTypeError,
)
from restcrud.runtime.exception_handlers import (
    create_error_middleware,
    register_exception_handlers,
)
from restcrud.runtime.headers import (
    create_content_range_middleware,
    expose_content_range,
    merge_header_list,
)
from restcrud.runtime.model import CountResult, CrudModel
from restcrud.runtime.params import ListParams, parse_list_params
from restcrud.runtime.repository import DatabaseManager, ModelFactory, SQLiteModel
from restcrud.runtime.route_generator import crud
from restcrud.runtime.server import CrudBackendApp, ServerConfig

__all__ = [
    # Route generation
    "crud",
    "ListParams",
    "parse_list_params",
    # Models
    "CrudModel",
    "CountResult",
    "DatabaseManager",
    "ModelFactory",
    "SQLiteModel",
    # Headers
    "expose_content_range",
    "merge_header_list",
    "create_content_range_middleware",
    # Errors
    "CrudError",
    "UnknownActionTypeError",
    "InvalidQueryParameterError",
    "InvalidRequestBodyError",
    "ConstraintViolationError",
    "register_exception_handlers",
    "create_error_middleware",
    # Server
    "CrudBackendApp",
    "ServerConfig",
    "create_app",
    "create_sqlite_app",
    "build_sqlite_resources",
    "run_app",
]
