"""
Route generator - generates FastAPI CRUD routes for a model.

``crud()`` turns a resource name and a model implementing ``CrudModel`` into
an ``APIRouter`` with up to five handlers:

    GET    /{resource}        list (range/sort/filter, Content-Range header)
    GET    /{resource}/{id}   get one
    POST   /{resource}        create
    PUT    /{resource}/{id}   update
    DELETE /{resource}/{id}   delete

Model failures are not handled here; they propagate to the application's
exception handlers.
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from fastapi import APIRouter, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from restcrud.runtime.errors import InvalidRequestBodyError
from restcrud.runtime.model import CrudModel
from restcrud.runtime.params import parse_list_params
from restcrud.specs.crud import ActionType, CrudOptions

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = {"error": "Record not found"}


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content=NOT_FOUND_BODY)


async def _apply_hook(hook: Callable[[Any], Any], data: Any) -> Any:
    """Run a post-fetch hook, awaiting it if it is async."""
    result = hook(data)
    if inspect.isawaitable(result):
        result = await result
    return result


async def _parse_request_body(request: Request) -> dict[str, Any]:
    """Parse request body as JSON or form data.

    Accepts application/x-www-form-urlencoded as well as JSON so plain HTML
    forms can post to the same endpoints. The body must be an object.
    """
    content_type = (request.headers.get("content-type") or "").lower()
    if "application/x-www-form-urlencoded" in content_type:
        form = await request.form()
        return dict(form)

    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise InvalidRequestBodyError(f"Request body is not valid JSON: {exc.msg}") from exc
    if not isinstance(body, dict):
        raise InvalidRequestBodyError("Request body must be a JSON object of field values")
    return body


# =============================================================================
# Handler Factories
# =============================================================================


def create_list_handler(
    model: CrudModel,
    after_hook: Callable[[list[Any]], Any],
) -> Callable[..., Any]:
    """Create a handler for paginated, sorted, filtered list requests."""

    async def list_records(
        response: Response,
        range_param: str | None = Query(None, alias="range"),
        sort_param: str | None = Query(None, alias="sort"),
        filter_param: str | None = Query(None, alias="filter"),
    ) -> Any:
        params = parse_list_params(range_param, sort_param, filter_param)
        result = await model.find_and_count_all(
            offset=params.offset,
            limit=params.limit,
            order=params.order,
            where=params.where,
        )
        response.headers["Content-Range"] = params.content_range(len(result.rows), result.count)
        return await _apply_hook(after_hook, result.rows)

    return list_records


def create_read_handler(
    model: CrudModel,
    after_hook: Callable[[Any], Any],
) -> Callable[..., Any]:
    """Create a handler that fetches one record by primary key."""

    async def get_record(id: str) -> Any:
        record = await model.find_by_pk(id)
        if record is None:
            return _not_found()
        return await _apply_hook(after_hook, record)

    return get_record


def create_create_handler(model: CrudModel) -> Callable[..., Any]:
    """Create a handler that creates a record from the request body."""

    async def create_record(request: Request) -> Any:
        body = await _parse_request_body(request)
        return await model.create(body)

    return create_record


def create_update_handler(model: CrudModel) -> Callable[..., Any]:
    """Create a handler that updates an existing record.

    Responds with the model's raw update result, not the updated record.
    """

    async def update_record(id: str, request: Request) -> Any:
        record = await model.find_by_pk(id)
        if record is None:
            return _not_found()
        body = await _parse_request_body(request)
        result = await model.update(body, where={"id": id})
        return JSONResponse(content=jsonable_encoder(result))

    return update_record


def create_delete_handler(model: CrudModel) -> Callable[..., Any]:
    """Create a handler that deletes by primary key without an existence check."""

    async def delete_record(id: str) -> Any:
        await model.destroy(where={"id": id})
        return {"id": id}

    return delete_record


# =============================================================================
# Route Set Generator
# =============================================================================


def _register_list(router: APIRouter, path: str, model: CrudModel, opts: CrudOptions) -> None:
    router.get(path, summary="List records")(create_list_handler(model, opts.after_get_list))


def _register_read(router: APIRouter, path: str, model: CrudModel, opts: CrudOptions) -> None:
    router.get(f"{path}/{{id}}", summary="Get record")(
        create_read_handler(model, opts.after_get_one)
    )


def _register_create(router: APIRouter, path: str, model: CrudModel, opts: CrudOptions) -> None:
    router.post(path, status_code=201, summary="Create record")(create_create_handler(model))


def _register_update(router: APIRouter, path: str, model: CrudModel, opts: CrudOptions) -> None:
    router.put(f"{path}/{{id}}", summary="Update record")(create_update_handler(model))


def _register_delete(router: APIRouter, path: str, model: CrudModel, opts: CrudOptions) -> None:
    router.delete(f"{path}/{{id}}", summary="Delete record")(create_delete_handler(model))


ROUTE_REGISTRARS: dict[ActionType, Callable[[APIRouter, str, CrudModel, CrudOptions], None]] = {
    ActionType.GET_LIST: _register_list,
    ActionType.GET_ONE: _register_read,
    ActionType.CREATE: _register_create,
    ActionType.UPDATE: _register_update,
    ActionType.DELETE: _register_delete,
}


def resource_path(resource: str) -> str:
    """Normalise a resource name to its collection path (``users`` -> ``/users``)."""
    name = resource.strip().strip("/")
    if not name:
        raise ValueError("Resource name cannot be empty")
    return f"/{name}"


def crud(
    resource: str,
    model: CrudModel,
    options: CrudOptions | Mapping[str, Any] | None = None,
) -> APIRouter:
    """
    Generate CRUD routes for a model.

    Args:
        resource: Resource name used as the URL path segment (e.g. "users")
        model: Model implementing the CrudModel protocol
        options: CrudOptions (or a dict of its fields) selecting action types
            and post-fetch hooks

    Returns:
        FastAPI router with the enabled routes

    Raises:
        UnknownActionTypeError: If an action type is not recognised. Nothing
            is registered in that case.

    A router mounted on its own does not expose Content-Range to CORS
    clients; add ``create_content_range_middleware()`` to the app (as
    ``CrudBackendApp`` does) so every response lists it.

    Example:
        >>> app = FastAPI()
        >>> app.add_middleware(create_content_range_middleware())
        >>> app.include_router(crud("users", SQLiteModel(db, "users")))
    """
    if options is None:
        opts = CrudOptions()
    elif isinstance(options, CrudOptions):
        opts = options
    else:
        opts = CrudOptions.model_validate(dict(options))

    # Resolve everything before touching the router
    action_types = opts.resolved_action_types()
    path = resource_path(resource)

    router = APIRouter(tags=[path.lstrip("/")])
    for action_type in action_types:
        ROUTE_REGISTRARS[action_type](router, path, model, opts)
        logger.debug("Registered %s route for %s", action_type, path)

    logger.info(
        "Generated CRUD routes for %s (%s)",
        path,
        ", ".join(str(a) for a in action_types),
    )
    return router
