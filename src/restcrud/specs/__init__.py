"""
restcrud specification types.

Declarative descriptions of the CRUD surface: which actions a resource
exposes, its post-fetch hooks, and the resources mounted on an app.
"""

from restcrud.specs.crud import (
    ActionType,
    CrudOptions,
    ResourceSpec,
    parse_action_types,
)

__all__ = [
    "ActionType",
    "CrudOptions",
    "ResourceSpec",
    "parse_action_types",
]
