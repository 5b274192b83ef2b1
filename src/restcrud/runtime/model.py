"""
Model capability protocol.

The route generator is polymorphic over this protocol rather than over a
particular storage class. Any adapter that can count-and-page, look up by
primary key, create, update by key and delete by key can back a resource.

Where clauses are plain equality maps (``{"status": "active"}``); order is a
list of ``(field, direction)`` pairs with direction ``ASC`` or ``DESC``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

OrderSpec = list[tuple[str, str]]
WhereSpec = dict[str, Any]


@dataclass
class CountResult:
    """Total matching records plus the requested page of rows."""

    count: int
    rows: list[Any] = field(default_factory=list)


@runtime_checkable
class CrudModel(Protocol):
    """Operations a model must provide to be exposed as a resource."""

    async def find_and_count_all(
        self,
        *,
        offset: int,
        limit: int,
        order: OrderSpec,
        where: WhereSpec,
    ) -> CountResult: ...

    async def find_by_pk(self, pk: Any) -> Any | None: ...

    async def create(self, values: dict[str, Any]) -> Any: ...

    async def update(self, values: dict[str, Any], *, where: WhereSpec) -> Any: ...

    async def destroy(self, *, where: WhereSpec) -> int: ...
