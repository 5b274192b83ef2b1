"""
List query parameter parsing.

The list endpoint takes three JSON-encoded query parameters:

- ``range``: ``[from, to]`` inclusive index window, default ``[0, 100]``
- ``sort``: ``[field, direction]``, default ``["id", "ASC"]``
- ``filter``: equality map, default ``{}``
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from restcrud.runtime.errors import InvalidQueryParameterError
from restcrud.runtime.model import OrderSpec, WhereSpec

DEFAULT_RANGE: tuple[int, int] = (0, 100)
DEFAULT_SORT: tuple[str, str] = ("id", "ASC")
SORT_DIRECTIONS = ("ASC", "DESC")


@dataclass
class ListParams:
    """Parsed pagination, ordering and filtering for a list request."""

    range_from: int = DEFAULT_RANGE[0]
    range_to: int = DEFAULT_RANGE[1]
    order: OrderSpec = field(default_factory=lambda: [DEFAULT_SORT])
    where: WhereSpec = field(default_factory=dict)

    @property
    def offset(self) -> int:
        return self.range_from

    @property
    def limit(self) -> int:
        """Number of records in the inclusive ``[from, to]`` window."""
        return self.range_to - self.range_from + 1

    def content_range(self, returned: int, total: int) -> str:
        """Value for the Content-Range response header."""
        return f"{self.range_from}-{self.range_from + returned}/{total}"


def _load(parameter: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidQueryParameterError(parameter, f"malformed JSON ({exc.msg})") from exc


def parse_range(raw: str | None) -> tuple[int, int]:
    """Parse ``range`` into an inclusive ``(from, to)`` pair."""
    if not raw:
        return DEFAULT_RANGE

    value = _load("range", raw)
    if (
        not isinstance(value, list)
        or len(value) != 2
        or not all(isinstance(v, int) and not isinstance(v, bool) for v in value)
    ):
        raise InvalidQueryParameterError("range", "expected [from, to] integers")

    range_from, range_to = value
    if range_from < 0 or range_to < range_from:
        raise InvalidQueryParameterError("range", f"empty or negative window {value}")
    return range_from, range_to


def parse_sort(raw: str | None) -> OrderSpec:
    """Parse ``sort`` into a single ``(field, direction)`` order entry."""
    if not raw:
        return [DEFAULT_SORT]

    value = _load("sort", raw)
    if not isinstance(value, list) or len(value) != 2 or not all(isinstance(v, str) for v in value):
        raise InvalidQueryParameterError("sort", 'expected ["field", "ASC"|"DESC"]')

    sort_field, direction = value
    direction = direction.upper()
    if direction not in SORT_DIRECTIONS:
        raise InvalidQueryParameterError("sort", f"unknown direction '{value[1]}'")
    return [(sort_field, direction)]


def parse_filter(raw: str | None) -> WhereSpec:
    """Parse ``filter`` into an equality map."""
    if not raw:
        return {}

    value = _load("filter", raw)
    if not isinstance(value, dict):
        raise InvalidQueryParameterError("filter", "expected a JSON object")
    return value


def parse_list_params(
    range_param: str | None = None,
    sort_param: str | None = None,
    filter_param: str | None = None,
) -> ListParams:
    """
    Parse the raw list query parameters.

    Raises:
        InvalidQueryParameterError: If any parameter is malformed
    """
    range_from, range_to = parse_range(range_param)
    return ListParams(
        range_from=range_from,
        range_to=range_to,
        order=parse_sort(sort_param),
        where=parse_filter(filter_param),
    )
