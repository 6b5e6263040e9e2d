"""Chainable filtering, sorting, field limiting and pagination for list queries.

``QueryFeatures`` wraps a pending ``select()`` and the request's query
parameters. Each step records its effect and returns the builder, so the
steps chain::

    features = QueryFeatures(select(Tour), params).filter().sort().limit_fields().paginate()
    result = await db.execute(features.statement)

Nothing touches the database here. ``statement`` is rebuilt from the
original query and the recorded state every time it is read, which makes
each step idempotent: calling ``filter()`` twice with the same parameters
yields the same predicate as calling it once.

Query string syntax::

    ?difficulty=easy&duration[gte]=5&price[lt]=1500
    ?sort=-ratingsAverage,price
    ?fields=name,price,summary
    ?page=2&limit=10
"""

import math
import operator
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import UUID

from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, Select, inspect
from sqlalchemy.orm import InstrumentedAttribute

from .config import settings
from .exceptions import BadRequestError

# Query parameters that shape the result instead of filtering it
RESERVED_PARAMS = frozenset({"page", "sort", "limit", "fields"})

# Comparison tokens accepted in ``field[op]=value`` and their SQL operators
COMPARISON_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "gte": operator.ge,
    "gt": operator.gt,
    "lte": operator.le,
    "lt": operator.lt,
}

# Fields never shown unless explicitly requested
DEFAULT_EXCLUDED_FIELDS = frozenset({"version"})

DEFAULT_SORT = "-createdAt"
DEFAULT_PAGE = 1

# Largest OFFSET a signed 64-bit SQL integer can hold
MAX_OFFSET = 2**63 - 1


def parse_query_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """
    Parse raw query items into a filter mapping.

    ``price[lt]=1500`` becomes ``{"price": {"lt": "1500"}}``; a key repeated
    without brackets collects its values into a list.

    Args:
        items: (key, value) pairs, e.g. ``request.query_params.multi_items()``

    Returns:
        Nested parameter mapping
    """
    params: dict[str, Any] = {}
    for key, value in items:
        if key.endswith("]") and "[" in key:
            field, _, op = key[:-1].partition("[")
            nested = params.get(field)
            if not isinstance(nested, dict):
                nested = params[field] = {}
            nested[op] = value
        elif key in params and key not in RESERVED_PARAMS and not isinstance(params[key], dict):
            existing = params[key]
            params[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


def api_name(column_key: str) -> str:
    """Public name of a column: ``tour_id`` -> ``tour``, ``max_group_size`` -> ``maxGroupSize``."""
    if column_key.endswith("_id") and column_key != "id":
        return column_key[:-3]
    return to_camel(column_key)


def normalize_field_name(name: str) -> str:
    """Convert a snake_case field name to its camelCase form; camelCase passes through."""
    return to_camel(name) if "_" in name else name


def column_lookup(model: type, hidden: Iterable[str] = ()) -> dict[str, InstrumentedAttribute]:
    """
    Map every public spelling of a model's scalar columns to its attribute.

    Args:
        model: Mapped class
        hidden: Column keys that may not be filtered or sorted on

    Returns:
        Mapping of camelCase, snake_case and reference names to attributes
    """
    hidden = set(hidden)
    lookup: dict[str, InstrumentedAttribute] = {}
    for prop in inspect(model).column_attrs:
        if prop.key in hidden or isinstance(prop.columns[0].type, JSON):
            continue
        attr = getattr(model, prop.key)
        lookup[prop.key] = attr
        lookup[to_camel(prop.key)] = attr
        lookup[api_name(prop.key)] = attr
    return lookup


def _coerce(attr: InstrumentedAttribute, raw: Any) -> Any:
    """Convert a query-string value to the column's Python type."""
    if isinstance(raw, list):
        return [_coerce(attr, item) for item in raw]
    if not isinstance(raw, str):
        return raw

    python_type = attr.property.columns[0].type.python_type
    try:
        if python_type is bool:
            lowered = raw.lower()
            if lowered in ("true", "1"):
                return True
            if lowered in ("false", "0"):
                return False
            raise ValueError(raw)
        if python_type is datetime:
            return datetime.fromisoformat(raw)
        if python_type is UUID:
            return UUID(raw)
        value = python_type(raw)
    except ValueError:
        raise BadRequestError(f"Invalid {api_name(attr.key)}: {raw}")
    if isinstance(value, float) and not math.isfinite(value):
        raise BadRequestError(f"Invalid {api_name(attr.key)}: {raw}")
    return value


def _positive_int(raw: Any, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class QueryFeatures:
    """Builder that shapes a list query from request parameters."""

    def __init__(
        self,
        statement: Select,
        params: Mapping[str, Any],
        model: Optional[type] = None,
        *,
        fields: Optional[Iterable[str]] = None,
        hidden: Iterable[str] = (),
        default_limit: Optional[int] = None,
        max_limit: Optional[int] = None,
    ):
        """
        Args:
            statement: Pending select of one mapped model
            params: Parsed query parameters (see ``parse_query_params``)
            model: Mapped class; inferred from the statement when omitted
            fields: Output keys that may be requested through ``fields``;
                any key is accepted when omitted
            hidden: Column keys excluded from filtering and sorting
            default_limit: Page size when ``limit`` is absent
            max_limit: Upper bound for ``limit``
        """
        self.base_statement = statement
        self.params = dict(params)
        self.model = model or statement.column_descriptions[0]["entity"]
        self.columns = column_lookup(self.model, hidden)
        self.allowed_fields = set(fields) if fields is not None else None
        self.default_limit = default_limit or settings.default_page_size
        self.max_limit = max_limit or settings.max_page_size

        self.criteria: dict[tuple[str, str], Any] = {}
        self.ordering: list[tuple[InstrumentedAttribute, bool]] = []
        self.projection: Optional[set[str]] = None
        self.page: Optional[int] = None
        self.limit: Optional[int] = None

    def _column(self, name: str, purpose: str) -> InstrumentedAttribute:
        attr = self.columns.get(name)
        if attr is None:
            raise BadRequestError(f"Invalid {purpose} field: {name}")
        return attr

    def filter(self) -> "QueryFeatures":
        """Apply equality and range filters from non-reserved parameters."""
        criteria: dict[tuple[str, str], Any] = {}
        for name, value in self.params.items():
            if name in RESERVED_PARAMS:
                continue
            attr = self._column(name, "filter")
            if isinstance(value, dict):
                for token, raw in value.items():
                    if token not in COMPARISON_OPERATORS:
                        raise BadRequestError(f"Unsupported filter operator: {token}")
                    criteria[(attr.key, token)] = _coerce(attr, raw)
            else:
                criteria[(attr.key, "eq")] = _coerce(attr, value)

        self.criteria.update(criteria)
        return self

    def sort(self) -> "QueryFeatures":
        """Order by the comma-separated ``sort`` list; ``-`` means descending."""
        requested = self.params.get("sort") or ""
        if isinstance(requested, list):
            requested = ",".join(requested)

        items = [item.strip() for item in requested.split(",") if item.strip()]
        if not items:
            items = DEFAULT_SORT.split(",")

        ordering = []
        for item in items:
            descending = item.startswith("-")
            # One leading sign only; "--price" is not a field
            name = item[1:] if item[0] in "-+" else item
            attr = self._column(name, "sort")
            ordering.append((attr, descending))

        self.ordering = ordering
        return self

    def limit_fields(self) -> "QueryFeatures":
        """Project to the comma-separated ``fields`` list."""
        requested = self.params.get("fields")
        if not requested:
            self.projection = None
            return self
        if isinstance(requested, list):
            requested = ",".join(requested)

        projection = set()
        for item in requested.split(","):
            item = item.strip()
            if not item:
                continue
            name = normalize_field_name(item)
            if self.allowed_fields is not None and name not in self.allowed_fields:
                raise BadRequestError(f"Invalid fields field: {item}")
            projection.add(name)

        self.projection = projection or None
        return self

    def paginate(self) -> "QueryFeatures":
        """Slice the result to ``page`` (default 1) of ``limit`` rows."""
        page = _positive_int(self.params.get("page"), DEFAULT_PAGE)
        limit = min(_positive_int(self.params.get("limit"), self.default_limit), self.max_limit)
        if (page - 1) * limit > MAX_OFFSET:
            raise BadRequestError(f"Invalid page: {self.params.get('page')}")

        self.page = page
        self.limit = limit
        return self

    @property
    def offset(self) -> int:
        if self.page is None or self.limit is None:
            return 0
        return (self.page - 1) * self.limit

    @property
    def conditions(self) -> list:
        """SQL conditions for the recorded criteria."""
        conditions = []
        for (key, token), value in self.criteria.items():
            column = getattr(self.model, key)
            if token == "eq":
                conditions.append(column.in_(value) if isinstance(value, list) else column == value)
            else:
                compare = COMPARISON_OPERATORS[token]
                if isinstance(value, list):
                    raise BadRequestError(f"Operator {token} takes a single value")
                conditions.append(compare(column, value))
        return conditions

    @property
    def statement(self) -> Select:
        """The shaped query, rebuilt from the base statement."""
        stmt = self.base_statement
        conditions = self.conditions
        if conditions:
            stmt = stmt.where(*conditions)

        if self.ordering:
            order_by = [attr.desc() if descending else attr.asc() for attr, descending in self.ordering]
            primary_keys = inspect(self.model).primary_key
            stmt = stmt.order_by(*order_by, *primary_keys)

        if self.limit is not None:
            stmt = stmt.offset(self.offset).limit(self.limit)
        return stmt

    def project(self, document: dict[str, Any]) -> dict[str, Any]:
        """Trim a serialized document to the requested fields."""
        if self.projection is None:
            return {k: v for k, v in document.items() if k not in DEFAULT_EXCLUDED_FIELDS}
        return {k: v for k, v in document.items() if k == "id" or k in self.projection}
