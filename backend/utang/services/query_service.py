# Overview: Translate list query-string parameters into storage query options.

"""
List Query Translation

Accepted parameters (refine simple-rest conventions):
- _start/_end: offset pair, takes priority when _end > _start
- page/perPage: fallback pagination (defaults 1 and 10)
- _sort/_order: single sort field (camelCase) and ASC/DESC, default ASC
- q: case-insensitive contains over the kind's text fields
- per-kind equality filters (storeId, status, paymentMethod, ...)

Malformed pagination or sort values never fail the request; they fall back
to the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import and_, or_

from ..validation import to_column_key
from .access_service import build_access_predicate
from .resource_registry import ResourceKind, get_spec

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10


@dataclass(frozen=True)
class ListQuery:
    where: Any
    skip: int
    take: int
    order_by: tuple = field(default_factory=tuple)


def _parse_int(raw: str | None, *, minimum: int) -> int | None:
    if raw is None:
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value >= minimum else None


def _non_blank(raw: str | None) -> str | None:
    if isinstance(raw, str) and raw.strip():
        return raw
    return None


def parse_pagination(args: Mapping[str, str]) -> tuple[int, int]:
    """Return (skip, take)."""
    start = _parse_int(args.get("_start"), minimum=0) or 0
    end = _parse_int(args.get("_end"), minimum=0) or 0
    if end > start:
        return start, end - start

    page = _parse_int(args.get("page"), minimum=1) or DEFAULT_PAGE
    per_page = _parse_int(args.get("perPage"), minimum=1) or DEFAULT_PER_PAGE
    return (page - 1) * per_page, per_page


def parse_sort(kind: ResourceKind, args: Mapping[str, str]) -> tuple:
    sort_field = _non_blank(args.get("_sort"))
    if sort_field is None:
        return ()

    key = to_column_key(sort_field.strip())
    column = get_spec(kind).model.__table__.columns.get(key)
    # Unknown fields fall back to storage order; never sort on secrets
    if column is None or key == "password_hash":
        return ()

    order = (args.get("_order") or "ASC").strip().upper()
    return (column.desc() if order == "DESC" else column.asc(),)


def build_filters(kind: ResourceKind, args: Mapping[str, str]) -> list:
    """Equality filters AND-ed together, plus one OR-clause for `q`."""
    spec = get_spec(kind)
    model = spec.model
    clauses = []

    for name in spec.equality_filters:
        value = _non_blank(args.get(name))
        if value is not None:
            clauses.append(getattr(model, to_column_key(name)) == value)

    q = _non_blank(args.get("q"))
    if q is not None and spec.text_fields:
        clauses.append(
            or_(*(getattr(model, to_column_key(name)).icontains(q, autoescape=True) for name in spec.text_fields))
        )

    return clauses


def build_list_query(kind: ResourceKind, args: Mapping[str, str], user_id: str) -> ListQuery:
    skip, take = parse_pagination(args)
    clauses = build_filters(kind, args)
    clauses.append(build_access_predicate(kind, user_id))
    return ListQuery(where=and_(*clauses), skip=skip, take=take, order_by=parse_sort(kind, args))
