# hopefund/services/listing.py
"""
Filter / sort / paginate for list endpoints.

`apply_listing` works on SQLAlchemy queries; the `*_records` helpers do the
same over plain lists of dicts (dashboards, exports, tests).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from flask import current_app, request
from sqlalchemy import Integer, asc, desc, func, or_

from hopefund.helpers import safe_int_opt

Meta = Dict[str, int]


@dataclass(frozen=True)
class ListParams:
    q: str = ""
    status: Optional[str] = None
    sort: Optional[str] = None
    direction: str = "desc"
    page: int = 1
    per_page: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @classmethod
    def from_request(cls, args: Optional[Mapping[str, Any]] = None, **defaults: Any) -> "ListParams":
        args = request.args if args is None else args
        cfg = current_app.config
        default_size = int(defaults.get("per_page") or cfg.get("DEFAULT_PAGE_SIZE", 10))
        max_size = int(cfg.get("MAX_PAGE_SIZE", 100))

        page = safe_int_opt(args.get("page")) or 1
        per_page = safe_int_opt(args.get("per_page") or args.get("limit")) or default_size

        direction = str(args.get("direction") or args.get("order") or defaults.get("direction") or "desc")
        direction = "asc" if direction.strip().lower() == "asc" else "desc"

        status = args.get("status")
        status = str(status).strip() if status not in (None, "", "all") else None

        return cls(
            q=str(args.get("q") or args.get("search") or "").strip(),
            status=status,
            sort=(str(args.get("sort") or args.get("sort_by") or "").strip() or defaults.get("sort")),
            direction=direction,
            page=max(1, page),
            per_page=max(1, min(max_size, per_page)),
        )


def page_meta(total: int, params: ListParams) -> Meta:
    return {
        "page": params.page,
        "per_page": params.per_page,
        "total": int(total),
        "pages": int(math.ceil(total / params.per_page)) if total else 0,
    }


# ─────────────────────────────────────────────────────────────
# SQLAlchemy queries
# ─────────────────────────────────────────────────────────────
def apply_listing(
    query,
    model,
    params: ListParams,
    *,
    search: Sequence[str] = (),
    sortable: Optional[Mapping[str, Any]] = None,
    default_sort: str = "created_at",
    status_filter: Optional[Callable[[Any, str], Any]] = None,
) -> Tuple[List[Any], Meta]:
    """
    Search (case-insensitive LIKE over `search` columns), status filter,
    whitelisted sort with an id tiebreak, then pagination.
    """
    if params.q and search:
        needle = f"%{params.q.lower()}%"
        query = query.filter(or_(*[func.lower(getattr(model, col)).like(needle) for col in search]))

    if params.status is not None:
        if status_filter is not None:
            query = status_filter(query, params.status)
        elif hasattr(model, "status"):
            raw = params.status
            value = safe_int_opt(raw) if isinstance(model.status.type, Integer) else raw
            query = query.filter(model.status == (raw if value is None else value))

    columns = dict(sortable or {})
    if not columns and hasattr(model, default_sort):
        columns[default_sort] = getattr(model, default_sort)
    sort_key = params.sort if params.sort in columns else default_sort
    column = columns.get(sort_key)
    order = desc if params.direction == "desc" else asc
    if column is not None:
        query = query.order_by(order(column), order(model.id))
    else:
        query = query.order_by(order(model.id))

    total = query.order_by(None).count()
    items = query.limit(params.per_page).offset(params.offset).all()
    return items, page_meta(total, params)


# ─────────────────────────────────────────────────────────────
# Plain record lists
# ─────────────────────────────────────────────────────────────
def search_records(records: Iterable[Mapping[str, Any]], q: str, fields: Sequence[str]) -> List[Mapping[str, Any]]:
    items = list(records)
    needle = (q or "").strip().lower()
    if not needle:
        return items
    return [r for r in items if any(needle in str(r.get(f) or "").lower() for f in fields)]


def _sort_value(v: Any) -> Tuple[int, Any]:
    # None sorts last in ascending order; strings compare case-insensitively
    if v is None:
        return (1, "")
    if isinstance(v, str):
        return (0, v.lower())
    return (0, v)


def sort_records(
    records: Iterable[Mapping[str, Any]], key: str, direction: str = "asc"
) -> List[Mapping[str, Any]]:
    """Stable sort; ties keep their input order."""
    reverse = str(direction).lower() == "desc"
    return sorted(records, key=lambda r: _sort_value(r.get(key)), reverse=reverse)


def group_by(records: Iterable[Mapping[str, Any]], key: str) -> Dict[Any, List[Mapping[str, Any]]]:
    out: Dict[Any, List[Mapping[str, Any]]] = {}
    for r in records:
        out.setdefault(r.get(key), []).append(r)
    return out


def paginate_records(
    records: Iterable[Any], page: int = 1, per_page: int = 10
) -> Tuple[List[Any], Meta]:
    items = list(records)
    params = ListParams(page=max(1, int(page)), per_page=max(1, int(per_page)))
    window = items[params.offset : params.offset + params.per_page]
    return window, page_meta(len(items), params)
