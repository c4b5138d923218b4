# cartstore/query.py

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

_STATUS_RE = re.compile(r"^status\s*:\s*(true|false)$", re.IGNORECASE)
_BOOL_RE = re.compile(r"^(true|false)$", re.IGNORECASE)


@dataclass
class Page:
    docs: List[Dict[str, Any]]
    total_docs: int
    limit: int
    page: int
    total_pages: int
    prev_page: Optional[int] = None
    next_page: Optional[int] = None
    has_prev_page: bool = False
    has_next_page: bool = False


def to_positive_int(value: Any, default: int) -> int:
    # bool is an int subclass; "true" is not a page number
    if isinstance(value, bool) or value is None:
        return default
    try:
        n = int(str(value).strip())
    except ValueError:
        return default
    return n if n >= 1 else default


def build_filter(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    q = str(raw).strip()
    if not q:
        return {}

    m = _STATUS_RE.match(q)
    if m:
        return {"status": m.group(1).lower() == "true"}
    if _BOOL_RE.match(q):
        return {"status": q.lower() == "true"}
    return {"category": q}


def build_sort(raw: Optional[str]) -> Optional[Tuple[str, int]]:
    if not raw:
        return None
    s = str(raw).strip().lower()
    if s == "asc":
        return ("price", 1)
    if s == "desc":
        return ("price", -1)
    return None


def matches(record: Dict[str, Any], flt: Dict[str, Any]) -> bool:
    return all(record.get(k) == v for k, v in flt.items())


def paginate_records(
    records: Iterable[Dict[str, Any]],
    flt: Dict[str, Any],
    sort: Optional[Tuple[str, int]],
    page: int,
    limit: int,
) -> Page:
    """Filter, sort and slice ``records`` into a ``Page``.

    ``total_pages`` is never below 1, so an empty collection still reports a
    single (empty) page 1. Requesting a page past the end returns no docs but
    keeps the requested page number.
    """
    selected = [r for r in records if matches(r, flt)]
    if sort is not None:
        key, direction = sort
        # stable sort keeps insertion order among equal prices
        selected.sort(key=lambda r: r.get(key) or 0, reverse=direction < 0)

    total = len(selected)
    total_pages = max(1, math.ceil(total / limit))
    start = (page - 1) * limit
    docs = selected[start:start + limit]

    has_prev = page > 1
    has_next = page < total_pages
    return Page(
        docs=docs,
        total_docs=total,
        limit=limit,
        page=page,
        total_pages=total_pages,
        prev_page=page - 1 if has_prev else None,
        next_page=page + 1 if has_next else None,
        has_prev_page=has_prev,
        has_next_page=has_next,
    )
