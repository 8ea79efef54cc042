"""
Search and sort helpers for list endpoints.

Search is an AND of ORs: every whitespace-separated term must match at least
one of the searchable columns of the same row. Sorting is allow-listed; any
unknown field or direction silently falls back to the default ordering.
"""
from typing import Mapping, Optional, Sequence

from sqlalchemy import Select, and_, or_
from sqlalchemy.sql.elements import ColumnElement

SORT_ORDERS = ("asc", "desc")
_LIKE_ESCAPE = "\\"


def search_terms(search: Optional[str]) -> list[str]:
    """Split a search string on whitespace, dropping empty pieces."""
    if not search:
        return []
    return search.split()


def _like_pattern(term: str) -> str:
    escaped = (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def search_condition(
    search: Optional[str], columns: Sequence[ColumnElement]
) -> Optional[ColumnElement]:
    """Build the AND-of-ORs filter, or ``None`` when there is nothing to match."""
    terms = search_terms(search)
    if not terms:
        return None
    return and_(
        *(
            or_(*(col.ilike(_like_pattern(term), escape=_LIKE_ESCAPE) for col in columns))
            for term in terms
        )
    )


def apply_search(
    stmt: Select, search: Optional[str], columns: Sequence[ColumnElement]
) -> Select:
    condition = search_condition(search, columns)
    if condition is None:
        return stmt
    return stmt.where(condition)


def resolve_sort(
    sort_by: Optional[str],
    sort_order: Optional[str],
    allowed: Mapping[str, ColumnElement],
    default: str = "name",
) -> ColumnElement:
    """
    Return the ORDER BY clause for an allow-listed field.

    Both the field and the direction must be valid; otherwise the result is
    ``allowed[default]`` ascending.
    """
    order = (sort_order or "").lower()
    if sort_by in allowed and order in SORT_ORDERS:
        column = allowed[sort_by]
        return column.desc() if order == "desc" else column.asc()
    return allowed[default].asc()
