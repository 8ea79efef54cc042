from decimal import Decimal

import pytest
from sqlalchemy import select

from storerate.models import User
from storerate.services.query import resolve_sort, search_condition, search_terms
from storerate.services.ratings import format_average

SORT_FIELDS = {"name": User.name, "email": User.email}


@pytest.mark.parametrize(
    "search, expected",
    [
        (None, []),
        ("", []),
        ("   ", []),
        ("fresh", ["fresh"]),
        ("  Fresh   Mart ", ["Fresh", "Mart"]),
    ],
)
def test_search_terms(search, expected):
    assert search_terms(search) == expected


def test_search_condition_without_terms_is_none():
    assert search_condition("  ", [User.name]) is None


def test_search_condition_ands_terms_and_ors_columns():
    condition = search_condition("fresh 50%", [User.name, User.email])
    compiled = condition.compile()
    sql = str(compiled)

    assert sql.count(" AND ") == 1
    assert sql.count(" OR ") == 2
    assert set(compiled.params.values()) == {"%fresh%", "%50\\%%"}


@pytest.mark.parametrize(
    "sort_by, sort_order, expected",
    [
        ("email", "desc", "users.email DESC"),
        ("email", "ASC", "users.email ASC"),
        ("email", None, "users.name ASC"),
        ("email", "random", "users.name ASC"),
        ("password_hash", "desc", "users.name ASC"),
        (None, "desc", "users.name ASC"),
    ],
)
def test_resolve_sort(sort_by, sort_order, expected):
    assert str(resolve_sort(sort_by, sort_order, SORT_FIELDS)) == expected


def test_resolve_sort_in_statement():
    stmt = select(User.id).order_by(resolve_sort("name", "desc", SORT_FIELDS))
    assert str(stmt).endswith("ORDER BY users.name DESC")


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, "0.0"),
        (0, "0.0"),
        (4, "4.0"),
        (Decimal("4.5000000000000000"), "4.5"),
        (Decimal("3.6666666666666667"), "3.7"),
        (5.0, "5.0"),
    ],
)
def test_format_average(value, expected):
    assert format_average(value) == expected
