"""Tests for sqlweave.dialects: PostgresDialect placeholders, quoting and temporal bounds."""

import pytest

from sqlweave.dialects import Dialect, PostgresDialect
from sqlweave.errors import UsageError
from sqlweave.fragments import Param, finalize


def test_placeholder_is_dollar_number():
    d = PostgresDialect()
    assert d.placeholder(1) == "$1"
    assert d.placeholder(12) == "$12"


def test_quote_identifier_doubles_quotes():
    d = PostgresDialect()
    assert d.quote_identifier("name") == '"name"'
    assert d.quote_identifier('we"ird') == '"we""ird"'


@pytest.mark.parametrize("kind, expected", [
    ("recent_years", "film.release_date > (CURRENT_DATE - make_interval(years => $1))"),
    ("within_days", "film.release_date > (CURRENT_DATE - make_interval(days => $1))"),
    ("within_hours", "film.release_date > (NOW() - make_interval(hours => $1))"),
])
def test_temporal_bounds_bind_the_amount(kind, expected):
    fragment = PostgresDialect().temporal_bound(kind, "film.release_date", Param(value=3))
    assert finalize(fragment) == (expected, [3])


def test_unknown_temporal_bound_raises():
    with pytest.raises(UsageError, match="no `within_weeks` temporal bound"):
        PostgresDialect().temporal_bound("within_weeks", "film.release_date", Param(value=3))


class QuestionMarkDialect(Dialect):
    def placeholder(self, index):
        return "?"


def test_custom_dialect_placeholder():
    fragment = Param(value=1) + " AND " + Param(value=2)
    assert finalize(fragment, QuestionMarkDialect()) == ("? AND ?", [1, 2])


def test_custom_dialect_without_temporal_bounds():
    with pytest.raises(UsageError):
        QuestionMarkDialect().temporal_bound("within_days", "film.last_update", Param(value=1))
