"""Tests for sqlweave.fragments: finalize, finalize_with_ctes, assemble_with_ctes."""

import pytest

from sqlweave.errors import UsageError
from sqlweave.fragments import (
    Cte,
    Param,
    Seq,
    Text,
    assemble_with_ctes,
    finalize,
    finalize_with_ctes,
)


def test_finalize_single_param():
    fragment = Seq(parts=["SELECT * FROM t WHERE id = ", Param(value=42)])
    assert finalize(fragment) == ("SELECT * FROM t WHERE id = $1", [42])


def test_finalize_text_only():
    assert finalize(Text(text="SELECT 1")) == ("SELECT 1", [])


def test_finalize_numbers_nested_params_in_walk_order():
    fragment = Seq(parts=(
        "a ",
        Seq(parts=(Param(value=1), " b ", Seq(parts=(Param(value=2),)))),
        " c ",
        Param(value=3),
    ))
    sql, params = finalize(fragment)
    assert sql == "a $1 b $2 c $3"
    assert params == [1, 2, 3]


def test_finalize_param_count_matches_placeholders():
    """The Nth placeholder matches the Nth param whatever the nesting depth."""
    values = ["x", None, 3.5, True, [1, 2]]
    fragment = Param(value=values[0])
    for value in values[1:]:
        fragment = Seq(parts=(Seq(parts=(fragment, " , ")), Param(value=value)))
    sql, params = finalize(fragment)
    assert params == values
    assert sql == "$1 , $2 , $3 , $4 , $5"


def test_finalize_start_offset():
    sql, params = finalize(Seq(parts=("x = ", Param(value="a"))), start=4)
    assert sql == "x = $4"
    assert params == ["a"]


def test_finalize_refuses_cte():
    fragment = Seq(parts=(Cte(name="c", body=Text(text="SELECT 1")), "SELECT * FROM c"))
    with pytest.raises(UsageError, match="finalize_with_ctes"):
        finalize(fragment)


class TestFinalizeWithCtes:
    """Test CTE hoisting and placeholder numbering across CTE bodies and the main query."""

    def test_cte_then_main_query(self):
        fragment = Seq(parts=(
            Cte(name="recent", body=Seq(parts=("SELECT id FROM t WHERE y > ", Param(value=2000)))),
            Seq(parts=("SELECT * FROM recent WHERE x = ", Param(value="a"))),
        ))
        ctes, main_sql, params = finalize_with_ctes(fragment)
        assert ctes == [("recent", "SELECT id FROM t WHERE y > $1")]
        assert main_sql == "SELECT * FROM recent WHERE x = $2"
        assert params == [2000, "a"]

    def test_ctes_in_first_encountered_order_at_any_depth(self):
        inner = Cte(name="inner_cte", body=Seq(parts=("SELECT ", Param(value="i"))))
        outer = Cte(name="outer_cte", body=Seq(parts=("SELECT ", Param(value="o"))))
        fragment = Seq(parts=(
            outer,
            Seq(parts=("SELECT * FROM outer_cte", Seq(parts=(inner, " WHERE a = ", Param(value=1))))),
        ))
        ctes, main_sql, params = finalize_with_ctes(fragment)
        assert [name for name, _ in ctes] == ["outer_cte", "inner_cte"]
        # each body is numbered on its own
        assert ctes == [("outer_cte", "SELECT $1"), ("inner_cte", "SELECT $1")]
        assert main_sql == "SELECT * FROM outer_cte WHERE a = $3"
        assert params == ["o", "i", 1]

    def test_stray_top_level_params_are_appended_last(self):
        fragment = Seq(parts=(
            "SELECT * FROM t WHERE a = ",
            Param(value=1),
            Cte(name="c", body=Seq(parts=("SELECT ", Param(value=5)))),
            " AND b = ",
            Seq(parts=(Param(value=2),)),
        ))
        ctes, main_sql, params = finalize_with_ctes(fragment)
        assert ctes == [("c", "SELECT $1")]
        assert main_sql == "SELECT * FROM t WHERE a =  AND b = $2"
        assert params == [5, 2, 1]

    def test_root_param_is_stray(self):
        ctes, main_sql, params = finalize_with_ctes(Param(value=9))
        assert (ctes, main_sql, params) == ([], "", [9])

    def test_without_ctes_matches_finalize(self):
        fragment = Seq(parts=("SELECT ", Seq(parts=(Param(value=1), ", ", Param(value=2)))))
        ctes, main_sql, params = finalize_with_ctes(fragment)
        assert ctes == []
        assert (main_sql, params) == finalize(fragment)


def test_assemble_with_ctes():
    sql = assemble_with_ctes([("a", "SELECT 1"), ("b", "SELECT $1")], "SELECT * FROM a, b")
    assert sql == "WITH a AS (SELECT 1), b AS (SELECT $1) SELECT * FROM a, b"


def test_assemble_without_ctes_returns_main_sql():
    assert assemble_with_ctes([], "SELECT 1") == "SELECT 1"
