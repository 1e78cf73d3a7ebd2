"""Tests for sqlweave.fragments nodes: Text, Param, Seq, Cte, join_fragments."""

import pytest

from sqlweave.fragments import Cte, Param, Seq, Text, finalize, join_fragments


def test_seq_coerces_strings_and_nested_lists():
    fragment = Seq(parts=["a", ["b", Param(value=1)], None])
    assert isinstance(fragment.parts[0], Text)
    assert isinstance(fragment.parts[1], Seq)
    assert len(fragment.parts) == 2
    assert finalize(fragment) == ("ab$1", [1])


def test_seq_rejects_bare_values():
    with pytest.raises(ValueError, match="wrap literal values in Param"):
        Seq(parts=("a = ", 3))


def test_fragments_are_immutable():
    text = Text(text="a")
    with pytest.raises(ValueError):
        text.text = "b"


def test_add_builds_sequences():
    fragment = Text(text="x = ") + Param(value=1)
    assert isinstance(fragment, Seq)
    fragment = "WHERE " + fragment
    assert finalize(fragment) == ("WHERE x = $1", [1])


def test_values_skip_cte_bodies():
    fragment = Seq(parts=(
        Param(value="a"),
        Cte(name="c", body=Seq(parts=(Param(value="hidden"),))),
        Seq(parts=(Param(value="b"),)),
    ))
    assert fragment.values == ("a", "b")


def test_join_fragments():
    fragment = join_fragments([Param(value=1), Param(value=2), Param(value=3)])
    assert finalize(fragment) == ("$1, $2, $3", [1, 2, 3])
    assert finalize(join_fragments(["a", "b"], " AND ")) == ("a AND b", [])
    assert finalize(join_fragments([])) == ("", [])
