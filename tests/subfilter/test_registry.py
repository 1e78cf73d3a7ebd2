"""Tests for sqlweave.subfilter.registry: ids, persistence, compound groups, overrides, analyze."""

import pytest

from sqlweave.errors import (
    DuplicateSubfilterId,
    InvalidOption,
    SubfilterNotFound,
    UnknownDomain,
    UnresolvablePath,
)
from sqlweave.subfilter import CompoundOp, CompoundType, JoinComplexity, Registry, Strategy, parse_compound


def test_new_defaults_base_table(film_domain):
    registry = Registry.new("film")
    assert registry.base_table == "film"
    assert registry.subfilters == {}
    assert registry.compound_ops == ()


def test_new_unknown_domain():
    with pytest.raises(UnknownDomain):
        Registry.new("nope")


def test_generated_ids(film_domain):
    registry = (
        Registry.new("film")
        .add_subfilter("film.rating", "R")
        .add_subfilter("film.category.name", "Action")
    )
    assert list(registry.subfilters) == ["film_rating_1", "film_category_name_2"]
    assert registry.join_resolutions["film_category_name_2"].target_table == "category"


def test_add_is_persistent(film_domain):
    empty = Registry.new("film")
    one = empty.add_subfilter("film.rating", "R", id="rating")
    assert empty.subfilters == {}
    assert list(one.subfilters) == ["rating"]
    two = one.add_subfilter("film.release_year", (">", 2000), id="year")
    assert list(one.subfilters) == ["rating"]
    assert list(two.subfilters) == ["rating", "year"]


def test_duplicate_id(film_domain):
    registry = Registry.new("film").add_subfilter("film.rating", "R", id="rating")
    with pytest.raises(DuplicateSubfilterId, match="already exists"):
        registry.add_subfilter("film.rating", "PG", id="rating")


def test_add_resolves_eagerly(film_domain):
    with pytest.raises(UnresolvablePath):
        Registry.new("film").add_subfilter("film.studio.name", "Acme")


def test_options_are_recorded(film_domain):
    registry = Registry.new("film").add_subfilter(
        "film.rating", ["R", "NC-17"], id="adult", strategy="in", negate=True
    )
    spec = registry.subfilters["adult"]
    assert spec.strategy is Strategy.IN
    assert spec.negate is True
    assert registry.effective_strategy("adult") is Strategy.IN


def test_add_compound(film_domain):
    registry = Registry.new("film").add_compound("or", [
        ("film.rating", "R"),
        ("film.rating", "PG-13", {"id": "teen"}),
    ])
    assert list(registry.subfilters) == ["film_rating_1", "teen"]
    assert registry.compound_ops == (
        CompoundOp(type=CompoundType.OR, children=("film_rating_1", "teen")),
    )
    assert registry.referenced_ids() == {"film_rating_1", "teen"}


def test_add_nested_compound(film_domain):
    registry = Registry.new("film").add_compound("and", [
        ("film.category.name", "Action"),
        ("or", [("film.rating", "R"), ("film.rating", "PG-13")]),
    ])
    (op,) = registry.compound_ops
    assert op.type is CompoundType.AND
    assert op.children[0] == "film_category_name_1"
    assert op.children[1] == CompoundOp(type=CompoundType.OR, children=("film_rating_2", "film_rating_3"))
    assert list(op.iter_ids()) == ["film_category_name_1", "film_rating_2", "film_rating_3"]


def test_add_compound_rejects_bad_type(film_domain):
    with pytest.raises(InvalidOption):
        Registry.new("film").add_compound("xor", [("film.rating", "R")])


def test_add_compound_spec(film_domain):
    compound = parse_compound("or", [("film.rating", "R"), ("film.category.name", "Horror")])
    registry = Registry.new("film").add_compound_spec(compound)
    assert list(registry.subfilters) == ["film_rating_1", "film_category_name_2"]
    assert registry.compound_ops[0].children == ("film_rating_1", "film_category_name_2")


def test_remove_subfilter_keeps_group_reference(film_domain):
    registry = Registry.new("film").add_compound("or", [
        ("film.rating", "R", {"id": "r"}),
        ("film.rating", "PG", {"id": "pg"}),
    ])
    registry = registry.override_strategy("r", "in")
    removed = registry.remove_subfilter("r")
    assert list(removed.subfilters) == ["pg"]
    assert "r" not in removed.join_resolutions
    assert "r" not in removed.strategy_overrides
    assert removed.compound_ops == registry.compound_ops
    assert "r" in registry.subfilters


def test_remove_unknown(film_domain):
    with pytest.raises(SubfilterNotFound):
        Registry.new("film").remove_subfilter("missing")


def test_override_strategy(film_domain):
    registry = Registry.new("film").add_subfilter("film.category.name", "Action", id="category")
    overridden = registry.override_strategy("category", "in")
    assert registry.effective_strategy("category") is Strategy.EXISTS
    assert overridden.effective_strategy("category") is Strategy.IN
    with pytest.raises(SubfilterNotFound):
        registry.override_strategy("missing", "in")
    with pytest.raises(InvalidOption):
        registry.override_strategy("category", "join")


def test_analyze(film_domain):
    registry = (
        Registry.new("film")
        .add_subfilter("film.rating", "R")
        .add_subfilter("film.category.name", "Action")
        .add_subfilter("film.actor", ("count", ">", 5))
    )
    registry = registry.override_strategy("film_rating_1", "in")
    analysis = registry.analyze()
    assert analysis.subfilter_count == 3
    assert analysis.join_complexity is JoinComplexity.MEDIUM
    assert analysis.strategy_distribution == {Strategy.IN: 1, Strategy.EXISTS: 2}


def test_analyze_counts_shared_steps_once(film_domain):
    registry = (
        Registry.new("film")
        .add_subfilter("film.category.name", "Action")
        .add_subfilter("film.category.name", "Comedy", negate=True)
    )
    assert registry.analyze().join_complexity is JoinComplexity.LOW


@pytest.mark.parametrize("count, expected", [
    (0, JoinComplexity.LOW),
    (3, JoinComplexity.LOW),
    (4, JoinComplexity.MEDIUM),
    (8, JoinComplexity.MEDIUM),
    (9, JoinComplexity.HIGH),
])
def test_join_complexity_thresholds(count, expected):
    assert JoinComplexity.from_join_count(count) is expected


def test_generated_id_skips_explicit_ids(film_domain):
    registry = (
        Registry.new("film")
        .add_subfilter("film.title", "Alien", id="film_rating_2")
        .add_subfilter("film.rating", "R")
    )
    assert list(registry.subfilters) == ["film_rating_2", "film_rating_3"]
    assert registry.analyze().subfilter_count == 2


def test_add_compound_spec_skips_explicit_ids(film_domain):
    registry = Registry.new("film").add_subfilter("film.title", "Alien", id="film_rating_2")
    registry = registry.add_compound_spec(parse_compound("and", [("film.rating", "R")]))
    assert registry.compound_ops[0].children == ("film_rating_3",)


def test_add_compound_rejects_unknown_item_option(film_domain):
    with pytest.raises(InvalidOption, match=r"Unknown subfilter option\(s\): \['strategi'\]"):
        Registry.new("film").add_compound("or", [("film.rating", "R", {"strategi": "in"})])
