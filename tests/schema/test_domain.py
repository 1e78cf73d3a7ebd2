"""Tests for sqlweave.schema: Domain loading, lookups and the domain registry."""

import pytest
from pydantic import ValidationError

from sqlweave.errors import UnknownDomain, UnknownReference
from sqlweave.schema import (
    Association,
    Domain,
    JoinKind,
    JoinStep,
    ParameterType,
    get_domain,
    register_domain,
    unregister_domain,
)


def test_domain_names_default_to_keys(film_domain):
    assert film_domain.get_join("category").name == "category"
    assert film_domain.associations["actor"].name == "actor"
    assert film_domain.get_column("category.name").name == "name"
    assert film_domain.get_column("category.name").requires_join == "category"
    assert film_domain.get_column("title").requires_join is None


def test_domain_parses_join_recipes_and_parameters(film_domain):
    recipe = film_domain.paths["film.rental.rental_date"]
    assert recipe[0] == JoinStep(from_table="film", to_table="inventory", on="film.film_id = inventory.film_id")
    assert recipe[1].kind is JoinKind.INNER
    cheap = film_domain.get_join("cheap_rentals")
    assert cheap.is_parameterized
    assert [p.type for p in cheap.parameters] == [ParameterType.FLOAT, ParameterType.STRING]
    assert not film_domain.get_join("language").is_parameterized


def test_unknown_references(film_domain):
    with pytest.raises(UnknownReference, match="Unknown field `nope`"):
        film_domain.get_column("nope")
    with pytest.raises(UnknownReference, match="Unknown join `nope`"):
        film_domain.get_join("nope")


def test_is_base_column(film_domain):
    assert film_domain.is_base_column("rating")
    assert not film_domain.is_base_column("category.name")
    assert not film_domain.is_base_column("missing")


def test_malformed_domain_fails_at_load_time():
    with pytest.raises(ValidationError):
        Domain.model_validate({"name": "broken", "joins": {"x": {"target_table": "x"}}})


def test_registry_round_trip():
    domain = register_domain(Domain(name="shop", base_table="orders"))
    try:
        assert get_domain("shop") is domain
        other = register_domain({"name": "shop", "base_table": "orders_v2"})
        assert get_domain("shop") is other
        register_domain(domain, key="shop_alias")
        assert get_domain("shop_alias").base_table == "orders"
    finally:
        unregister_domain("shop")
        unregister_domain("shop_alias")
    with pytest.raises(UnknownDomain, match="Domain configuration not found"):
        get_domain("shop")


def test_unregister_unknown_is_noop():
    unregister_domain("never-registered")


class TestAssociationJoinSteps:
    """Test association join steps with and without a junction table."""

    def test_direct_association(self):
        association = Association(name="language", target_table="language", owner_key="language_id", joined_key="language_id")
        assert association.join_steps("film") == [
            JoinStep(from_table="film", to_table="language", on="film.language_id = language.language_id"),
        ]

    def test_junction_association(self):
        association = Association(
            name="category", target_table="category", owner_key="film_id", joined_key="category_id",
            via="film_category",
        )
        steps = association.join_steps("film")
        assert [(s.from_table, s.to_table) for s in steps] == [("film", "film_category"), ("film_category", "category")]
        assert steps[0].on == "film.film_id = film_category.film_id"
        assert steps[1].on == "film_category.category_id = category.category_id"

    def test_junction_keys_can_differ(self):
        association = Association(
            name="tags", target_table="tag", owner_key="id", joined_key="id",
            via="post_tag", via_owner_key="post_id", via_joined_key="tag_id",
        )
        steps = association.join_steps("post")
        assert steps[0].on == "post.id = post_tag.post_id"
        assert steps[1].on == "post_tag.tag_id = tag.id"
