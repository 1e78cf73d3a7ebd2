import pytest

from sqlweave.schema import register_domain, unregister_domain


FILM_DOMAIN = {
    "name": "film",
    "base_table": "film",
    "primary_key": "film_id",
    "columns": {
        "film_id": {"type": "integer"},
        "title": {"label": "Title"},
        "rating": {},
        "release_year": {"type": "integer", "label": "Release Year"},
        "rental_rate": {"type": "decimal"},
        "last_update": {"type": "datetime"},
        "language.name": {"requires_join": "language", "label": "Language"},
        "film_category.category_id": {"requires_join": "film_category", "type": "integer"},
        "category.name": {"requires_join": "category", "label": "Category"},
        "inventory.store_id": {"requires_join": "inventory", "type": "integer"},
        "rental.rental_date": {"requires_join": "rental", "type": "datetime"},
        "cheap_rentals.rental_rate": {"requires_join": "cheap_rentals", "type": "decimal"},
    },
    "joins": {
        "language": {"target_table": "language", "owner_key": "language_id", "joined_key": "language_id"},
        "film_category": {"target_table": "film_category", "owner_key": "film_id", "joined_key": "film_id"},
        "category": {
            "target_table": "category",
            "owner_key": "category_id",
            "joined_key": "category_id",
            "requires_join": "film_category",
        },
        "inventory": {"target_table": "inventory", "owner_key": "film_id", "joined_key": "film_id"},
        "rental": {
            "target_table": "rental",
            "owner_key": "inventory_id",
            "joined_key": "inventory_id",
            "requires_join": "inventory",
        },
        "cheap_rentals": {
            "target_table": "film",
            "owner_key": "film_id",
            "joined_key": "film_id",
            "parameters": [
                {"name": "max_rate", "type": "float", "required": True},
                {"name": "rating", "type": "string", "default": "G"},
            ],
            "condition": "cheap_rentals.rental_rate <= $param_max_rate AND cheap_rentals.rating = $param_rating",
        },
    },
    "associations": {
        "category": {
            "target_table": "category",
            "owner_key": "film_id",
            "joined_key": "category_id",
            "via": "film_category",
        },
        "actor": {
            "target_table": "actor",
            "owner_key": "film_id",
            "joined_key": "actor_id",
            "via": "film_actor",
        },
        "language": {
            "target_table": "language",
            "owner_key": "language_id",
            "joined_key": "language_id",
        },
    },
    "paths": {
        "film.rental.rental_date": [
            {"from": "film", "to": "inventory", "on": "film.film_id = inventory.film_id"},
            {"from": "inventory", "to": "rental", "on": "inventory.inventory_id = rental.inventory_id"},
        ],
    },
}


@pytest.fixture(scope="function")
def film_domain():
    """Register the film domain under "film" for the duration of a test."""
    domain = register_domain(FILM_DOMAIN)
    yield domain
    unregister_domain("film")
