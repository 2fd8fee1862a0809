import asyncio

import pytest

from bluebox_catalog.memory import InMemoryRepository
from bluebox_catalog.models import Actor, Category, Film


def make_repository(specs, actors=(), film_actor=()) -> InMemoryRepository:
    """Build an in-memory catalog from (film_id, title, rating, genre, rentals) tuples.

    ``genre`` may be None for a film without a category. Rentals are spread
    over a single inventory copy per film.
    """
    films, film_category, inventory, rentals = [], [], [], []
    categories: dict[str, Category] = {}
    inventory_id = rental_id = 0

    for film_id, title, rating, genre, rental_count in specs:
        films.append(Film(film_id, title, f"A film called {title}", 2006, rating))
        if genre is not None:
            category = categories.setdefault(genre, Category(len(categories) + 1, genre))
            film_category.append((film_id, category.category_id))
        if rental_count:
            inventory_id += 1
            inventory.append((inventory_id, film_id))
            for _ in range(rental_count):
                rental_id += 1
                rentals.append((rental_id, inventory_id))

    return InMemoryRepository(
        films=films,
        categories=list(categories.values()),
        film_category=film_category,
        actors=list(actors),
        film_actor=list(film_actor),
        inventory=inventory,
        rentals=rentals,
    )


CATALOG = [
    (1, "ZORRO RETURNS", "PG", "Action", 2),
    (2, "alpha wolf", "R", "Action", 6),
    (3, "BRAVE HEART", "PG", "Comedy", 3),
    (4, "CASABLANCA NIGHTS", "G", "Drama", 0),
    (5, "ORPHAN REEL", "PG", None, 5),
    (6, "DUSK TILL", "R", "Drama", 4),
    (7, "EMPTY HALL", "NC-17", "Comedy", 0),
]

ACTORS = [
    Actor(1, "PENELOPE", "GUINESS"),
    Actor(2, "NICK", "WAHLBERG"),
]

FILM_ACTOR = [(1, 1), (1, 2), (3, 1)]


@pytest.fixture
def repository():
    return make_repository(CATALOG, ACTORS, FILM_ACTOR)


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run
