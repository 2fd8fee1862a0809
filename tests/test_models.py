import pytest

from bluebox_catalog.errors import InvalidArgumentError
from bluebox_catalog.models import (
    ABSENT,
    Absent,
    Actor,
    Category,
    Film,
    Filter,
    Found,
    Movie,
    MoviePage,
)


def test_filter_all_sentinel_and_blank_mean_unconstrained():
    assert Filter.of("All", "All") == Filter()
    assert Filter.of(None, None) == Filter()
    assert Filter.of("  ", "") == Filter()


def test_filter_strips_values():
    assert Filter.of(" Action ", "PG") == Filter(genre="Action", rating="PG")


def test_filter_rejects_unknown_rating():
    with pytest.raises(InvalidArgumentError, match="Unknown rating"):
        Filter.of(rating="XXX")


@pytest.mark.parametrize("genre,rating", [(7, None), (None, 5), (None, ["PG"])])
def test_filter_rejects_non_string_values(genre, rating):
    with pytest.raises(InvalidArgumentError, match="must be a string"):
        Filter.of(genre, rating)


def test_film_from_row():
    film = Film.from_row((7, "AIRPLANE SIERRA", "A Touching Saga", 2006, "PG-13"))
    assert film == Film(7, "AIRPLANE SIERRA", "A Touching Saga", 2006, "PG-13")


def test_genre_lookup_variants():
    found = Found(Category(1, "Action"))
    assert isinstance(found, Found)
    assert isinstance(ABSENT, Absent)
    assert found.category.name == "Action"


def test_movie_to_dict_shape():
    movie = Movie(
        film=Film(1, "ACADEMY DINOSAUR", "An Epic Drama", 2006, "PG"),
        genre=Category(6, "Documentary"),
        actors=[Actor(1, "PENELOPE", "GUINESS")],
        rental_count=23,
    )
    assert movie.to_dict() == {
        "film_id": 1,
        "title": "ACADEMY DINOSAUR",
        "description": "An Epic Drama",
        "release_year": 2006,
        "rating": "PG",
        "genre": {"category_id": 6, "name": "Documentary"},
        "actors": [{"actor_id": 1, "first_name": "PENELOPE", "last_name": "GUINESS"}],
        "rentalCount": 23,
    }


def test_movie_without_facets_serializes_nulls():
    data = Movie(film=Film(2, "ACE GOLDFINGER", None, None, "G")).to_dict()
    assert data["genre"] is None
    assert data["actors"] is None
    assert data["rentalCount"] == 0


def test_movie_page_to_dict():
    assert MoviePage(movies=[], has_more=True).to_dict() == {"movies": [], "hasMore": True}
