import pytest

from bluebox_catalog.api import CatalogContext, execute, get_all_operations
from bluebox_catalog.config import Config
from bluebox_catalog.errors import DataAccessError
from bluebox_catalog.memory import InMemoryRepository
from bluebox_catalog.resolver import CatalogResolver


@pytest.fixture
def ctx(repository):
    return CatalogContext(resolver=CatalogResolver(repository), page_size=3)


def test_registered_operations():
    assert {op.name for op in get_all_operations()} == {
        "movies",
        "movie",
        "actors",
        "moviesByCategory",
        "movieCountsByGenre",
        "movieTitles",
        "averageRentalCount",
    }


def test_movies_envelope_uses_default_page_size(run, ctx):
    envelope = run(execute(ctx, "movies", {}))
    result = envelope["data"]["movies"]
    assert [m["film_id"] for m in result["movies"]] == [1, 2, 3]
    assert result["hasMore"] is True
    assert result["movies"][0]["genre"] == {"category_id": 1, "name": "Action"}
    assert result["movies"][0]["rentalCount"] == 2


def test_movies_arguments(run, ctx):
    envelope = run(execute(ctx, "movies", {"genreName": "Drama", "rating": "All", "limit": "10", "offset": 1}))
    result = envelope["data"]["movies"]
    assert [m["title"] for m in result["movies"]] == ["DUSK TILL"]
    assert result["hasMore"] is False


def test_movie_not_found(run, ctx):
    envelope = run(execute(ctx, "movie", {"id": 404}))
    assert envelope == {"errors": [{
        "message": "No movie found with id: 404",
        "code": "NOT_FOUND",
        "operation": "movie",
    }]}


def test_movie_requires_id(run, ctx):
    envelope = run(execute(ctx, "movie", {}))
    assert envelope["errors"][0]["code"] == "BAD_REQUEST"


def test_movies_by_category_shape(run, ctx):
    result = run(execute(ctx, "moviesByCategory", {"rating": "PG"}))["data"]["moviesByCategory"]
    groups = result["moviesByCategory"]
    assert [g["genre"]["name"] for g in groups] == ["Action", "Comedy"]
    assert groups[0]["averageRentalCount"] == 2.0
    assert groups[0]["movies"][0]["actors"] is None


def test_counts_titles_and_averages(run, ctx):
    counts = run(execute(ctx, "movieCountsByGenre", {"rating": "R"}))["data"]["movieCountsByGenre"]
    assert counts == [{"genre": "Action", "count": 1}, {"genre": "Drama", "count": 1}]

    all_titles = run(execute(ctx, "movieTitles", {"genre": "All", "rating": "All"}))
    unfiltered = run(execute(ctx, "movieTitles", {}))
    assert all_titles == unfiltered

    averages = run(execute(ctx, "averageRentalCount", {}))["data"]["averageRentalCount"]
    assert {"genre": "Comedy", "averageRentalCount": 1.5} in averages


def test_actors(run, ctx):
    actors = run(execute(ctx, "actors"))["data"]["actors"]
    assert actors[0] == {"actor_id": 1, "first_name": "PENELOPE", "last_name": "GUINESS"}


@pytest.mark.parametrize("name,args", [
    ("nope", {}),
    ("movies", {"limit": "many"}),
    ("movies", {"rating": "XXX"}),
    ("movies", {"genre": "Drama"}),
    ("movieCountsByGenre", {"genre": "Drama"}),
    ("movies", {"limit": -1}),
    ("movies", {"rating": 5}),
    ("movieTitles", {"genre": 3}),
    ("movie", {"id": 1.9}),
    ("movies", {"limit": 2.5}),
])
def test_bad_requests(run, ctx, name, args):
    envelope = run(execute(ctx, name, args))
    assert envelope["errors"][0]["code"] == "BAD_REQUEST"
    assert "data" not in envelope


def test_whole_float_arguments_are_accepted(run, ctx):
    envelope = run(execute(ctx, "movie", {"id": 2.0}))
    assert envelope["data"]["movie"]["title"] == "alpha wolf"


def test_internal_errors_hide_cause(run, repository):
    class BrokenRepository(InMemoryRepository):
        def __init__(self, base):
            self.__dict__.update(base.__dict__)

        async def average_rental_count_by_genre(self, flt):
            raise DataAccessError('relation "rental" does not exist')

    ctx = CatalogContext(resolver=CatalogResolver(BrokenRepository(repository)))
    envelope = run(execute(ctx, "averageRentalCount", {"rating": "G"}))
    assert envelope["errors"] == [{
        "message": "Failed to fetch average rental counts by genre",
        "code": "INTERNAL",
        "operation": "averageRentalCount",
    }]


def test_context_from_config(repository):
    config = Config(default_page_size=25, category_scan_limit=50, facet_strategy="batched")
    ctx = CatalogContext.from_config(config, repository)
    assert ctx.page_size == 25
    assert ctx.scan_limit == 50
    assert ctx.resolver._batched is True
