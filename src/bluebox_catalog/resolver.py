"""Aggregation resolver: request-shaped results built from repository calls.

Owns everything the record source does not do in a single query:

- look-ahead pagination (fetch limit + 1 rows to learn whether another
  page exists)
- per-movie facet enrichment (genre, actors, rental count), issued
  concurrently and bounded by a semaphore
- in-memory genre grouping with a running rental average

Every operation converts DataAccessError into an OperationError with an
operation-named message; the cause is logged here and nowhere else.
NotFoundError and InvalidArgumentError propagate unchanged.

The resolver holds no per-request state. Page size and scan bound are
passed on each call.
"""

import asyncio
import logging
from contextlib import contextmanager

from .errors import DataAccessError, InvalidArgumentError, OperationError
from .models import (
    ABSENT,
    Absent,
    Actor,
    AverageRentalCount,
    Category,
    Film,
    Filter,
    Found,
    GenreCount,
    GenreGroup,
    GenreLookup,
    Movie,
    MoviePage,
)

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_SCAN_LIMIT = 1000


@contextmanager
def _normalized(operation: str, message: str):
    try:
        yield
    except DataAccessError as exc:
        log.error("%s (operation=%s): %s", message, operation, exc, exc_info=exc)
        raise OperationError(operation, message) from None


def _check_window(limit: int, offset: int) -> None:
    if limit < 0:
        raise InvalidArgumentError(f"limit must be >= 0, got {limit}")
    if offset < 0:
        raise InvalidArgumentError(f"offset must be >= 0, got {offset}")


class CatalogResolver:
    """Composes FilmRepository calls into API results.

    Args:
        repository: FilmRepository or any object with the same coroutine
            methods (InMemoryRepository in tests).
        facet_concurrency: Max movies enriched at the same time within one
            request.
        facet_strategy: "per_film" issues one lookup per facet per movie;
            "batched" issues one lookup per facet for the whole page.
        facet_errors: "abort" fails the request on any facet error and
            cancels the lookups still in flight; "degrade" substitutes
            empty facets for the affected film and logs a warning.
            Batched lookups always abort.
    """

    def __init__(self, repository, *, facet_concurrency: int = 10,
                 facet_strategy: str = "per_film", facet_errors: str = "abort"):
        self._repo = repository
        self._facet_concurrency = facet_concurrency
        self._batched = facet_strategy == "batched"
        self._degrade = facet_errors == "degrade"

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    async def movies(self, flt: Filter, limit: int = DEFAULT_PAGE_SIZE,
                     offset: int = 0) -> MoviePage:
        _check_window(limit, offset)
        with _normalized("movies", "Failed to fetch movies"):
            rows = await self._repo.list_films(flt, limit + 1, offset)
            has_more = len(rows) > limit
            movies = await self._enrich(rows[:limit])
        return MoviePage(movies=movies, has_more=has_more)

    async def movie(self, film_id: int) -> Movie:
        with _normalized("movie", "Failed to fetch movie"):
            film = await self._repo.get_film_by_id(film_id)
            movies = await self._enrich([film])
        return movies[0]

    async def actors(self) -> list[Actor]:
        with _normalized("actors", "Failed to fetch actors"):
            return await self._repo.list_actors()

    async def movies_by_category(self, flt: Filter,
                                 scan_limit: int = DEFAULT_SCAN_LIMIT) -> list[GenreGroup]:
        """Group up to ``scan_limit`` filtered films by genre.

        Groups are keyed by category identity and appear in the order their
        first film was seen. Films without a genre are skipped.
        """
        if scan_limit < 1:
            raise InvalidArgumentError(f"scan_limit must be >= 1, got {scan_limit}")

        with _normalized("moviesByCategory", "Failed to fetch movies by category"):
            films = await self._repo.list_films(flt, scan_limit, 0)
            resolved = await self._grouping_facets(films)

        groups: dict[int, GenreGroup] = {}
        totals: dict[int, int] = {}
        skipped = 0
        for film, lookup, rental_count in resolved:
            match lookup:
                case Absent():
                    skipped += 1
                    continue
                case Found(category=category):
                    key = category.category_id
                    group = groups.get(key)
                    if group is None:
                        group = groups[key] = GenreGroup(genre=category)
                        totals[key] = 0
                    group.movies.append(Movie(film=film, genre=category, rental_count=rental_count))
                    totals[key] += rental_count

        for key, group in groups.items():
            group.average_rental_count = totals[key] / len(group.movies)

        if skipped:
            log.debug("moviesByCategory skipped %d films without a genre", skipped)
        return list(groups.values())

    async def movie_counts_by_genre(self, flt: Filter) -> list[GenreCount]:
        with _normalized("movieCountsByGenre", "Failed to fetch movie counts by genre"):
            return await self._repo.count_films_by_genre(flt)

    async def movie_titles(self, flt: Filter) -> list[str]:
        with _normalized("movieTitles", "Failed to fetch movie titles"):
            return await self._repo.list_titles_sorted(flt)

    async def average_rental_count(self, flt: Filter) -> list[AverageRentalCount]:
        with _normalized("averageRentalCount", "Failed to fetch average rental counts by genre"):
            return await self._repo.average_rental_count_by_genre(flt)

    # -----------------------------------------------------------------------
    # Facet enrichment
    # -----------------------------------------------------------------------

    async def _film_facets(self, *aws, film_id: int):
        """Await one film's facet lookups jointly.

        Under the "degrade" policy a DataAccessError becomes None in the
        result; any other exception still propagates.
        """
        if not self._degrade:
            return await _run_all(aws)
        results = await asyncio.gather(*aws, return_exceptions=True)
        cleaned = []
        for result in results:
            if isinstance(result, DataAccessError):
                log.warning("Facet lookup failed for film %d, degrading", film_id, exc_info=result)
                cleaned.append(None)
            elif isinstance(result, BaseException):
                raise result
            else:
                cleaned.append(result)
        return cleaned

    async def _enrich(self, films: list[Film]) -> list[Movie]:
        if not films:
            return []
        if self._batched:
            return await self._enrich_batched(films)

        sem = asyncio.Semaphore(self._facet_concurrency)

        async def enrich_one(film: Film) -> Movie:
            async with sem:
                lookup, actors, rental_count = await self._film_facets(
                    self._repo.get_genre_for_film(film.film_id),
                    self._repo.get_actors_for_film(film.film_id),
                    self._repo.get_rental_count_for_film(film.film_id),
                    film_id=film.film_id,
                )
            return Movie(
                film=film,
                genre=_category_or_none(lookup),
                actors=actors if actors is not None else [],
                rental_count=rental_count or 0,
            )

        return await _run_all(enrich_one(f) for f in films)

    async def _enrich_batched(self, films: list[Film]) -> list[Movie]:
        # A failed batch covers the whole page, so it aborts under either policy
        ids = [f.film_id for f in films]
        genres, actors, counts = await _run_all([
            self._repo.get_genres_for_films(ids),
            self._repo.get_actors_for_films(ids),
            self._repo.get_rental_counts_for_films(ids),
        ])
        return [
            Movie(
                film=f,
                genre=genres.get(f.film_id),
                actors=actors.get(f.film_id, []),
                rental_count=counts.get(f.film_id, 0),
            )
            for f in films
        ]

    async def _grouping_facets(self, films: list[Film]) -> list[tuple[Film, GenreLookup, int]]:
        """Resolve genre and rental count for each film, in film order.

        Under the "degrade" policy films with a failed per-film lookup are
        dropped. A failed batched lookup always aborts.
        """
        if not films:
            return []

        if self._batched:
            ids = [f.film_id for f in films]
            genres, counts = await _run_all([
                self._repo.get_genres_for_films(ids),
                self._repo.get_rental_counts_for_films(ids),
            ])
            return [
                (f, Found(genres[f.film_id]) if f.film_id in genres else ABSENT,
                 counts.get(f.film_id, 0))
                for f in films
            ]

        sem = asyncio.Semaphore(self._facet_concurrency)

        async def resolve_one(film: Film):
            async with sem:
                lookup, rental_count = await self._film_facets(
                    self._repo.get_genre_for_film(film.film_id),
                    self._repo.get_rental_count_for_film(film.film_id),
                    film_id=film.film_id,
                )
            if lookup is None or rental_count is None:
                return None
            return film, lookup, rental_count

        resolved = await _run_all(resolve_one(f) for f in films)
        return [r for r in resolved if r is not None]


async def _run_all(aws) -> list:
    """Run awaitables concurrently and return their results in order.

    On the first failure every sibling still running is cancelled and
    awaited before the error is re-raised, so no lookup outlives the
    request that issued it.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        pending = [t for t in tasks if not t.done()]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    error = None
    for t in tasks:
        if t.cancelled():
            continue
        exc = t.exception()
        if exc is not None and error is None:
            error = exc
    if error is not None:
        raise error
    return [t.result() for t in tasks]


def _category_or_none(lookup: GenreLookup | None) -> Category | None:
    match lookup:
        case Found(category=category):
            return category
        case _:
            return None
