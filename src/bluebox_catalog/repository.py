"""Film repository: executes catalog queries against PostgreSQL.

Each method borrows its own connection from the pool, so independent
lookups issued concurrently by the resolver never share a connection.
Any psycopg failure is re-raised as DataAccessError with the original
exception chained.
"""

import logging

import psycopg
from psycopg_pool import AsyncConnectionPool

from . import queries
from .errors import DataAccessError, NotFoundError
from .models import (
    ABSENT,
    Actor,
    AverageRentalCount,
    Category,
    Film,
    Filter,
    Found,
    GenreCount,
    GenreLookup,
)

log = logging.getLogger(__name__)


class FilmRepository:
    """Async query builder and executor over a connection pool."""

    def __init__(self, pool: AsyncConnectionPool):
        self._pool = pool

    async def _fetchall(self, query: tuple[str, list]) -> list[tuple]:
        sql, params = query
        try:
            async with self._pool.connection() as conn:
                cur = await conn.execute(sql, params)
                return await cur.fetchall()
        except psycopg.Error as exc:
            raise DataAccessError(f"Query failed: {exc}") from exc

    async def list_films(self, flt: Filter, limit: int, offset: int) -> list[Film]:
        rows = await self._fetchall(queries.list_films(flt, limit, offset))
        log.debug("list_films(%s, limit=%d, offset=%d) -> %d rows", flt, limit, offset, len(rows))
        return [Film.from_row(row) for row in rows]

    async def get_film_by_id(self, film_id: int) -> Film:
        rows = await self._fetchall(queries.film_by_id(film_id))
        if not rows:
            raise NotFoundError("movie", film_id)
        return Film.from_row(rows[0])

    async def get_genre_for_film(self, film_id: int) -> GenreLookup:
        rows = await self._fetchall(queries.genre_for_film(film_id))
        if not rows:
            return ABSENT
        return Found(Category.from_row(rows[0]))

    async def get_actors_for_film(self, film_id: int) -> list[Actor]:
        rows = await self._fetchall(queries.actors_for_film(film_id))
        return [Actor.from_row(row) for row in rows]

    async def get_rental_count_for_film(self, film_id: int) -> int:
        rows = await self._fetchall(queries.rental_count_for_film(film_id))
        if not rows:
            return 0
        return int(rows[0][0])

    async def list_actors(self) -> list[Actor]:
        rows = await self._fetchall(queries.all_actors())
        return [Actor.from_row(row) for row in rows]

    async def count_films_by_genre(self, flt: Filter) -> list[GenreCount]:
        rows = await self._fetchall(queries.count_films_by_genre(flt))
        return [GenreCount(genre=name, count=int(count)) for _id, name, count in rows if count > 0]

    async def list_titles_sorted(self, flt: Filter) -> list[str]:
        rows = await self._fetchall(queries.titles_sorted(flt))
        return [row[0] for row in rows]

    async def average_rental_count_by_genre(self, flt: Filter) -> list[AverageRentalCount]:
        rows = await self._fetchall(queries.average_rental_count_by_genre(flt))
        return [
            AverageRentalCount(genre=name, average_rental_count=float(avg))
            for _id, name, avg in rows
        ]

    # -----------------------------------------------------------------------
    # Batched facet lookups
    # -----------------------------------------------------------------------

    async def get_genres_for_films(self, film_ids: list[int]) -> dict[int, Category]:
        """Map film id to category. Films without a category are omitted."""
        if not film_ids:
            return {}
        rows = await self._fetchall(queries.genres_for_films(film_ids))
        return {film_id: Category(category_id, name) for film_id, category_id, name in rows}

    async def get_actors_for_films(self, film_ids: list[int]) -> dict[int, list[Actor]]:
        if not film_ids:
            return {}
        rows = await self._fetchall(queries.actors_for_films(film_ids))
        result: dict[int, list[Actor]] = {film_id: [] for film_id in film_ids}
        for film_id, *actor in rows:
            result.setdefault(film_id, []).append(Actor.from_row(actor))
        return result

    async def get_rental_counts_for_films(self, film_ids: list[int]) -> dict[int, int]:
        if not film_ids:
            return {}
        rows = await self._fetchall(queries.rental_counts_for_films(film_ids))
        result = {film_id: 0 for film_id in film_ids}
        for film_id, count in rows:
            result[film_id] = int(count)
        return result
