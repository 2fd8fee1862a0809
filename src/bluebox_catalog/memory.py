"""In-memory record source with the same semantics as FilmRepository.

Used by the test suite and by ``bluebox-catalog query --memory`` to run
operations against a JSON snapshot without a database. Join, grouping
and ordering rules mirror the SQL in queries.py:

- listings inner-join films to their category and order by film_id
- genre counts omit genres with no matching film
- rental averages include zero-rental films
- titles sort by code point (COLLATE "C")
"""

import asyncio
import json
from collections import defaultdict
from pathlib import Path

from .errors import NotFoundError
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


class InMemoryRepository:
    """Holds Pagila-shaped tables as plain Python collections."""

    def __init__(
        self,
        films: list[Film],
        categories: list[Category],
        film_category: list[tuple[int, int]],
        actors: list[Actor] = (),
        film_actor: list[tuple[int, int]] = (),
        inventory: list[tuple[int, int]] = (),
        rentals: list[tuple[int, int]] = (),
    ):
        self.films = {f.film_id: f for f in films}
        self.categories = {c.category_id: c for c in categories}
        self.film_category = dict(film_category)
        self.actors = {a.actor_id: a for a in actors}
        self.film_actor = sorted(film_actor)

        copies: dict[int, int] = dict(inventory)
        self._rental_counts: dict[int, int] = defaultdict(int)
        for _rental_id, inventory_id in rentals:
            film_id = copies.get(inventory_id)
            if film_id is not None:
                self._rental_counts[film_id] += 1

    @classmethod
    def from_dict(cls, data: dict) -> "InMemoryRepository":
        return cls(
            films=[Film(**f) for f in data.get("films", [])],
            categories=[Category(**c) for c in data.get("categories", [])],
            film_category=[tuple(p) for p in data.get("film_category", [])],
            actors=[Actor(**a) for a in data.get("actors", [])],
            film_actor=[tuple(p) for p in data.get("film_actor", [])],
            inventory=[tuple(p) for p in data.get("inventory", [])],
            rentals=[tuple(p) for p in data.get("rentals", [])],
        )

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryRepository":
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def _category_of(self, film_id: int) -> Category | None:
        category_id = self.film_category.get(film_id)
        if category_id is None:
            return None
        return self.categories.get(category_id)

    def _filtered(self, flt: Filter, *, require_category: bool = True) -> list[Film]:
        result = []
        for film_id in sorted(self.films):
            film = self.films[film_id]
            category = self._category_of(film_id)
            if require_category and category is None:
                continue
            if flt.genre is not None and (category is None or category.name != flt.genre):
                continue
            if flt.rating is not None and film.rating != flt.rating:
                continue
            result.append(film)
        return result

    def _by_genre(self, films: list[Film]) -> dict[Category, list[Film]]:
        grouped: dict[Category, list[Film]] = defaultdict(list)
        for film in films:
            grouped[self._category_of(film.film_id)].append(film)
        return dict(sorted(grouped.items(), key=lambda kv: (kv[0].name, kv[0].category_id)))

    async def list_films(self, flt: Filter, limit: int, offset: int) -> list[Film]:
        await asyncio.sleep(0)
        return self._filtered(flt)[offset:offset + limit]

    async def get_film_by_id(self, film_id: int) -> Film:
        await asyncio.sleep(0)
        film = self.films.get(film_id)
        if film is None:
            raise NotFoundError("movie", film_id)
        return film

    async def get_genre_for_film(self, film_id: int) -> GenreLookup:
        await asyncio.sleep(0)
        category = self._category_of(film_id)
        return Found(category) if category is not None else ABSENT

    async def get_actors_for_film(self, film_id: int) -> list[Actor]:
        await asyncio.sleep(0)
        return [
            self.actors[actor_id]
            for fid, actor_id in self.film_actor
            if fid == film_id and actor_id in self.actors
        ]

    async def get_rental_count_for_film(self, film_id: int) -> int:
        await asyncio.sleep(0)
        return self._rental_counts.get(film_id, 0)

    async def list_actors(self) -> list[Actor]:
        await asyncio.sleep(0)
        return [self.actors[k] for k in sorted(self.actors)]

    async def count_films_by_genre(self, flt: Filter) -> list[GenreCount]:
        await asyncio.sleep(0)
        return [
            GenreCount(genre=category.name, count=len(films))
            for category, films in self._by_genre(self._filtered(flt)).items()
        ]

    async def list_titles_sorted(self, flt: Filter) -> list[str]:
        await asyncio.sleep(0)
        films = self._filtered(flt, require_category=flt.genre is not None)
        return sorted(f.title for f in films)

    async def average_rental_count_by_genre(self, flt: Filter) -> list[AverageRentalCount]:
        await asyncio.sleep(0)
        result = []
        for category, films in self._by_genre(self._filtered(flt)).items():
            counts = [self._rental_counts.get(f.film_id, 0) for f in films]
            result.append(AverageRentalCount(
                genre=category.name,
                average_rental_count=sum(counts) / len(counts),
            ))
        return result

    async def get_genres_for_films(self, film_ids: list[int]) -> dict[int, Category]:
        await asyncio.sleep(0)
        result = {}
        for film_id in film_ids:
            category = self._category_of(film_id)
            if category is not None:
                result[film_id] = category
        return result

    async def get_actors_for_films(self, film_ids: list[int]) -> dict[int, list[Actor]]:
        return {film_id: await self.get_actors_for_film(film_id) for film_id in film_ids}

    async def get_rental_counts_for_films(self, film_ids: list[int]) -> dict[int, int]:
        await asyncio.sleep(0)
        return {film_id: self._rental_counts.get(film_id, 0) for film_id in film_ids}
