"""Data models for catalog records and query results.

Row-backed records are built with ``from_row`` from the column order of
the SELECTs in queries.py. ``to_dict`` produces the JSON shapes returned
by the API surface.
"""

from dataclasses import asdict, dataclass, field

from .errors import InvalidArgumentError

RATINGS: tuple[str, ...] = ("G", "PG", "PG-13", "R", "NC-17")

# Filter value meaning "no constraint on this dimension"
ALL = "All"


@dataclass(frozen=True)
class Film:
    film_id: int
    title: str
    description: str | None
    release_year: int | None
    rating: str | None

    @classmethod
    def from_row(cls, row: tuple) -> "Film":
        film_id, title, description, release_year, rating = row
        return cls(
            film_id=film_id,
            title=title,
            description=description,
            release_year=int(release_year) if release_year is not None else None,
            rating=str(rating) if rating is not None else None,
        )


@dataclass(frozen=True)
class Category:
    category_id: int
    name: str

    @classmethod
    def from_row(cls, row: tuple) -> "Category":
        return cls(category_id=row[0], name=row[1])


@dataclass(frozen=True)
class Actor:
    actor_id: int
    first_name: str
    last_name: str

    @classmethod
    def from_row(cls, row: tuple) -> "Actor":
        return cls(actor_id=row[0], first_name=row[1], last_name=row[2])


@dataclass(frozen=True)
class Found:
    """Genre lookup that resolved to a category."""
    category: Category


@dataclass(frozen=True)
class Absent:
    """Genre lookup for a film with no category association."""


ABSENT = Absent()

GenreLookup = Found | Absent


@dataclass(frozen=True)
class Filter:
    """Conjunctive filter on genre name and rating.

    ``None`` on either field means the dimension is unconstrained. Use
    ``Filter.of`` to build one from raw request arguments so that the
    "All" sentinel and blank strings are folded into ``None``.
    """

    genre: str | None = None
    rating: str | None = None

    @classmethod
    def of(cls, genre: str | None = None, rating: str | None = None) -> "Filter":
        genre = _normalize("genre", genre)
        rating = _normalize("rating", rating)
        if rating is not None and rating not in RATINGS:
            raise InvalidArgumentError(
                f"Unknown rating {rating!r}; expected one of {', '.join(RATINGS)} or {ALL}"
            )
        return cls(genre=genre, rating=rating)


def _normalize(name: str, value: str | None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidArgumentError(f"Filter {name} must be a string, got {value!r}")
    value = value.strip()
    if not value or value == ALL:
        return None
    return value


@dataclass
class Movie:
    """A film enriched with its genre, actors and rental count.

    ``actors`` is None when the actor facet was not requested (genre
    grouping only resolves genre and rental count).
    """

    film: Film
    genre: Category | None = None
    actors: list[Actor] | None = None
    rental_count: int = 0

    @property
    def film_id(self) -> int:
        return self.film.film_id

    def to_dict(self) -> dict:
        data = asdict(self.film)
        data["genre"] = asdict(self.genre) if self.genre is not None else None
        data["actors"] = [asdict(a) for a in self.actors] if self.actors is not None else None
        data["rentalCount"] = self.rental_count
        return data


@dataclass
class MoviePage:
    movies: list[Movie] = field(default_factory=list)
    has_more: bool = False

    def to_dict(self) -> dict:
        return {
            "movies": [m.to_dict() for m in self.movies],
            "hasMore": self.has_more,
        }


@dataclass
class GenreGroup:
    genre: Category
    movies: list[Movie] = field(default_factory=list)
    average_rental_count: float = 0.0

    def to_dict(self) -> dict:
        return {
            "genre": asdict(self.genre),
            "movies": [m.to_dict() for m in self.movies],
            "averageRentalCount": self.average_rental_count,
        }


@dataclass(frozen=True)
class GenreCount:
    genre: str
    count: int

    def to_dict(self) -> dict:
        return {"genre": self.genre, "count": self.count}


@dataclass(frozen=True)
class AverageRentalCount:
    genre: str
    average_rental_count: float

    def to_dict(self) -> dict:
        return {"genre": self.genre, "averageRentalCount": self.average_rental_count}
