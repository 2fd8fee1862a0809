"""SQL construction for catalog queries.

Every builder returns ``(sql, params)`` ready for ``cursor.execute``.
Filter predicates are appended one at a time, so an unfiltered request
produces a statement with no WHERE clause at all.

Targets the Pagila schema: film, category, film_category, actor,
film_actor, inventory, rental. ``film.rating`` is the mpaa_rating enum.
"""

from .models import Filter

FILM_COLUMNS = "f.film_id, f.title, f.description, f.release_year, f.rating"

_FILM_CATEGORY_JOIN = """
               JOIN film_category fc ON fc.film_id = f.film_id
               JOIN category c ON c.category_id = fc.category_id"""


def _where(flt: Filter, *, genre_column: str = "c.name") -> tuple[str, list]:
    """Render the conjunctive WHERE clause for a filter."""
    clauses: list[str] = []
    params: list = []

    if flt.genre is not None:
        clauses.append(f"{genre_column} = %s")
        params.append(flt.genre)

    if flt.rating is not None:
        clauses.append("f.rating = %s::mpaa_rating")
        params.append(flt.rating)

    if not clauses:
        return "", params
    return "\n               WHERE " + " AND ".join(clauses), params


def list_films(flt: Filter, limit: int, offset: int) -> tuple[str, list]:
    where, params = _where(flt)
    sql = (
        f"""SELECT {FILM_COLUMNS}
               FROM film f"""
        + _FILM_CATEGORY_JOIN
        + where
        + """
               ORDER BY f.film_id
               LIMIT %s OFFSET %s"""
    )
    return sql, params + [limit, offset]


def film_by_id(film_id: int) -> tuple[str, list]:
    return (
        f"""SELECT {FILM_COLUMNS}
               FROM film f
               WHERE f.film_id = %s""",
        [film_id],
    )


def genre_for_film(film_id: int) -> tuple[str, list]:
    return (
        """SELECT c.category_id, c.name
               FROM category c
               JOIN film_category fc ON fc.category_id = c.category_id
               WHERE fc.film_id = %s
               ORDER BY c.category_id
               LIMIT 1""",
        [film_id],
    )


def actors_for_film(film_id: int) -> tuple[str, list]:
    return (
        """SELECT a.actor_id, a.first_name, a.last_name
               FROM actor a
               JOIN film_actor fa ON fa.actor_id = a.actor_id
               WHERE fa.film_id = %s
               ORDER BY a.actor_id""",
        [film_id],
    )


def rental_count_for_film(film_id: int) -> tuple[str, list]:
    # count() over an empty join is 0, so a film with no rentals still
    # yields exactly one row
    return (
        """SELECT count(r.rental_id)
               FROM inventory i
               JOIN rental r ON r.inventory_id = i.inventory_id
               WHERE i.film_id = %s""",
        [film_id],
    )


def all_actors() -> tuple[str, list]:
    return (
        """SELECT a.actor_id, a.first_name, a.last_name
               FROM actor a
               ORDER BY a.actor_id""",
        [],
    )


def count_films_by_genre(flt: Filter) -> tuple[str, list]:
    where, params = _where(flt)
    sql = (
        """SELECT c.category_id, c.name, count(f.film_id) AS films
               FROM film f"""
        + _FILM_CATEGORY_JOIN
        + where
        + """
               GROUP BY c.category_id, c.name
               ORDER BY c.name, c.category_id"""
    )
    return sql, params


def titles_sorted(flt: Filter) -> tuple[str, list]:
    where, params = _where(flt)
    join = _FILM_CATEGORY_JOIN if flt.genre is not None else ""
    sql = (
        """SELECT f.title
               FROM film f"""
        + join
        + where
        + '\n               ORDER BY f.title COLLATE "C"'
    )
    return sql, params


def average_rental_count_by_genre(flt: Filter) -> tuple[str, list]:
    """Mean of per-film rental counts for each genre.

    Rentals are counted per film first (LEFT JOINs keep zero-rental
    films), then averaged per genre.
    """
    rating_where, params = _where(Filter(rating=flt.rating))
    genre_where, genre_params = _where(Filter(genre=flt.genre))
    sql = (
        """WITH film_rentals AS (
                   SELECT f.film_id, count(r.rental_id) AS rental_count
                   FROM film f
                   LEFT JOIN inventory i ON i.film_id = f.film_id
                   LEFT JOIN rental r ON r.inventory_id = i.inventory_id"""
        + rating_where
        + """
                   GROUP BY f.film_id
               )
               SELECT c.category_id, c.name, avg(fr.rental_count)::float8 AS average_rental_count
               FROM film_rentals fr
               JOIN film_category fc ON fc.film_id = fr.film_id
               JOIN category c ON c.category_id = fc.category_id"""
        + genre_where
        + """
               GROUP BY c.category_id, c.name
               ORDER BY c.name, c.category_id"""
    )
    return sql, params + genre_params


# Batched facet lookups: one statement per facet for a set of film ids.

def genres_for_films(film_ids: list[int]) -> tuple[str, list]:
    return (
        """SELECT DISTINCT ON (fc.film_id) fc.film_id, c.category_id, c.name
               FROM film_category fc
               JOIN category c ON c.category_id = fc.category_id
               WHERE fc.film_id = ANY(%s)
               ORDER BY fc.film_id, c.category_id""",
        [list(film_ids)],
    )


def actors_for_films(film_ids: list[int]) -> tuple[str, list]:
    return (
        """SELECT fa.film_id, a.actor_id, a.first_name, a.last_name
               FROM actor a
               JOIN film_actor fa ON fa.actor_id = a.actor_id
               WHERE fa.film_id = ANY(%s)
               ORDER BY fa.film_id, a.actor_id""",
        [list(film_ids)],
    )


def rental_counts_for_films(film_ids: list[int]) -> tuple[str, list]:
    return (
        """SELECT i.film_id, count(r.rental_id)
               FROM inventory i
               JOIN rental r ON r.inventory_id = i.inventory_id
               WHERE i.film_id = ANY(%s)
               GROUP BY i.film_id""",
        [list(film_ids)],
    )
