"""Operation registry and request dispatch.

Each external operation registers itself with the @operation decorator,
declaring the argument names it accepts. ``execute`` validates the
arguments, runs the operation under a tracing span and wraps the outcome
in a JSON-ready envelope:

    {"data": {<operation>: <result>}}
    {"errors": [{"message": ..., "code": ..., "operation": ...}]}

Error codes: NOT_FOUND, BAD_REQUEST, INTERNAL.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from .config import Config
from .errors import CatalogError, InvalidArgumentError, NotFoundError, OperationError
from .models import Filter
from .resolver import DEFAULT_PAGE_SIZE, DEFAULT_SCAN_LIMIT, CatalogResolver
from .tracing import operation_span, record_outcome

log = logging.getLogger(__name__)


@dataclass
class CatalogContext:
    """What an operation needs to run: the resolver and per-call defaults."""

    resolver: CatalogResolver
    page_size: int = DEFAULT_PAGE_SIZE
    scan_limit: int = DEFAULT_SCAN_LIMIT

    @classmethod
    def from_config(cls, config: Config, repository) -> "CatalogContext":
        resolver = CatalogResolver(
            repository,
            facet_concurrency=config.facet_concurrency,
            facet_strategy=config.facet_strategy,
            facet_errors=config.facet_errors,
        )
        return cls(
            resolver=resolver,
            page_size=config.default_page_size,
            scan_limit=config.category_scan_limit,
        )


@dataclass
class Operation:
    """A registered API operation."""
    name: str
    params: tuple[str, ...]
    func: Callable
    description: str = ""


_operations: dict[str, Operation] = {}


def operation(name: str, params: tuple[str, ...] = ()):
    """Decorator to register a coroutine function as an API operation."""
    def decorator(func: Callable) -> Callable:
        doc = (func.__doc__ or "").strip().splitlines()
        _operations[name] = Operation(
            name=name,
            params=params,
            func=func,
            description=doc[0] if doc else "",
        )
        return func
    return decorator


def get_all_operations() -> list[Operation]:
    """Return all registered operations."""
    return list(_operations.values())


def _int_arg(args: dict, key: str, default: int | None = None) -> int:
    value = args.get(key)
    if value is None:
        if default is None:
            raise InvalidArgumentError(f"Missing required argument: {key}")
        return default
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Argument {key} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidArgumentError(f"Argument {key} must be a whole number, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Argument {key} must be an integer, got {value!r}") from None


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

@operation("movies", params=("genreName", "rating", "limit", "offset"))
async def movies(ctx: CatalogContext, args: dict) -> dict:
    """Paginated movie listing with genre, actors and rental count."""
    flt = Filter.of(genre=args.get("genreName"), rating=args.get("rating"))
    page = await ctx.resolver.movies(
        flt,
        limit=_int_arg(args, "limit", ctx.page_size),
        offset=_int_arg(args, "offset", 0),
    )
    return page.to_dict()


@operation("movie", params=("id",))
async def movie(ctx: CatalogContext, args: dict) -> dict:
    """A single movie by id."""
    result = await ctx.resolver.movie(_int_arg(args, "id"))
    return result.to_dict()


@operation("actors")
async def actors(ctx: CatalogContext, args: dict) -> list[dict]:
    """Every actor in the catalog."""
    return [
        {"actor_id": a.actor_id, "first_name": a.first_name, "last_name": a.last_name}
        for a in await ctx.resolver.actors()
    ]


@operation("moviesByCategory", params=("rating",))
async def movies_by_category(ctx: CatalogContext, args: dict) -> dict:
    """Movies grouped by genre with the average rental count per group."""
    flt = Filter.of(rating=args.get("rating"))
    groups = await ctx.resolver.movies_by_category(flt, scan_limit=ctx.scan_limit)
    return {"moviesByCategory": [g.to_dict() for g in groups]}


@operation("movieCountsByGenre", params=("rating",))
async def movie_counts_by_genre(ctx: CatalogContext, args: dict) -> list[dict]:
    """Number of movies per genre."""
    flt = Filter.of(rating=args.get("rating"))
    return [c.to_dict() for c in await ctx.resolver.movie_counts_by_genre(flt)]


@operation("movieTitles", params=("rating", "genre"))
async def movie_titles(ctx: CatalogContext, args: dict) -> list[str]:
    """Sorted movie titles, optionally scoped to a genre and rating."""
    flt = Filter.of(genre=args.get("genre"), rating=args.get("rating"))
    return await ctx.resolver.movie_titles(flt)


@operation("averageRentalCount", params=("rating",))
async def average_rental_count(ctx: CatalogContext, args: dict) -> list[dict]:
    """Average rentals per film for each genre."""
    flt = Filter.of(rating=args.get("rating"))
    return [a.to_dict() for a in await ctx.resolver.average_rental_count(flt)]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def _error(operation_name: str, code: str, message: str) -> dict:
    return {"errors": [{"message": message, "code": code, "operation": operation_name}]}


async def execute(ctx: CatalogContext, name: str, args: dict[str, Any] | None = None) -> dict:
    """Run one operation and return its response envelope. Never raises CatalogError."""
    op = _operations.get(name)
    if op is None:
        return _error(name, "BAD_REQUEST", f"Unknown operation: {name}")

    args = {k: v for k, v in (args or {}).items() if v is not None}
    unexpected = sorted(set(args) - set(op.params))
    if unexpected:
        return _error(name, "BAD_REQUEST", f"Unexpected argument(s) for {name}: {', '.join(unexpected)}")

    with operation_span(name, args) as span:
        failure = None
        try:
            envelope = {"data": {name: await op.func(ctx, args)}}
        except NotFoundError as exc:
            envelope = _error(name, "NOT_FOUND", str(exc))
        except InvalidArgumentError as exc:
            envelope = _error(name, "BAD_REQUEST", str(exc))
        except OperationError as exc:
            envelope = _error(name, "INTERNAL", str(exc))
        except CatalogError as exc:
            log.exception("Unnormalized catalog error in operation %s", name)
            envelope, failure = _error(name, "INTERNAL", f"Failed to execute {name}"), exc
        except Exception as exc:
            log.exception("Unexpected error in operation %s", name)
            envelope, failure = _error(name, "INTERNAL", f"Failed to execute {name}"), exc
        record_outcome(span, envelope, failure)

    return envelope
