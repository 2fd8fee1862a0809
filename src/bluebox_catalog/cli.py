"""Command-line interface for bluebox-catalog."""

import argparse
import asyncio
import json
import logging
import sys

from .config import load_config

log = logging.getLogger(__name__)

CATALOG_TABLES = [
    ("film", "Films"),
    ("category", "Categories"),
    ("actor", "Actors"),
    ("inventory", "Inventory"),
    ("rental", "Rentals"),
]


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def build_query_args(op_params: tuple[str, ...], args) -> dict:
    """Map CLI flags onto the argument names an operation expects.

    ``--genre`` becomes ``genreName`` for operations that use that name.
    Flags the operation does not declare are passed through so that
    ``execute`` can reject them.
    """
    genre_key = "genreName" if "genreName" in op_params else "genre"
    candidates = {
        genre_key: args.genre,
        "rating": args.rating,
        "limit": args.limit,
        "offset": args.offset,
        "id": args.id,
    }
    return {k: v for k, v in candidates.items() if v is not None}


async def _run_query(config, args) -> dict:
    from .api import CatalogContext, execute, get_all_operations

    params = {op.name: op.params for op in get_all_operations()}
    query_args = build_query_args(params.get(args.operation, ()), args)

    if args.memory:
        from .memory import InMemoryRepository

        ctx = CatalogContext.from_config(config, InMemoryRepository.from_json(args.memory))
        return await execute(ctx, args.operation, query_args)

    from .db import init_pool, close_pool
    from .repository import FilmRepository

    pool = await init_pool(config)
    try:
        ctx = CatalogContext.from_config(config, FilmRepository(pool))
        return await execute(ctx, args.operation, query_args)
    finally:
        await close_pool()


def cmd_query(args):
    """Run one catalog operation and print the JSON response."""
    config = load_config(args.env_file)
    config.validate()

    from .tracing import init_tracing, shutdown_tracing

    init_tracing(config)
    try:
        envelope = asyncio.run(_run_query(config, args))
    finally:
        shutdown_tracing()

    print(json.dumps(envelope, indent=2))
    if "errors" in envelope:
        sys.exit(1)


def cmd_operations(args):
    """List registered operations and their arguments."""
    from .api import get_all_operations

    for op in get_all_operations():
        params = ", ".join(op.params) if op.params else "-"
        print(f"{op.name:<20} {params:<35} {op.description}")


async def _check_database(config):
    from .db import init_pool, close_pool, connection

    await init_pool(config)
    try:
        async with connection() as conn:
            cur = await conn.execute("SELECT version()")
            version = (await cur.fetchone())[0]
            log.info("  PostgreSQL: %s", version.split(",")[0])

            for table, label in CATALOG_TABLES:
                cur = await conn.execute(f"SELECT count(*) FROM {table}")
                count = (await cur.fetchone())[0]
                log.info("  %-15s %d rows", label, count)
    finally:
        await close_pool()


def cmd_check(args):
    """Verify configuration and database connectivity."""
    config = load_config(args.env_file)
    config.validate()

    log.info("Configuration loaded successfully")
    log.info("  Database: %s@%s:%d/%s (schema %s)",
             config.db_user, config.db_host, config.db_port, config.db_name, config.db_schema)
    log.info("  Pool size: %d-%d", config.pool_min_size, config.pool_max_size)
    log.info("  Facets: strategy=%s errors=%s concurrency=%d",
             config.facet_strategy, config.facet_errors, config.facet_concurrency)
    log.info("  OTel: %s", "enabled" if config.otel_enabled else "disabled")

    asyncio.run(_check_database(config))
    log.info("All checks passed")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bluebox-catalog",
        description="Analytical queries over the film rental catalog",
    )
    parser.add_argument("--env-file", help="Path to .env file (default: auto-detect)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # check
    p_check = subparsers.add_parser("check", help="Verify config and database connectivity")
    p_check.set_defaults(func=cmd_check)

    # operations
    p_ops = subparsers.add_parser("operations", help="List available query operations")
    p_ops.set_defaults(func=cmd_operations)

    # query
    p_query = subparsers.add_parser("query", help="Run a query operation and print JSON")
    p_query.add_argument("operation", help="Operation name (see 'operations')")
    p_query.add_argument("--genre", help="Genre name, or 'All'")
    p_query.add_argument("--rating", help="Rating (G, PG, PG-13, R, NC-17), or 'All'")
    p_query.add_argument("--limit", type=int, help="Page size for 'movies'")
    p_query.add_argument("--offset", type=int, help="Page offset for 'movies'")
    p_query.add_argument("--id", type=int, help="Film id for 'movie'")
    p_query.add_argument("--memory", metavar="FILE",
                         help="Query a JSON catalog snapshot instead of the database")
    p_query.set_defaults(func=cmd_query)

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)
    except ValueError as e:
        log.error(str(e))
        sys.exit(1)
    except Exception as e:
        log.error("Fatal error: %s", e, exc_info=True)
        sys.exit(1)
