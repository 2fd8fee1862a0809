"""Exception hierarchy for the catalog query layer.

Nothing here is retried. A DataAccessError aborts the current request;
NotFoundError and InvalidArgumentError are conditions the caller can act on.
A film without a genre is not an exception at all (see models.GenreLookup).
"""


class CatalogError(Exception):
    """Base class for every error raised by bluebox_catalog."""


class DataAccessError(CatalogError):
    """The record source was unreachable or rejected a query.

    Always raised ``from`` the underlying psycopg error so the cause
    survives for logging.
    """


class NotFoundError(CatalogError):
    """A single-entity lookup matched no row."""

    def __init__(self, entity: str, key):
        super().__init__(f"No {entity} found with id: {key}")
        self.entity = entity
        self.key = key


class InvalidArgumentError(CatalogError):
    """A request argument is outside the accepted domain."""


class OperationError(CatalogError):
    """Normalized, operation-scoped failure surfaced to the API boundary.

    The low-level cause is logged by the resolver and not attached here.
    """

    def __init__(self, operation: str, message: str):
        super().__init__(message)
        self.operation = operation
