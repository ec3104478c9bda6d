"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError so callers can catch
every database failure with a single except clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the engine cannot be created or the database is unreachable."""

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when a row the dispatch flow depends on does not exist.

    Repositories return None for optional lookups; entity sources raise this
    when a missing row makes the notification impossible to build.
    """

    pass


class TenantConfigurationError(RecordNotFoundError):
    """Raised when a tenant's client, email settings, client settings or
    email template is missing.

    Unlike a missing entity row this affects every notification for the
    tenant, so it aborts the whole run.
    """

    def __init__(self, tenant: str, message: str):
        self.tenant = tenant
        super().__init__(message)


class DataIntegrityError(PersistenceError):
    """Raised when an insert violates a constraint or is rejected by a trigger."""

    pass
