"""Persistence layer for the tenant database.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repositories
    - ContractRepository: expiring contracts and their lookups
    - ReportRepository: report templates and reminders
    - TenantRepository: clients, SMTP settings, email templates
    - RecipientRepository: role/organization membership queries
    - SystemEmailRepository: audit inserts

    # Trigger handling
    - TriggerSuspension: disable/re-enable the audit insert trigger

    # Exceptions
    - PersistenceError, DatabaseConnectionError, RecordNotFoundError,
      TenantConfigurationError, DataIntegrityError

Example usage:
    >>> from app.persistence import init_database, get_session, ContractRepository
    >>> init_database("sqlite:///./data/notifier.db")
    >>> with get_session() as session:
    ...     contracts = ContractRepository(session).get_expiring(date(2025, 1, 1))
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
    TenantConfigurationError,
)
from .repositories import (
    ContractRepository,
    RecipientRepository,
    ReportRepository,
    SystemEmailRepository,
    TenantRepository,
)
from .triggers import TriggerSuspension

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "ContractRepository",
    "RecipientRepository",
    "ReportRepository",
    "SystemEmailRepository",
    "TenantRepository",
    # Triggers
    "TriggerSuspension",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "TenantConfigurationError",
    "DataIntegrityError",
]
