"""Suspension of an insert trigger around audit writes.

The audit table in production carries an insert trigger that must not fire
for rows written by the notifier. ``TriggerSuspension.suspended()`` opens one
transaction, disables the trigger, hands the connection to the caller for its
writes and re-enables the trigger before committing. Other connections never
see the trigger missing; if the writes or the re-enable fail, the rollback
undoes the disable together with the writes.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from app.logging import get_logger

from .exceptions import PersistenceError

logger = get_logger(__name__, component="audit")


class TriggerSuspension:
    """Disable/enable a named trigger on a table, per SQL dialect.

    Supported dialects:
    - mssql: ``DISABLE TRIGGER [schema].[name] ON [schema].[table]``
    - postgresql: ``ALTER TABLE schema.table DISABLE TRIGGER name``
    - sqlite: no DISABLE statement exists, so the trigger is dropped and
      recreated from the SQL stored in ``sqlite_master``

    All three treat these statements as transactional DDL.
    """

    def __init__(
        self,
        engine_provider: Callable[[], Engine],
        table: str,
        trigger_name: Optional[str],
        schema: str = "dbo",
    ):
        """
        Args:
            engine_provider: Returns the engine to run the statements on
            table: Table owning the trigger
            trigger_name: Trigger to suspend; None runs the block without DDL
            schema: Schema of table and trigger (mssql/postgresql)
        """
        self.engine_provider = engine_provider
        self.table = table
        self.trigger_name = trigger_name
        self.schema = schema
        self._sqlite_definition: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.trigger_name)

    @contextmanager
    def suspended(self) -> Iterator[Connection]:
        """Yield a connection whose transaction has the trigger disabled.

        Writes made on the yielded connection commit together with the
        re-enable. An exception from the block rolls everything back,
        the disable included.

        Raises:
            PersistenceError: If the trigger cannot be disabled or re-enabled,
                or the transaction cannot be committed
        """
        engine = self.engine_provider()
        try:
            with engine.begin() as conn:
                if self.enabled:
                    self._run(conn, self._disable, "disable")
                    logger.debug(
                        f"Trigger {self.trigger_name} disabled",
                        extra={"event": "audit.trigger.disabled", "trigger": self.trigger_name},
                    )

                yield conn

                if self.enabled:
                    self._run(conn, self._enable, "enable")
                    logger.debug(
                        f"Trigger {self.trigger_name} re-enabled",
                        extra={"event": "audit.trigger.enabled", "trigger": self.trigger_name},
                    )
        except SQLAlchemyError as e:
            logger.error(
                f"Audit transaction failed: {e}",
                extra={"event": "audit.transaction_failed", "trigger": self.trigger_name},
            )
            raise PersistenceError(f"Audit transaction failed: {e}") from e
        finally:
            self._sqlite_definition = None

    def _run(self, conn: Connection, action: Callable[[Connection], None], label: str) -> None:
        try:
            action(conn)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to {label} trigger {self.trigger_name}: {e}",
                extra={"event": f"audit.trigger.{label}_failed", "trigger": self.trigger_name},
            )
            raise PersistenceError(f"Failed to {label} trigger {self.trigger_name}: {e}") from e

    def _disable(self, conn: Connection) -> None:
        dialect = conn.dialect.name
        if dialect == "mssql":
            conn.execute(
                text(
                    f"DISABLE TRIGGER [{self.schema}].[{self.trigger_name}] "
                    f"ON [{self.schema}].[{self.table}]"
                )
            )
        elif dialect == "postgresql":
            conn.execute(
                text(
                    f'ALTER TABLE "{self.schema}"."{self.table}" '
                    f'DISABLE TRIGGER "{self.trigger_name}"'
                )
            )
        elif dialect == "sqlite":
            definition = conn.execute(
                text("SELECT sql FROM sqlite_master WHERE type = 'trigger' AND name = :name"),
                {"name": self.trigger_name},
            ).scalar_one_or_none()
            if definition is None:
                raise PersistenceError(f"Trigger {self.trigger_name} does not exist")
            self._sqlite_definition = definition
            conn.execute(text(f'DROP TRIGGER "{self.trigger_name}"'))
        else:
            raise PersistenceError(f"Trigger suspension is not supported for dialect '{dialect}'")

    def _enable(self, conn: Connection) -> None:
        dialect = conn.dialect.name
        if dialect == "mssql":
            conn.execute(
                text(
                    f"ENABLE TRIGGER [{self.schema}].[{self.trigger_name}] "
                    f"ON [{self.schema}].[{self.table}]"
                )
            )
        elif dialect == "postgresql":
            conn.execute(
                text(
                    f'ALTER TABLE "{self.schema}"."{self.table}" '
                    f'ENABLE TRIGGER "{self.trigger_name}"'
                )
            )
        elif dialect == "sqlite":
            exists = conn.execute(
                text("SELECT 1 FROM sqlite_master WHERE type = 'trigger' AND name = :name"),
                {"name": self.trigger_name},
            ).first()
            if exists is None and self._sqlite_definition:
                conn.execute(text(self._sqlite_definition))
            self._sqlite_definition = None
