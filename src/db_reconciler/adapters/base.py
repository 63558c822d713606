"""SQL executor protocol definition.

Defines the ``SqlExecutor`` Protocol the reconciler borrows connections
and runs DDL through. Pooling, retries and commit semantics belong to
the implementation, not to the reconciler.

Usage:
    from db_reconciler.adapters.base import SqlExecutor

    def add_index(executor: SqlExecutor) -> None:
        executor.execute_ddl("CREATE INDEX ORDER_CUST ON ORDERS (CUSTOMER_ID)")
        with executor.connect() as conn:
            inspector = sqlalchemy.inspect(conn)
"""

from contextlib import AbstractContextManager
from typing import Protocol

from sqlalchemy.engine import Connection


class SqlExecutor(Protocol):
    """Connection source and DDL runner used by the reconciler."""

    @property
    def user_name(self) -> str | None:
        """User the connections are opened as (Oracle uses it as the schema)."""
        ...

    def connect(self) -> AbstractContextManager[Connection]:
        """Borrow a connection for metadata queries.

        Raises:
            IntrospectionError: If no connection can be obtained.
        """
        ...

    def execute_ddl(self, sql: str) -> int:
        """Execute one DDL statement and return the affected row count.

        Raises:
            SQLAlchemyError: On any driver failure; the reconciler reports it.

        Example:
            executor.execute_ddl("ALTER TABLE ORDERS ADD STATUS VARCHAR(20)")
        """
        ...

    def dispose(self) -> None:
        """Release pooled connections."""
        ...
