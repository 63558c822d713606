"""Ordered dialect registry and detection.

The registry is built once at startup and injected wherever a dialect is
needed; detection is a pure function of the registry contents and a
``ConnectionProbe``.

Usage:
    from db_reconciler.dialects import default_registry, ConnectionProbe

    registry = default_registry()
    dialect = registry.detect(ConnectionProbe("PostgreSQL", major=9, minor=4))
    dialect.name
    # 'PostGres 7.3 and higher'
"""

import logging
from collections.abc import Iterable, Iterator

from db_reconciler.dialects.builtin import BUILTIN_DIALECTS
from db_reconciler.dialects.models import ConnectionProbe, Dialect
from db_reconciler.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class DialectRegistry:
    """Dialect records in registration order.

    Registering the same record twice is a no-op; registering a
    different record under a name that is already taken raises
    ``ConfigurationError``.
    """

    def __init__(self, dialects: Iterable[Dialect] = ()) -> None:
        self._dialects: list[Dialect] = []
        for dialect in dialects:
            self.register(dialect)

    def __iter__(self) -> Iterator[Dialect]:
        return iter(self._dialects)

    def __len__(self) -> int:
        return len(self._dialects)

    def __contains__(self, dialect: object) -> bool:
        return dialect in self._dialects

    def register(self, dialect: Dialect) -> None:
        for existing in self._dialects:
            if existing == dialect:
                return
            if existing.name == dialect.name:
                raise ConfigurationError(
                    f"A different dialect named '{dialect.name}' is already registered"
                )
        self._dialects.append(dialect)

    def names(self) -> list[str]:
        return [dialect.name for dialect in self._dialects]

    def get(self, name: str) -> Dialect:
        """Look up a dialect by its canonical name (case-insensitive).

        Raises:
            ConfigurationError: If no dialect has that name.
        """
        wanted = name.strip().lower()
        for dialect in self._dialects:
            if dialect.name.lower() == wanted:
                return dialect
        raise ConfigurationError(
            f"Unknown dialect '{name}'",
            details={"available": ", ".join(self.names())},
        )

    def detect(self, probe: ConnectionProbe) -> Dialect | None:
        """Return the first registered dialect matching the probe.

        A predicate that raises is logged and treated as "no match". When
        nothing matches, the full product and driver strings are logged and
        ``None`` is returned; the caller must fall back to an explicitly
        configured dialect.
        """
        for dialect in self._dialects:
            try:
                if dialect.matches(probe):
                    logger.info("Returning dialect %s", dialect.name)
                    return dialect
            except Exception:
                logger.exception(
                    "Error while matching connection against dialect %s", dialect.name
                )

        logger.error("Could not determine database dialect. %s", probe.describe())
        logger.error(
            "Please name the dialect explicitly in the datasource configuration."
        )
        return None


def default_registry() -> DialectRegistry:
    """A fresh registry holding the built-in dialects in their standard order."""
    return DialectRegistry(BUILTIN_DIALECTS)
