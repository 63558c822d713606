"""Alternative index actions.

An ``IndexAlternativeAction`` attached to a declared index may take over
creating that index, for example to build it with vendor-specific
options. When an action claims an index the generic ``CREATE INDEX`` is
skipped entirely, so the action must create the index under its
declared name or it will be reported missing (and retried) on every run.

Usage:
    class OracleTextIndex:
        def should_run(self, entity, index, reconciler):
            return reconciler.dialect.oracle_like

        def run(self, entity, index, reconciler):
            reconciler.executor.execute_ddl(
                f"CREATE INDEX {index.name} ON {entity.table_name} (BODY) "
                "INDEXTYPE IS CTXSYS.CONTEXT"
            )
            return None

    [[entities.indexes]]
    name = "ISSUE_BODY_TEXT"
    field_names = ["body"]
    alternative_actions = ["myapp.indexes:OracleTextIndex"]
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from db_reconciler.exceptions import ConfigurationError
from db_reconciler.model.entities import EntityModel, IndexModel

if TYPE_CHECKING:
    from db_reconciler.schema.reconciler import DatabaseReconciler


@runtime_checkable
class IndexAlternativeAction(Protocol):
    """Replaces generic index creation for the indexes it claims."""

    def should_run(
        self, entity: EntityModel, index: IndexModel, reconciler: "DatabaseReconciler"
    ) -> bool:
        """True if this action creates ``index``.

        Must be free of side effects; it may be asked more than once.
        """
        ...

    def run(
        self, entity: EntityModel, index: IndexModel, reconciler: "DatabaseReconciler"
    ) -> str | None:
        """Create the index. Returns error text, or ``None`` on success."""
        ...


def select_alternative_action(
    entity: EntityModel, index: IndexModel, reconciler: "DatabaseReconciler"
) -> IndexAlternativeAction | None:
    """The single action claiming ``index``, or ``None``.

    Raises:
        ConfigurationError: If more than one action claims the index.
    """
    claiming = [
        action
        for action in index.alternative_actions
        if action.should_run(entity, index, reconciler)
    ]
    if len(claiming) > 1:
        raise ConfigurationError(
            f"Multiple alternative actions claim index {index.name} "
            f"of entity {entity.entity_name}",
            details={"actions": ", ".join(type(a).__name__ for a in claiming)},
        )
    return claiming[0] if claiming else None
