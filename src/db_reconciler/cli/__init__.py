"""CLI module for checking and repairing a live schema against an entity model.

Provides commands for profile listing, dialect detection, schema
reconciliation and inducing an entity model from an existing database.

Usage:
    DB_PROFILE=dev db-reconciler detect
    db-reconciler profiles
    db-reconciler check --model entitymodel.toml
    db-reconciler check --model entitymodel.toml --add-missing
    db-reconciler check --add-missing --no-promote --no-widen
    db-reconciler induce

Commands:
    profiles  - List available profiles
    detect    - Detect the SQL dialect of the active profile
    check     - Compare the live schema with the entity model (and repair it)
    induce    - Print entities induced from the live tables
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from db_reconciler.config.loader import load_db_config
from db_reconciler.config.models import DatabaseConfig
from db_reconciler.dialects.models import probe_connection
from db_reconciler.exceptions import ReconcilerError
from db_reconciler.factory import create_reconciler, get_active_profile
from db_reconciler.model.loader import load_entity_model
from db_reconciler.schema.models import ReconciliationMessage, Severity

console = Console()

_SEVERITY_STYLES = {
    Severity.VERBOSE: "dim",
    Severity.INFO: "",
    Severity.IMPORTANT: "green",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red",
}


def _load_config(args: argparse.Namespace) -> DatabaseConfig | None:
    try:
        return load_db_config(args.config)
    except (FileNotFoundError, ReconcilerError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return None


def _model_path(args: argparse.Namespace, config: DatabaseConfig) -> Path:
    """``--model``, else the ``[model] file`` of db.toml next to db.toml."""
    if args.model:
        return Path(args.model)
    base = Path(args.config).parent if args.config else Path.cwd()
    return base / config.model_file


def _print_messages(
    messages: list[ReconciliationMessage], show_verbose: bool
) -> None:
    table = Table(title="Reconciliation", show_header=True, header_style="bold")
    table.add_column("Severity", style="dim", width=10)
    table.add_column("Message")

    for message in messages:
        if message.severity == Severity.VERBOSE and not show_verbose:
            continue
        style = _SEVERITY_STYLES[message.severity]
        text = escape(message.text)
        if style:
            text = f"[{style}]{text}[/{style}]"
        table.add_row(message.severity.value, text)

    console.print(table)


# ============================================================================
# Command implementations
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if db.toml not found or invalid.
    """
    config = _load_config(args)
    if config is None:
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Dialect")
    table.add_column("Schema")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        ds = profile.datasource
        table.add_row(
            name,
            ds.dialect or "[dim]detect[/dim]",
            ds.schema_name or "",
            profile.description or "",
        )

    console.print(table)
    return 0


def cmd_detect(args: argparse.Namespace) -> int:
    """Connect with the active profile and report the detected dialect.

    Returns:
        0 if a dialect was determined, 1 otherwise.
    """
    config = _load_config(args)
    if config is None:
        return 1

    try:
        profile_name, profile = get_active_profile(
            args.profile, args.env_prefix, config=config
        )
        reconciler = create_reconciler(profile)
    except ReconcilerError as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        return 1

    try:
        with reconciler.executor.connect() as conn:
            probe = probe_connection(conn)
        dialect = reconciler.resolve_dialect()
    except ReconcilerError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1
    finally:
        reconciler.executor.dispose()

    table = Table(title="Connection", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Profile", f"[bold cyan]{profile_name}[/bold cyan]")
    table.add_row("Product", f"{probe.product_name} {probe.product_version}".strip())
    table.add_row("Driver", f"{probe.driver_name} {probe.driver_version}".strip())
    if dialect is None:
        table.add_row("Dialect", "[red]unknown[/red]")
    else:
        table.add_row("Dialect", dialect.name)
        schema = reconciler.schema_name or dialect.schema_name(probe)
        table.add_row("Schema", schema or "[dim]none[/dim]")
    console.print(table)

    return 0 if dialect is not None else 1


def cmd_check(args: argparse.Namespace) -> int:
    """Reconcile the live schema with the entity model.

    ``--add-missing``/``--no-add-missing`` overrides the datasource's
    ``add_missing_on_start`` setting.

    Returns:
        0 if no errors were reported, 1 otherwise.
    """
    config = _load_config(args)
    if config is None:
        return 1

    try:
        profile_name, profile = get_active_profile(
            args.profile, args.env_prefix, config=config
        )
        bundle = load_entity_model(_model_path(args, config))
    except (FileNotFoundError, ReconcilerError) as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        return 1

    add_missing = args.add_missing
    if add_missing is None:
        add_missing = profile.datasource.add_missing_on_start
    console.print(
        f"Checking schema for profile: [bold cyan]{profile_name}[/bold cyan] "
        f"({len(bundle.entities)} entities)",
        style="dim",
    )

    reconciler = create_reconciler(profile, bundle.field_types)
    try:
        result = reconciler.check_db(
            bundle.entities,
            add_missing=add_missing,
            promote=args.promote,
            widen=args.widen,
        )
    except ReconcilerError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1
    finally:
        reconciler.executor.dispose()

    _print_messages(result.messages, args.verbose)

    console.print()
    if result.created_entities:
        console.print(f"Created tables for: {', '.join(result.created_entities)}")
    warnings = result.count(Severity.WARNING)
    errors = result.count(Severity.ERROR)
    if result.aborted:
        console.print("[bold red]x[/bold red] Reconciliation aborted")
        return 1
    if errors:
        console.print(f"[bold red]x[/bold red] {errors} error(s), {warnings} warning(s)")
        return 1
    console.print(f"[bold green]v[/bold green] Schema checked, {warnings} warning(s)")
    return 0


def cmd_induce(args: argparse.Namespace) -> int:
    """Print entities induced from the live tables.

    Field types of ``--model`` (or the configured model file, when it
    exists) are preferred over guessed type names.
    """
    config = _load_config(args)
    if config is None:
        return 1

    try:
        _, profile = get_active_profile(args.profile, args.env_prefix, config=config)
    except ReconcilerError as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        return 1

    field_types = {}
    model_path = _model_path(args, config)
    if model_path.exists():
        try:
            field_types = load_entity_model(model_path).field_types
        except ReconcilerError as e:
            console.print(f"[yellow]{escape(str(e))}[/yellow]")
            return 1

    reconciler = create_reconciler(profile, field_types)
    messages: list[ReconciliationMessage] = []
    try:
        entities = reconciler.induce_model_from_db(messages)
    except ReconcilerError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1
    finally:
        reconciler.executor.dispose()

    for message in messages:
        if message.severity == Severity.ERROR:
            console.print(f"[red]{escape(message.text)}[/red]")

    for entity in entities:
        table = Table(
            title=f"{entity.entity_name} ({entity.table_name})",
            show_header=True,
            header_style="bold",
        )
        table.add_column("Field")
        table.add_column("Column", style="dim")
        table.add_column("Type")
        for field in entity.fields:
            style = "red" if field.type == "invalid" else ""
            table.add_row(
                field.name,
                field.column_name,
                f"[{style}]{field.type}[/{style}]" if style else field.type,
            )
        console.print(table)

    return 1 if any(m.severity == Severity.ERROR for m in messages) else 0


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-reconciler",
        description="Check and repair a live database schema against an entity model",
    )

    # Global options
    parser.add_argument(
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--profile",
        "-p",
        default=None,
        help="Profile to use instead of the DB_PROFILE environment variable",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for library logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # detect command
    p_detect = subparsers.add_parser(
        "detect",
        help="Detect the SQL dialect of the active profile",
    )
    p_detect.set_defaults(func=cmd_detect)

    # check command
    p_check = subparsers.add_parser(
        "check",
        help="Compare the live schema with the entity model",
    )
    p_check.add_argument(
        "--model",
        "-m",
        default=None,
        help="Path to the entity model TOML file (default: [model] file in db.toml)",
    )
    p_check.add_argument(
        "--add-missing",
        action=argparse.BooleanOptionalAction,
        default=None,
        help=(
            "Create missing tables, columns, foreign keys and indexes "
            "(default: add_missing_on_start of the datasource)"
        ),
    )
    p_check.add_argument(
        "--promote",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Promote columns to an allowed wider type (default: same as --add-missing)",
    )
    p_check.add_argument(
        "--widen",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Widen columns declared larger than they are (default: same as --add-missing)",
    )
    p_check.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Also show verbose messages",
    )
    p_check.set_defaults(func=cmd_check)

    # induce command
    p_induce = subparsers.add_parser(
        "induce",
        help="Print entities induced from the live tables",
    )
    p_induce.add_argument(
        "--model",
        "-m",
        default=None,
        help="Entity model whose field types are preferred when inducing",
    )
    p_induce.set_defaults(func=cmd_induce)

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
