# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import sys

from typing import Any

import rich_click as click

from rich.table import Table

from saverelations.cli import console, getCliLogger
from saverelations.importer import ImportFromStringError, import_from_string
from saverelations.orm.relations import (
    EdgyRecordAdapter,
    RelationConfigError,
    RelationRegistry,
)


logger = getCliLogger("inspect")


@click.command(name="inspect")
@click.argument("target")
def inspect_relations(target: str):
    """Show the relations saved with the TARGET record class (module:Class)."""
    try:
        record_type = import_from_string(target)
        registry = RelationRegistry(getattr(record_type, "save_relations", None) or [])
    except (ImportFromStringError, RelationConfigError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if not len(registry):
        console.print(f"[yellow]No relation is saved with {target}.[/yellow]")
        return

    table = Table(title=f"Relations of {getattr(record_type, '__name__', target)}")
    table.add_column("Relation", style="cyan")
    table.add_column("Kind")
    table.add_column("Scenario")
    table.add_column("Extra columns")
    table.add_column("Cascade delete")

    for descriptor in registry:
        table.add_row(
            descriptor.name,
            _relation_kind(record_type, descriptor.name),
            descriptor.scenario or "-",
            _format_extra_columns(descriptor.extra_columns),
            "yes" if descriptor.cascade_delete else "no",
        )

    console.print(table)


def _relation_kind(record_type: Any, name: str) -> str:
    if getattr(getattr(record_type, "meta", None), "fields", None) is None:
        return "-"

    try:
        relation = EdgyRecordAdapter().relation(record_type, name)
    except Exception as e:
        logger.debug(f"Cannot resolve the relation {name}: {e}")
        return "?"

    if relation is None:
        return "[red]undefined[/red]"

    if relation.uses_junction:
        return "many to many"

    if relation.foreign_key_on_owner:
        return "belongs to"

    return "has many" if relation.multiple else "has one"


def _format_extra_columns(extra_columns: Any) -> str:
    if extra_columns is None:
        return "-"

    if callable(extra_columns):
        return "callable"

    return ", ".join(f"{k}={v!r}" for k, v in extra_columns.items())


__all__ = [
    "inspect_relations",
]
