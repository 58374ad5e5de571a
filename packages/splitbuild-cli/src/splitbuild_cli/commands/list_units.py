"""splitbuild list command - Show declared compilation units."""

from __future__ import annotations

import click

from splitbuild_cli.output import info, print_table


@click.command("list")
@click.option(
    "--names-only",
    is_flag=True,
    default=False,
    help="Print unit names only, one per line.",
)
def list_units(names_only: bool) -> None:
    """List every declared compilation unit.

    Shows each unit's artifacts (primary first), platform and entry symbol.

    Examples:

        splitbuild list

        splitbuild list --names-only
    """
    from splitbuild_core.catalog import COMPILATION_UNITS

    if names_only:
        for name in COMPILATION_UNITS.names():
            info(name)
        return

    rows = [
        [
            name,
            ", ".join(i.artifact_name for i in unit.inputs()),
            unit.platform.value,
            unit.entry_point.symbol,
        ]
        for name, unit in COMPILATION_UNITS.items()
    ]
    print_table("Compilation units", ["Unit", "Artifacts", "Platform", "Entry point"], rows)
