"""CLI entry point for splitbuild.

Defines the main CLI group. Subcommands are loaded lazily so that
``splitbuild --help`` stays fast.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from splitbuild_cli import __version__
from splitbuild_cli.output import set_no_color

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


class LazyGroup(rclick.RichGroup):
    """Click group that imports commands only when they are invoked.

    Attributes:
        lazy_subcommands: Command name to "package.module.attribute" path.
    """

    def __init__(
        self, *args: Any, lazy_subcommands: dict[str, str] | None = None, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = dict(lazy_subcommands or {})
        self._loaded: dict[str, click.Command] = {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Registered and lazy command names, sorted."""
        return sorted({*super().list_commands(ctx), *self.lazy_subcommands})

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Resolve a command, importing its module on first use."""
        registered = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if registered is not None:
            return registered

        path = self.lazy_subcommands.get(cmd_name)
        if path is None:
            return None
        if cmd_name not in self._loaded:
            module_name, _, attr_name = path.rpartition(".")
            self._loaded[cmd_name] = getattr(importlib.import_module(module_name), attr_name)
        return self._loaded[cmd_name]


LAZY_COMMANDS = {
    "list": "splitbuild_cli.commands.list_units.list_units",
    "build": "splitbuild_cli.commands.build.build",
}


def _configure_logging(ctx: click.Context, param: click.Parameter, value: str) -> None:
    from splitbuild_core.observability import configure_logging

    configure_logging(log_level=value, json_format=ctx.params.get("json_logs", False))


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="splitbuild")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "--json-logs",
    is_flag=True,
    default=False,
    is_eager=True,
    help="Emit structured logs as JSON.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    expose_value=False,
    callback=_configure_logging,
    help="Minimum log level.",
)
def cli(json_logs: bool) -> None:
    """splitbuild - Per-platform bundle builds from one source tree.

    Each compilation unit compiles the files relevant to its platform into
    one or more named artifacts.

    **Getting Started:**

    - `splitbuild list` - Show every declared compilation unit
    - `splitbuild build BROWSER_REPL` - Build one unit
    - `splitbuild build --all` - Build every unit
    """


if __name__ == "__main__":
    cli()
