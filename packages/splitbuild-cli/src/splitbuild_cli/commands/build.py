"""splitbuild build command - Compile selected units into artifacts."""

from __future__ import annotations

from pathlib import Path

import click

from splitbuild_cli.errors import (
    EXIT_SYSTEM_ERROR,
    CLIError,
    exit_code_for,
    handle_permission_error,
    handle_splitbuild_error,
)
from splitbuild_cli.output import error, info, success, warning


@click.command("build")
@click.argument("units", nargs=-1)
@click.option("--all", "build_all", is_flag=True, default=False, help="Build every unit.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to splitbuild.yaml [default: $SPLITBUILD_CONFIG or ./splitbuild.yaml]",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(file_okay=False),
    default=None,
    help="Output directory [default: output_dir from configuration]",
)
@click.option(
    "-j",
    "--jobs",
    type=click.IntRange(min=1, max=64),
    default=None,
    help="Concurrent compilations [default: CPU count]",
)
@click.option(
    "--fail-fast",
    is_flag=True,
    default=False,
    help="Stop starting new compilations after the first failure.",
)
def build(
    units: tuple[str, ...],
    build_all: bool,
    config_path: str | None,
    output_path: str | None,
    jobs: int | None,
    fail_fast: bool,
) -> None:
    """Build compilation units and write their artifacts.

    Every requested unit is built even when others fail; all failures are
    reported at the end.

    Examples:

        splitbuild build BROWSER_REPL BROWSER_WORKER

        splitbuild build --all --jobs 4 --output dist/
    """
    if not units and not build_all:
        raise CLIError("Name at least one unit, or pass --all. See 'splitbuild list'.")

    # Import here to keep CLI startup light
    from splitbuild_core.config import load_config
    from splitbuild_core.errors import BuildFailedError, SplitbuildError
    from splitbuild_core.executor import BuildExecutor

    try:
        config = load_config(config_path)
        overrides: dict[str, object] = {}
        if jobs is not None:
            overrides["max_workers"] = jobs
        if fail_fast:
            overrides["fail_fast"] = fail_fast
        if output_path is not None:
            overrides["output_dir"] = Path(output_path)
        config = config.model_copy(update=overrides)

        executor = BuildExecutor.from_config(config)
        batch = executor.execute_many(None if build_all else list(units))
    except SplitbuildError as e:
        handle_splitbuild_error(e)

    try:
        written = batch.write_outputs(config.output_dir)
    except PermissionError:
        handle_permission_error(str(config.output_dir))
    except OSError as e:
        raise CLIError(f"Cannot write artifacts: {e}", exit_code=EXIT_SYSTEM_ERROR) from e

    for path in written:
        success(f"Built {path}")

    for result in batch.results:
        for artifact in result.skipped:
            warning(f"Skipped {artifact} ({result.unit_name})")

    if batch.succeeded:
        info(f"{len(batch.results)} unit(s) built in {batch.total_duration_ms} ms")
        return

    for failure in batch.failures:
        error(f"{failure.unit_name}: {failure.message}")

    raise CLIError(
        f"{len(batch.failures)} artifact(s) failed to build",
        exit_code=exit_code_for(BuildFailedError(batch.failures)),
    )
