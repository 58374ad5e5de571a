"""Shared test fixtures for splitbuild-cli tests.

Provides CliRunner fixtures, a sample source tree and configuration
files for testing CLI commands.
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog
import yaml
from click.testing import CliRunner

from splitbuild_cli import output

# File name constants
SPLITBUILD_YAML_FILENAME = "splitbuild.yaml"

SAMPLE_FILES = (
    "lib/common.js",
    "src/main.js",
    "src/platform/dispatch.js",
    "src/platform/browser/client.js",
    "src/platform/server/repl.js",
)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo logging configuration done by --log-level between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Use a wide console so long status lines are not wrapped."""
    monkeypatch.setenv("COLUMNS", "200")
    monkeypatch.setattr(output, "console", output.create_console())


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner.

    Returns:
        CliRunner instance for testing CLI commands.
    """
    return CliRunner()


@pytest.fixture
def source_tree_dir(tmp_path: Path) -> Path:
    """Create a small source tree on disk."""
    root = tmp_path / "tree"
    for relative in SAMPLE_FILES:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"// {relative}\n")
    return root


def _write_config(path: Path, source_root: Path, command: list[str]) -> Path:
    config = {
        "source_root": str(source_root),
        "output_dir": str(path.parent / "dist"),
        "compiler": {"command": command},
    }
    path.write_text(yaml.safe_dump(config))
    return path


@pytest.fixture
def echo_config(tmp_path: Path, source_tree_dir: Path) -> Path:
    """Configuration whose compiler writes a fixed bundle to stdout."""
    command = [sys.executable, "-c", "import sys; sys.stdout.write('// bundle')"]
    return _write_config(tmp_path / SPLITBUILD_YAML_FILENAME, source_tree_dir, command)


@pytest.fixture
def failing_config(tmp_path: Path, source_tree_dir: Path) -> Path:
    """Configuration whose compiler always exits with status 1."""
    command = [sys.executable, "-c", "import sys; sys.stderr.write('ERROR'); sys.exit(1)"]
    return _write_config(tmp_path / SPLITBUILD_YAML_FILENAME, source_tree_dir, command)


@pytest.fixture
def missing_tree_config(tmp_path: Path) -> Path:
    """Configuration pointing at a source tree that does not exist."""
    command = [sys.executable, "-c", "pass"]
    return _write_config(tmp_path / SPLITBUILD_YAML_FILENAME, tmp_path / "absent", command)
