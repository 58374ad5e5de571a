"""Shared pytest fixtures for splitbuild-core tests.

Provides a sample source tree on disk and an in-memory compiler that
records every invocation.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable, Iterable
from pathlib import Path, PurePosixPath

import pytest
import structlog

from splitbuild_core.errors import CompileError
from splitbuild_core.options import CompilerOptions


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


# Files of the sample tree, relative to its root
SAMPLE_FILES = (
    "lib/common.js",
    "lib/base/array.js",
    "lib/README.md",
    "src/core/pair.js",
    "src/main.js",
    "src/platform/dispatch.js",
    "src/platform/mobile/output_port.js",
    "src/platform/browser/client.js",
    "src/platform/browser/worker/worker.js",
    "src/platform/server/repl.js",
    "src/platform/embedded/main.js",
    "tools/gen.js",
)


@pytest.fixture
def source_tree_dir(tmp_path: Path) -> Path:
    """Create the sample source tree on disk.

    Returns:
        Root directory of the tree.
    """
    root = tmp_path / "tree"
    for relative in SAMPLE_FILES:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"// {relative}\n")
    return root


class RecordingCompiler:
    """In-memory JsCompiler.

    Returns ``entry_symbol:file_count`` as bytes, and raises CompileError for
    entry symbols listed in ``fail_on``.
    """

    def __init__(self, fail_on: Iterable[str] = ()) -> None:
        self.fail_on = set(fail_on)
        self.calls: list[tuple[frozenset[PurePosixPath], str, CompilerOptions]] = []
        self._lock = threading.Lock()

    def compile(
        self,
        files: frozenset[PurePosixPath],
        entry_symbol: str,
        options: CompilerOptions,
    ) -> bytes:
        with self._lock:
            self.calls.append((files, entry_symbol, options))
        if entry_symbol in self.fail_on:
            raise CompileError(entry_symbol, file_count=len(files), reason="undefined variable")
        return f"{entry_symbol}:{len(files)}".encode()

    def options_for(self, entry_symbol: str) -> list[CompilerOptions]:
        """Options of every call made with ``entry_symbol``."""
        return [options for _, symbol, options in self.calls if symbol == entry_symbol]


@pytest.fixture
def make_compiler() -> Callable[..., RecordingCompiler]:
    """Factory for RecordingCompiler instances.

    Example:
        >>> compiler = make_compiler(fail_on={"app.platform.browser.Worker"})
    """

    def _make(fail_on: Iterable[str] = ()) -> RecordingCompiler:
        return RecordingCompiler(fail_on)

    return _make
