"""External compiler contract and the Closure command-line adapter.

splitbuild does not compile anything itself. It hands a relevant file set,
an entry symbol and an option set to a JsCompiler and gets bytes back, or a
CompileError.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

import structlog

from splitbuild_core.errors import CompileError
from splitbuild_core.options import CompilerOptions, DefineValue

logger = structlog.get_logger(__name__)

DEFAULT_COMPILER_COMMAND = ("google-closure-compiler",)


@runtime_checkable
class JsCompiler(Protocol):
    """Compiler collaborator.

    Implementations must be safe to call from several threads at once.
    """

    def compile(
        self,
        files: frozenset[PurePosixPath],
        entry_symbol: str,
        options: CompilerOptions,
    ) -> bytes:
        """Compile ``files`` keeping ``entry_symbol`` reachable.

        Raises:
            CompileError: If the compiler rejects the input.
        """
        ...


def _define_literal(value: DefineValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class ClosureCompilerCli:
    """Runs a Closure-style compiler command line in a subprocess.

    The compiled bundle is read from the command's stdout.

    Attributes:
        source_root: Working directory; file paths are relative to it.
        command: Executable and leading arguments.
        timeout_seconds: Optional limit per invocation.

    Example:
        >>> compiler = ClosureCompilerCli(Path("."), command=("npx", "google-closure-compiler"))
        >>> compiler.compile(files, "app.test.main", options)
    """

    def __init__(
        self,
        source_root: Path | str,
        command: Sequence[str] = DEFAULT_COMPILER_COMMAND,
        timeout_seconds: float | None = None,
    ) -> None:
        self.source_root = Path(source_root)
        self.command = tuple(command)
        self.timeout_seconds = timeout_seconds

    def build_args(
        self,
        files: frozenset[PurePosixPath],
        entry_symbol: str,
        options: CompilerOptions,
    ) -> list[str]:
        """Translate an option set into command-line arguments."""
        args = [
            *self.command,
            f"--compilation_level={options.compilation_level}",
            f"--env={options.environment}",
            f"--language_in={options.language_in}",
            f"--language_out={options.language_out}",
            f"--dependency_mode={options.dependency_mode}",
            f"--entry_point=goog:{entry_symbol}",
        ]
        args.extend(
            f"--define={name}={_define_literal(value)}"
            for name, value in sorted(options.defines.items())
        )
        args.extend(f"--{name}={value}" for name, value in sorted(options.flags.items()))
        args.extend(f"--js={path.as_posix()}" for path in sorted(files))
        return args

    def compile(
        self,
        files: frozenset[PurePosixPath],
        entry_symbol: str,
        options: CompilerOptions,
    ) -> bytes:
        """Run the compiler and return its stdout.

        Raises:
            CompileError: If the command is missing, times out, or exits
                with a non-zero status.
        """
        args = self.build_args(files, entry_symbol, options)
        logger.debug("compiler_invoked", entry_symbol=entry_symbol, files=len(files))

        try:
            completed = subprocess.run(
                args,
                cwd=self.source_root,
                capture_output=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as e:
            raise CompileError(
                entry_symbol,
                file_count=len(files),
                reason=f"compiler command not found: {self.command[0]}",
                internal_details=str(e),
            ) from e
        except subprocess.TimeoutExpired as e:
            raise CompileError(
                entry_symbol,
                file_count=len(files),
                reason=f"compiler timed out after {self.timeout_seconds}s",
            ) from e

        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace")
            raise CompileError(
                entry_symbol,
                file_count=len(files),
                reason=f"compiler exited with status {completed.returncode}",
                internal_details=stderr or None,
            )

        return completed.stdout
