"""Exception hierarchy for splitbuild-core.

This module defines the exception classes used throughout splitbuild:
- SplitbuildError: Base exception for all splitbuild errors
- ConfigurationError: The catalog or configuration itself is invalid
- SourceTreeError: The source tree cannot be read
- CompileError: The external compiler rejected one Input
- BuildFailedError: A batch finished with one or more failures

User-facing messages are safe to display. Technical details (compiler stderr,
OS error text) are passed as ``internal_details`` and logged via structlog.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from splitbuild_core.executor import BuildFailure

logger = structlog.get_logger(__name__)


class SplitbuildError(Exception):
    """Base exception for splitbuild.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details. Logged internally,
            never part of the user message.

    Example:
        >>> raise SplitbuildError(
        ...     "Build failed",
        ...     internal_details="closure exited with status 1",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details

        if internal_details:
            logger.error(
                "splitbuild_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigurationError(SplitbuildError):
    """Raised when the unit catalog or a configuration file is invalid.

    Use this exception when:
    - Two units share a build artifact name
    - A builder is built without an entry point, or reused after build()
    - A customizer references a unit name that is not declared
    - splitbuild.yaml cannot be parsed or fails validation

    Always detected before any compilation starts.

    Attributes:
        unit_name: Catalog unit or artifact the error concerns (if known).
        file_path: Configuration file involved (if any).
        field_path: Dot-separated path to the invalid field (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "Duplicate build artifact name 'worker.js'",
        ...     unit_name="BROWSER_WORKER",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        unit_name: str | None = None,
        file_path: str | None = None,
        field_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        context_parts: list[str] = []
        if unit_name:
            context_parts.append(f"unit '{unit_name}'")
        if file_path:
            context_parts.append(f"in {file_path}")
        if field_path:
            context_parts.append(f"field '{field_path}'")

        if context_parts:
            full_message = f"{user_message} ({', '.join(context_parts)})"
        else:
            full_message = user_message

        super().__init__(full_message, internal_details=internal_details)

        self.unit_name = unit_name
        self.file_path = file_path
        self.field_path = field_path


class UnknownUnitError(ConfigurationError):
    """Raised when a unit name is not declared in the catalog.

    Always includes the declared names for actionable feedback.

    Example:
        >>> raise UnknownUnitError("BROWSR_REPL", ["BROWSER_REPL", "SERVER_REPL"])
        # User sees: "Unknown compilation unit 'BROWSR_REPL'. Available: BROWSER_REPL, SERVER_REPL"
    """

    def __init__(
        self,
        unit_name: str,
        available_units: Sequence[str],
        *,
        referenced_by: str | None = None,
    ) -> None:
        available_str = ", ".join(available_units) if available_units else "none"
        user_message = f"Unknown compilation unit '{unit_name}'. Available: {available_str}"
        if referenced_by:
            user_message = f"{user_message}. Referenced by '{referenced_by}'"

        super().__init__(user_message)

        self.unit_name = unit_name
        self.available_units = list(available_units)
        self.referenced_by = referenced_by


class SourceTreeError(SplitbuildError):
    """Raised when the source tree is unreadable or a declared root is missing.

    Local to one build attempt and never retried automatically.

    Attributes:
        path: The root or directory that could not be read.
    """

    def __init__(
        self,
        user_message: str,
        *,
        path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        if path:
            user_message = f"{user_message}: {path}"
        super().__init__(user_message, internal_details=internal_details)
        self.path = path


class CompileError(SplitbuildError):
    """Raised when the external compiler rejects one Input.

    Compiler adapters do not know which artifact they are building; the
    executor tags the error with the Input's artifact name via ``tagged()``.

    Attributes:
        entry_symbol: Entry symbol the compiler was given.
        artifact_name: Artifact of the Input that failed (once tagged).
        file_count: Size of the relevant file set passed to the compiler.
        reason: Short description of the failure.

    Example:
        >>> raise CompileError(
        ...     "app.platform.browser.Worker",
        ...     artifact_name="worker.js",
        ...     file_count=212,
        ...     internal_details="ERROR - [JSC_UNDEFINED_VARIABLE] ...",
        ... )
    """

    def __init__(
        self,
        entry_symbol: str,
        *,
        artifact_name: str | None = None,
        file_count: int = 0,
        reason: str = "compilation failed",
        internal_details: str | None = None,
    ) -> None:
        if artifact_name:
            target = f"'{artifact_name}' (entry point {entry_symbol}, {file_count} files)"
        else:
            target = f"entry point {entry_symbol} ({file_count} files)"
        user_message = f"Failed to compile {target}: {reason}"
        super().__init__(user_message, internal_details=internal_details)

        self.entry_symbol = entry_symbol
        self.artifact_name = artifact_name
        self.file_count = file_count
        self.reason = reason

    def tagged(self, artifact_name: str, file_count: int) -> CompileError:
        """Return a copy naming the artifact and file set size that failed."""
        error = CompileError(
            self.entry_symbol,
            artifact_name=artifact_name,
            file_count=file_count,
            reason=self.reason,
        )
        error.internal_details = self.internal_details
        return error


class BuildFailedError(SplitbuildError):
    """Raised when a batch of unit builds finished with failures.

    Attributes:
        failures: Every failure collected in the batch, in unit order.
    """

    def __init__(self, failures: Sequence[BuildFailure]) -> None:
        lines = [f"{len(failures)} build(s) failed:"]
        lines.extend(f"  - {failure.unit_name}: {failure.message}" for failure in failures)
        super().__init__("\n".join(lines))
        self.failures = list(failures)
