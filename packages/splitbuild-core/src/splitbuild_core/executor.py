"""Unit build execution.

BuildExecutor realizes compilation units into Outputs by handing each Input's
relevant file set, entry symbol and options to the external compiler.

Every (unit, Input) pair is an independent job: cross-unit references are
artifact *names* fixed at declaration time, never built bytes, so jobs run
concurrently on one thread pool. A failing job never cancels its siblings;
failures are collected and reported together. ``fail_fast`` is opt-in.
"""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field

from splitbuild_core.catalog import COMPILATION_UNITS, UnitCatalog
from splitbuild_core.compiler import ClosureCompilerCli, JsCompiler
from splitbuild_core.config import BuildConfig
from splitbuild_core.errors import (
    BuildFailedError,
    CompileError,
    SplitbuildError,
    UnknownUnitError,
)
from splitbuild_core.observability import span
from splitbuild_core.options import CompilerOptions
from splitbuild_core.platforms import Input
from splitbuild_core.source_tree import SourceTree
from splitbuild_core.units import CompilationUnit

logger = structlog.get_logger(__name__)


class BuildStatus(str, Enum):
    """Status of one unit build.

    Attributes:
        SUCCEEDED: Every Input compiled
        PARTIAL: Some Inputs compiled, others failed or were skipped
        FAILED: No Input compiled
    """

    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"


class Output(BaseModel):
    """Compiled bundle for one Input.

    Attributes:
        unit_name: Catalog unit that produced the Output.
        artifact_name: File name of the artifact.
        entry_symbol: Entry symbol it was compiled from.
        file_count: Size of the relevant file set.
        content: Compiled bytes.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_name: str = Field(..., min_length=1)
    artifact_name: str = Field(..., min_length=1)
    entry_symbol: str = Field(..., min_length=1)
    file_count: int = Field(default=0, ge=0)
    content: bytes = Field(default=b"", repr=False)

    def write_to(self, directory: Path) -> Path:
        """Write the artifact into ``directory`` under its artifact name."""
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.artifact_name
        path.write_bytes(self.content)
        return path


class BuildFailure(BaseModel):
    """One failed Input, with enough context to diagnose it.

    Attributes:
        unit_name: Catalog unit being built.
        artifact_name: Artifact of the failing Input.
        entry_symbol: Entry symbol of the failing Input.
        error_type: Exception class name (CompileError, SourceTreeError, ...).
        message: User-safe error message.
        file_count: Size of the relevant file set, if it was computed.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_name: str
    artifact_name: str
    entry_symbol: str
    error_type: str
    message: str
    file_count: int = Field(default=0, ge=0)


class UnitBuildResult(BaseModel):
    """Outcome of building one compilation unit.

    Attributes:
        unit_name: Catalog unit name.
        input_count: Number of Inputs the unit declares.
        outputs: Successful Outputs, in Input order.
        failures: Failed Inputs, in Input order.
        skipped: Artifacts not attempted because of fail-fast.
        duration_ms: Summed compile time of its Inputs.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_name: str
    input_count: int = Field(..., ge=1)
    outputs: list[Output] = Field(default_factory=list)
    failures: list[BuildFailure] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    duration_ms: int = Field(default=0, ge=0)

    @property
    def status(self) -> BuildStatus:
        """Overall status of the unit."""
        if len(self.outputs) == self.input_count:
            return BuildStatus.SUCCEEDED
        if self.outputs:
            return BuildStatus.PARTIAL
        return BuildStatus.FAILED

    @property
    def succeeded(self) -> bool:
        """True if every Input compiled."""
        return self.status == BuildStatus.SUCCEEDED

    @property
    def artifacts(self) -> dict[str, Output]:
        """Outputs keyed by artifact name."""
        return {output.artifact_name: output for output in self.outputs}

    @property
    def output(self) -> Output | list[Output]:
        """The single Output, or every Output when the unit has several Inputs.

        Raises:
            BuildFailedError: If any Input failed or was skipped.
        """
        if not self.succeeded:
            raise BuildFailedError(self.failures)
        if self.input_count == 1:
            return self.outputs[0]
        return list(self.outputs)


class BatchBuildResult(BaseModel):
    """Aggregated outcome of a batch of unit builds.

    Attributes:
        results: One result per requested unit, in request order.
        started_at: When the batch started.
        finished_at: When the batch finished.
        total_duration_ms: Total wall time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    results: list[UnitBuildResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    total_duration_ms: int = Field(default=0, ge=0)

    @property
    def outputs(self) -> list[Output]:
        """Every successful Output across the batch."""
        return [output for result in self.results for output in result.outputs]

    @property
    def failures(self) -> list[BuildFailure]:
        """Every failure across the batch."""
        return [failure for result in self.results for failure in result.failures]

    @property
    def succeeded(self) -> bool:
        """True if every unit in the batch fully succeeded."""
        return all(result.succeeded for result in self.results)

    def raise_for_failures(self) -> None:
        """Raise BuildFailedError listing every failure, if there were any."""
        if not self.succeeded:
            raise BuildFailedError(self.failures)

    def write_outputs(self, directory: Path) -> list[Path]:
        """Write one file per Output into ``directory``."""
        return [output.write_to(directory) for output in self.outputs]


@dataclass(frozen=True)
class _Job:
    """One (unit, Input) compilation, with options already resolved."""

    unit_name: str
    unit: CompilationUnit
    input: Input
    options: CompilerOptions


@dataclass(frozen=True)
class _JobOutcome:
    job: _Job
    output: Output | None = None
    failure: BuildFailure | None = None
    duration_ms: int = 0


def default_max_workers() -> int:
    """Worker pool size matching available compute."""
    return os.cpu_count() or 1


class BuildExecutor:
    """Builds compilation units through an external compiler.

    Attributes:
        catalog: Validated unit catalog.
        source_tree: Tree the relevance filter runs over.
        compiler: External compiler collaborator.
        max_workers: Thread pool size.
        fail_fast: Stop starting new compilations after the first failure.

    Example:
        >>> executor = BuildExecutor(COMPILATION_UNITS, SourceTree("."), ClosureCompilerCli("."))
        >>> batch = executor.execute_many(["BROWSER_REPL", "SERVER_REPL"])
        >>> batch.raise_for_failures()
    """

    def __init__(
        self,
        catalog: UnitCatalog,
        source_tree: SourceTree,
        compiler: JsCompiler,
        *,
        max_workers: int | None = None,
        fail_fast: bool = False,
    ) -> None:
        self.catalog = catalog
        self.source_tree = source_tree
        self.compiler = compiler
        self.max_workers = max_workers or default_max_workers()
        self.fail_fast = fail_fast
        self._log = logger.bind(component="build_executor")

    @classmethod
    def from_config(
        cls,
        config: BuildConfig,
        *,
        catalog: UnitCatalog = COMPILATION_UNITS,
        compiler: JsCompiler | None = None,
    ) -> BuildExecutor:
        """Create an executor from a BuildConfig.

        Args:
            config: Loaded build configuration.
            catalog: Units to build from. Defaults to the declared catalog.
            compiler: Compiler override; defaults to the configured command line.
        """
        if compiler is None:
            compiler = ClosureCompilerCli(
                config.source_root,
                command=config.compiler.command,
                timeout_seconds=config.compiler.timeout_seconds,
            )
        return cls(
            catalog,
            SourceTree(config.source_root, config.layout),
            compiler,
            max_workers=config.max_workers,
            fail_fast=config.fail_fast,
        )

    def execute(self, unit: CompilationUnit | str) -> UnitBuildResult:
        """Build one unit.

        Args:
            unit: A declared unit, or its catalog name.

        Returns:
            Result holding one Output per successful Input.

        Raises:
            UnknownUnitError: If the unit is not declared in the catalog.
            ConfigurationError: If the unit's options cannot be resolved.
        """
        unit_name = unit if isinstance(unit, str) else self._name_of(unit)
        return self.execute_many([unit_name]).results[0]

    def execute_many(self, unit_names: list[str] | None = None) -> BatchBuildResult:
        """Build several units concurrently.

        Args:
            unit_names: Catalog names to build; every declared unit if None.

        Returns:
            Aggregated result. Failures are collected, not raised.

        Raises:
            ConfigurationError: If a name is unknown or options cannot be
                resolved. Raised before any compilation starts.
        """
        start_time = time.monotonic()
        started_at = datetime.now(UTC)
        names = self.catalog.names() if unit_names is None else unit_names
        selected = self.catalog.select(names)
        jobs = [job for name, unit in selected for job in self._plan(name, unit)]

        self._log.info(
            "batch_started",
            units=len(selected),
            inputs=len(jobs),
            max_workers=self.max_workers,
            fail_fast=self.fail_fast,
        )

        stop = threading.Event()
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            outcomes = list(pool.map(lambda job: self._run(job, stop), jobs))

        results = [self._collect(name, unit, outcomes) for name, unit in selected]
        total_duration_ms = int((time.monotonic() - start_time) * 1000)
        batch = BatchBuildResult(
            results=results,
            started_at=started_at,
            finished_at=datetime.now(UTC),
            total_duration_ms=total_duration_ms,
        )

        self._log.info(
            "batch_completed",
            succeeded=sum(1 for r in results if r.succeeded),
            failed=sum(1 for r in results if not r.succeeded),
            total_duration_ms=total_duration_ms,
        )
        return batch

    def _name_of(self, unit: CompilationUnit) -> str:
        for name, declared in self.catalog.items():
            if declared == unit:
                return name
        raise UnknownUnitError(unit.build_artifact_name, self.catalog.names())

    def _plan(self, unit_name: str, unit: CompilationUnit) -> list[_Job]:
        return [
            _Job(
                unit_name=unit_name,
                unit=unit,
                input=input_,
                options=unit.options_for(input_, self.catalog.artifact_names),
            )
            for input_ in unit.inputs()
        ]

    def _run(self, job: _Job, stop: threading.Event) -> _JobOutcome:
        if stop.is_set():
            return _JobOutcome(job=job)

        start_time = time.monotonic()
        attributes = {
            "unit": job.unit_name,
            "artifact": job.input.artifact_name,
            "entry_symbol": job.input.entry_symbol,
            "platform": job.unit.platform.value,
        }
        file_count = 0
        try:
            with span("input_compile", attributes=attributes):
                files = self.source_tree.relevant_files(job.unit.platform)
                file_count = len(files)
                try:
                    content = self.compiler.compile(files, job.input.entry_symbol, job.options)
                except CompileError as e:
                    raise e.tagged(job.input.artifact_name, file_count) from e
        except Exception as e:
            if self.fail_fast:
                stop.set()
            message = e.user_message if isinstance(e, SplitbuildError) else str(e)
            return _JobOutcome(
                job=job,
                failure=BuildFailure(
                    unit_name=job.unit_name,
                    artifact_name=job.input.artifact_name,
                    entry_symbol=job.input.entry_symbol,
                    error_type=type(e).__name__,
                    message=message or type(e).__name__,
                    file_count=file_count,
                ),
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )

        return _JobOutcome(
            job=job,
            output=Output(
                unit_name=job.unit_name,
                artifact_name=job.input.artifact_name,
                entry_symbol=job.input.entry_symbol,
                file_count=file_count,
                content=content,
            ),
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )

    def _collect(
        self,
        unit_name: str,
        unit: CompilationUnit,
        outcomes: list[_JobOutcome],
    ) -> UnitBuildResult:
        own = [o for o in outcomes if o.job.unit_name == unit_name]
        result = UnitBuildResult(
            unit_name=unit_name,
            input_count=len(unit.inputs()),
            outputs=[o.output for o in own if o.output is not None],
            failures=[o.failure for o in own if o.failure is not None],
            skipped=[o.job.input.artifact_name for o in own if o.output is None and o.failure is None],
            duration_ms=sum(o.duration_ms for o in own),
        )
        self._log.info(
            "unit_build_finished",
            unit=unit_name,
            status=result.status.value,
            outputs=len(result.outputs),
            failures=len(result.failures),
        )
        return result
