"""Unit tests for BuildExecutor.

This module tests:
- Single and multi-Input unit builds
- Failure isolation and aggregation
- Concurrent compilation
- Fail-fast skipping
- Batch results and artifact writing
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path, PurePosixPath

import pytest

from splitbuild_core.catalog import COMPILATION_UNITS, WORKER_SCRIPT_DEFINE, UnitCatalog
from splitbuild_core.compiler import ClosureCompilerCli
from splitbuild_core.config import BuildConfig
from splitbuild_core.entry_points import EntryPoint
from splitbuild_core.errors import BuildFailedError, ConfigurationError, UnknownUnitError
from splitbuild_core.executor import BuildExecutor, BuildStatus, Output
from splitbuild_core.options import CompilerOptions
from splitbuild_core.platforms import Platform
from splitbuild_core.source_tree import SourceTree
from splitbuild_core.units import CompilationUnit, OptionCustomizer

WORKER = EntryPoint.BROWSER_WORKER.symbol


@pytest.fixture
def executor_for(source_tree_dir: Path, make_compiler: Callable[..., object]):
    """Factory building an executor over the sample tree."""

    def _make(compiler=None, **kwargs) -> BuildExecutor:
        return BuildExecutor(
            COMPILATION_UNITS,
            SourceTree(source_tree_dir),
            compiler if compiler is not None else make_compiler(),
            **kwargs,
        )

    return _make


class TestExecuteSingleInput:
    """Tests for units with one Input."""

    def test_server_repl(self, executor_for, make_compiler) -> None:
        """A single-Input unit yields exactly one Output."""
        compiler = make_compiler()
        result = executor_for(compiler).execute("SERVER_REPL")

        assert result.status == BuildStatus.SUCCEEDED
        output = result.output
        assert isinstance(output, Output)
        assert output.artifact_name == "server-repl.js"
        assert output.file_count == 6
        assert output.content == b"app.platform.server.replMain:6"

    def test_relevant_files_passed_to_compiler(self, executor_for, make_compiler) -> None:
        """The compiler receives only the platform's relevant files."""
        compiler = make_compiler()
        executor_for(compiler).execute("MOBILE_REPL")

        files, entry_symbol, options = compiler.calls[0]
        assert entry_symbol == EntryPoint.MOBILE_MAIN.symbol
        assert PurePosixPath("src/platform/mobile/output_port.js") in files
        assert PurePosixPath("src/platform/browser/client.js") not in files
        assert PurePosixPath("tools/gen.js") not in files
        assert options.defines["app.platform.NAME"] == "mobile"

    def test_execute_accepts_unit_object(self, executor_for) -> None:
        """Declared units can be passed directly."""
        result = executor_for().execute(COMPILATION_UNITS.get("EMBEDDED_TESTS"))
        assert result.unit_name == "EMBEDDED_TESTS"
        assert result.succeeded

    def test_execute_rejects_undeclared_unit_object(self, executor_for, make_compiler) -> None:
        """A unit object missing from the catalog is not built under its artifact name."""
        compiler = make_compiler()
        stray = CompilationUnit.of("stray.js", Platform.SERVER).entry_point(EntryPoint.TEST_MAIN).build()

        with pytest.raises(UnknownUnitError) as exc_info:
            executor_for(compiler).execute(stray)

        assert exc_info.value.unit_name == "stray.js"
        assert "SERVER_REPL" in exc_info.value.available_units
        assert compiler.calls == []


class TestExecuteMultipleInputs:
    """Tests for units whose platform declares companion Inputs."""

    def test_browser_repl_builds_page_and_worker(self, executor_for) -> None:
        """Two Inputs produce two Outputs, primary first."""
        result = executor_for().execute("BROWSER_REPL")

        assert [o.artifact_name for o in result.outputs] == ["browser-repl.js", "worker.js"]
        assert isinstance(result.output, list)
        assert set(result.artifacts) == {"browser-repl.js", "worker.js"}

    def test_worker_script_define_reaches_compiler(self, executor_for, make_compiler) -> None:
        """The page bundle is compiled with the worker's artifact name."""
        compiler = make_compiler()
        executor_for(compiler).execute("BROWSER_REPL")

        (page_options,) = compiler.options_for(EntryPoint.BROWSER_REPL_MAIN.symbol)
        assert page_options.defines[WORKER_SCRIPT_DEFINE] == "worker.js"

    def test_one_failing_input_does_not_hide_the_other(self, executor_for, make_compiler) -> None:
        """A failing worker leaves the page Output and reports the worker."""
        compiler = make_compiler(fail_on={WORKER})
        result = executor_for(compiler).execute("BROWSER_REPL")

        assert result.status == BuildStatus.PARTIAL
        assert [o.artifact_name for o in result.outputs] == ["browser-repl.js"]
        (failure,) = result.failures
        assert failure.artifact_name == "worker.js"
        assert failure.entry_symbol == WORKER
        assert failure.error_type == "CompileError"
        assert failure.file_count == 7
        assert "'worker.js'" in failure.message
        assert "undefined variable" in failure.message

    def test_output_raises_when_not_succeeded(self, executor_for, make_compiler) -> None:
        """Accessing .output on a partial result raises BuildFailedError."""
        result = executor_for(make_compiler(fail_on={WORKER})).execute("BROWSER_REPL")

        with pytest.raises(BuildFailedError, match="BROWSER_REPL"):
            _ = result.output

    def test_worker_unit_builds_once(self, executor_for, make_compiler) -> None:
        """The worker unit does not build its own companion again."""
        compiler = make_compiler()
        result = executor_for(compiler).execute("BROWSER_WORKER")

        assert result.input_count == 1
        assert len(compiler.calls) == 1


class TestExecuteMany:
    """Tests for batch builds."""

    def test_builds_every_unit_by_default(self, executor_for, make_compiler) -> None:
        """None selects the whole catalog."""
        compiler = make_compiler()
        batch = executor_for(compiler).execute_many()

        assert [r.unit_name for r in batch.results] == COMPILATION_UNITS.names()
        assert batch.succeeded
        # Two browser page units each build the worker companion
        assert len(compiler.calls) == len(COMPILATION_UNITS) + 2
        assert batch.finished_at is not None
        assert batch.finished_at >= batch.started_at

    def test_failures_aggregated_not_raised(self, executor_for, make_compiler) -> None:
        """Every failure is collected and siblings still build."""
        compiler = make_compiler(fail_on={EntryPoint.TEST_MAIN.symbol})
        batch = executor_for(compiler).execute_many(["SERVER_TESTS", "SERVER_REPL", "MOBILE_TESTS"])

        assert not batch.succeeded
        assert [f.unit_name for f in batch.failures] == ["SERVER_TESTS", "MOBILE_TESTS"]
        assert [o.artifact_name for o in batch.outputs] == ["server-repl.js"]

        with pytest.raises(BuildFailedError) as exc_info:
            batch.raise_for_failures()
        assert len(exc_info.value.failures) == 2

    def test_unknown_unit_rejected_before_compiling(self, executor_for, make_compiler) -> None:
        """Unknown names fail before any compiler call."""
        compiler = make_compiler()
        with pytest.raises(UnknownUnitError):
            executor_for(compiler).execute_many(["SERVER_REPL", "NOPE"])
        assert compiler.calls == []

    def test_missing_tree_is_reported_per_input(self, tmp_path: Path, make_compiler) -> None:
        """An unreadable tree fails each Input without raising."""
        compiler = make_compiler()
        executor = BuildExecutor(COMPILATION_UNITS, SourceTree(tmp_path / "absent"), compiler)

        batch = executor.execute_many(["SERVER_REPL", "BROWSER_REPL"])

        assert len(batch.failures) == 3
        assert {f.error_type for f in batch.failures} == {"SourceTreeError"}
        assert compiler.calls == []

    def test_unexpected_exception_becomes_failure(self, executor_for) -> None:
        """Any exception from the compiler is captured per Input."""

        class ExplodingCompiler:
            def compile(self, files, entry_symbol, options):
                raise RuntimeError("compiler crashed")

        result = executor_for(ExplodingCompiler()).execute("SERVER_REPL")

        (failure,) = result.failures
        assert failure.error_type == "RuntimeError"
        assert failure.message == "compiler crashed"
        assert result.status == BuildStatus.FAILED

    def test_write_outputs(self, executor_for, tmp_path: Path) -> None:
        """One file is written per Output."""
        batch = executor_for().execute_many(["SERVER_REPL", "BROWSER_WORKER"])
        out_dir = tmp_path / "out"

        written = batch.write_outputs(out_dir)

        assert sorted(p.name for p in written) == ["server-repl.js", "worker.js"]
        assert (out_dir / "worker.js").read_bytes() == b"app.platform.browser.Worker:7"


class TestConcurrency:
    """Tests for concurrent execution."""

    def test_inputs_compile_concurrently(self, executor_for) -> None:
        """Independent Inputs are compiled at the same time."""
        barrier = threading.Barrier(2, timeout=5)

        class RendezvousCompiler:
            def compile(self, files, entry_symbol, options):
                barrier.wait()
                return entry_symbol.encode()

        batch = executor_for(RendezvousCompiler(), max_workers=2).execute_many(
            ["SERVER_REPL", "MOBILE_REPL"]
        )

        assert batch.succeeded

    def test_fail_fast_skips_remaining(self, executor_for, make_compiler) -> None:
        """With fail_fast, Inputs not yet started are skipped."""
        compiler = make_compiler(fail_on={EntryPoint.TEST_MAIN.symbol})
        executor = executor_for(compiler, max_workers=1, fail_fast=True)

        batch = executor.execute_many(["SERVER_TESTS", "SERVER_REPL"])

        tests_result, repl_result = batch.results
        assert tests_result.status == BuildStatus.FAILED
        assert repl_result.skipped == ["server-repl.js"]
        assert repl_result.status == BuildStatus.FAILED
        assert len(compiler.calls) == 1

    def test_without_fail_fast_nothing_skipped(self, executor_for, make_compiler) -> None:
        """By default every Input is attempted."""
        compiler = make_compiler(fail_on={EntryPoint.TEST_MAIN.symbol})
        batch = executor_for(compiler, max_workers=1).execute_many(["SERVER_TESTS", "SERVER_REPL"])

        assert all(not r.skipped for r in batch.results)
        assert len(compiler.calls) == 2


class TestPlanning:
    """Tests for option resolution before compiling."""

    def test_bad_customizer_fails_before_compiling(self, source_tree_dir: Path, make_compiler) -> None:
        """Configuration errors surface before any compiler call."""
        broken = OptionCustomizer(name="broken", transform=lambda options, _names: "oops")  # type: ignore[arg-type,return-value]
        catalog = UnitCatalog(
            {
                "OK": CompilationUnit.of("ok.js", Platform.SERVER).entry_point(EntryPoint.TEST_MAIN).build(),
                "BROKEN": CompilationUnit.of("broken.js", Platform.SERVER)
                .entry_point(EntryPoint.SERVER_REPL_MAIN)
                .custom_compiler_options(broken)
                .build(),
            }
        )
        compiler = make_compiler()
        executor = BuildExecutor(catalog, SourceTree(source_tree_dir), compiler)

        with pytest.raises(ConfigurationError, match="'broken' must return CompilerOptions"):
            executor.execute_many()
        assert compiler.calls == []

    def test_raising_customizer_fails_before_compiling(self, source_tree_dir: Path, make_compiler) -> None:
        """A customizer that raises surfaces as a configuration error."""

        def explode(options: CompilerOptions) -> CompilerOptions:
            raise KeyError("missing-flag")

        catalog = UnitCatalog(
            {
                "EXPLODING": CompilationUnit.of("exploding.js", Platform.SERVER)
                .entry_point(EntryPoint.SERVER_REPL_MAIN)
                .custom_compiler_options(explode)
                .build()
            }
        )
        compiler = make_compiler()
        executor = BuildExecutor(catalog, SourceTree(source_tree_dir), compiler)

        with pytest.raises(ConfigurationError, match="'explode' failed") as exc_info:
            executor.execute_many()
        assert isinstance(exc_info.value.__cause__, KeyError)
        assert compiler.calls == []

    def test_custom_flags_reach_compiler(self, source_tree_dir: Path, make_compiler) -> None:
        """Unit customizations are visible to the compiler."""

        def pretty(options: CompilerOptions) -> CompilerOptions:
            return options.with_flag("formatting", "PRETTY_PRINT")

        catalog = UnitCatalog(
            {
                "PRETTY": CompilationUnit.of("pretty.js", Platform.EMBEDDED)
                .entry_point(EntryPoint.EMBEDDED_MAIN)
                .custom_compiler_options(pretty)
                .build()
            }
        )
        compiler = make_compiler()
        BuildExecutor(catalog, SourceTree(source_tree_dir), compiler).execute("PRETTY")

        (options,) = compiler.options_for(EntryPoint.EMBEDDED_MAIN.symbol)
        assert options.flags == {"formatting": "PRETTY_PRINT"}


class TestFromConfig:
    """Tests for BuildExecutor.from_config()."""

    def test_uses_configured_values(self, source_tree_dir: Path) -> None:
        """The executor follows the configuration."""
        config = BuildConfig(source_root=source_tree_dir, max_workers=3, fail_fast=True)

        executor = BuildExecutor.from_config(config)

        assert executor.source_tree.root == source_tree_dir
        assert executor.max_workers == 3
        assert executor.fail_fast is True
        assert isinstance(executor.compiler, ClosureCompilerCli)
        assert executor.compiler.source_root == source_tree_dir

    def test_compiler_override(self, source_tree_dir: Path, make_compiler) -> None:
        """A compiler can be injected."""
        compiler = make_compiler()
        executor = BuildExecutor.from_config(BuildConfig(source_root=source_tree_dir), compiler=compiler)

        assert executor.compiler is compiler
        assert executor.max_workers >= 1
