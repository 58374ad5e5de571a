"""splitbuild-core: Per-platform bundle orchestration.

This package provides:
- Platform / relevant(): Platform registry and source relevance filter
- EntryPoint: Compiler root symbols
- CompilationUnit: Immutable build-target descriptor and its builder
- UnitCatalog / COMPILATION_UNITS: Validated catalog of declared units
- BuildExecutor: Concurrent unit builds through an external compiler
"""

from __future__ import annotations

__version__ = "0.1.0"

from splitbuild_core.catalog import COMPILATION_UNITS, WORKER_SCRIPT_DEFINE, UnitCatalog
from splitbuild_core.compiler import ClosureCompilerCli, JsCompiler
from splitbuild_core.config import BuildConfig, CompilerConfig, load_config
from splitbuild_core.entry_points import EntryPoint
from splitbuild_core.errors import (
    BuildFailedError,
    CompileError,
    ConfigurationError,
    SourceTreeError,
    SplitbuildError,
    UnknownUnitError,
)
from splitbuild_core.executor import (
    BatchBuildResult,
    BuildExecutor,
    BuildFailure,
    BuildStatus,
    Output,
    UnitBuildResult,
)
from splitbuild_core.options import CompilerOptions, default_options
from splitbuild_core.platforms import (
    DEFAULT_LAYOUT,
    PLATFORM_SPECS,
    Input,
    Platform,
    PlatformSpec,
    SourceLayout,
    relevant,
)
from splitbuild_core.source_tree import SourceTree
from splitbuild_core.units import (
    CompilationUnit,
    CompilationUnitBuilder,
    OptionCustomizer,
    define_artifact_name,
    define_literal,
)

__all__ = [
    "__version__",
    # Platforms
    "Platform",
    "PlatformSpec",
    "PLATFORM_SPECS",
    "Input",
    "SourceLayout",
    "DEFAULT_LAYOUT",
    "relevant",
    "EntryPoint",
    # Units and catalog
    "CompilationUnit",
    "CompilationUnitBuilder",
    "OptionCustomizer",
    "define_artifact_name",
    "define_literal",
    "UnitCatalog",
    "COMPILATION_UNITS",
    "WORKER_SCRIPT_DEFINE",
    # Options and compiler
    "CompilerOptions",
    "default_options",
    "JsCompiler",
    "ClosureCompilerCli",
    # Execution
    "SourceTree",
    "BuildExecutor",
    "BuildStatus",
    "Output",
    "BuildFailure",
    "UnitBuildResult",
    "BatchBuildResult",
    # Configuration
    "BuildConfig",
    "CompilerConfig",
    "load_config",
    # Errors
    "SplitbuildError",
    "ConfigurationError",
    "UnknownUnitError",
    "SourceTreeError",
    "CompileError",
    "BuildFailedError",
]
