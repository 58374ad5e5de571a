"""Compiler option sets.

CompilerOptions is immutable; every customization returns a new instance.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from splitbuild_core.entry_points import EntryPoint
from splitbuild_core.platforms import Platform

DefineValue = str | bool | int | float

# Define holding the platform name in every bundle
PLATFORM_NAME_DEFINE = "app.platform.NAME"

# Define toggling debug-only code paths
DEBUG_DEFINE = "goog.DEBUG"


class CompilerOptions(BaseModel):
    """Option set handed to the external compiler for one Input.

    Attributes:
        entry_symbol: Root symbol kept reachable during pruning.
        compilation_level: Optimization level.
        environment: Externs environment the output runs in.
        language_in: Source language level.
        language_out: Output language level.
        dependency_mode: How the compiler prunes unreachable files.
        defines: Compile-time globals overridden with literal values.
        flags: Additional compiler flags, passed through verbatim.

    Example:
        >>> options = default_options(Platform.BROWSER, EntryPoint.TEST_MAIN.symbol)
        >>> options = options.with_define("app.platform.browser.Client.WORKER_SCRIPT", "worker.js")
        >>> options.defines["app.platform.browser.Client.WORKER_SCRIPT"]
        'worker.js'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    entry_symbol: str = Field(..., min_length=1, description="Compiler entry symbol")
    compilation_level: Literal["BUNDLE", "WHITESPACE_ONLY", "SIMPLE", "ADVANCED"] = Field(
        default="ADVANCED",
        description="Optimization level",
    )
    environment: Literal["BROWSER", "CUSTOM"] = Field(
        default="CUSTOM",
        description="Externs environment",
    )
    language_in: str = Field(default="ECMASCRIPT_2017", description="Input language level")
    language_out: str = Field(default="ECMASCRIPT5", description="Output language level")
    dependency_mode: Literal["NONE", "SORT_ONLY", "PRUNE_LEGACY", "PRUNE"] = Field(
        default="PRUNE",
        description="Dependency pruning mode",
    )
    defines: dict[str, DefineValue] = Field(
        default_factory=dict,
        description="Compile-time global overrides",
    )
    flags: dict[str, str] = Field(default_factory=dict, description="Extra compiler flags")

    def with_define(self, name: str, value: DefineValue) -> CompilerOptions:
        """Return a copy with ``name`` defined to a literal value."""
        if not name:
            raise ValueError("define name must not be empty")
        return self.model_copy(update={"defines": {**self.defines, name: value}})

    def with_flag(self, name: str, value: str) -> CompilerOptions:
        """Return a copy with an extra compiler flag set."""
        return self.model_copy(update={"flags": {**self.flags, name: value}})


def default_options(platform: Platform, entry_symbol: str) -> CompilerOptions:
    """Build the default option set for a platform/entry-symbol pair.

    Args:
        platform: Platform being built.
        entry_symbol: Entry symbol of the Input.

    Returns:
        Options before any unit customization.
    """
    defines: dict[str, DefineValue] = {
        PLATFORM_NAME_DEFINE: platform.dir_name,
        DEBUG_DEFINE: entry_symbol == EntryPoint.TEST_MAIN.symbol,
    }
    return CompilerOptions(
        entry_symbol=entry_symbol,
        environment="BROWSER" if platform is Platform.BROWSER else "CUSTOM",
        defines=defines,
    )
