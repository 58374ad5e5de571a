"""Platform registry and source relevance filter.

This module provides:
- SourceLayout: Names of the shared roots inside a source tree
- Input: One (artifact name, entry symbol) pair a platform builds
- Platform: Closed set of deployment targets
- PLATFORM_SPECS: Default Inputs declared by each platform
- relevant(): Decide whether a source file belongs to a platform's build

Source tree contract:
- ``lib/`` holds shared third-party code, relevant to every platform
- ``src/`` holds first-party code; ``src/platform/`` holds dispatch glue
  directly, and one subfolder per platform named after it in lower case
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from pathlib import PurePath, PurePosixPath
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator

from splitbuild_core.entry_points import EntryPoint


class SourceLayout(BaseModel):
    """Names of the logical roots of a source tree.

    Roots are relative POSIX paths and may span several segments
    (e.g. ``third_party/closure-library``).

    Attributes:
        library_root: Shared third-party root, present in every build.
        source_root: First-party root.
        platform_dir: Name of the platform subtree directly under source_root.
        extension: Recognized source file extension, including the dot.

    Example:
        >>> layout = SourceLayout(library_root="closure-library", source_root="src/js")
        >>> relevant("src/js/platform/node/repl.js", Platform.SERVER, layout)
        False
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    library_root: str = Field(default="lib", min_length=1, description="Shared library root")
    source_root: str = Field(default="src", min_length=1, description="First-party source root")
    platform_dir: str = Field(
        default="platform",
        min_length=1,
        pattern=r"^[^/\\]+$",
        description="Platform subtree directory name",
    )
    extension: str = Field(default=".js", pattern=r"^\.[A-Za-z0-9]+$", description="Source extension")

    @field_validator("library_root", "source_root")
    @classmethod
    def root_must_be_relative(cls, v: str) -> str:
        """Validate that a root is a relative path without parent references."""
        path = PurePosixPath(v.replace("\\", "/"))
        if path.is_absolute() or ".." in path.parts or not path.parts:
            msg = f"root must be a relative path inside the tree, got {v!r}"
            raise ValueError(msg)
        return path.as_posix()

    @property
    def library_parts(self) -> tuple[str, ...]:
        """Path segments of the library root."""
        return PurePosixPath(self.library_root).parts

    @property
    def source_parts(self) -> tuple[str, ...]:
        """Path segments of the first-party root."""
        return PurePosixPath(self.source_root).parts


DEFAULT_LAYOUT = SourceLayout()


class Input(BaseModel):
    """One compiler input: an artifact file name and its entry symbol.

    Attributes:
        artifact_name: File name of the produced artifact.
        entry_symbol: Root symbol the compiler keeps reachable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    artifact_name: str = Field(..., min_length=1, description="Build artifact file name")
    entry_symbol: str = Field(..., min_length=1, description="Compiler entry symbol")


class Platform(str, Enum):
    """Deployment targets.

    The lower-cased value is the name of the platform's subfolder under
    ``src/platform/``.
    """

    MOBILE = "mobile"
    BROWSER = "browser"
    SERVER = "server"
    EMBEDDED = "embedded"

    @property
    def dir_name(self) -> str:
        """Directory-matching key for this platform."""
        return self.value.lower()

    @property
    def inputs(self) -> tuple[Input, ...]:
        """Default Inputs declared for this platform, primary first."""
        return PLATFORM_SPECS[self].inputs

    def relevant(self, path: str | PurePath, layout: SourceLayout = DEFAULT_LAYOUT) -> bool:
        """Shorthand for ``relevant(path, self, layout)``."""
        return relevant(path, self, layout)


class PlatformSpec(BaseModel):
    """Record attached to each Platform.

    Attributes:
        platform: The platform described.
        inputs: Ordered default Inputs. The first is the primary bundle;
            the rest are companion bundles built alongside it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    platform: Platform
    inputs: tuple[Input, ...] = Field(..., min_length=1)

    @property
    def primary(self) -> Input:
        """The Input a compilation unit's own artifact replaces."""
        return self.inputs[0]

    @property
    def companions(self) -> tuple[Input, ...]:
        """Inputs built next to the primary bundle."""
        return self.inputs[1:]


def _spec(platform: Platform, *inputs: tuple[str, EntryPoint]) -> PlatformSpec:
    return PlatformSpec(
        platform=platform,
        inputs=tuple(Input(artifact_name=name, entry_symbol=ep.symbol) for name, ep in inputs),
    )


PLATFORM_SPECS: Mapping[Platform, PlatformSpec] = MappingProxyType(
    {
        Platform.MOBILE: _spec(Platform.MOBILE, ("app-mobile.js", EntryPoint.TEST_MAIN)),
        Platform.BROWSER: _spec(
            Platform.BROWSER,
            ("app-browser.js", EntryPoint.TEST_MAIN),
            ("worker.js", EntryPoint.BROWSER_WORKER),
        ),
        Platform.SERVER: _spec(Platform.SERVER, ("app-server.js", EntryPoint.TEST_MAIN)),
        Platform.EMBEDDED: _spec(Platform.EMBEDDED, ("app-embedded.js", EntryPoint.TEST_MAIN)),
    }
)


def _path_parts(path: str | PurePath) -> tuple[str, ...] | None:
    """Split a relative path into POSIX segments, or None if it escapes the tree."""
    text = path.as_posix() if isinstance(path, PurePath) else str(path)
    posix = PurePosixPath(text.replace("\\", "/"))
    if posix.is_absolute() or ".." in posix.parts or not posix.parts:
        return None
    return posix.parts


def _is_under(parts: tuple[str, ...], root: tuple[str, ...]) -> bool:
    return len(parts) > len(root) and parts[: len(root)] == root


def relevant(
    path: str | PurePath,
    platform: Platform,
    layout: SourceLayout = DEFAULT_LAYOUT,
) -> bool:
    """Decide whether a source file participates in a platform's compilation.

    Pure function of its arguments: compares path segments only and never
    touches the filesystem. Malformed paths evaluate to False.

    Args:
        path: Path relative to the source tree root.
        platform: Platform being built.
        layout: Root names of the tree.

    Returns:
        True if the file is compiled into the platform's bundle.

    Example:
        >>> relevant("src/platform/browser/client.js", Platform.MOBILE)
        False
        >>> relevant("src/platform/dispatch.js", Platform.MOBILE)
        True
    """
    parts = _path_parts(path)
    if parts is None:
        return False

    if PurePosixPath(parts[-1]).suffix != layout.extension:
        return False

    if _is_under(parts, layout.library_parts):
        return True

    if not _is_under(parts, layout.source_parts):
        return False

    relative = parts[len(layout.source_parts) :]
    if len(relative) == 1 or relative[0] != layout.platform_dir:
        return True

    below_platform = relative[1:]
    if len(below_platform) == 1:
        # Dispatch glue shared by all platforms
        return True

    return below_platform[0] == platform.dir_name
