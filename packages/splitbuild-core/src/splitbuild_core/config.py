"""Build configuration for splitbuild.

This module handles loading splitbuild.yaml:
- BuildConfig: Source tree location, worker pool, fail-fast, compiler command
- resolve_config_path(): Explicit path, then SPLITBUILD_CONFIG, then ./splitbuild.yaml
- load_config(): Parse and validate, falling back to defaults when no file exists
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from splitbuild_core.compiler import DEFAULT_COMPILER_COMMAND
from splitbuild_core.errors import ConfigurationError
from splitbuild_core.platforms import DEFAULT_LAYOUT, SourceLayout

logger = structlog.get_logger(__name__)

# Environment variable pointing at a configuration file
CONFIG_ENV_VAR = "SPLITBUILD_CONFIG"

# Standard configuration file name
CONFIG_FILE_NAME = "splitbuild.yaml"


class CompilerConfig(BaseModel):
    """External compiler invocation.

    Attributes:
        command: Executable and leading arguments.
        timeout_seconds: Optional limit per compiler invocation.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    command: tuple[str, ...] = Field(
        default=DEFAULT_COMPILER_COMMAND,
        min_length=1,
        description="Compiler executable and leading arguments",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Timeout per compiler invocation in seconds",
    )


class BuildConfig(BaseModel):
    """Settings for a build run.

    Relative ``source_root`` and ``output_dir`` are resolved against the
    directory holding the configuration file.

    Attributes:
        source_root: Directory containing the library and first-party roots.
        output_dir: Directory artifacts are written to.
        max_workers: Thread pool size (None = CPU count).
        fail_fast: Stop starting new compilations after the first failure.
        layout: Names of the source tree roots.
        compiler: External compiler invocation.

    Example:
        >>> config = BuildConfig.from_yaml(Path("splitbuild.yaml"))
        >>> config.max_workers
        4
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source_root: Path = Field(default=Path("."), description="Source tree root")
    output_dir: Path = Field(default=Path("build"), description="Artifact output directory")
    max_workers: int | None = Field(default=None, ge=1, le=64, description="Worker pool size")
    fail_fast: bool = Field(default=False, description="Stop after the first failure")
    layout: SourceLayout = Field(default=DEFAULT_LAYOUT, description="Source tree roots")
    compiler: CompilerConfig = Field(default_factory=CompilerConfig, description="Compiler")

    @classmethod
    def from_yaml(cls, path: Path) -> BuildConfig:
        """Load BuildConfig from a YAML file.

        Raises:
            ConfigurationError: If the file is missing, is not valid YAML,
                or fails validation.
        """
        if not path.exists():
            raise ConfigurationError("Configuration file not found", file_path=str(path))

        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigurationError(
                "Invalid YAML", file_path=str(path), internal_details=str(e)
            ) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a mapping", file_path=str(path))

        try:
            config = cls.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            raise ConfigurationError(
                f"Invalid configuration: {first['msg']}",
                file_path=str(path),
                field_path=".".join(str(part) for part in first["loc"]),
                internal_details=str(e),
            ) from e

        return config.relative_to(path.parent)

    def relative_to(self, base: Path) -> BuildConfig:
        """Resolve relative directories against ``base``."""
        return self.model_copy(
            update={
                "source_root": self.source_root
                if self.source_root.is_absolute()
                else base / self.source_root,
                "output_dir": self.output_dir
                if self.output_dir.is_absolute()
                else base / self.output_dir,
            }
        )


def resolve_config_path(path: Path | str | None = None) -> Path | None:
    """Find the configuration file to use.

    Order: explicit ``path``, then ``$SPLITBUILD_CONFIG``, then
    ``./splitbuild.yaml`` if it exists.

    Returns:
        Path to the configuration file, or None to use defaults.
    """
    if path is not None:
        return Path(path)

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    local = Path(CONFIG_FILE_NAME)
    if local.exists():
        return local

    return None


def load_config(path: Path | str | None = None) -> BuildConfig:
    """Load the build configuration, or defaults when none is found.

    Raises:
        ConfigurationError: If an explicitly named file is missing or invalid.
    """
    resolved = resolve_config_path(path)
    if resolved is None:
        logger.debug("config_defaults_used")
        return BuildConfig()

    logger.info("config_loading", path=str(resolved))
    return BuildConfig.from_yaml(resolved)
