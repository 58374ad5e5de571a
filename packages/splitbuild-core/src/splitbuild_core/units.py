"""Compilation-unit model and builder.

A CompilationUnit is an immutable descriptor of one build target. Units are
assembled with a builder at catalog-declaration time:

    >>> unit = (
    ...     CompilationUnit.of("browser-repl.js", Platform.BROWSER)
    ...     .entry_point(EntryPoint.BROWSER_REPL_MAIN)
    ...     .custom_compiler_options(define_artifact_name(WORKER_SCRIPT, "BROWSER_WORKER"))
    ...     .build()
    ... )

Customizers that embed another unit's artifact name record that unit by
*name*. The name is resolved against the catalog when options are built,
so the referenced unit never has to be built, or even declared, first.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from splitbuild_core.entry_points import EntryPoint
from splitbuild_core.errors import ConfigurationError, SplitbuildError, UnknownUnitError
from splitbuild_core.options import CompilerOptions, DefineValue, default_options
from splitbuild_core.platforms import PLATFORM_SPECS, Input, Platform

# Transform from one option set to another, without access to the catalog
OptionTransform = Callable[[CompilerOptions], CompilerOptions]

# Transform that may read sibling artifact names (unit name -> artifact name)
CatalogTransform = Callable[[CompilerOptions, Mapping[str, str]], CompilerOptions]


@dataclass(frozen=True)
class OptionCustomizer:
    """Named pure transform applied to a unit's default options.

    Attributes:
        name: Human-readable name, used in logs and error messages.
        transform: Function of (options, artifact names by unit name).
        references: Unit names whose artifact names the transform reads.
    """

    name: str
    transform: CatalogTransform
    references: tuple[str, ...] = ()

    def apply(self, options: CompilerOptions, artifact_names: Mapping[str, str]) -> CompilerOptions:
        """Apply the transform.

        Args:
            options: Options produced so far.
            artifact_names: Build artifact name of every declared unit.

        Returns:
            The transformed options.

        Raises:
            UnknownUnitError: If a referenced unit is not declared.
            ConfigurationError: If the transform raises or does not return
                CompilerOptions.
        """
        for unit_name in self.references:
            if unit_name not in artifact_names:
                raise UnknownUnitError(unit_name, sorted(artifact_names), referenced_by=self.name)

        try:
            result = self.transform(options, artifact_names)
        except SplitbuildError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Option customizer '{self.name}' failed: {e}",
                internal_details=f"{type(e).__name__}: {e}",
            ) from e
        if not isinstance(result, CompilerOptions):
            raise ConfigurationError(
                f"Option customizer '{self.name}' must return CompilerOptions, "
                f"got {type(result).__name__}"
            )
        return result

    @classmethod
    def from_transform(cls, transform: OptionTransform, name: str | None = None) -> OptionCustomizer:
        """Wrap a plain ``options -> options`` function."""
        return cls(
            name=name or getattr(transform, "__name__", "custom"),
            transform=lambda options, _names: transform(options),
        )


def define_literal(define: str, value: DefineValue) -> OptionCustomizer:
    """Customizer that defines a compile-time global to a literal value."""
    return OptionCustomizer(
        name=f"define {define}",
        transform=lambda options, _names: options.with_define(define, value),
    )


def define_artifact_name(define: str, unit_name: str) -> OptionCustomizer:
    """Customizer that injects another unit's build artifact name as a define.

    Args:
        define: Fully qualified name of the global to define.
        unit_name: Catalog name of the unit whose artifact is referenced.

    Returns:
        Customizer recording ``unit_name`` as a reference.

    Example:
        >>> customizer = define_artifact_name(
        ...     "app.platform.browser.Client.WORKER_SCRIPT", "BROWSER_WORKER"
        ... )
        >>> customizer.references
        ('BROWSER_WORKER',)
    """

    def _inject(options: CompilerOptions, artifact_names: Mapping[str, str]) -> CompilerOptions:
        return options.with_define(define, artifact_names[unit_name])

    return OptionCustomizer(
        name=f"define {define} = artifact of {unit_name}",
        transform=_inject,
        references=(unit_name,),
    )


@dataclass(frozen=True)
class CompilationUnit:
    """Immutable descriptor of one build target.

    Attributes:
        build_artifact_name: File name of the unit's primary artifact.
            Unique across the catalog.
        platform: Platform the unit is compiled for.
        entry_point: Root symbol of the primary artifact.
        customizers: Option transforms applied in order to the defaults.
    """

    build_artifact_name: str
    platform: Platform
    entry_point: EntryPoint
    customizers: tuple[OptionCustomizer, ...] = ()

    @staticmethod
    def of(build_artifact_name: str, platform: Platform) -> CompilationUnitBuilder:
        """Begin building a unit."""
        return CompilationUnitBuilder(build_artifact_name, platform)

    @property
    def references(self) -> frozenset[str]:
        """Unit names this unit's customizers read artifact names from."""
        return frozenset(name for c in self.customizers for name in c.references)

    def inputs(self) -> tuple[Input, ...]:
        """Inputs this unit compiles, primary first.

        The unit's own artifact and entry point replace the platform's
        primary Input. Companion Inputs follow unless they duplicate the
        unit's own artifact name or entry symbol.
        """
        own = Input(artifact_name=self.build_artifact_name, entry_symbol=self.entry_point.symbol)
        companions = tuple(
            companion
            for companion in PLATFORM_SPECS[self.platform].companions
            if companion.entry_symbol != own.entry_symbol
            and companion.artifact_name != own.artifact_name
        )
        return (own, *companions)

    def options_for(self, input_: Input, artifact_names: Mapping[str, str]) -> CompilerOptions:
        """Build the final option set for one of this unit's Inputs.

        Args:
            input_: One of ``self.inputs()``.
            artifact_names: Build artifact name of every declared unit.

        Returns:
            Default options for (platform, entry symbol) after every customizer.
        """
        options = default_options(self.platform, input_.entry_symbol)
        for customizer in self.customizers:
            options = customizer.apply(options, artifact_names)
        return options


class CompilationUnitBuilder:
    """Builder for CompilationUnit.

    ``entry_point()`` is mandatory. A builder produces exactly one unit;
    using it after ``build()`` is a configuration error.
    """

    def __init__(self, build_artifact_name: str, platform: Platform) -> None:
        if not isinstance(build_artifact_name, str) or not build_artifact_name.strip():
            raise ConfigurationError("Build artifact name must be a non-empty string")
        if not isinstance(platform, Platform):
            raise ConfigurationError(
                f"Unknown platform {platform!r}", unit_name=build_artifact_name
            )

        self._build_artifact_name = build_artifact_name
        self._platform = platform
        self._entry_point: EntryPoint | None = None
        self._customizers: list[OptionCustomizer] = []
        self._built = False

    def _ensure_open(self) -> None:
        if self._built:
            raise ConfigurationError(
                "Builder already used; start a new one with CompilationUnit.of()",
                unit_name=self._build_artifact_name,
            )

    def entry_point(self, entry_point: EntryPoint) -> CompilationUnitBuilder:
        """Set the unit's entry point."""
        self._ensure_open()
        if not isinstance(entry_point, EntryPoint):
            raise ConfigurationError(
                f"Unknown entry point {entry_point!r}", unit_name=self._build_artifact_name
            )
        self._entry_point = entry_point
        return self

    def custom_compiler_options(
        self,
        customizer: OptionCustomizer | OptionTransform,
    ) -> CompilationUnitBuilder:
        """Append an option customizer.

        Args:
            customizer: An OptionCustomizer, or a plain pure function from
                options to options.
        """
        self._ensure_open()
        if not isinstance(customizer, OptionCustomizer):
            if not callable(customizer):
                raise ConfigurationError(
                    "Option customizer must be callable", unit_name=self._build_artifact_name
                )
            customizer = OptionCustomizer.from_transform(customizer)
        self._customizers.append(customizer)
        return self

    def build(self) -> CompilationUnit:
        """Return the immutable unit.

        Raises:
            ConfigurationError: If no entry point was set, or the builder
                was already built.
        """
        self._ensure_open()
        if self._entry_point is None:
            raise ConfigurationError(
                "Entry point must be set before build()", unit_name=self._build_artifact_name
            )
        self._built = True
        return CompilationUnit(
            build_artifact_name=self._build_artifact_name,
            platform=self._platform,
            entry_point=self._entry_point,
            customizers=tuple(self._customizers),
        )
