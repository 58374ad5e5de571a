"""Compilation-unit catalog.

The catalog is assembled in two phases:
1. Every unit is declared as plain immutable data (see ``_declare_units``).
2. UnitCatalog validates the whole set: artifact names must be unique and
   every name a customizer references must be declared.

Only after both phases succeed can any unit be built, so an invalid catalog
fails before compilation starts.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

import structlog

from splitbuild_core.entry_points import EntryPoint
from splitbuild_core.errors import ConfigurationError, UnknownUnitError
from splitbuild_core.options import CompilerOptions
from splitbuild_core.platforms import Input, Platform
from splitbuild_core.units import CompilationUnit, define_artifact_name

logger = structlog.get_logger(__name__)

# Global read by the browser client to locate the worker bundle
WORKER_SCRIPT_DEFINE = "app.platform.browser.Client.WORKER_SCRIPT"


class UnitCatalog:
    """Validated, read-only mapping of unit name to CompilationUnit.

    Attributes:
        units: Declared units by logical name, in declaration order.

    Example:
        >>> catalog = UnitCatalog({"SERVER_TESTS": server_tests})
        >>> catalog.get("SERVER_TESTS").build_artifact_name
        'server-tests.js'
    """

    def __init__(self, units: Mapping[str, CompilationUnit]) -> None:
        """Validate and freeze a set of declared units.

        Args:
            units: Declared units by logical name.

        Raises:
            ConfigurationError: If artifact names collide or a value is not
                a CompilationUnit.
            UnknownUnitError: If a customizer references an undeclared unit.
        """
        self.units: Mapping[str, CompilationUnit] = MappingProxyType(dict(units))
        self._artifact_names: Mapping[str, str] = MappingProxyType(
            {name: unit.build_artifact_name for name, unit in self._checked_items()}
        )
        self._check_unique_artifacts()
        self._check_references()
        logger.debug("unit_catalog_validated", units=len(self.units))

    def _checked_items(self) -> Iterator[tuple[str, CompilationUnit]]:
        for name, unit in self.units.items():
            if not name:
                raise ConfigurationError("Unit names must be non-empty")
            if not isinstance(unit, CompilationUnit):
                raise ConfigurationError(
                    f"Expected a CompilationUnit, got {type(unit).__name__}", unit_name=name
                )
            yield name, unit

    def _check_unique_artifacts(self) -> None:
        counts = Counter(self._artifact_names.values())
        duplicates = sorted(artifact for artifact, count in counts.items() if count > 1)
        if duplicates:
            artifact = duplicates[0]
            owners = [name for name, a in self._artifact_names.items() if a == artifact]
            raise ConfigurationError(
                f"Duplicate build artifact name '{artifact}' declared by {', '.join(owners)}",
                unit_name=owners[-1],
            )

        # Companion artifacts may be shared, but only if they build the same bundle
        producers: dict[str, tuple[str, Platform, str]] = {}
        for name, unit in self.units.items():
            for input_ in unit.inputs():
                key = (name, unit.platform, input_.entry_symbol)
                first = producers.setdefault(input_.artifact_name, key)
                if first[1:] != key[1:]:
                    raise ConfigurationError(
                        f"Build artifact name '{input_.artifact_name}' is produced by "
                        f"{first[0]} ({first[1].value}, {first[2]}) and "
                        f"{name} ({unit.platform.value}, {input_.entry_symbol})",
                        unit_name=name,
                    )

    def _check_references(self) -> None:
        for name, unit in self.units.items():
            for referenced in sorted(unit.references):
                if referenced not in self.units:
                    raise UnknownUnitError(referenced, list(self.units), referenced_by=name)

    def __contains__(self, name: object) -> bool:
        return name in self.units

    def __iter__(self) -> Iterator[str]:
        return iter(self.units)

    def __len__(self) -> int:
        return len(self.units)

    def names(self) -> list[str]:
        """Declared unit names, in declaration order."""
        return list(self.units)

    def items(self) -> Iterable[tuple[str, CompilationUnit]]:
        """(name, unit) pairs, in declaration order."""
        return self.units.items()

    @property
    def artifact_names(self) -> Mapping[str, str]:
        """Build artifact name of every unit, by unit name."""
        return self._artifact_names

    def get(self, name: str) -> CompilationUnit:
        """Look up a unit by name.

        Raises:
            UnknownUnitError: If no unit has this name.
        """
        try:
            return self.units[name]
        except KeyError:
            raise UnknownUnitError(name, list(self.units)) from None

    def select(self, names: Iterable[str]) -> list[tuple[str, CompilationUnit]]:
        """Resolve requested unit names, rejecting unknown ones up front.

        Duplicates are dropped, keeping the first occurrence.
        """
        selected: dict[str, CompilationUnit] = {}
        for name in names:
            if name not in selected:
                selected[name] = self.get(name)
        return list(selected.items())

    def options_for(self, unit: CompilationUnit, input_: Input) -> CompilerOptions:
        """Final compiler options for one Input of a declared unit."""
        return unit.options_for(input_, self._artifact_names)


def _declare_units() -> dict[str, CompilationUnit]:
    """Declare every build target. References between units are by name."""
    return {
        "MOBILE_REPL": CompilationUnit.of("mobile.js", Platform.MOBILE)
        .entry_point(EntryPoint.MOBILE_MAIN)
        .build(),
        "MOBILE_TESTS": CompilationUnit.of("mobile-tests.js", Platform.MOBILE)
        .entry_point(EntryPoint.TEST_MAIN)
        .build(),
        # Needs the worker's URL to start it
        "BROWSER_TEST_RUNNER": CompilationUnit.of("browser-tests.js", Platform.BROWSER)
        .entry_point(EntryPoint.TEST_MAIN)
        .custom_compiler_options(define_artifact_name(WORKER_SCRIPT_DEFINE, "BROWSER_WORKER"))
        .build(),
        "BROWSER_REPL": CompilationUnit.of("browser-repl.js", Platform.BROWSER)
        .entry_point(EntryPoint.BROWSER_REPL_MAIN)
        .custom_compiler_options(define_artifact_name(WORKER_SCRIPT_DEFINE, "BROWSER_WORKER"))
        .build(),
        "BROWSER_WORKER": CompilationUnit.of("worker.js", Platform.BROWSER)
        .entry_point(EntryPoint.BROWSER_WORKER)
        .build(),
        "EMBEDDED_TESTS": CompilationUnit.of("embedded-tests.js", Platform.EMBEDDED)
        .entry_point(EntryPoint.TEST_MAIN)
        .build(),
        "SERVER_REPL": CompilationUnit.of("server-repl.js", Platform.SERVER)
        .entry_point(EntryPoint.SERVER_REPL_MAIN)
        .build(),
        "SERVER_TESTS": CompilationUnit.of("server-tests.js", Platform.SERVER)
        .entry_point(EntryPoint.TEST_MAIN)
        .build(),
    }


COMPILATION_UNITS = UnitCatalog(_declare_units())
