"""Source tree access.

Lists the files under the library and first-party roots once, then serves
per-platform relevant file sets from that listing. The listing is shared
read-only between concurrent builds.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path, PurePosixPath

import structlog

from splitbuild_core.errors import SourceTreeError
from splitbuild_core.platforms import DEFAULT_LAYOUT, Platform, SourceLayout, relevant

logger = structlog.get_logger(__name__)


def _raise_walk_error(err: OSError) -> None:
    raise err


class SourceTree:
    """A source tree rooted at a directory.

    Attributes:
        root: Directory containing the library and first-party roots.
        layout: Names of the roots.

    Example:
        >>> tree = SourceTree(Path("."))
        >>> files = tree.relevant_files(Platform.BROWSER)
    """

    def __init__(self, root: Path | str, layout: SourceLayout = DEFAULT_LAYOUT) -> None:
        self.root = Path(root)
        self.layout = layout
        self._files: tuple[PurePosixPath, ...] | None = None
        self._lock = threading.Lock()

    def _declared_roots(self) -> list[Path]:
        return [self.root / self.layout.library_root, self.root / self.layout.source_root]

    def files(self) -> tuple[PurePosixPath, ...]:
        """All files under the declared roots, relative to ``root``, sorted.

        Raises:
            SourceTreeError: If the tree or a declared root is missing or
                cannot be read.
        """
        with self._lock:
            if self._files is None:
                self._files = self._scan()
            return self._files

    def _scan(self) -> tuple[PurePosixPath, ...]:
        if not self.root.is_dir():
            raise SourceTreeError("Source tree not found", path=str(self.root))

        found: list[PurePosixPath] = []
        for declared_root in self._declared_roots():
            if not declared_root.is_dir():
                raise SourceTreeError("Declared source root is missing", path=str(declared_root))
            try:
                for dirpath, dirnames, filenames in os.walk(declared_root, onerror=_raise_walk_error):
                    dirnames.sort()
                    base = Path(dirpath).relative_to(self.root)
                    found.extend(PurePosixPath(base.as_posix()) / name for name in filenames)
            except OSError as e:
                raise SourceTreeError(
                    "Source tree is not readable",
                    path=str(declared_root),
                    internal_details=str(e),
                ) from e

        logger.debug("source_tree_scanned", root=str(self.root), files=len(found))
        return tuple(sorted(set(found)))

    def relevant_files(self, platform: Platform) -> frozenset[PurePosixPath]:
        """Files that participate in ``platform``'s compilation."""
        return frozenset(path for path in self.files() if relevant(path, platform, self.layout))
