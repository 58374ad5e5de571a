"""splitbuild-cli: Command line for splitbuild.

Lists the declared compilation units and builds selected units.
"""

from __future__ import annotations

__version__ = "0.1.0"
