"""Entry-point catalog.

Root symbols the compiler treats as reachable when pruning dead code.
splitbuild never executes them; they are identifiers passed through to
the compiler.
"""

from __future__ import annotations

from enum import Enum


class EntryPoint(str, Enum):
    """Closed set of compiler root symbols.

    The value is the namespace the compiler is asked to keep reachable.

    Attributes:
        TEST_MAIN: Test-suite main, shared by every test-runner unit
        MOBILE_MAIN: Mobile application shell
        BROWSER_WORKER: Background worker started by browser pages
        BROWSER_REPL_MAIN: Browser REPL page
        SERVER_REPL_MAIN: Server-runtime REPL
        EMBEDDED_MAIN: Embedded script-engine shell
    """

    TEST_MAIN = "app.test.main"
    MOBILE_MAIN = "app.platform.mobile.main"
    BROWSER_WORKER = "app.platform.browser.Worker"
    BROWSER_REPL_MAIN = "app.platform.browser.replMain"
    SERVER_REPL_MAIN = "app.platform.server.replMain"
    EMBEDDED_MAIN = "app.platform.embedded.main"

    @property
    def symbol(self) -> str:
        """Entry symbol string handed to the compiler."""
        return self.value
