"""
Execution sandbox for activity code.

Activity code runs in a fresh globals dict that holds only:

- ``exports``: an empty dict the code fills with its hooks
- ``activity``: the capability object of the owning instance
- ``__builtins__``: a restricted copy of the builtins

Imports are limited to an allow-list. This keeps one activity's names out of
another's and keeps host internals out of reach by accident. It is not a
security boundary against hostile code.
"""

import builtins
import logging
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING
from typing import Any

from .errors import ActivityRuntimeError
from .errors import CompileError

if TYPE_CHECKING:
    from .activity import ActivityContext

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_IMPORTS = (
    "asyncio",
    "collections",
    "dataclasses",
    "datetime",
    "decimal",
    "enum",
    "fractions",
    "functools",
    "itertools",
    "json",
    "math",
    "operator",
    "random",
    "re",
    "statistics",
    "string",
    "textwrap",
    "time",
    "typing",
    "uuid",
)

BLOCKED_BUILTINS = frozenset(
    {
        "__import__",
        "breakpoint",
        "compile",
        "copyright",
        "credits",
        "eval",
        "exec",
        "exit",
        "globals",
        "help",
        "input",
        "license",
        "locals",
        "memoryview",
        "open",
        "quit",
        "vars",
    }
)

EMPTY_EXPORTS: Mapping[str, Callable] = MappingProxyType({})


class ExecutionSandbox:
    """Compiles and runs activity code in an isolated scope."""

    def __init__(self, allowed_imports: Iterable[str] | None = None):
        self.allowed_imports = frozenset(
            DEFAULT_ALLOWED_IMPORTS if allowed_imports is None else allowed_imports
        )

    def _guarded_import(self, name, globals=None, locals=None, fromlist=(), level=0):
        if level != 0:
            raise ImportError("relative imports are not available in activity code")
        root = name.partition(".")[0]
        if root not in self.allowed_imports:
            raise ImportError(f"import of '{name}' is not allowed in activity code")
        return builtins.__import__(name, globals, locals, fromlist, level)

    def _make_builtins(self) -> dict[str, Any]:
        safe = {k: v for k, v in vars(builtins).items() if k not in BLOCKED_BUILTINS}
        safe["__import__"] = self._guarded_import
        return safe

    def run(
        self,
        executable_text: str,
        activity: "ActivityContext",
        filename: str | None = None,
    ) -> Mapping[str, Callable]:
        """
        Run activity code and return its export table.

        Errors never propagate: a compile failure or an exception from the
        top-level code is reported through ``activity.fail``.

        Args:
            executable_text: Concatenated script segments
            activity: Capability object injected as ``activity``
            filename: Pseudo-filename for tracebacks

        Returns:
            Read-only export table (empty on compile failure)
        """
        filename = filename or "<activity>"

        try:
            code = compile(executable_text, filename, "exec")
        except (SyntaxError, ValueError) as e:
            lineno = getattr(e, "lineno", None)
            logger.error(f"Syntax error in activity script {filename}: {e}")
            error = CompileError(f"{filename}: {e}", filename=filename, lineno=lineno)
            error.__cause__ = e
            activity.fail(error)
            return EMPTY_EXPORTS

        exports: dict[str, Any] = {}
        scope = {
            "__builtins__": self._make_builtins(),
            "__name__": "__activity__",
            "exports": exports,
            "activity": activity,
        }

        try:
            exec(code, scope)
        except (Exception, SystemExit) as e:
            logger.error(f"Runtime error in activity script {filename}: {e}")
            error = ActivityRuntimeError(f"{filename}: {type(e).__name__}: {e}")
            error.__cause__ = e
            activity.fail(error)

        hooks = sorted(k for k, v in exports.items() if callable(v))
        logger.debug(f"Activity script {filename} exported hooks: {hooks}")
        return MappingProxyType(dict(exports))
