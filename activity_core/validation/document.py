"""
Activity document validator.

Checks, in order:
1. Document is retrievable
2. Document contains Python script segments
3. Script compiles
4. Top-level script runs without error
5. on_create is exported and callable
6. on_destroy, if exported, is callable

Step 4 runs the top-level code against a probe capability object that only
records calls, so no real activity is affected. Hooks are not invoked.
"""

import logging
from types import MappingProxyType
from typing import Any

from ..errors import RetrievalError
from ..loader import ContentLoader
from ..models import ActivityState
from ..retrieval import ContentRetriever
from ..retrieval import default_retriever
from ..sandbox import ExecutionSandbox
from .base import ValidationResult

logger = logging.getLogger(__name__)

RECOGNIZED_HOOKS = ("on_create", "on_destroy")


class _ProbeContext:
    """Stand-in capability object that records lifecycle calls."""

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []
        self.params = MappingProxyType({})
        self.root = None

    def state(self) -> ActivityState:
        return ActivityState.PENDING

    def finish(self, value: Any = None) -> None:
        self.calls.append(("finish", value))

    def cancel(self, reason: str | None = None) -> None:
        self.calls.append(("cancel", reason))

    def fail(self, error: Any) -> None:
        self.calls.append(("fail", error))

    def on_cancel(self, handler: Any) -> None:
        self.calls.append(("on_cancel", handler))

    @property
    def failure(self) -> Any:
        for name, arg in self.calls:
            if name == "fail":
                return arg
        return None


class DocumentValidator:
    """Validates that an activity document can be loaded and exports its hooks."""

    def __init__(
        self,
        retriever: ContentRetriever | None = None,
        sandbox: ExecutionSandbox | None = None,
    ):
        self.loader = ContentLoader(retriever or default_retriever())
        self.sandbox = sandbox or ExecutionSandbox()

    async def validate(self, locator: str) -> ValidationResult:
        result = ValidationResult(locator=locator)

        try:
            content = await self.loader.load(locator)
        except RetrievalError as e:
            result.add("retrievable", False, str(e))
            return result
        result.add("retrievable", True, f"Retrieved {locator}", severity="info")

        if not content.has_code:
            result.add("has_script", False, "Document has no Python script segments", severity="warning")
            return result
        result.add("has_script", True, f"Found {content.segment_count} script segment(s)", severity="info")

        try:
            compile(content.executable_text, locator, "exec")
        except (SyntaxError, ValueError) as e:
            result.add("compiles", False, f"Syntax error: {e}")
            return result
        result.add("compiles", True, "Script compiles", severity="info")

        probe = _ProbeContext()
        exports = self.sandbox.run(content.executable_text, probe, filename=locator)  # type: ignore[arg-type]
        if probe.failure is not None:
            result.add("runs", False, f"Top-level script failed: {probe.failure}")
            return result
        result.add("runs", True, "Top-level script ran", severity="info")

        on_create = exports.get("on_create")
        if on_create is None:
            result.add("on_create", False, "No on_create hook exported; activity will never finish by itself", severity="warning")
        elif not callable(on_create):
            result.add("on_create", False, f"on_create is not callable ({type(on_create).__name__})")
        else:
            result.add("on_create", True, "on_create exported", severity="info")

        on_destroy = exports.get("on_destroy")
        if on_destroy is not None and not callable(on_destroy):
            result.add("on_destroy", False, f"on_destroy is not callable ({type(on_destroy).__name__})")

        unknown = sorted(set(exports) - set(RECOGNIZED_HOOKS))
        if unknown:
            result.add("exports", True, f"Unrecognized exports ignored: {', '.join(unknown)}", severity="info")

        logger.debug(f"Validated {locator}: {result.summary()}")
        return result
