"""Activity error taxonomy.

Two families of errors exist:

- Usage errors (``NotRegisteredError``, ``AlreadyStartedError``) are raised
  synchronously to whoever called the triggering operation.
- Execution errors (``RetrievalError``, ``CompileError``,
  ``ActivityRuntimeError``) never escape the loading pipeline. They are
  captured and surfaced only through the activity's result future, which
  rejects with ``ActivityFailed``.

Execution errors are chained from the native exception with
``raise X(...) from native_error`` so the original is available via
``__cause__``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:
    from .models import ActivityResult


class ActivityError(Exception):
    """Base for all activity errors."""


class ActivityUsageError(ActivityError):
    """Caller misused the runtime API."""


class NotRegisteredError(ActivityUsageError, LookupError):
    """No activity is registered for the intent name."""

    def __init__(self, intent_name: str) -> None:
        super().__init__(f"No activity registered for intent: {intent_name}")
        self.intent_name = intent_name


class AlreadyStartedError(ActivityUsageError):
    """Launch was called on an instance that was already launched or finished."""

    def __init__(self, activity_id: str, state: str) -> None:
        super().__init__(f"Activity {activity_id} already launched or finished (state={state})")
        self.activity_id = activity_id
        self.state = state


class RetrievalError(ActivityError):
    """Content could not be retrieved from a source locator.

    Attributes:
        locator: The source locator that was requested.
        status_code: Transport status code (e.g. HTTP 404), if available.
        reason: Status text or transport failure detail, if available.
    """

    def __init__(
        self,
        message: str,
        *,
        locator: str | None = None,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.locator = locator
        self.status_code = status_code
        self.reason = reason

    def __repr__(self) -> str:
        parts = [repr(str(self))]
        if self.locator is not None:
            parts.append(f"locator={self.locator!r}")
        if self.status_code is not None:
            parts.append(f"status_code={self.status_code!r}")
        if self.reason is not None:
            parts.append(f"reason={self.reason!r}")
        return f"{type(self).__name__}({', '.join(parts)})"


class CompileError(ActivityError):
    """Executable segment failed to compile.

    Attributes:
        filename: Pseudo-filename the code was compiled under.
        lineno: Line of the syntax error within the concatenated text.
    """

    def __init__(
        self,
        message: str,
        *,
        filename: str | None = None,
        lineno: int | None = None,
    ) -> None:
        super().__init__(message)
        self.filename = filename
        self.lineno = lineno


class ActivityRuntimeError(ActivityError):
    """Exception raised by activity code (top-level segment or a hook)."""


class ActivityFailed(ActivityError):
    """Rejection value of a failed activity's result future.

    Attributes:
        status: Always ``"failed"``.
        error: The exception that caused the failure.
        result: The equivalent ``ActivityResult``.
    """

    status = "failed"

    def __init__(self, error: BaseException, result: ActivityResult | None = None) -> None:
        super().__init__(f"Activity failed: {error}")
        self.error = error
        self.result = result

    def __repr__(self) -> str:
        return f"ActivityFailed(error={self.error!r})"


def normalize_error(error: Any) -> BaseException:
    """Return ``error`` unchanged if it is an exception, else wrap its string form."""
    if isinstance(error, BaseException):
        return error
    return ActivityError(str(error))
