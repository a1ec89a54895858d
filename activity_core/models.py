"""
Core data models for activity-core.
Uses Pydantic for validation and serialization.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class ActivityState(str, Enum):
    """Activity lifecycle states. Everything except PENDING is terminal."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ActivityState.PENDING

    def __str__(self) -> str:
        return self.value


class Intent(BaseModel):
    """A registered association between an intent name and a source locator."""

    name: str = Field(..., min_length=1, description="Symbolic intent name")
    source_locator: str = Field(..., description="Where the activity document lives")


class ActivityResult(BaseModel):
    """
    Outcome of an activity.

    Exactly one of ``value``, ``reason`` or ``error`` is meaningful, selected by
    ``status``:

        completed: ``value`` holds what the activity passed to ``finish``
        cancelled: ``reason`` holds the cancellation reason
        failed: ``error`` holds the exception (carried by ``ActivityFailed``)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    status: Literal["completed", "cancelled", "failed"]
    value: Any | None = Field(default=None, description="Completion value")
    reason: str | None = Field(default=None, description="Cancellation reason")
    error: Any | None = Field(default=None, description="Failure exception")

    @classmethod
    def completed(cls, value: Any) -> "ActivityResult":
        return cls(status="completed", value=value)

    @classmethod
    def cancelled(cls, reason: str) -> "ActivityResult":
        return cls(status="cancelled", reason=reason)

    @classmethod
    def failed(cls, error: BaseException) -> "ActivityResult":
        return cls(status="failed", error=error)


@dataclass(frozen=True)
class LoadedContent:
    """Activity document split into markup and code."""

    locator: str
    declarative_content: str
    executable_text: str
    segment_count: int = 0

    @property
    def has_code(self) -> bool:
        return bool(self.executable_text.strip())
