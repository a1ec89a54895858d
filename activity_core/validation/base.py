"""
Result types for activity document checks.
"""

from dataclasses import dataclass
from dataclasses import field
from typing import Literal

Severity = Literal["error", "warning", "info"]


@dataclass(frozen=True)
class ValidationCheck:
    """Outcome of one named check against a document."""

    name: str
    passed: bool
    message: str
    severity: Severity = "error"

    @property
    def blocking(self) -> bool:
        """A failed error-level check makes the document unusable."""
        return self.severity == "error" and not self.passed


@dataclass
class ValidationResult:
    """All checks run against the document at ``locator``, in run order."""

    locator: str
    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> list[ValidationCheck]:
        return [c for c in self.checks if c.blocking]

    @property
    def warnings(self) -> list[ValidationCheck]:
        return [c for c in self.checks if c.severity == "warning" and not c.passed]

    def add(self, name: str, passed: bool, message: str, severity: Severity = "error") -> ValidationCheck:
        check = ValidationCheck(name=name, passed=passed, message=message, severity=severity)
        self.checks.append(check)
        return check

    def get(self, name: str) -> ValidationCheck | None:
        return next((c for c in self.checks if c.name == name), None)

    def summary(self) -> str:
        ok = sum(c.passed for c in self.checks)
        verdict = "PASSED" if self.passed else "FAILED"
        return (
            f"{verdict}: {self.locator}: {ok}/{len(self.checks)} checks passed, "
            f"{len(self.errors)} error(s), {len(self.warnings)} warning(s)"
        )
