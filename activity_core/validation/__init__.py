"""
Activity document validation.

Used by the ``activity-core check`` command and available to hosts that want
to vet documents before registering them.
"""

from .base import ValidationCheck
from .base import ValidationResult
from .document import DocumentValidator

__all__ = [
    "ValidationCheck",
    "ValidationResult",
    "DocumentValidator",
]
