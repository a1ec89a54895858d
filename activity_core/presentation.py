"""
Presentation sink protocol.

The runtime provides the mechanism (attach once after load, detach once at
teardown). The host provides the policy: a GUI toolkit, a web bridge, a
terminal renderer, or nothing at all.
"""

import logging
from typing import TYPE_CHECKING
from typing import Any
from typing import Protocol

if TYPE_CHECKING:
    from .activity import Activity

logger = logging.getLogger(__name__)


class PresentationSink(Protocol):
    """Pluggable presentation interface for activity markup."""

    def attach(self, declarative_content: str, container: Any, instance: "Activity") -> None:
        """
        Attach an activity's markup under a container.

        Args:
            declarative_content: Markup left after script extraction
            container: Host container reference (None means host default)
            instance: Owning activity (used as the key for detach)
        """
        ...

    def detach(self, instance: "Activity") -> None:
        """Remove whatever was attached for ``instance``."""
        ...


class NullPresentation:
    """Sink for headless hosts. Records nothing, logs at debug."""

    def attach(self, declarative_content: str, container: Any, instance: "Activity") -> None:
        logger.debug(f"[presentation:attach] {instance.activity_id} ({len(declarative_content)} chars)")

    def detach(self, instance: "Activity") -> None:
        logger.debug(f"[presentation:detach] {instance.activity_id}")
