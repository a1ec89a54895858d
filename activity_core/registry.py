"""
Intent registry: maps intent names to activity source locators.

Registration is last-write-wins; no validation of the locator happens here.
"""

import logging
from collections.abc import Iterator
from collections.abc import Mapping

from .errors import NotRegisteredError
from .models import Intent

logger = logging.getLogger(__name__)


class IntentRegistry:
    """Mapping of intent name to source locator."""

    def __init__(self, intents: Mapping[str, str] | None = None):
        self._intents: dict[str, str] = {}
        if intents:
            self.update(intents)

    def register_intent(self, name: str, source_locator: str) -> None:
        """
        Register (or re-register) an intent.

        Args:
            name: Intent name
            source_locator: Locator the activity document is retrieved from
        """
        previous = self._intents.get(name)
        self._intents[name] = source_locator
        if previous is not None and previous != source_locator:
            logger.debug(f"Intent '{name}' re-registered: {previous} -> {source_locator}")
        else:
            logger.debug(f"Registered intent '{name}' -> {source_locator}")

    def lookup(self, name: str) -> str:
        """
        Resolve an intent name to its source locator.

        Raises:
            NotRegisteredError: If no activity is registered for the name
        """
        try:
            return self._intents[name]
        except KeyError:
            raise NotRegisteredError(name) from None

    def unregister(self, name: str) -> bool:
        """Remove an intent. Returns True if it was registered."""
        return self._intents.pop(name, None) is not None

    def update(self, intents: Mapping[str, str]) -> None:
        """Register many intents at once (e.g. from configuration)."""
        for name, locator in intents.items():
            self.register_intent(name, locator)

    def names(self) -> list[str]:
        return sorted(self._intents)

    def intents(self) -> list[Intent]:
        return [Intent(name=name, source_locator=loc) for name, loc in sorted(self._intents.items())]

    def __contains__(self, name: object) -> bool:
        return name in self._intents

    def __len__(self) -> int:
        return len(self._intents)

    def __iter__(self) -> Iterator[str]:
        return iter(self._intents)
