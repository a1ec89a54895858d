"""
Activity launcher - the main entry point.

Binds the intent registry, loader, sandbox and presentation sink together:

    launcher = ActivityLauncher()
    launcher.register_intent("echo", "https://example.com/echo.html")
    handle = await launcher.intent_start("echo", {"x": 21})
    result = await handle.result

Module-level ``register_intent`` and ``intent_start`` use a process-wide
default launcher.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from .activity import Activity
from .activity import LaunchHandle
from .config import RuntimeConfig
from .loader import ContentLoader
from .presentation import PresentationSink
from .registry import IntentRegistry
from .retrieval import ContentRetriever
from .retrieval import default_retriever
from .sandbox import ExecutionSandbox

logger = logging.getLogger(__name__)


class ActivityLauncher:
    """Launches registered intents as activity instances."""

    def __init__(
        self,
        registry: IntentRegistry | None = None,
        retriever: ContentRetriever | None = None,
        sandbox: ExecutionSandbox | None = None,
        presentation: PresentationSink | None = None,
    ):
        """
        Args:
            registry: Intent registry (creates an empty one if None)
            retriever: Content retriever (HTTP + files if None)
            sandbox: Execution sandbox (default allow-list if None)
            presentation: Presentation sink (headless if None)
        """
        self.registry = registry or IntentRegistry()
        self.loader = ContentLoader(retriever or default_retriever())
        self.sandbox = sandbox or ExecutionSandbox()
        self.presentation = presentation

    @classmethod
    def from_config(
        cls,
        config: RuntimeConfig,
        presentation: PresentationSink | None = None,
    ) -> "ActivityLauncher":
        """Build a launcher from configuration."""
        return cls(
            registry=IntentRegistry(config.intents),
            retriever=default_retriever(base_path=config.base_path, timeout=config.retrieval_timeout),
            sandbox=ExecutionSandbox(allowed_imports=config.allowed_imports),
            presentation=presentation,
        )

    def register_intent(self, name: str, source_locator: str) -> None:
        self.registry.register_intent(name, source_locator)

    def create_activity(self, activity_id: str | None = None) -> Activity:
        """Create an unlaunched instance wired to this launcher's collaborators."""
        return Activity(
            loader=self.loader,
            sandbox=self.sandbox,
            presentation=self.presentation,
            activity_id=activity_id,
        )

    def intent_start(
        self,
        name: str,
        params: Mapping[str, Any] | None = None,
        container: Any = None,
    ) -> "asyncio.Task[LaunchHandle]":
        """
        Launch the activity registered under ``name``.

        Must be called with an event loop running. The lookup happens before
        any asynchronous work is scheduled.

        Raises:
            NotRegisteredError: If ``name`` is unknown
        """
        source_locator = self.registry.lookup(name)
        activity = self.create_activity()
        logger.debug(f"Starting intent '{name}' as activity {activity.activity_id}")
        return activity.launch(source_locator, params, container)


_default_launcher: ActivityLauncher | None = None


def get_default_launcher() -> ActivityLauncher:
    """Process-wide launcher used by the module-level functions."""
    global _default_launcher
    if _default_launcher is None:
        _default_launcher = ActivityLauncher()
    return _default_launcher


def set_default_launcher(launcher: ActivityLauncher | None) -> None:
    """Replace (or with None, reset) the process-wide launcher."""
    global _default_launcher
    _default_launcher = launcher


def register_intent(name: str, source_locator: str) -> None:
    get_default_launcher().register_intent(name, source_locator)


def intent_start(
    name: str,
    params: Mapping[str, Any] | None = None,
    container: Any = None,
) -> "asyncio.Task[LaunchHandle]":
    return get_default_launcher().intent_start(name, params, container)
