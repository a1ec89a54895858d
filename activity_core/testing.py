"""
Testing utilities for activity-core.
Provides in-memory collaborators and helpers for activity tests.
"""

import asyncio
import textwrap
from collections.abc import Callable
from collections.abc import Mapping
from typing import Any

from .activity import Activity
from .errors import RetrievalError
from .launcher import ActivityLauncher
from .registry import IntentRegistry
from .sandbox import ExecutionSandbox


class StaticRetriever:
    """Serves documents from a dict. Unknown locators fail with 404."""

    def __init__(self, documents: Mapping[str, str] | None = None):
        self.documents: dict[str, str] = dict(documents or {})
        self.requests: list[str] = []

    def can_handle(self, locator: str) -> bool:
        return locator in self.documents

    async def retrieve(self, locator: str) -> str:
        self.requests.append(locator)
        await asyncio.sleep(0)
        if locator not in self.documents:
            raise RetrievalError(
                f"Fetch: {locator}: 404 Not Found",
                locator=locator,
                status_code=404,
                reason="Not Found",
            )
        return self.documents[locator]


class RecordingPresentation:
    """Presentation sink that records attach/detach calls."""

    def __init__(self):
        self.attached: list[tuple[str, str, Any]] = []
        self.detached: list[str] = []

    def attach(self, declarative_content: str, container: Any, instance: Activity) -> None:
        self.attached.append((instance.activity_id, declarative_content, container))

    def detach(self, instance: Activity) -> None:
        self.detached.append(instance.activity_id)


def make_document(script: str = "", markup: str = "") -> str:
    """Build an activity document from a script body and optional markup."""
    script = textwrap.dedent(script).strip("\n")
    body = f"<script>\n{script}\n</script>" if script else ""
    return f"{markup}\n{body}\n" if markup else f"{body}\n"


def create_test_launcher(
    documents: Mapping[str, str] | None = None,
    intents: Mapping[str, str] | None = None,
    allowed_imports: list[str] | None = None,
) -> tuple[ActivityLauncher, StaticRetriever, RecordingPresentation]:
    """
    Launcher wired to in-memory collaborators.

    Args:
        documents: Locator -> document text
        intents: Intent name -> locator (defaults to one intent per document,
            named after its locator)
        allowed_imports: Sandbox import allow-list override

    Returns:
        (launcher, retriever, presentation)
    """
    retriever = StaticRetriever(documents)
    presentation = RecordingPresentation()
    if intents is None:
        intents = {locator: locator for locator in retriever.documents}
    launcher = ActivityLauncher(
        registry=IntentRegistry(intents),
        retriever=retriever,
        sandbox=ExecutionSandbox(allowed_imports=allowed_imports),
        presentation=presentation,
    )
    return launcher, retriever, presentation


async def wait_for(predicate: Callable[[], bool], timeout: float = 1.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()
