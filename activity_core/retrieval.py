"""Content retrieval collaborators.

The loader only depends on ``ContentRetriever``. Concrete retrievers:

- HttpRetriever: http:// and https:// via httpx
- FileRetriever: file:// URIs and local paths
- SchemeRetriever: dispatches to the first retriever that can handle a locator

Apps can supply their own retriever (cache, in-memory, etc.) by implementing
the protocol.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol
from typing import runtime_checkable
from urllib.parse import unquote
from urllib.parse import urlparse

import httpx

from .errors import RetrievalError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ContentRetriever(Protocol):
    """Protocol for retrieving an activity document by locator."""

    async def retrieve(self, locator: str) -> str:
        """Return the raw document text.

        Raises:
            RetrievalError: If the content cannot be obtained.
        """
        ...


@runtime_checkable
class LocatorHandler(Protocol):
    """A retriever that declares which locators it can serve."""

    def can_handle(self, locator: str) -> bool: ...

    async def retrieve(self, locator: str) -> str: ...


class HttpRetriever:
    """Retrieves documents over HTTP(S).

    A shared ``httpx.AsyncClient`` may be injected (connection pooling, custom
    transports in tests). Otherwise a short-lived client is used per request.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._client = client
        self.timeout = timeout

    def can_handle(self, locator: str) -> bool:
        return urlparse(locator).scheme in ("http", "https")

    async def retrieve(self, locator: str) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(locator, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    response = await client.get(locator, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise RetrievalError(
                f"Fetch: {locator}: {e}", locator=locator, reason=str(e) or type(e).__name__
            ) from e

        if not response.is_success:
            raise RetrievalError(
                f"Fetch: {locator}: {response.status_code} {response.reason_phrase}",
                locator=locator,
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

        logger.debug(f"Fetched {len(response.content)} bytes from {locator}")
        return response.text


class FileRetriever:
    """Retrieves documents from the local filesystem."""

    def __init__(self, base_path: Path | None = None) -> None:
        """
        Args:
            base_path: Base path for resolving relative paths (default: cwd)
        """
        self.base_path = base_path or Path.cwd()

    def can_handle(self, locator: str) -> bool:
        scheme = urlparse(locator).scheme
        # Single-letter schemes are Windows drive letters
        return scheme == "file" or scheme == "" or len(scheme) == 1

    def resolve_path(self, locator: str) -> Path:
        parsed = urlparse(locator)
        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
        else:
            path = Path(locator)
        if not path.is_absolute():
            path = self.base_path / path
        return path.resolve()

    def read(self, locator: str) -> str:
        """Blocking lookup and read; runs in a worker thread from retrieve()."""
        path = self.resolve_path(locator)
        if not path.is_file():
            raise RetrievalError(
                f"Fetch: {locator}: 404 Not Found",
                locator=locator,
                status_code=404,
                reason="Not Found",
            )
        return path.read_text(encoding="utf-8")

    async def retrieve(self, locator: str) -> str:
        try:
            return await asyncio.to_thread(self.read, locator)
        except (OSError, UnicodeDecodeError) as e:
            raise RetrievalError(f"Fetch: {locator}: {e}", locator=locator, reason=str(e)) from e


class SchemeRetriever:
    """Dispatches each locator to the first handler that accepts it.

    Handlers are tried in order; custom handlers added later take priority.
    """

    def __init__(self, handlers: list[LocatorHandler] | None = None) -> None:
        self._handlers: list[LocatorHandler] = list(handlers or [])

    def add_handler(self, handler: LocatorHandler) -> None:
        self._handlers.insert(0, handler)

    async def retrieve(self, locator: str) -> str:
        for handler in self._handlers:
            if handler.can_handle(locator):
                return await handler.retrieve(locator)
        raise RetrievalError(f"No retriever for locator: {locator}", locator=locator)


def default_retriever(
    base_path: Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> SchemeRetriever:
    """HTTP(S) plus local files."""
    return SchemeRetriever(
        [
            HttpRetriever(client=client, timeout=timeout),
            FileRetriever(base_path=base_path),
        ]
    )
