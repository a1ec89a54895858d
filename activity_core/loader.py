"""
Activity document loader.

An activity document is markup with embedded ``<script>`` blocks holding
Python code. Loading retrieves the document and splits it structurally; no
code runs here.
"""

import logging
import re
import textwrap

from .models import LoadedContent
from .retrieval import ContentRetriever

logger = logging.getLogger(__name__)

SCRIPT_PATTERN = re.compile(r"<script\b([^>]*)>(.*?)</script\s*>", re.IGNORECASE | re.DOTALL)
TYPE_ATTR_PATTERN = re.compile(r"""\btype\s*=\s*["']?([^"'\s>]+)""", re.IGNORECASE)

PYTHON_SCRIPT_TYPES = frozenset(
    {"python", "text/python", "text/x-python", "application/python", "application/x-python"}
)

# Joins segments so names defined in one are visible to the next
SEGMENT_BOUNDARY = "\n"


def is_python_script(attrs: str) -> bool:
    """True if a script tag's attributes mark it as executable Python."""
    match = TYPE_ATTR_PATTERN.search(attrs)
    if match is None:
        return True
    return match.group(1).lower() in PYTHON_SCRIPT_TYPES


def dedent_segment(body: str) -> str:
    """
    Dedent one script body.

    Code on the same line as the opening tag has no indentation of its own,
    so only the lines after it are dedented.
    """
    first, newline, rest = body.partition("\n")
    if not first.strip():
        return textwrap.dedent(rest).strip("\n")
    return (first.strip() + newline + textwrap.dedent(rest)).strip("\n")


def split_document(text: str, locator: str = "<inline>") -> LoadedContent:
    """
    Split a document into declarative markup and executable text.

    Python script blocks are removed from the markup, dedented, and joined in
    document order. Script blocks of other types stay in the markup untouched.

    Args:
        text: Raw document text
        locator: Where the document came from (for diagnostics)

    Returns:
        LoadedContent with both halves
    """
    segments: list[str] = []

    def _extract(match: re.Match) -> str:
        attrs, body = match.group(1), match.group(2)
        if not is_python_script(attrs):
            return match.group(0)
        segments.append(dedent_segment(body))
        return ""

    declarative = SCRIPT_PATTERN.sub(_extract, text).strip()
    executable = SEGMENT_BOUNDARY.join(segments)
    if segments:
        executable += "\n"

    logger.debug(f"Split {locator}: {len(segments)} script segment(s), {len(declarative)} chars of markup")
    return LoadedContent(
        locator=locator,
        declarative_content=declarative,
        executable_text=executable,
        segment_count=len(segments),
    )


class ContentLoader:
    """Retrieves activity documents and splits them."""

    def __init__(self, retriever: ContentRetriever):
        self.retriever = retriever

    async def load(self, source_locator: str) -> LoadedContent:
        """
        Retrieve and split the document at ``source_locator``.

        Raises:
            RetrievalError: If retrieval does not succeed
        """
        text = await self.retriever.retrieve(source_locator)
        return split_document(text, locator=source_locator)
