"""
Activity Core - lifecycle runtime for dynamically loaded activity documents.
"""

__version__ = "1.0.0"

from .activity import Activity
from .activity import ActivityContext
from .activity import LaunchHandle
from .config import RuntimeConfig
from .config import load_config
from .errors import ActivityError
from .errors import ActivityFailed
from .errors import ActivityRuntimeError
from .errors import ActivityUsageError
from .errors import AlreadyStartedError
from .errors import CompileError
from .errors import NotRegisteredError
from .errors import RetrievalError
from .launcher import ActivityLauncher
from .launcher import get_default_launcher
from .launcher import intent_start
from .launcher import register_intent
from .launcher import set_default_launcher
from .loader import ContentLoader
from .loader import split_document
from .models import ActivityResult
from .models import ActivityState
from .models import Intent
from .models import LoadedContent
from .presentation import NullPresentation
from .presentation import PresentationSink
from .registry import IntentRegistry
from .retrieval import ContentRetriever
from .retrieval import FileRetriever
from .retrieval import HttpRetriever
from .retrieval import SchemeRetriever
from .retrieval import default_retriever
from .sandbox import ExecutionSandbox

__all__ = [
    "ActivityLauncher",
    "register_intent",
    "intent_start",
    "get_default_launcher",
    "set_default_launcher",
    # Runtime
    "Activity",
    "ActivityContext",
    "LaunchHandle",
    "ActivityState",
    "ActivityResult",
    "Intent",
    "IntentRegistry",
    # Loading and execution
    "ContentLoader",
    "LoadedContent",
    "split_document",
    "ExecutionSandbox",
    # Collaborators
    "ContentRetriever",
    "HttpRetriever",
    "FileRetriever",
    "SchemeRetriever",
    "default_retriever",
    "PresentationSink",
    "NullPresentation",
    # Configuration
    "RuntimeConfig",
    "load_config",
    # Error taxonomy
    "ActivityError",
    "ActivityUsageError",
    "NotRegisteredError",
    "AlreadyStartedError",
    "RetrievalError",
    "CompileError",
    "ActivityRuntimeError",
    "ActivityFailed",
]
