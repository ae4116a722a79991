"""Session tree: folders, sessions and the sources that persist them."""

from .models import ConnectionProtocol, SessionFolder, SessionItem, SessionNode
from .notifier import ChangeNotifier, ChangeType
from .operations import SessionOperations
from .registry import SourceRegistry
from .results import OperationResult
from .search import SearchFilter, SearchMode, is_visible, visible_nodes
from .sources import FileSource, SessionRoot, SessionSource, SshConfigSource
from .storage import LoadedDocument, SessionStorageManager
from .store import SessionStore

__all__ = [
    "ChangeNotifier",
    "ChangeType",
    "ConnectionProtocol",
    "FileSource",
    "LoadedDocument",
    "OperationResult",
    "SearchFilter",
    "SearchMode",
    "SessionFolder",
    "SessionItem",
    "SessionNode",
    "SessionOperations",
    "SessionRoot",
    "SessionSource",
    "SessionStorageManager",
    "SessionStore",
    "SourceRegistry",
    "SshConfigSource",
    "is_visible",
    "visible_nodes",
]
