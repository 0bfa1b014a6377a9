"""i18n-openai-sync: Keep i18n JSON locale files in sync using OpenAI translations."""

__version__ = "0.1.0"

from .app import SyncApplication
from .cache import SqliteKeyValueStore, TranslationResultCache
from .chain import ChangeContext, ChangeHandler, ChangeHandlerChain
from .config import SyncSettings, load_settings
from .diff import DiffEntry, DiffKind, apply_diff, diff_trees
from .exceptions import MalformedInputError, ProviderFailure, SyncError
from .locks import FileLockStore
from .stores import FileCategory, FileContentStore, FileLocationStore
from .sync import TranslationSyncModule
from .translator import OpenAITranslationProvider
from .watcher import FileWatchOrchestrator

__all__ = [
    "__version__",
    "SyncApplication",
    "SqliteKeyValueStore",
    "TranslationResultCache",
    "ChangeContext",
    "ChangeHandler",
    "ChangeHandlerChain",
    "SyncSettings",
    "load_settings",
    "DiffEntry",
    "DiffKind",
    "apply_diff",
    "diff_trees",
    "MalformedInputError",
    "ProviderFailure",
    "SyncError",
    "FileLockStore",
    "FileCategory",
    "FileContentStore",
    "FileLocationStore",
    "TranslationSyncModule",
    "OpenAITranslationProvider",
    "FileWatchOrchestrator",
]
