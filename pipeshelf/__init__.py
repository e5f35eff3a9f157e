from .app import PipeShelf
from .config import Settings
from .errors import AuthError, AuthErrorKind, PipeShelfError, TransferError, ValidationError
from .file_index import LocalFileIndex
from .models import Account, Balance, FileRecord, PublicLink
from .previews import PreviewCache, PreviewHandle
from .session import StorageSession
from .session_store import AccountSession
from .sync import SyncCoordinator

__version__ = "0.1.0"

__all__ = [
    "PipeShelf",
    "Settings",
    "AccountSession",
    "StorageSession",
    "LocalFileIndex",
    "PreviewCache",
    "PreviewHandle",
    "SyncCoordinator",
    "Account",
    "Balance",
    "FileRecord",
    "PublicLink",
    "PipeShelfError",
    "ValidationError",
    "AuthError",
    "AuthErrorKind",
    "TransferError",
]
