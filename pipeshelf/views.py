from typing import List, Optional

from .errors import PipeShelfError
from .file_index import LocalFileIndex
from .models import Balance, FileRecord
from .session import StorageSession
from .utils import get_logger


class FileListView:
    def __init__(self, index: LocalFileIndex) -> None:
        self.index = index
        self.files: List[FileRecord] = []
        self.reloads = 0

    def reload(self) -> None:
        self.files = self.index.list_files()
        self.reloads += 1


class BalanceView:
    """Last known balance; a failed refresh keeps the previous value."""

    def __init__(self, session: StorageSession) -> None:
        self.session = session
        self.balance: Optional[Balance] = None
        self.loading = True
        self.error: Optional[str] = None
        self.reloads = 0
        self.logger = get_logger("pipeshelf.views")

    async def reload(self) -> None:
        self.loading = True
        try:
            self.balance = await self.session.get_balance()
            self.error = None
        except PipeShelfError as exc:
            self.error = str(exc)
            self.logger.warning("Failed to load balance: %s", exc)
        finally:
            self.loading = False
            self.reloads += 1
