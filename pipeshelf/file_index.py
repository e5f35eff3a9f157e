from typing import List, Optional

from .models import FileRecord
from .storage import JsonFileStore
from .utils import get_logger


def index_key(username: str) -> str:
    return f"files_{username}"


class LocalFileIndex:
    """Ordered ledger of the files one account has uploaded from this device.

    Purely local: callers mutate it after the matching remote call succeeded.
    Each mutation is written to the store before returning.

    The backend addresses files by name, so a name holds at most one record.
    Adding a record whose ``file_id`` or ``file_name`` is already listed
    replaces the earliest such entry in place and drops any other.
    """

    def __init__(self, store: JsonFileStore, username: str) -> None:
        if not username:
            raise ValueError("LocalFileIndex needs a username")
        self.store = store
        self.username = username
        self.key = index_key(username)
        self.logger = get_logger("pipeshelf.index")
        self._records: List[FileRecord] = self._load()

    def _load(self) -> List[FileRecord]:
        data = self.store.get(self.key)
        if data is None:
            return []
        if not isinstance(data, list):
            self.logger.warning("Index %s is not a list, starting empty", self.key)
            return []
        records: List[FileRecord] = []
        seen_ids = set()
        seen_names = set()
        for row in data:
            try:
                record = FileRecord.from_dict(row)
            except (KeyError, TypeError, ValueError) as exc:
                self.logger.warning("Skipping unreadable entry in %s: %s", self.key, exc)
                continue
            if record.file_id in seen_ids or record.file_name in seen_names:
                continue
            seen_ids.add(record.file_id)
            seen_names.add(record.file_name)
            records.append(record)
        return records

    def _commit(self, records: List[FileRecord]) -> None:
        self.store.set(self.key, [record.to_dict() for record in records])
        self._records = records

    def list_files(self) -> List[FileRecord]:
        return list(self._records)

    def get(self, file_id: str) -> Optional[FileRecord]:
        for record in self._records:
            if record.file_id == file_id:
                return record
        return None

    def add_file(self, record: FileRecord) -> None:
        records: List[FileRecord] = []
        replaced = False
        for existing in self._records:
            if existing.file_id != record.file_id and existing.file_name != record.file_name:
                records.append(existing)
            elif not replaced:
                records.append(record)
                replaced = True
                self.logger.debug("Replacing %s with %s in %s", existing.file_id, record.file_id, self.key)
        if not replaced:
            records.append(record)
            self.logger.debug("Adding %s to %s", record.file_id, self.key)
        self._commit(records)

    def remove_file(self, file_id: str) -> None:
        kept = [r for r in self._records if r.file_id != file_id]
        if len(kept) == len(self._records):
            return
        self._commit(kept)
        self.logger.debug("Removed %s from %s", file_id, self.key)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, file_id: object) -> bool:
        return any(r.file_id == file_id for r in self._records)
