import hashlib
import os
import uuid
from pathlib import Path
from typing import Dict, Optional

from .api import RemoteStorageClient
from .file_index import LocalFileIndex
from .models import Account, FileRecord
from .utils import get_logger


class PreviewHandle:
    """A preview of an image file materialized on local disk.

    Must be released once superseded or once its record is gone; a released
    handle has no file behind it any more.
    """

    def __init__(self, file_id: str, file_name: str, path: Path, generation: int, size: int) -> None:
        self.file_id = file_id
        self.file_name = file_name
        self.path = path
        self.generation = generation
        self.size = size
        self.released = False

    @property
    def uri(self) -> str:
        return self.path.resolve().as_uri()

    def read_bytes(self) -> bytes:
        if self.released:
            raise RuntimeError(f"Preview for {self.file_name} was released")
        return self.path.read_bytes()

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"<PreviewHandle {self.file_id} gen={self.generation} {state}>"


class PreviewCache:
    """Previews for the image files of one account's index.

    Rebuilt from scratch on every ``reload()``; each rebuild gets a new
    generation number and a rebuild overtaken by a newer one stops and keeps
    nothing. Previews of records that left the listing are released before
    anything is fetched.
    """

    def __init__(
        self,
        remote: RemoteStorageClient,
        account: Account,
        index: LocalFileIndex,
        cache_dir: str,
        enabled: bool = True,
    ) -> None:
        self.remote = remote
        self.account = account
        self.index = index
        self.cache_dir = Path(cache_dir)
        self.enabled = enabled
        self.generation = 0
        self.logger = get_logger("pipeshelf.previews")
        self._token = uuid.uuid4().hex[:8]
        self._handles: Dict[str, PreviewHandle] = {}

    def get(self, file_id: str) -> Optional[PreviewHandle]:
        return self._handles.get(file_id)

    def handles(self) -> Dict[str, PreviewHandle]:
        return dict(self._handles)

    def __len__(self) -> int:
        return len(self._handles)

    def discard(self, file_id: str) -> None:
        handle = self._handles.pop(file_id, None)
        if handle is not None:
            handle.release()
            self.logger.debug("Released preview %s", file_id)

    def release_all(self) -> None:
        self.generation += 1
        for file_id in list(self._handles):
            self.discard(file_id)

    async def reload(self) -> None:
        self.generation += 1
        generation = self.generation
        records = self.index.list_files()
        listed = {record.file_id for record in records}
        for file_id in list(self._handles):
            if file_id not in listed:
                self.discard(file_id)

        if not self.enabled:
            self.release_all()
            return

        built = 0
        for record in records:
            if not record.is_image:
                self.discard(record.file_id)
                continue
            data: Optional[bytes] = None
            try:
                data = await self.remote.download_file(self.account, record.file_name)
            except Exception as exc:
                self.logger.warning("Failed to load preview for %s: %s", record.file_name, exc)
            if generation != self.generation:
                self.logger.debug("Preview rebuild gen=%d superseded by gen=%d", generation, self.generation)
                return
            if data is None:
                self.discard(record.file_id)
                continue
            if record.file_id not in self.index:
                continue
            try:
                handle = self._materialize(record, data, generation)
            except OSError as exc:
                self.logger.warning("Failed to store preview for %s: %s", record.file_name, exc)
                self.discard(record.file_id)
                continue
            previous = self._handles.get(record.file_id)
            self._handles[record.file_id] = handle
            if previous is not None:
                previous.release()
            built += 1
        self.logger.debug("Preview rebuild gen=%d built %d handle(s)", generation, built)

    def _path_for(self, record: FileRecord, generation: int) -> Path:
        digest = hashlib.sha256(f"{self.account.username}/{record.file_id}".encode("utf-8")).hexdigest()
        suffix = Path(record.file_name).suffix.lower()
        return self.cache_dir / f"{digest[:24]}-{self._token}-g{generation}{suffix}"

    def _materialize(self, record: FileRecord, data: bytes, generation: int) -> PreviewHandle:
        path = self._path_for(record, generation)
        tmp = path.with_name(f"{path.name}.tmp")
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        try:
            with open(tmp, "wb") as handle:
                handle.write(data)
            os.replace(tmp, path)
        except OSError:
            if tmp.exists():
                tmp.unlink()
            raise
        return PreviewHandle(record.file_id, record.file_name, path, generation, len(data))
