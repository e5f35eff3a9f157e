import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .api import ProgressCallback, RemoteStorageClient
from .errors import TransferError
from .file_index import LocalFileIndex
from .models import Account, Balance, FileRecord
from .previews import PreviewCache
from .sync import SyncCoordinator
from .utils import format_bytes, get_logger


@dataclass
class ShareSelection:
    file: FileRecord
    request_id: int
    share_url: Optional[str] = None

    @property
    def pending(self) -> bool:
        return self.share_url is None


class StorageSession:
    """Everything bound to one logged-in account.

    Mutating operations follow the same order: remote call, then index
    mutation, then broadcast. A failed remote call changes nothing locally.
    """

    def __init__(
        self,
        account: Account,
        remote: RemoteStorageClient,
        index: LocalFileIndex,
        coordinator: SyncCoordinator,
        previews: PreviewCache,
    ) -> None:
        if index.username != account.username:
            raise ValueError("Index belongs to a different account")
        self.account = account
        self.remote = remote
        self.index = index
        self.coordinator = coordinator
        self.previews = previews
        self.logger = get_logger("pipeshelf.session")
        self.share_selection: Optional[ShareSelection] = None
        self._share_requests = 0
        self._downloading: Dict[str, int] = {}
        self._closed = False

    def list_files(self) -> List[FileRecord]:
        return self.index.list_files()

    async def get_balance(self) -> Balance:
        return await self.remote.get_balance(self.account)

    async def refresh(self) -> None:
        await self.coordinator.broadcast()

    async def upload_file(
        self,
        data: bytes,
        file_name: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> FileRecord:
        self._check_open()
        self.logger.info("Uploading %s (%s)", file_name, format_bytes(len(data)))
        record = await self.remote.upload_file(self.account, data, file_name, on_progress)
        self.index.add_file(record)
        self.logger.info("Uploaded %s as %s", record.file_name, record.file_id)
        await self.coordinator.broadcast()
        return record

    async def delete_file(self, record: FileRecord) -> None:
        self._check_open()
        self.logger.info("Deleting %s", record.file_name)
        # The backend addresses files by name, the index by id.
        await self.remote.delete_file(self.account, record.file_name)
        self.index.remove_file(record.file_id)
        self.previews.discard(record.file_id)
        await self.coordinator.broadcast()

    def is_downloading(self, file_id: str) -> bool:
        return self._downloading.get(file_id, 0) > 0

    def _finish_download(self, file_id: str) -> None:
        remaining = self._downloading.get(file_id, 0) - 1
        if remaining > 0:
            self._downloading[file_id] = remaining
        else:
            self._downloading.pop(file_id, None)

    async def download_file(self, record: FileRecord, dest_dir: str) -> Path:
        self._check_open()
        dest = Path(dest_dir) / os.path.basename(record.file_name)
        self._downloading[record.file_id] = self._downloading.get(record.file_id, 0) + 1
        try:
            data = await self.remote.download_file(self.account, record.file_name)
            tmp = dest.with_name(f"{dest.name}.part")
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp, "wb") as handle:
                    handle.write(data)
                os.replace(tmp, dest)
            except OSError as exc:
                if tmp.exists():
                    tmp.unlink()
                raise TransferError("download", record.file_name, f"cannot save to {dest}: {exc}") from exc
        finally:
            self._finish_download(record.file_id)
        self.logger.info("Downloaded %s to %s", record.file_name, dest)
        return dest

    async def create_public_link(self, record: FileRecord) -> Optional[str]:
        """Issue a share link and make ``record`` the displayed selection.

        Returns the link, or None when a newer request superseded this one
        while it was in flight.
        """
        self._check_open()
        self._share_requests += 1
        request_id = self._share_requests
        self.share_selection = ShareSelection(file=record, request_id=request_id)
        try:
            link = await self.remote.create_public_link(self.account, record.file_name)
        except TransferError:
            if self.share_selection is not None and self.share_selection.request_id == request_id:
                self.share_selection = None
            raise
        current = self.share_selection
        if current is None or current.request_id != request_id:
            self.logger.debug("Share link for %s superseded", record.file_name)
            return None
        current.share_url = link.share_url
        return link.share_url

    def clear_share_selection(self) -> None:
        self.share_selection = None

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Session for {self.account.username} is closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.coordinator.close()
        self.previews.release_all()
        self.share_selection = None
        self.logger.info("Closed session for %s", self.account.username)
