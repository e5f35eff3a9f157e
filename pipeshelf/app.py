from typing import Optional

from .api import PipeRemote, RemoteStorageClient
from .client import PipeClient
from .config import Settings
from .file_index import LocalFileIndex
from .models import Account
from .previews import PreviewCache
from .session import StorageSession
from .session_store import AccountSession
from .storage import JsonFileStore
from .sync import SyncCoordinator
from .utils import get_logger
from .views import BalanceView, FileListView


class PipeShelf:
    """Library entry point: owns the account session and the active storage session.

    A storage session (index, broadcast, previews, observers) lives from login
    until logout or the next account switch.
    """

    def __init__(
        self,
        remote: RemoteStorageClient,
        store: JsonFileStore,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.remote = remote
        self.store = store
        self.accounts = AccountSession(remote, store)
        self.logger = get_logger("pipeshelf", debug=self.settings.debug)
        self.active: Optional[StorageSession] = None
        self.file_list: Optional[FileListView] = None
        self.balance: Optional[BalanceView] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PipeShelf":
        settings = settings or Settings.from_env()
        client = PipeClient(
            base_url=settings.base_url,
            timeout=settings.timeout,
            http_log_path=settings.http_log_path,
            rotate_http_log=settings.http_log_rotate,
        )
        remote = PipeRemote(client, upload_chunk_size=settings.upload_chunk_size)
        return cls(remote, JsonFileStore(settings.data_dir), settings)

    @property
    def account(self) -> Optional[Account]:
        return self.active.account if self.active else None

    async def start(self) -> Optional[Account]:
        account = self.accounts.load_persisted()
        if account is None:
            self.logger.info("No saved account")
            return None
        await self._open(account)
        return account

    async def login(self, username: str, password: str) -> Account:
        account = await self.accounts.login(username, password)
        await self._open(account)
        return account

    async def create_account(self, username: str, password: str) -> Account:
        account = await self.accounts.create_account(username, password)
        await self._open(account)
        return account

    def logout(self) -> None:
        self._close_active()
        self.accounts.clear()
        self.logger.info("Logged out")

    async def _open(self, account: Account) -> StorageSession:
        self._close_active()
        index = LocalFileIndex(self.store, account.username)
        coordinator = SyncCoordinator()
        previews = PreviewCache(
            self.remote,
            account,
            index,
            self.settings.preview_dir,
            enabled=self.settings.previews_enabled,
        )
        session = StorageSession(account, self.remote, index, coordinator, previews)
        file_list = FileListView(index)
        balance = BalanceView(session)
        coordinator.subscribe(file_list.reload)
        coordinator.subscribe(balance.reload)
        coordinator.subscribe(previews.reload)
        self.active = session
        self.file_list = file_list
        self.balance = balance
        self.logger.info("Session opened for %s (%d tracked file(s))", account.username, len(index))
        await coordinator.broadcast()
        return session

    def _close_active(self) -> None:
        if self.active is None:
            return
        self.active.close()
        self.active = None
        self.file_list = None
        self.balance = None

    async def close(self) -> None:
        self._close_active()
        close = getattr(self.remote, "close", None)
        if close is not None:
            await close()
