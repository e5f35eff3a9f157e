from typing import Optional

from .api import RemoteStorageClient
from .errors import AuthError
from .models import Account
from .storage import JsonFileStore
from .utils import get_logger
from .validation import validate_credentials

ACCOUNT_KEY = "account"


class AccountSession:
    """Owns the single persisted Account of this device.

    Credentials are format-checked before any remote call; a failed login or
    account creation never touches the persisted value.
    """

    def __init__(self, remote: RemoteStorageClient, store: JsonFileStore) -> None:
        self.remote = remote
        self.store = store
        self.logger = get_logger("pipeshelf.session")

    async def login(self, username: str, password: str) -> Account:
        validate_credentials(username, password)
        try:
            account = await self.remote.login(username, password)
        except AuthError as exc:
            self.logger.info("Login failed for %s: %s", username, exc.kind.value)
            raise
        self.persist(account)
        self.logger.info("Logged in as %s", account.username)
        return account

    async def create_account(self, username: str, password: str) -> Account:
        validate_credentials(username, password)
        try:
            account = await self.remote.create_account(username, password)
        except AuthError as exc:
            self.logger.info("Account creation failed for %s: %s", username, exc.kind.value)
            raise
        self.persist(account)
        self.logger.info("Created account %s", account.username)
        return account

    def load_persisted(self) -> Optional[Account]:
        data = self.store.get(ACCOUNT_KEY)
        if data is None:
            return None
        if not isinstance(data, dict):
            self.logger.warning("Persisted account is not an object, ignoring")
            return None
        try:
            return Account.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            self.logger.warning("Persisted account is unreadable, ignoring: %s", exc)
            return None

    def persist(self, account: Account) -> None:
        self.store.set(ACCOUNT_KEY, account.to_dict())

    def clear(self) -> None:
        self.store.delete(ACCOUNT_KEY)
