"""Shared fixtures: an in-process fake of the storage backend."""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import pytest

from pipeshelf.config import Settings
from pipeshelf.errors import AuthError, AuthErrorKind, TransferError
from pipeshelf.models import Account, Balance, FileRecord, PublicLink
from pipeshelf.storage import JsonFileStore


class FakeRemote:
    """Remote backend double: keeps users and files in memory.

    ``gates`` maps a file name to an asyncio.Event that download/share calls
    for that name wait on before answering (only while the event is unset).
    """

    def __init__(self) -> None:
        self.users: Dict[str, str] = {}
        self.files: Dict[str, Dict[str, bytes]] = {}
        self.calls: List[tuple] = []
        self.fail_uploads: Set[str] = set()
        self.fail_downloads: Set[str] = set()
        self.fail_deletes: Set[str] = set()
        self.fail_links: Set[str] = set()
        self.fail_balance = False
        self.network_down = False
        self.gates: Dict[str, asyncio.Event] = {}
        self.balance = Balance(pipe=12.5, sol=0.25, public_key="PipePubKey111")
        self._next_id = 0

    def _account(self, username: str) -> Account:
        return Account(
            username=username,
            password=self.users[username],
            user_id=f"uid-{username}",
            user_app_key=f"key-{username}",
        )

    async def _wait_gate(self, name: str) -> None:
        gate = self.gates.get(name)
        if gate is not None and not gate.is_set():
            await gate.wait()

    async def login(self, username: str, password: str) -> Account:
        self.calls.append(("login", username))
        if self.network_down:
            raise AuthError(AuthErrorKind.NETWORK_ERROR)
        if self.users.get(username) != password:
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)
        return self._account(username)

    async def create_account(self, username: str, password: str) -> Account:
        self.calls.append(("create_account", username))
        if self.network_down:
            raise AuthError(AuthErrorKind.NETWORK_ERROR)
        if username in self.users:
            raise AuthError(AuthErrorKind.USERNAME_EXISTS)
        self.users[username] = password
        self.files[username] = {}
        return self._account(username)

    async def get_balance(self, account: Account) -> Balance:
        self.calls.append(("get_balance", account.username))
        if self.fail_balance:
            raise TransferError("balance", None, "wallet unavailable")
        return self.balance

    async def upload_file(self, account, data, file_name, on_progress=None) -> FileRecord:
        self.calls.append(("upload_file", file_name))
        if on_progress:
            on_progress(0)
        if file_name in self.fail_uploads:
            raise TransferError("upload", file_name, "HTTP 500")
        if on_progress:
            on_progress(50)
            on_progress(100)
        self.files.setdefault(account.username, {})[file_name] = data
        self._next_id += 1
        return FileRecord(
            file_id=f"f{self._next_id}",
            file_name=file_name,
            size=len(data),
            uploaded_at=datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        )

    async def download_file(self, account, file_name) -> bytes:
        self.calls.append(("download_file", file_name))
        await self._wait_gate(file_name)
        if file_name in self.fail_downloads:
            raise TransferError("download", file_name, "HTTP 404")
        try:
            return self.files[account.username][file_name]
        except KeyError:
            raise TransferError("download", file_name, "not found") from None

    async def delete_file(self, account, file_name) -> None:
        self.calls.append(("delete_file", file_name))
        if file_name in self.fail_deletes:
            raise TransferError("delete", file_name, "HTTP 500")
        self.files.get(account.username, {}).pop(file_name, None)

    async def create_public_link(self, account, file_name) -> PublicLink:
        self.calls.append(("create_public_link", file_name))
        await self._wait_gate(file_name)
        if file_name in self.fail_links:
            raise TransferError("share", file_name, "HTTP 500")
        return PublicLink(share_url=f"https://share.example/{file_name}", file_name=file_name)


def make_record(file_id: str, file_name: str, size: int = 10) -> FileRecord:
    return FileRecord(
        file_id=file_id,
        file_name=file_name,
        size=size,
        uploaded_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(str(tmp_path / "data"))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=str(tmp_path / "data"),
        preview_dir=str(tmp_path / "previews"),
        http_log_path=None,
    )


@pytest.fixture
def alice(remote):
    remote.users["alice123"] = "Passw0rd!1"
    remote.files["alice123"] = {}
    return Account(username="alice123", password="Passw0rd!1", user_id="uid-alice123", user_app_key="key-alice123")
