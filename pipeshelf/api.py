from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, Optional, Protocol

import httpx

from endpoints import AUTH, FILES, PUBLIC, WALLET
from .client import PipeClient
from .errors import AuthError, AuthErrorKind, TransferError
from .models import Account, Balance, FileRecord, PublicLink

ProgressCallback = Callable[[int], None]

LAMPORTS_PER_SOL = 1_000_000_000


class RemoteStorageClient(Protocol):
    """Authenticated operations against the storage backend.

    Every call either fully succeeds or has no effect on local state; auth
    calls raise AuthError, the others TransferError.
    """

    async def login(self, username: str, password: str) -> Account: ...

    async def create_account(self, username: str, password: str) -> Account: ...

    async def get_balance(self, account: Account) -> Balance: ...

    async def upload_file(
        self,
        account: Account,
        data: bytes,
        file_name: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> FileRecord: ...

    async def download_file(self, account: Account, file_name: str) -> bytes: ...

    async def delete_file(self, account: Account, file_name: str) -> None: ...

    async def create_public_link(self, account: Account, file_name: str) -> PublicLink: ...


def _json_or_raise(resp: httpx.Response) -> Dict[str, Any]:
    try:
        payload = resp.json()
    except ValueError as exc:
        raise ValueError(f"Non-JSON response: {resp.text[:200]}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected response: {payload!r}")
    return payload


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if data.get(key) not in (None, ""):
            return data[key]
    return default


def _auth_error(exc: Exception, kind_for_status: Dict[int, AuthErrorKind]) -> AuthError:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        kind = kind_for_status.get(status)
        if kind is None:
            kind = AuthErrorKind.UNAUTHORIZED if status in (401, 403) else AuthErrorKind.NETWORK_ERROR
        return AuthError(kind, f"HTTP {status}: {exc.response.text[:200]}")
    if isinstance(exc, httpx.TransportError):
        return AuthError(AuthErrorKind.NETWORK_ERROR, str(exc) or exc.__class__.__name__)
    return AuthError(AuthErrorKind.UNAUTHORIZED, str(exc))


def _account_from(payload: Dict[str, Any], username: str, password: str) -> Account:
    user_id = _pick(payload, "user_id", "userId")
    app_key = _pick(payload, "user_app_key", "userAppKey")
    if not user_id or not app_key:
        raise ValueError("Response is missing user_id/user_app_key")
    return Account(username=username, password=password, user_id=str(user_id), user_app_key=str(app_key))


async def login(client: PipeClient, username: str, password: str) -> Account:
    payload = {"username": username, "password": password}
    try:
        resp = await client.request(AUTH["login"]["method"], AUTH["login"]["path"], json=payload)
        return _account_from(_json_or_raise(resp), username, password)
    except (httpx.HTTPError, ValueError) as exc:
        raise _auth_error(exc, {
            400: AuthErrorKind.INVALID_CREDENTIALS,
            401: AuthErrorKind.INVALID_CREDENTIALS,
            404: AuthErrorKind.INVALID_CREDENTIALS,
        }) from exc


async def create_account(client: PipeClient, username: str, password: str) -> Account:
    payload = {"username": username, "password": password}
    try:
        resp = await client.request(AUTH["create_user"]["method"], AUTH["create_user"]["path"], json=payload)
        return _account_from(_json_or_raise(resp), username, password)
    except (httpx.HTTPError, ValueError) as exc:
        raise _auth_error(exc, {409: AuthErrorKind.USERNAME_EXISTS}) from exc


async def get_balance(client: PipeClient, account: Account) -> Balance:
    payload = {"user_id": account.user_id}
    try:
        wallet_resp = await client.request(
            WALLET["balance"]["method"], WALLET["balance"]["path"], account=account, json=payload
        )
        wallet = _json_or_raise(wallet_resp)
        token_resp = await client.request(
            WALLET["token_balance"]["method"], WALLET["token_balance"]["path"], account=account, json=payload
        )
        token = _json_or_raise(token_resp)
        sol = _pick(wallet, "balance_sol", "sol")
        if sol is None:
            sol = float(_pick(wallet, "balance_lamports", "lamports", default=0)) / LAMPORTS_PER_SOL
        return Balance(
            pipe=float(_pick(token, "ui_amount", "pipe", "amount", default=0)),
            sol=float(sol),
            public_key=str(_pick(wallet, "public_key", "publicKey", default="")),
        )
    except (httpx.HTTPError, ValueError, TypeError) as exc:
        raise TransferError("balance", None, str(exc) or exc.__class__.__name__) from exc


async def _progress_chunks(data: bytes, chunk_size: int, on_progress: ProgressCallback) -> AsyncIterator[bytes]:
    total = len(data)
    on_progress(0)
    last = 0
    for start in range(0, total, chunk_size):
        chunk = data[start:start + chunk_size]
        yield chunk
        percent = min(100, (start + len(chunk)) * 100 // total)
        if percent > last:
            last = percent
            on_progress(percent)


async def upload_file(
    client: PipeClient,
    account: Account,
    data: bytes,
    file_name: str,
    on_progress: Optional[ProgressCallback] = None,
    chunk_size: int = 64 * 1024,
) -> FileRecord:
    reported = {"last": -1}

    def report(percent: int) -> None:
        if on_progress is None or percent <= reported["last"]:
            return
        reported["last"] = percent
        on_progress(percent)

    content: Any = data
    if on_progress is not None and data:
        content = _progress_chunks(data, max(1, chunk_size), report)
    else:
        report(0)
    try:
        resp = await client.request(
            FILES["upload"]["method"],
            FILES["upload"]["path"],
            account=account,
            params={"file_name": file_name},
            content=content,
            headers={"Content-Type": "application/octet-stream"},
        )
        body: Dict[str, Any] = {}
        if "json" in resp.headers.get("content-type", ""):
            try:
                body = _json_or_raise(resp)
            except ValueError:
                body = {}
        record = FileRecord(
            file_id=str(_pick(body, "file_id", "fileId", default=file_name)),
            file_name=str(_pick(body, "file_name", "fileName", default=file_name)),
            size=int(_pick(body, "size", default=len(data))),
            uploaded_at=datetime.now(timezone.utc),
        )
    except (httpx.HTTPError, ValueError, TypeError) as exc:
        raise TransferError("upload", file_name, str(exc) or exc.__class__.__name__) from exc
    report(100)
    return record


async def download_file(client: PipeClient, account: Account, file_name: str) -> bytes:
    try:
        resp = await client.request(
            FILES["download"]["method"],
            FILES["download"]["path"],
            account=account,
            params={"file_name": file_name},
        )
    except httpx.HTTPError as exc:
        raise TransferError("download", file_name, str(exc) or exc.__class__.__name__) from exc
    return resp.content


async def delete_file(client: PipeClient, account: Account, file_name: str) -> None:
    payload = {"user_id": account.user_id, "file_name": file_name}
    try:
        await client.request(FILES["delete"]["method"], FILES["delete"]["path"], account=account, json=payload)
    except httpx.HTTPError as exc:
        raise TransferError("delete", file_name, str(exc) or exc.__class__.__name__) from exc


async def create_public_link(client: PipeClient, account: Account, file_name: str) -> PublicLink:
    payload = {"user_id": account.user_id, "file_name": file_name}
    try:
        resp = await client.request(
            FILES["public_link"]["method"], FILES["public_link"]["path"], account=account, json=payload
        )
        body = _json_or_raise(resp)
    except (httpx.HTTPError, ValueError) as exc:
        raise TransferError("share", file_name, str(exc) or exc.__class__.__name__) from exc

    share_url = _pick(body, "share_url", "shareUrl")
    if not share_url:
        link_hash = _pick(body, "link_hash", "linkHash")
        if not link_hash:
            raise TransferError("share", file_name, "Missing link_hash in response")
        share_url = f"{client.base_url}{PUBLIC['public_download']['path']}?hash={link_hash}"
    return PublicLink(share_url=str(share_url), file_name=file_name)


class PipeRemote:
    """RemoteStorageClient backed by the firestarter HTTP API."""

    def __init__(self, client: PipeClient, upload_chunk_size: int = 64 * 1024) -> None:
        self.client = client
        self.upload_chunk_size = upload_chunk_size

    async def login(self, username: str, password: str) -> Account:
        return await login(self.client, username, password)

    async def create_account(self, username: str, password: str) -> Account:
        return await create_account(self.client, username, password)

    async def get_balance(self, account: Account) -> Balance:
        return await get_balance(self.client, account)

    async def upload_file(
        self,
        account: Account,
        data: bytes,
        file_name: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> FileRecord:
        return await upload_file(self.client, account, data, file_name, on_progress, self.upload_chunk_size)

    async def download_file(self, account: Account, file_name: str) -> bytes:
        return await download_file(self.client, account, file_name)

    async def delete_file(self, account: Account, file_name: str) -> None:
        await delete_file(self.client, account, file_name)

    async def create_public_link(self, account: Account, file_name: str) -> PublicLink:
        return await create_public_link(self.client, account, file_name)

    async def close(self) -> None:
        await self.client.close()
