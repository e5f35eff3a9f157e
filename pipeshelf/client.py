from typing import Any, Dict, Optional
import json

try:
    import httpx
except ModuleNotFoundError as exc:  # pragma: no cover - user environment dependency
    raise ModuleNotFoundError(
        "Missing dependency 'httpx'. Install with: pip install httpx"
    ) from exc

from endpoints import BASE_URL
from .models import Account
from .utils import DailyLog, get_logger, redact_payload, redacted_headers, truncate_text


class PipeClient:
    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        http_log_path: Optional[str] = None,
        rotate_http_log: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger('pipeshelf')
        self.http_log = DailyLog(http_log_path, rotate_daily=rotate_http_log) if http_log_path else None
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=transport)

    @staticmethod
    def auth_headers(account: Account) -> Dict[str, str]:
        return {
            "X-User-Id": account.user_id,
            "X-User-App-Key": account.user_app_key,
        }

    def _log_line(self, line: str) -> None:
        if self.http_log is None:
            return
        try:
            self.http_log.write(line)
        except OSError as exc:
            self.logger.debug("HTTP log write failed: %s", exc)

    async def request(
        self,
        method: str,
        path: str,
        account: Optional[Account] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        url = path if path.startswith('http') else f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if account is not None:
            headers.update(self.auth_headers(account))
        headers.update(kwargs.get('headers', {}) or {})
        kwargs['headers'] = headers
        redacted = redacted_headers(headers)
        payload = None
        if "json" in kwargs:
            payload = redact_payload(kwargs.get("json"))
        elif "params" in kwargs:
            payload = redact_payload(kwargs.get("params"))
        self.logger.debug('HTTP %s %s headers=%s', method, url, redacted)
        if payload is not None:
            self._log_line(f"{method} {url} headers={redacted} payload={payload}")
        else:
            self._log_line(f"{method} {url} headers={redacted}")
        resp = await self._client.request(method, url, **kwargs)
        response_body: Any = None
        content_type = resp.headers.get("content-type", "")
        if "json" in content_type:
            try:
                response_body = redact_payload(resp.json())
            except ValueError:
                response_body = truncate_text(resp.text or "")
        elif content_type.startswith("text/"):
            response_body = truncate_text(resp.text or "")
        else:
            response_body = f"<{len(resp.content)} bytes>"
        self._log_line(
            f"{method} {url} status={resp.status_code} response={json.dumps(response_body, ensure_ascii=True)}",
        )
        resp.raise_for_status()
        return resp

    async def close(self) -> None:
        await self._client.aclose()
