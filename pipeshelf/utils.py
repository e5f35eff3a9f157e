import logging
import os
import re
import tarfile
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

ROOT_LOGGER = "pipeshelf"


def get_logger(name: str, debug: Optional[bool] = None) -> logging.Logger:
    """Return ``name``'s logger; only the package root logger owns a handler.

    Child loggers such as ``pipeshelf.session`` propagate to the root, so
    one level switch on the root covers the whole package.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter('%(levelname)s %(message)s')
        handler.setFormatter(formatter)
        root.addHandler(handler)
    if debug is None and root.level == logging.NOTSET:
        debug = os.getenv("PIPESHELF_DEBUG", "0") in ("1", "true", "TRUE")
    if debug is not None:
        root.setLevel(logging.DEBUG if debug else logging.INFO)
    return logging.getLogger(name)


def redacted_headers(headers: Dict[str, Any]) -> Dict[str, Any]:
    redacted = {}
    for k, v in headers.items():
        if k.lower() in ('authorization', 'cookie', 'x-user-app-key'):
            redacted[k] = '[REDACTED]'
        else:
            redacted[k] = v
    return redacted


def redact_payload(payload: Any) -> Any:
    if not isinstance(payload, (dict, list)):
        return payload
    secret_keys = (
        "password",
        "app_key",
        "appkey",
        "token",
        "authorization",
        "secret",
        "private",
    )
    if isinstance(payload, list):
        return [redact_payload(item) for item in payload]
    redacted: Dict[str, Any] = {}
    for key, value in payload.items():
        key_l = str(key).lower()
        if any(k in key_l for k in secret_keys):
            redacted[key] = "***"
        else:
            redacted[key] = redact_payload(value)
    return redacted


class DailyLog:
    """Append-only text log that is archived once the calendar day changes.

    Lines written on an earlier day are packed into
    ``<name>.<YYYY-MM-DD>.tar.gz`` next to the log before the first line of
    the new day goes in. Archives older than ``keep_days`` are deleted.
    """

    ARCHIVE_SUFFIX = ".tar.gz"

    def __init__(self, path: str, rotate_daily: bool = True, keep_days: int = 7) -> None:
        self.path = Path(path)
        self.rotate_daily = rotate_daily
        self.keep_days = keep_days
        self._day: Optional[date] = None
        self._archive_re = re.compile(
            rf"{re.escape(self.path.name)}\.(\d{{4}}-\d{{2}}-\d{{2}})(?:-\d+)?{re.escape(self.ARCHIVE_SUFFIX)}"
        )

    def _written_on(self) -> Optional[date]:
        if self._day is None:
            try:
                self._day = datetime.fromtimestamp(self.path.stat().st_mtime).date()
            except FileNotFoundError:
                return None
        return self._day

    def _free_archive_path(self, day: date) -> Path:
        stem = f"{self.path.name}.{day.isoformat()}"
        archive = self.path.with_name(stem + self.ARCHIVE_SUFFIX)
        n = 1
        while archive.exists():
            archive = self.path.with_name(f"{stem}-{n}{self.ARCHIVE_SUFFIX}")
            n += 1
        return archive

    def roll_over(self, today: date) -> Optional[Path]:
        """Archive the current log if it holds lines from before ``today``."""
        day = self._written_on()
        if day is None or day >= today:
            return None
        archive = self._free_archive_path(day)
        try:
            with tarfile.open(archive, "w:gz") as tar:
                tar.add(str(self.path), arcname=f"{self.path.name}.{day.isoformat()}")
        except OSError:
            archive.unlink(missing_ok=True)
            raise
        self.path.unlink()
        self._day = None
        self.prune(today)
        return archive

    def archives(self) -> List[Path]:
        if not self.path.parent.is_dir():
            return []
        return sorted(p for p in self.path.parent.iterdir() if self._archive_re.fullmatch(p.name))

    def prune(self, today: date) -> List[Path]:
        if self.keep_days <= 0:
            return []
        removed = []
        for archive in self.archives():
            match = self._archive_re.fullmatch(archive.name)
            try:
                day = date.fromisoformat(match.group(1))
            except ValueError:
                continue
            if (today - day).days > self.keep_days:
                archive.unlink(missing_ok=True)
                removed.append(archive)
        return removed

    def write(self, line: str, now: Optional[datetime] = None) -> None:
        now = now or datetime.now()
        if self.rotate_daily:
            self.roll_over(now.date())
        safe_line = line.rstrip("\n")
        with open(self.path, "a", encoding="utf-8") as handle:
            handle.write(f"[{now:%Y-%m-%d %H:%M:%S}] {safe_line}\n")
        self._day = now.date()


def truncate_text(text: str, limit: int = 2000) -> str:
    if text is None:
        return ""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...[truncated {len(text) - limit} chars]"


def format_bytes(num: int) -> str:
    if num <= 0:
        return "0 Bytes"
    units = ['Bytes', 'KB', 'MB', 'GB']
    size = float(num)
    i = 0
    while size >= 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    return f"{round(size, 2):g} {units[i]}"
