import os
import tempfile
from dataclasses import dataclass
from typing import Optional

from endpoints import BASE_URL


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value not in ("0", "false", "FALSE")


@dataclass
class Settings:
    base_url: str = BASE_URL
    data_dir: str = ".pipeshelf"
    preview_dir: str = os.path.join(tempfile.gettempdir(), "pipeshelf_previews")
    timeout: float = 30.0
    upload_chunk_size: int = 64 * 1024
    http_log_path: Optional[str] = None
    http_log_rotate: bool = True
    previews_enabled: bool = True
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        http_log = os.getenv("PIPESHELF_HTTP_LOG")
        if http_log is None:
            http_log = os.path.join(os.getcwd(), "pipeshelf_http.log")
        return cls(
            base_url=os.getenv("PIPESHELF_BASE_URL", BASE_URL),
            data_dir=os.getenv("PIPESHELF_DATA_DIR", ".pipeshelf"),
            preview_dir=os.getenv(
                "PIPESHELF_PREVIEW_DIR",
                os.path.join(tempfile.gettempdir(), "pipeshelf_previews"),
            ),
            timeout=_env_float("PIPESHELF_TIMEOUT", 30.0),
            upload_chunk_size=_env_int("PIPESHELF_UPLOAD_CHUNK", 64 * 1024),
            http_log_path=http_log or None,
            http_log_rotate=_env_bool("PIPESHELF_HTTP_LOG_ROTATE", True),
            previews_enabled=_env_bool("PIPESHELF_PREVIEWS", True),
            debug=_env_bool("PIPESHELF_DEBUG", False),
        )
