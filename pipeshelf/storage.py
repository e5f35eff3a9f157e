import json
import os
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from .utils import get_logger


class JsonFileStore:
    """Durable key-value store: one JSON document per key under ``root``.

    Writes go through a temp file and ``os.replace`` so a reader never sees a
    half-written value. Values are last-write-wins.
    """

    def __init__(self, root: str) -> None:
        self.root = Path(root)
        self.logger = get_logger("pipeshelf.storage")

    def _path_for(self, key: str) -> Path:
        if not key:
            raise ValueError("Storage key must not be empty")
        return self.root / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            self.logger.warning("Ignoring corrupt value for key %s (%s)", key, path)
            return None

    def set(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f"{path.name}.tmp")
        try:
            tmp.write_text(json.dumps(value, indent=2, ensure_ascii=True) + "\n", encoding="utf-8")
            os.chmod(tmp, 0o600)
            os.replace(tmp, path)
        except OSError:
            if tmp.exists():
                tmp.unlink()
            raise
        self.logger.debug("Stored key %s -> %s", key, path)

    def delete(self, key: str) -> None:
        try:
            self._path_for(key).unlink()
        except FileNotFoundError:
            return
        self.logger.debug("Deleted key %s", key)

    def __contains__(self, key: str) -> bool:
        return self._path_for(key).exists()
