"""Tests for small helpers: formatting, redaction, logging, error text, storage, settings."""

import logging
import os
import tarfile
from datetime import datetime

import pytest

from pipeshelf.config import Settings
from pipeshelf.errors import AuthError, AuthErrorKind, TransferError, ValidationError, describe_error
from pipeshelf.storage import JsonFileStore
from pipeshelf.utils import DailyLog, format_bytes, get_logger, redact_payload, redacted_headers


@pytest.mark.parametrize("num,expected", [
    (0, "0 Bytes"),
    (512, "512 Bytes"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (5 * 1024 * 1024, "5 MB"),
    (3 * 1024 ** 3, "3 GB"),
])
def test_format_bytes(num, expected):
    assert format_bytes(num) == expected


def test_redaction():
    payload = {"username": "alice123", "password": "x", "nested": [{"user_app_key": "k"}]}
    assert redact_payload(payload) == {"username": "alice123", "password": "***", "nested": [{"user_app_key": "***"}]}
    headers = redacted_headers({"X-User-App-Key": "k", "X-User-Id": "u"})
    assert headers == {"X-User-App-Key": "[REDACTED]", "X-User-Id": "u"}


def test_describe_error_covers_every_auth_kind():
    for kind in AuthErrorKind:
        assert describe_error(AuthError(kind))
    assert describe_error(ValidationError("Username is required", "username")) == "Username is required"
    assert "delete photo.png failed" in describe_error(TransferError("delete", "photo.png", "HTTP 500"))


def test_transfer_error_rejects_unknown_operation():
    with pytest.raises(ValueError):
        TransferError("rename", "a.txt", "nope")


class TestJsonFileStore:

    def test_set_get_delete(self, tmp_path):
        store = JsonFileStore(str(tmp_path / "kv"))
        assert store.get("account") is None
        store.set("account", {"username": "alice123"})
        assert store.get("account") == {"username": "alice123"}
        assert "account" in store
        store.delete("account")
        store.delete("account")
        assert store.get("account") is None

    def test_keys_are_isolated_files(self, tmp_path):
        store = JsonFileStore(str(tmp_path / "kv"))
        store.set("files_alice123", [1])
        store.set("files_bob/../x", [2])
        assert store.get("files_alice123") == [1]
        assert store.get("files_bob/../x") == [2]
        assert sorted(os.listdir(tmp_path / "kv")) == ["files_alice123.json", "files_bob%2F..%2Fx.json"]

    @pytest.mark.skipif(os.name != "posix", reason="file modes are POSIX only")
    def test_private_file_mode(self, tmp_path):
        store = JsonFileStore(str(tmp_path / "kv"))
        store.set("account", {"password": "x"})
        mode = os.stat(tmp_path / "kv" / "account.json").st_mode & 0o777
        assert mode == 0o600


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("PIPESHELF_BASE_URL", "https://pipe.test")
    monkeypatch.setenv("PIPESHELF_DATA_DIR", str(tmp_path / "d"))
    monkeypatch.setenv("PIPESHELF_TIMEOUT", "oops")
    monkeypatch.setenv("PIPESHELF_HTTP_LOG", "")
    monkeypatch.setenv("PIPESHELF_PREVIEWS", "0")
    settings = Settings.from_env()
    assert settings.base_url == "https://pipe.test"
    assert settings.data_dir == str(tmp_path / "d")
    assert settings.timeout == 30.0
    assert settings.http_log_path is None
    assert settings.previews_enabled is False


def test_child_loggers_share_the_package_handler():
    root = logging.getLogger("pipeshelf")
    session_logger = get_logger("pipeshelf.session")
    get_logger("pipeshelf.index")
    get_logger("pipeshelf")
    assert session_logger.handlers == []
    assert len(root.handlers) == 1
    previous = root.level
    try:
        get_logger("pipeshelf", debug=True)
        assert session_logger.isEnabledFor(logging.DEBUG)
        get_logger("pipeshelf", debug=False)
        assert not session_logger.isEnabledFor(logging.DEBUG)
        assert session_logger.isEnabledFor(logging.INFO)
    finally:
        root.setLevel(previous)


def _set_mtime(path, when):
    stamp = when.timestamp()
    os.utime(path, (stamp, stamp))


def _messages(path):
    return [line.split("] ", 1)[1] for line in path.read_text(encoding="utf-8").splitlines()]


class TestDailyLog:

    def test_same_day_appends(self, tmp_path):
        path = tmp_path / "http.log"
        log = DailyLog(str(path))
        log.write("first")
        log.write("second\n")
        assert _messages(path) == ["first", "second"]
        assert log.archives() == []

    def test_log_from_an_earlier_day_is_archived(self, tmp_path):
        path = tmp_path / "http.log"
        path.write_text("[2025-01-01 10:00:00] old line\n", encoding="utf-8")
        _set_mtime(path, datetime(2025, 1, 1, 10, 0))

        log = DailyLog(str(path))
        log.write("new line", now=datetime(2025, 1, 3, 9, 0))

        archive = tmp_path / "http.log.2025-01-01.tar.gz"
        assert archive.exists()
        with tarfile.open(archive, "r:gz") as tar:
            assert tar.getnames() == ["http.log.2025-01-01"]
            assert b"old line" in tar.extractfile("http.log.2025-01-01").read()
        assert _messages(path) == ["new line"]

    def test_old_archives_are_pruned(self, tmp_path):
        for name in (
            "http.log.2024-12-20.tar.gz",
            "http.log.2024-12-30-1.tar.gz",
            "other.log.2024-12-01.tar.gz",
        ):
            (tmp_path / name).write_bytes(b"")

        log = DailyLog(str(tmp_path / "http.log"), keep_days=7)
        log.write("day one", now=datetime(2025, 1, 1, 23, 0))
        log.write("day two", now=datetime(2025, 1, 2, 0, 5))

        assert [p.name for p in log.archives()] == [
            "http.log.2024-12-30-1.tar.gz",
            "http.log.2025-01-01.tar.gz",
        ]
        assert (tmp_path / "other.log.2024-12-01.tar.gz").exists()
        assert _messages(tmp_path / "http.log") == ["day two"]

    def test_archive_name_taken(self, tmp_path):
        (tmp_path / "http.log.2025-01-01.tar.gz").write_bytes(b"")
        log = DailyLog(str(tmp_path / "http.log"))
        log.write("day one", now=datetime(2025, 1, 1, 12, 0))
        log.write("day two", now=datetime(2025, 1, 2, 12, 0))
        assert (tmp_path / "http.log.2025-01-01-1.tar.gz").exists()

    def test_rotation_disabled(self, tmp_path):
        path = tmp_path / "http.log"
        log = DailyLog(str(path), rotate_daily=False)
        log.write("day one", now=datetime(2025, 1, 1, 12, 0))
        log.write("day two", now=datetime(2025, 1, 2, 12, 0))
        assert _messages(path) == ["day one", "day two"]
        assert log.archives() == []
