# tests/test_utilities.py
"""
Tests for utility modules: backup, ssh config parsing, exceptions, logging
and helpers.

These tests cover utility functions and classes that can be tested
without a running GLib main loop.
"""

import os
import sys
import threading

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


class TestBackupManager:
    """Tests for BackupManager functionality."""

    def test_backup_manager_initialization(self):
        """Test BackupManager initializes with its retention and a lock."""
        from sessiontree.utils.backup import BackupManager

        manager = BackupManager(max_backups=3)
        assert manager.max_backups == 3
        assert isinstance(manager._lock, type(threading.RLock()))

    def test_create_backup_copies_file(self, tmp_path):
        """Test a backup is a copy named after the original."""
        from sessiontree.utils.backup import BackupManager

        source = tmp_path / "sessions.json"
        source.write_text('{"a": 1}')
        backup = BackupManager().create_backup(source)

        assert backup is not None
        assert backup.name.startswith("sessions.") and backup.suffix == ".json"
        assert backup.read_text() == '{"a": 1}'

    def test_create_backup_missing_file(self, tmp_path):
        """Test nothing is backed up when the file does not exist."""
        from sessiontree.utils.backup import BackupManager

        assert BackupManager().create_backup(tmp_path / "missing.json") is None

    def test_backups_in_same_instant_do_not_collide(self, tmp_path, monkeypatch):
        """Test two backups with the same timestamp get distinct names."""
        from sessiontree.utils import backup as backup_module
        from sessiontree.utils.backup import BackupManager

        class FrozenDatetime:
            @staticmethod
            def now():
                from datetime import datetime

                return datetime(2024, 1, 1, 12, 0, 0)

        monkeypatch.setattr(backup_module, "datetime", FrozenDatetime)
        source = tmp_path / "sessions.json"
        source.write_text("{}")
        manager = BackupManager()
        first = manager.create_backup(source)
        second = manager.create_backup(source)
        assert first != second
        assert len(manager.list_backups(source)) == 2

    def test_list_backups_ignores_other_files(self, tmp_path):
        """Test only backups of the given file are listed, newest first."""
        from sessiontree.utils.backup import BackupManager

        source = tmp_path / "sessions.json"
        source.write_text("{}")
        (tmp_path / "sessions.20240101_000000_000000.json").write_text("{}")
        (tmp_path / "sessions.20240102_000000_000000.json").write_text("{}")
        (tmp_path / "settings.20240103_000000_000000.json").write_text("{}")
        (tmp_path / "sessions.json.tmp").write_text("{}")

        names = [p.name for p in BackupManager().list_backups(source)]
        assert names == [
            "sessions.20240102_000000_000000.json",
            "sessions.20240101_000000_000000.json",
        ]


class TestSSHConfigParser:
    """Tests for the OpenSSH config parser."""

    def test_parse_hosts_and_options(self, tmp_path):
        """Test concrete aliases are returned with their first option values."""
        from sessiontree.utils.ssh_config_parser import SSHConfigParser

        config = tmp_path / "config"
        config.write_text(
            "# comment\n"
            "Host jump\n"
            "    HostName=jump.example.com\n"
            "    HostName ignored.example.com\n"
            "    Port 2200\n"
            "Host app-* !app-test\n"
            "    User nobody\n"
            "Host app\n"
            "    ProxyJump jump\n"
        )
        hosts = SSHConfigParser().parse(config)
        assert [h.alias for h in hosts] == ["jump", "app"]
        jump, app = hosts
        assert (jump.hostname, jump.port, jump.target) == ("jump.example.com", 2200, "jump.example.com")
        assert app.proxy_jump == "jump"
        assert app.target == "app"

    def test_include_directive(self, tmp_path):
        """Test included files contribute their hosts."""
        from sessiontree.utils.ssh_config_parser import SSHConfigParser

        (tmp_path / "conf.d").mkdir()
        (tmp_path / "conf.d" / "extra").write_text("Host extra\n    HostName 10.1.1.1\n")
        config = tmp_path / "config"
        config.write_text("Include conf.d/*\nHost main\n    HostName 10.0.0.1\n")

        aliases = [h.alias for h in SSHConfigParser().parse(config)]
        assert aliases == ["extra", "main"]

    def test_duplicate_alias_keeps_first(self, tmp_path):
        """Test a repeated alias is only reported once."""
        from sessiontree.utils.ssh_config_parser import SSHConfigParser

        config = tmp_path / "config"
        config.write_text("Host a\n    Port 1\nHost a\n    Port 2\n")
        hosts = SSHConfigParser().parse(config)
        assert len(hosts) == 1 and hosts[0].port == 1


class TestExceptions:
    """Tests for custom exception classes."""

    def test_storage_write_error(self):
        """Test StorageWriteError creation."""
        from sessiontree.utils.exceptions import ErrorCategory, StorageWriteError

        error = StorageWriteError("/path/to/file", "Permission denied")
        assert "/path/to/file" in str(error)
        assert error.category == ErrorCategory.STORAGE
        assert error.user_message == "Could not save data"

    def test_storage_corrupted_error_details(self):
        """Test StorageCorruptedError records the corruption details."""
        from sessiontree.utils.exceptions import StorageCorruptedError

        error = StorageCorruptedError("/path/to/file", "bad json")
        assert error.details["corruption_details"] == "bad json"
        assert error.to_dict()["type"] == "StorageCorruptedError"

    def test_invalid_path_error(self):
        """Test InvalidPathError is a validation error for the path field."""
        from sessiontree.utils.exceptions import InvalidPathError, ValidationError

        error = InvalidPathError("a//", "empty name")
        assert isinstance(error, ValidationError)
        assert error.field == "path"
        assert error.reason == "empty name"

    def test_handle_exception_converts(self):
        """Test foreign exceptions are wrapped and can be re-raised."""
        from sessiontree.utils.exceptions import SessionTreeError, handle_exception

        converted = handle_exception(KeyError("x"), "lookup")
        assert isinstance(converted, SessionTreeError)
        assert converted.details["original_type"] == "KeyError"

        with pytest.raises(SessionTreeError):
            handle_exception(ValueError("bad"), "parse", reraise=True)


class TestLoggerUtilities:
    """Tests for logger utility functions."""

    def test_get_logger_named(self):
        """Test getting a named logger."""
        from sessiontree.utils.logger import get_logger

        logger = get_logger("test.module")
        assert logger is get_logger("test.module")

    def test_set_console_level_by_name(self):
        """Test console level accepts level names."""
        from sessiontree.utils.logger import LogLevel, get_log_info, set_console_level

        set_console_level("warning")
        assert get_log_info()["console_level"] == "WARNING"
        set_console_level(LogLevel.INFO)

    def test_log_session_event_callable(self):
        """Test session events log without raising."""
        from sessiontree.utils.logger import log_session_event

        log_session_event("folder_created", "Production")
        log_session_event("created", "web", "ssh://web:22")


class TestHelpers:
    """Tests for helper functions."""

    def test_generate_unique_name(self):
        """Test unique name generation."""
        from sessiontree.helpers import generate_unique_name

        assert generate_unique_name("Test", []) == "Test"
        assert generate_unique_name("Test", ["Test"]) == "Test (1)"
        assert generate_unique_name("Test", ["Test", "Test (1)"]) == "Test (2)"

    def test_translation_function_exists(self):
        """Test that translation function is available."""
        from sessiontree.utils.translation_utils import _

        assert callable(_)
        assert _("Sessions") == "Sessions"
