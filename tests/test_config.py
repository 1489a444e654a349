"""Tests for MsgVault configuration."""

import json
import os
from pathlib import Path

import pytest

from msgvault.config import BackupConfig, Config, RestoreConfig, get_config, reload_config
from msgvault.constants import DEFAULT_GROUP_PAUSE_MS, DEFAULT_RECORD_PAUSE_MS


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove MSGVAULT_* variables so tests see only what they set."""
    for name in list(os.environ):
        if name.startswith("MSGVAULT_"):
            monkeypatch.delenv(name)


class TestDefaults:
    """Tests for default values."""

    def test_sub_configs(self):
        config = Config()

        assert isinstance(config.backup, BackupConfig)
        assert isinstance(config.restore, RestoreConfig)
        assert config.restore.record_pause_ms == DEFAULT_RECORD_PAUSE_MS
        assert config.restore.group_pause_ms == DEFAULT_GROUP_PAUSE_MS

    def test_paths_coerced(self, tmp_path: Path):
        config = Config(backup_dir=str(tmp_path / "backups"))
        assert config.backup_dir == tmp_path / "backups"


class TestLoad:
    """Tests for Config.load."""

    def test_missing_file(self, tmp_path: Path):
        """A missing file should give defaults."""
        config = Config.load(tmp_path / "missing.json")
        assert config.log_level == "WARNING"

    def test_file_values(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "backup_dir": str(tmp_path / "snapshots"),
            "backup": {"device_label": "Pixel"},
            "restore": {"pause_every": 25},
        }))

        config = Config.load(path)

        assert config.backup_dir == tmp_path / "snapshots"
        assert config.backup.device_label == "Pixel"
        assert config.restore.pause_every == 25

    def test_malformed_file(self, tmp_path: Path):
        """A malformed file should be ignored with a warning."""
        path = tmp_path / "config.json"
        path.write_text("{ nope")

        config = Config.load(path)

        assert config.backup.product_name == "MsgVault"

    def test_unknown_keys_ignored(self, tmp_path: Path):
        """Settings from a newer version should not break loading."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"restore": {"pause_every": 3, "turbo": True}}))

        config = Config.load(path)

        assert config.restore.pause_every == 3
        assert not hasattr(config.restore, "turbo")

    def test_non_object_file(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")

        assert Config.load(path).log_level == "WARNING"

    def test_env_overrides(self, tmp_path: Path, monkeypatch):
        """Environment variables should win over the file."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"restore": {"record_pause_ms": 5}}))
        monkeypatch.setenv("MSGVAULT_RECORD_PAUSE_MS", "0")
        monkeypatch.setenv("MSGVAULT_DEVICE_DIR", str(tmp_path / "device"))
        monkeypatch.setenv("MSGVAULT_LOG_TO_FILE", "yes")

        config = Config.load(path)

        assert config.restore.record_pause_ms == 0
        assert config.device_dir == tmp_path / "device"
        assert config.log_to_file is True


class TestSave:
    """Tests for saving configuration."""

    def test_round_trip(self, tmp_path: Path, test_config: Config):
        path = tmp_path / "saved" / "config.json"

        test_config.save(path)
        loaded = Config.load(path)

        assert loaded.to_dict() == test_config.to_dict()

    def test_ensure_directories(self, test_config: Config):
        test_config.ensure_directories()

        assert test_config.backup_dir.is_dir()
        assert test_config.device_dir.is_dir()
        assert test_config.log_dir.is_dir()


class TestGlobalConfig:
    """Tests for the process-wide settings accessors."""

    def test_reload_replaces_cached(self, tmp_path: Path, test_config: Config):
        path = tmp_path / "config.json"
        test_config.save(path)

        loaded = reload_config(path)

        assert get_config() is loaded
        assert loaded.device_dir == test_config.device_dir
