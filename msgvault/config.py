"""
MsgVault settings.

Settings come from three layers, highest priority first: ``MSGVAULT_*``
environment variables (a ``.env`` file in the working directory is read
into the environment first), the JSON config file, and the defaults in
:mod:`msgvault.constants`.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv

from msgvault.constants import (
    APP_ID,
    APP_NAME,
    DEFAULT_BACKUP_DIR,
    DEFAULT_CALL_LOG_LOOKBACK_DAYS,
    DEFAULT_CALL_LOG_WINDOWS,
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE,
    DEFAULT_DEVICE_DIR,
    DEFAULT_GROUP_PAUSE_MS,
    DEFAULT_JSON_INDENT,
    DEFAULT_LOG_DIR,
    DEFAULT_PAUSE_EVERY,
    DEFAULT_PROGRESS_UPDATES,
    DEFAULT_RECORD_PAUSE_MS,
)

logger = logging.getLogger(__name__)

PATH_FIELDS = ("config_dir", "backup_dir", "device_dir", "log_dir")

# Environment variable -> dotted settings key
ENV_OVERRIDES = {
    "MSGVAULT_CONFIG_DIR": "config_dir",
    "MSGVAULT_BACKUP_DIR": "backup_dir",
    "MSGVAULT_DEVICE_DIR": "device_dir",
    "MSGVAULT_LOG_DIR": "log_dir",
    "MSGVAULT_LOG_LEVEL": "log_level",
    "MSGVAULT_LOG_TO_FILE": "log_to_file",
    "MSGVAULT_DEVICE_LABEL": "backup.device_label",
    "MSGVAULT_APP_ID": "backup.app_id",
    "MSGVAULT_CALL_LOG_WINDOWS": "backup.call_log_windows",
    "MSGVAULT_CALL_LOG_LOOKBACK_DAYS": "backup.call_log_lookback_days",
    "MSGVAULT_PROGRESS_UPDATES": "restore.progress_updates",
    "MSGVAULT_PAUSE_EVERY": "restore.pause_every",
    "MSGVAULT_RECORD_PAUSE_MS": "restore.record_pause_ms",
    "MSGVAULT_GROUP_PAUSE_MS": "restore.group_pause_ms",
}


@dataclass
class BackupConfig:
    """Settings for snapshot creation."""

    product_name: str = APP_NAME
    device_label: str = field(default_factory=lambda: platform.node() or "device")
    app_id: str = APP_ID
    call_log_windows: int = DEFAULT_CALL_LOG_WINDOWS
    call_log_lookback_days: int = DEFAULT_CALL_LOG_LOOKBACK_DAYS
    json_indent: Optional[int] = DEFAULT_JSON_INDENT


@dataclass
class RestoreConfig:
    """Settings for replaying snapshots into the device stores."""

    progress_updates: int = DEFAULT_PROGRESS_UPDATES
    pause_every: int = DEFAULT_PAUSE_EVERY
    record_pause_ms: int = DEFAULT_RECORD_PAUSE_MS
    group_pause_ms: int = DEFAULT_GROUP_PAUSE_MS


def _section(cls, data: Any, name: str):
    """Build a settings section, dropping keys it does not know."""
    if not isinstance(data, dict):
        return cls()
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning(f"Ignoring unknown {name} settings: {', '.join(unknown)}")
    return cls(**{k: v for k, v in data.items() if k in known})


def _coerce(value: str) -> Any:
    """Turn an environment string into a bool, an int or itself."""
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    try:
        return int(lowered)
    except ValueError:
        return value


@dataclass
class Config:
    """
    All MsgVault settings.

    Example:
        config = Config.load()
        engine = BackupEngine.from_config(config)

        # Point at another device directory for one run
        config = Config.load(Path("/tmp/msgvault.json"))
    """

    config_dir: Path = field(default_factory=lambda: DEFAULT_CONFIG_DIR)
    backup_dir: Path = field(default_factory=lambda: DEFAULT_BACKUP_DIR)
    device_dir: Path = field(default_factory=lambda: DEFAULT_DEVICE_DIR)
    log_dir: Path = field(default_factory=lambda: DEFAULT_LOG_DIR)

    backup: BackupConfig = field(default_factory=BackupConfig)
    restore: RestoreConfig = field(default_factory=RestoreConfig)

    log_level: str = "WARNING"
    log_to_file: bool = False

    def __post_init__(self) -> None:
        for name in PATH_FIELDS:
            setattr(self, name, Path(getattr(self, name)).expanduser())

    @classmethod
    def load(cls, config_path: Optional[Union[Path, str]] = None) -> Config:
        """
        Read settings from the config file and the environment.

        Args:
            config_path: Config file to read. Defaults to
                ``~/.msgvault/config.json``. A missing or unreadable file
                falls back to defaults.

        Returns:
            The merged settings.
        """
        load_dotenv()

        path = Path(config_path) if config_path else DEFAULT_CONFIG_FILE
        data: dict[str, Any] = {}
        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                logger.debug(f"Loaded config from {path}")
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Failed to load config from {path}: {e}")
            if not isinstance(data, dict):
                logger.warning(f"Config file {path} does not hold an object, ignoring it")
                data = {}

        for env_var, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            section, _, name = key.rpartition(".")
            target = data.setdefault(section, {}) if section else data
            target[name] = _coerce(value)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Build settings from a plain dictionary, as written by :meth:`to_dict`."""
        kwargs: dict[str, Any] = {
            name: data[name] for name in PATH_FIELDS if data.get(name)
        }
        if "log_level" in data:
            kwargs["log_level"] = str(data["log_level"]).upper()
        if "log_to_file" in data:
            kwargs["log_to_file"] = bool(data["log_to_file"])

        return cls(
            backup=_section(BackupConfig, data.get("backup"), "backup"),
            restore=_section(RestoreConfig, data.get("restore"), "restore"),
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a JSON-ready dictionary."""
        data: dict[str, Any] = {name: str(getattr(self, name)) for name in PATH_FIELDS}
        data["backup"] = asdict(self.backup)
        data["restore"] = asdict(self.restore)
        data["log_level"] = self.log_level
        data["log_to_file"] = self.log_to_file
        return data

    def save(self, config_path: Optional[Union[Path, str]] = None) -> None:
        """Write settings to ``config_path`` (default ``~/.msgvault/config.json``)."""
        path = Path(config_path) if config_path else DEFAULT_CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        logger.info(f"Saved config to {path}")

    def ensure_directories(self) -> None:
        """Create every configured directory that does not exist yet."""
        for name in PATH_FIELDS:
            getattr(self, name).mkdir(parents=True, exist_ok=True)


_config: Optional[Config] = None


def get_config() -> Config:
    """Get the process-wide settings, loading them on first use."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def reload_config(config_path: Optional[Path] = None) -> Config:
    """Discard the cached settings and read them again."""
    global _config
    _config = Config.load(config_path)
    return _config
