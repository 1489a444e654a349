"""
Constants used throughout the MsgVault package.

This module contains all magic numbers, default values, and constant
strings used by various components. Import from here rather than
hardcoding values elsewhere.
"""

from pathlib import Path

# Version info
VERSION = "0.1.0"
APP_NAME = "MsgVault"
APP_ID = "io.msgvault.app"

# Default paths
DEFAULT_CONFIG_DIR = Path.home() / ".msgvault"
DEFAULT_BACKUP_DIR = DEFAULT_CONFIG_DIR / "backups"
DEFAULT_DEVICE_DIR = DEFAULT_CONFIG_DIR / "device"
DEFAULT_LOG_DIR = DEFAULT_CONFIG_DIR / "logs"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"
LOG_FILE_NAME = "msgvault.log"

# Snapshot format
SNAPSHOT_FORMAT_VERSION = 1
SNAPSHOT_EXTENSION = ".json"
SNAPSHOT_DATE_FORMAT = "%Y-%m-%d_%H-%M"
DEFAULT_JSON_INDENT = 2

# Device store database files (one per store)
MESSAGE_DB_NAME = "mmssms.db"
CALL_LOG_DB_NAME = "calllog.db"
CONTACTS_DB_NAME = "contacts2.db"

# Setting holding the package that owns the message write role
DEFAULT_SMS_SETTING = "sms_default_application"

# Placeholder prefix for records without an address/number
UNKNOWN_ADDRESS_PREFIX = "unknown_"

# Phone number matching
PHONE_TAIL_MATCH_DIGITS = 8
PHONE_LOCAL_PREFIX_MIN_LENGTH = 10
PHONE_COUNTRY_CODES = ("+86", "86")

# Call log read windows
DEFAULT_CALL_LOG_WINDOWS = 4
DEFAULT_CALL_LOG_LOOKBACK_DAYS = 365

# Restore pacing and progress
DEFAULT_PROGRESS_UPDATES = 20
DEFAULT_PAUSE_EVERY = 10  # records
DEFAULT_RECORD_PAUSE_MS = 50
DEFAULT_GROUP_PAUSE_MS = 100

# Progress phases
PHASE_PREPARE = "prepare"
PHASE_MESSAGES = "messages"
PHASE_CALL_LOGS = "call_logs"
PHASE_CONTACTS = "contacts"
PHASE_COMPLETE = "complete"
PHASES = (PHASE_PREPARE, PHASE_MESSAGES, PHASE_CALL_LOGS, PHASE_CONTACTS, PHASE_COMPLETE)

# Record categories
CATEGORY_MESSAGES = "messages"
CATEGORY_CALL_LOGS = "call_logs"
CATEGORY_CONTACTS = "contacts"
CATEGORIES = (CATEGORY_MESSAGES, CATEGORY_CALL_LOGS, CATEGORY_CONTACTS)

# Milliseconds per day
MILLIS_PER_DAY = 24 * 60 * 60 * 1000
