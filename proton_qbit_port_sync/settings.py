# INI configuration for the port sync service
# The file is re-read before every reconciliation pass so edits apply without a restart

import configparser
import logging
import os
import re

from . import APP_NAME

logger = logging.getLogger(__name__)

# ------------------- PATHS -------------------


def _local_app_data() -> str:
    return os.environ.get("LOCALAPPDATA") or os.path.join(os.path.expanduser("~"), ".local", "share")


def default_config_path() -> str:
    return os.path.join(_local_app_data(), APP_NAME, f"{APP_NAME}.ini")


def default_log_path() -> str:
    return os.path.join(_local_app_data(), APP_NAME, f"{APP_NAME}.log")


def default_protonvpn_log_path() -> str:
    return os.path.join(_local_app_data(), "Proton", "Proton VPN", "Logs", "client-logs.txt")


# ------------------- DEFAULTS -------------------

DEFAULT_UPDATE_INTERVAL = 180
DEFAULT_ADAPTER_NAME = "ProtonVPN"

DEFAULT_CONFIG = f"""\
[general]
; Seconds between two port checks
update_interval_seconds = {DEFAULT_UPDATE_INTERVAL}

[protonvpn]
; ProtonVPN client log scanned for "Port pair A->B" lines
log_file = {default_protonvpn_log_path()}
; Network adapter name (substring, case-insensitive) that is up while connected
adapter_name = {DEFAULT_ADAPTER_NAME}

[qbittorrent]
; qBittorrent Web UI address and credentials
url = http://127.0.0.1:8080
username = admin
password = PASSWORD
; Executable launched on restart, and the process name used to find it
exe_path = C:\\Program Files\\qBittorrent\\qbittorrent.exe
process_name = qbittorrent
; Restart qBittorrent after a port change (recommended)
restart_on_change = true

[logging]
log_file = {default_log_path()}
level = INFO
"""


# ------------------- SETTINGS -------------------

class Settings:
    """
    Thin wrapper over configparser.

    Lookups never raise: a missing section or key reads as an empty string,
    and the typed readers fall back to their default on anything unparsable.
    """

    def __init__(self, path: str):
        self.path = path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load(self) -> bool:
        parser = configparser.ConfigParser(interpolation=None)
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                parser.read_file(f)
        except (OSError, configparser.Error) as e:
            logger.debug(f"Unable to read configuration {self.path}: {e}")
            return False
        self._parser = parser
        return True

    def create_default(self) -> bool:
        if os.path.exists(self.path):
            logger.debug(f"Configuration already exists: {self.path}")
            return False
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(DEFAULT_CONFIG)
        except OSError as e:
            logger.error(f"Unable to create default configuration {self.path}: {e}")
            return False
        return True

    def get(self, section: str, key: str) -> str:
        if not section or not key:
            return ""
        # Section names match case-insensitively, as keys already do
        for name in self._parser.sections():
            if name.lower() == section.lower():
                return self._parser.get(name, key, fallback="").strip()
        return ""

    def get_int(self, section: str, key: str, default: int) -> int:
        raw = self.get(section, key)
        if re.fullmatch(r"[+-]?[0-9]+", raw):
            return int(raw)
        logger.debug(f"Invalid integer for [{section}] {key}: {raw!r}, using {default}")
        return default

    def get_bool(self, section: str, key: str, default: bool) -> bool:
        raw = self.get(section, key).lower()
        if raw in configparser.ConfigParser.BOOLEAN_STATES:
            return configparser.ConfigParser.BOOLEAN_STATES[raw]
        logger.debug(f"Invalid boolean for [{section}] {key}: {raw!r}, using {default}")
        return default

    def update_interval(self) -> int:
        interval = self.get_int("general", "update_interval_seconds", DEFAULT_UPDATE_INTERVAL)
        if interval <= 0:
            return DEFAULT_UPDATE_INTERVAL
        return interval

    def restart_on_change(self) -> bool:
        return self.get_bool("qbittorrent", "restart_on_change", True)
