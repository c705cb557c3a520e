# One reconciliation pass: VPN port -> qBittorrent listening port

import logging
from dataclasses import dataclass
from enum import Enum

from .protonvpn import ProtonVPNPortSource
from .qbittorrent import QBittorrentSession
from .settings import DEFAULT_ADAPTER_NAME, Settings, default_protonvpn_log_path

logger = logging.getLogger(__name__)


class Outcome(Enum):
    NO_CHANGE_NEEDED = "no change needed"
    PORT_UPDATED = "port updated"
    PORT_UPDATED_AND_RESTARTED = "port updated and restarted"
    SKIPPED = "skipped"


class Reason(Enum):
    CONFIGURATION_MISSING = "configuration missing"
    CONNECTIVITY_UNAVAILABLE = "VPN not connected"
    PORT_NOT_DISCOVERABLE = "forwarded port not found"
    CLIENT_NOT_RUNNING = "qBittorrent not running"
    CLIENT_PORT_UNREADABLE = "qBittorrent port unreadable"
    CLIENT_PORT_WRITE_FAILED = "qBittorrent port update failed"
    CLIENT_RESTART_FAILED = "qBittorrent restart failed"
    UNEXPECTED_ERROR = "unexpected error"


@dataclass
class PassResult:
    outcome: Outcome
    reason: Reason | None = None
    desired_port: int | None = None
    current_port: int | None = None

    @property
    def port_changed(self) -> bool:
        return self.outcome in (Outcome.PORT_UPDATED, Outcome.PORT_UPDATED_AND_RESTARTED)

    @property
    def ok(self) -> bool:
        return self.reason is None


def skipped(reason: Reason, desired_port: int | None = None, current_port: int | None = None) -> PassResult:
    return PassResult(Outcome.SKIPPED, reason, desired_port, current_port)


class Reconciler:
    """
    Runs the checks in a fixed order and stops at the first one that fails.

    Failures are soft: they are logged at ERROR and returned as a skipped
    PassResult. The next scheduled pass is the only retry.
    """

    def __init__(self, settings: Settings, vpn: ProtonVPNPortSource, client: QBittorrentSession):
        self.settings = settings
        self.vpn = vpn
        self.client = client

    def reconcile(self) -> PassResult:
        try:
            return self._reconcile()
        except Exception:
            logger.exception("Unexpected error during port check")
            return skipped(Reason.UNEXPECTED_ERROR)

    def _load_settings(self) -> bool:
        if self.settings.load():
            logger.info(f"Loaded configuration: {self.settings.path}")
            self._apply_settings()
            return True
        logger.error(f"Failed to load configuration: {self.settings.path}")
        if self.settings.create_default():
            logger.info(f"Created default configuration: {self.settings.path}")
        return False

    def _apply_settings(self) -> None:
        # Connection details follow the file too, on the same HTTP session
        s = self.settings
        self.vpn.log_file = s.get("protonvpn", "log_file") or default_protonvpn_log_path()
        self.vpn.adapter_name = s.get("protonvpn", "adapter_name") or DEFAULT_ADAPTER_NAME
        self.client.url = s.get("qbittorrent", "url").rstrip("/")
        self.client.username = s.get("qbittorrent", "username")
        self.client.password = s.get("qbittorrent", "password")
        self.client.process_name = s.get("qbittorrent", "process_name")
        self.client.exe_path = s.get("qbittorrent", "exe_path")

    def _reconcile(self) -> PassResult:
        if not self._load_settings():
            return skipped(Reason.CONFIGURATION_MISSING)

        if not self.vpn.is_connected():
            logger.error("ProtonVPN is not connected")
            return skipped(Reason.CONNECTIVITY_UNAVAILABLE)
        logger.info("ProtonVPN is connected")

        desired = self.vpn.current_port()
        if desired is None:
            logger.error("Could not determine ProtonVPN's forwarded port")
            return skipped(Reason.PORT_NOT_DISCOVERABLE)
        logger.info(f"ProtonVPN's forwarded port found in log: {desired}")

        if not self.client.is_running():
            logger.error("qBittorrent is not running")
            return skipped(Reason.CLIENT_NOT_RUNNING, desired)
        logger.info("qBittorrent is running")

        current = self.client.get_port()
        if current is None:
            logger.error("Could not determine qBittorrent's current port")
            return skipped(Reason.CLIENT_PORT_UNREADABLE, desired)
        logger.info(f"Current qBittorrent listening port: {current}")

        if current == desired:
            logger.info("Ports match, no update needed")
            return PassResult(Outcome.NO_CHANGE_NEEDED, None, desired, current)

        logger.info(f"Ports do not match, updating qBittorrent's port from {current} to {desired}")
        if not self.client.set_port(desired):
            logger.error(f"Failed to set qBittorrent's port to {desired}")
            return skipped(Reason.CLIENT_PORT_WRITE_FAILED, desired, current)
        logger.info(f"Successfully set qBittorrent's port to {desired}")

        if not self.settings.restart_on_change():
            logger.info("Restart on change is disabled, qBittorrent left running")
            return PassResult(Outcome.PORT_UPDATED, None, desired, current)

        logger.info("Restarting qBittorrent")
        if not self.client.restart():
            logger.error("Failed to restart qBittorrent")
            return PassResult(Outcome.PORT_UPDATED, Reason.CLIENT_RESTART_FAILED, desired, current)
        logger.info("Successfully restarted qBittorrent")
        return PassResult(Outcome.PORT_UPDATED_AND_RESTARTED, None, desired, current)
