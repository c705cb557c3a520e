# Reads ProtonVPN state: adapter status from the OS, forwarded port from the client log

import logging
import re

import psutil

logger = logging.getLogger(__name__)

# Matches "Port pair 51413->51413"; the first number is the public port
PORT_PAIR_PATTERN = re.compile(r"Port pair\s+(\d+)->(\d+)")


class ProtonVPNPortSource:
    def __init__(self, log_file: str, adapter_name: str = "ProtonVPN"):
        self.log_file = log_file
        self.adapter_name = adapter_name

    def is_connected(self) -> bool:
        token = self.adapter_name.lower()
        if not token:
            return False
        try:
            stats = psutil.net_if_stats()
        except OSError as e:
            logger.error(f"Unable to enumerate network adapters: {e}")
            return False
        for name, stat in stats.items():
            if token in name.lower() and stat.isup:
                return True
        return False

    def current_port(self) -> int | None:
        """
        Return the public port of the most recent "Port pair" line in the log.

        The log is appended by the VPN client while we read it, so the file
        is opened read-only and scanned from the last line backwards. Any
        read failure is reported as None.
        """
        if not self.log_file:
            return None
        try:
            with open(self.log_file, "r", encoding="utf-8", errors="ignore") as f:
                lines = f.readlines()
        except OSError as e:
            logger.debug(f"Failed reading {self.log_file}: {e}")
            return None

        for line in reversed(lines):
            line = line.strip()
            if not line:
                continue
            m = PORT_PAIR_PATTERN.search(line)
            if not m:
                continue
            port = int(m.group(1))
            if 1 <= port <= 65535:
                return port
            logger.debug(f"Ignoring out of range port pair: {line}")
        return None
