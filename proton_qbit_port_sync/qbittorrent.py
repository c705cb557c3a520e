# qBittorrent control: Web API session for the listening port, process control for restarts

import json
import logging
import os
import subprocess
import time

import psutil
import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10  # seconds, applied to every Web API call
KILL_SETTLE_SECONDS = 2
START_SETTLE_SECONDS = 1


def _normalise_process_name(name: str) -> str:
    name = name.strip().lower()
    return name[:-4] if name.endswith(".exe") else name


def _parse_listen_port(value) -> int | None:
    # JSON booleans are ints in Python
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        port = value
    elif isinstance(value, str):
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            return None
        port = int(value)
    else:
        return None
    return port if 1 <= port <= 65535 else None


class QBittorrentSession:
    """
    Talks to one qBittorrent instance.

    A single requests.Session is kept for the lifetime of the object so the
    SID cookie set by a login is sent on the following calls. Every read or
    write logs in again first rather than trusting the server-side session
    to still be alive.
    """

    def __init__(self, url: str, username: str, password: str, process_name: str, exe_path: str):
        self.url = (url or "").rstrip("/")
        self.username = username or ""
        self.password = password or ""
        self.process_name = process_name or ""
        self.exe_path = exe_path or ""
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    # ------------------- PROCESS -------------------

    def _matching_processes(self) -> list[psutil.Process]:
        target = _normalise_process_name(self.process_name)
        procs = []
        for proc in psutil.process_iter(["name"]):
            try:
                if _normalise_process_name(proc.info["name"] or "") == target:
                    procs.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return procs

    def is_running(self) -> bool:
        if not self.process_name.strip():
            return False
        return bool(self._matching_processes())

    def restart(self) -> bool:
        """
        Kill every qBittorrent process, start it again and report whether it is alive.

        Success means a matching process is running after the settle time,
        not that the launch call itself succeeded.
        """
        if self.process_name.strip():
            for proc in self._matching_processes():
                try:
                    proc.kill()
                except psutil.Error as e:
                    logger.error(f"Failed to kill process {proc.pid}: {e}")

        time.sleep(KILL_SETTLE_SECONDS)  # let the OS release the listening socket

        try:
            subprocess.Popen([self.exe_path], cwd=os.path.dirname(self.exe_path) or None)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to start {self.exe_path}: {e}")

        time.sleep(START_SETTLE_SECONDS)
        return self.is_running()

    # ------------------- WEB API -------------------

    def authenticate(self) -> bool:
        try:
            response = self.session.post(
                f"{self.url}/api/v2/auth/login",
                data={"username": self.username, "password": self.password},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"qBittorrent login failed: {e}")
            return False
        return 200 <= response.status_code < 300

    def get_port(self) -> int | None:
        if not self.authenticate():
            return None

        try:
            response = self.session.get(f"{self.url}/api/v2/app/preferences", timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            prefs = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Unable to read qBittorrent preferences: {e}")
            return None

        port = _parse_listen_port(prefs.get("listen_port")) if isinstance(prefs, dict) else None
        if port is None:
            logger.debug(f"qBittorrent preferences JSON (listen_port not parsed): {response.text}")
        return port

    def set_port(self, port: int) -> bool:
        if not self.authenticate():
            return False

        try:
            response = self.session.post(
                f"{self.url}/api/v2/app/setPreferences",
                data={"json": json.dumps({"listen_port": port})},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Unable to set qBittorrent preferences: {e}")
            return False
        return 200 <= response.status_code < 300
