# Keeps qBittorrent's listening port in sync with the ProtonVPN forwarded port

__version__ = "1.0.0"
APP_NAME = "proton-qbit-port-sync"
