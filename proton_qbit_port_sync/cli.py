# Command line entry point
# Runs the port check loop until interrupted; send SIGUSR1 to force an immediate check

import argparse
import logging
import signal
import sys

from . import APP_NAME, __version__
from .logging_setup import LOG_LEVELS, setup_logging
from .protonvpn import ProtonVPNPortSource
from .qbittorrent import QBittorrentSession
from .reconciler import Reconciler
from .scheduler import Scheduler
from .settings import DEFAULT_ADAPTER_NAME, Settings, default_config_path, default_protonvpn_log_path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Keep qBittorrent's listening port in sync with the ProtonVPN forwarded port.",
    )
    parser.add_argument("--config", default=default_config_path(), help="INI configuration file (default: %(default)s)")
    parser.add_argument("--loglevel", choices=sorted(LOG_LEVELS), help="Override the [logging] level setting")
    parser.add_argument("--once", action="store_true", help="Run a single port check and exit")
    parser.add_argument("--create-config", action="store_true", help="Write the default configuration file and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_scheduler(settings: Settings) -> Scheduler:
    vpn = ProtonVPNPortSource(
        settings.get("protonvpn", "log_file") or default_protonvpn_log_path(),
        settings.get("protonvpn", "adapter_name") or DEFAULT_ADAPTER_NAME,
    )
    client = QBittorrentSession(
        settings.get("qbittorrent", "url"),
        settings.get("qbittorrent", "username"),
        settings.get("qbittorrent", "password"),
        settings.get("qbittorrent", "process_name"),
        settings.get("qbittorrent", "exe_path"),
    )
    return Scheduler(Reconciler(settings, vpn, client), settings)


def install_signal_handlers(scheduler: Scheduler) -> None:
    def handle_stop(signum, frame):
        logger.info("Received signal to stop. Shutting down...")
        scheduler.stop()

    signal.signal(signal.SIGINT, handle_stop)
    signal.signal(signal.SIGTERM, handle_stop)
    if hasattr(signal, "SIGUSR1"):
        signal.signal(signal.SIGUSR1, lambda signum, frame: scheduler.trigger())


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    settings = Settings(args.config)

    if args.create_config:
        if settings.create_default():
            print(f"Created {args.config}")
            sys.exit(0)
        print(f"{args.config} already exists or could not be written")
        sys.exit(1)

    created = False
    if not settings.load():
        created = settings.create_default()
        settings.load()

    level = args.loglevel or settings.get("logging", "level") or "info"
    if level.lower() not in LOG_LEVELS:
        level = "info"
    setup_logging(settings.get("logging", "log_file") or None, level)
    if created:
        logger.info(f"Created default configuration: {args.config}. Edit it with your qBittorrent details.")

    scheduler = build_scheduler(settings)
    try:
        if args.once:
            result = scheduler.run_pass()
            sys.exit(0 if result.ok else 1)

        install_signal_handlers(scheduler)
        scheduler.start()
        while scheduler.is_alive():
            scheduler.join(1)
    finally:
        scheduler.reconciler.client.close()


if __name__ == "__main__":
    main()
