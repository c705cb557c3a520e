# Timer loop around the reconciler, with an interruptible wait for manual checks

import logging
import threading
from dataclasses import dataclass

from . import APP_NAME, __version__
from .reconciler import PassResult, Reconciler
from .settings import DEFAULT_UPDATE_INTERVAL, Settings

logger = logging.getLogger(__name__)

MANUAL_FOLLOWUP_SECONDS = 10


@dataclass
class PollState:
    next_interval_seconds: int = 0
    cancel_requested: bool = False
    update_count: int = 0
    last_result: PassResult | None = None


class Scheduler:
    """
    Runs reconciliation passes one after another on a background thread.

    trigger() may be called from any thread. It cuts the current wait short
    so the loop runs its next pass straight away; a trigger that arrives
    while a pass is running makes the following wait return immediately.
    Passes never overlap: run_pass() holds a lock for the whole pass body.
    """

    def __init__(self, reconciler: Reconciler, settings: Settings):
        self.reconciler = reconciler
        self.settings = settings
        self.state = PollState()
        self._state_lock = threading.Lock()
        self._pass_lock = threading.Lock()
        self._wake = threading.Event()
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def update_count(self) -> int:
        return self.state.update_count

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run_forever, name="port-sync", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        self._wake.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def trigger(self) -> None:
        logger.info("Manual port check requested")
        with self._state_lock:
            self.state.cancel_requested = True
        self._wake.set()

    def _take_trigger(self) -> bool:
        with self._state_lock:
            requested = self.state.cancel_requested
            self.state.cancel_requested = False
        return requested

    def run_pass(self) -> PassResult:
        with self._pass_lock:
            logger.info(f"Starting {APP_NAME} {__version__} port check")
            result = self.reconciler.reconcile()
            with self._state_lock:
                if result.port_changed:
                    self.state.update_count += 1
                self.state.last_result = result
            if result.reason:
                logger.info(f"Completed: {result.outcome.value} ({result.reason.value})")
            else:
                logger.info(f"Completed: {result.outcome.value}")
            return result

    def next_delay(self, manual: bool) -> int:
        if manual:
            return MANUAL_FOLLOWUP_SECONDS
        return self.settings.update_interval()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; True when cut short by trigger() or stop()."""
        interrupted = self._wake.wait(seconds)
        self._wake.clear()
        return interrupted

    def run_once(self) -> None:
        manual = self._take_trigger()
        try:
            self.run_pass()
            delay = self.next_delay(manual)
        except Exception:
            logger.exception("Unexpected error in port sync loop")
            delay = MANUAL_FOLLOWUP_SECONDS if manual else DEFAULT_UPDATE_INTERVAL
        if self.stopped:
            return

        self.state.next_interval_seconds = delay
        logger.info(f"Waiting for: {delay} seconds")
        if self.wait(delay) and not self.stopped:
            logger.info("Wait interrupted, checking now")

    def run_forever(self) -> None:
        logger.info("Starting port sync loop")
        while not self.stopped:
            self.run_once()
        logger.info("Port sync loop stopped")
