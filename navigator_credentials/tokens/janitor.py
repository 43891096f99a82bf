"""
Token Janitor — Background thread that evicts expired tokens periodically.

Its only job is eviction. An exception raised by a sweep is logged and the
loop keeps running, so one bad sweep never stops the following ones.
"""
import logging
import threading
from typing import Callable, Optional

from ..exceptions import InvalidArgument

logger = logging.getLogger("navigator.credentials")


class TokenJanitor:
    """Runs ``sweep`` every ``interval`` seconds on a daemon thread."""

    def __init__(self, sweep: Callable[[], int], interval: float = 60):
        if interval <= 0:
            raise InvalidArgument("interval must be positive")
        self._sweep = sweep
        self.interval = interval
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.runs = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background thread. No-op if already running."""
        with self._lock:
            if self.running:
                return
            self._stopped.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="navigator-token-janitor",
                daemon=True,
            )
            self._thread.start()
        logger.info("Token janitor started (interval=%ss)", self.interval)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the thread to stop and wait for it. No-op if not running."""
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stopped.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            logger.info("Token janitor stopped")

    def run_once(self) -> int:
        """Run a single supervised sweep; returns evicted count, 0 on failure."""
        try:
            evicted = self._sweep()
        except Exception:
            self.failures += 1
            logger.exception("Token cleanup sweep failed")
            return 0
        finally:
            self.runs += 1
        return evicted

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            self.run_once()
