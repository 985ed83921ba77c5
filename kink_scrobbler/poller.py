import logging
import threading

log = logging.getLogger("poller")


class Poller:
    """Runs controller.tick() now and then every `interval` seconds on one thread.

    arm() is idempotent: arming a running poller does nothing, so there is
    never more than one tick loop. Arming again after cancel() starts a fresh
    loop even while the cancelled one is still finishing its last tick; the
    two never tick at the same time.
    """

    def __init__(self, controller, interval: float = 60):
        self.controller = controller
        self.interval = interval
        self._lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def armed(self) -> bool:
        return (self._thread is not None and self._thread.is_alive()
                and not self._stop.is_set())

    def arm(self) -> bool:
        with self._lock:
            if self.armed:
                log.debug("Poller already armed")
                return False
            # each loop gets its own stop flag; a cancelled loop keeps its set one
            self._stop = threading.Event()
            self._thread = threading.Thread(target=self._run, args=(self._stop,),
                                            name="poller", daemon=True)
            self._thread.start()
            log.info("Polling every %ss", self.interval)
            return True

    def _run(self, stop: threading.Event):
        while not stop.is_set():
            with self._tick_lock:
                if stop.is_set():
                    break
                try:
                    self.controller.tick()
                except Exception:
                    log.exception("Tick failed")
            if stop.wait(self.interval):
                break

    def cancel(self, reset: bool = True) -> None:
        """Stop ticking; with reset, also forget the open track and history."""
        self._stop.set()
        if reset:
            self.controller.reset()

    def join(self, timeout: float | None = None) -> None:
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
