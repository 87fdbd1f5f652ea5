"""Watchdog handler and the background thread that drains the backlog."""

import logging
import os
import queue
from threading import Thread

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from gkle.dispatcher import Dispatcher
from gkle.errors import GkleError

logger = logging.getLogger(__name__)


class LogDirHandler(FileSystemEventHandler):
    """Queues a notification for every file created in the log directory."""

    def __init__(self, q: queue.Queue):
        super().__init__()
        self._queue = q

    def dispatch(self, event):
        try:
            super().dispatch(event)
        except Exception as e:
            self._queue.put(e)

    def on_created(self, event):
        if event.is_directory:
            return
        self._queue.put(os.fsdecode(event.src_path))


class DrainWorker(Thread):
    """Single consumer of notifications; runs one drain pass per create event.

    Owns the dispatcher, so no two files are ever in flight at once. Stop
    requests are honoured between notifications, not in the middle of a pass.
    """

    def __init__(self, q: queue.Queue, dispatcher: Dispatcher):
        super().__init__(daemon=True, name="gkle-drain")
        self._queue = q
        self._dispatcher = dispatcher
        self._running = True
        self._passes = 0
        self._failed_passes = 0

    @property
    def passes(self) -> int:
        return self._passes

    @property
    def failed_passes(self) -> int:
        return self._failed_passes

    def run(self):
        while self._running:
            try:
                item = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue

            if isinstance(item, BaseException):
                logger.error("Error while watching log dir: %s", item)
                continue

            logger.debug("File created: %s", item)
            self.run_pass()

    def run_pass(self) -> bool:
        """Drain the backlog once. Returns False when the pass was aborted."""
        self._passes += 1
        try:
            self._dispatcher.drain()
        except (GkleError, OSError) as e:
            self._failed_passes += 1
            logger.error("Export pass aborted: %s", e)
            return False
        return True

    def stop(self):
        self._running = False


class LogDirWatcher:
    """Wires a watchdog Observer on the log directory to a DrainWorker."""

    def __init__(self, log_dir: str, dispatcher: Dispatcher, observer=None):
        self._log_dir = log_dir
        self._queue: queue.Queue = queue.Queue()
        self._handler = LogDirHandler(self._queue)
        self._worker = DrainWorker(self._queue, dispatcher)
        self._observer = observer or Observer()

    @property
    def worker(self) -> DrainWorker:
        return self._worker

    def start(self, drain_first: bool = True) -> None:
        """Start watching. Raises OSError when the directory cannot be watched."""
        self._observer.schedule(self._handler, self._log_dir, recursive=False)
        self._observer.start()
        logger.info("Watching directory: %s", self._log_dir)
        if drain_first:
            self._worker.run_pass()
        self._worker.start()

    def is_alive(self) -> bool:
        return self._observer.is_alive() and self._worker.is_alive()

    def stop(self) -> None:
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join(timeout=5)
        self._worker.stop()
        if self._worker.is_alive():
            self._worker.join(timeout=5)
