"""
Change-driven processing loop for the Downloads Janitor.

The loop only needs one capability from the platform: "block until something
changes in this directory, or report a fatal subscription error". That is the
ChangeSignal interface; WatchdogChangeSignal implements it with watchdog's
native observer (inotify, FSEvents, ReadDirectoryChangesW) or its polling
observer.
"""

import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .utils import print_info, print_warning

DEFAULT_DEBOUNCE_SECONDS = 0.25
DEFAULT_POLL_INTERVAL = 1.0

# Observer health is re-checked this often while idle
_LIVENESS_CHECK_SECONDS = 1.0

_IGNORED_EVENT_TYPES = {"opened", "closed_no_write", "deleted"}


class WatchError(RuntimeError):
    """Raised when the change subscription cannot be set up, waited on or re-armed."""


class ChangeSignal(ABC):
    """Minimal change-notification capability for a single directory."""

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until a change has been reported since the previous wait() returned.

        Consumes the pending notification. Returns False only if timeout
        elapsed first.
        """

    @abstractmethod
    def rearm(self) -> None:
        ...

    def close(self) -> None:
        pass

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class _ChangeHandler(FileSystemEventHandler):
    """Flags any relevant event on the watched directory."""

    def __init__(self, changed: threading.Event):
        super().__init__()
        self.changed = changed

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _IGNORED_EVENT_TYPES:
            return
        self.changed.set()


class WatchdogChangeSignal(ChangeSignal):
    """ChangeSignal backed by a watchdog observer (non-recursive)."""

    def __init__(self, folder: Path | str, polling: bool = False, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self.folder = Path(folder)
        self.polling = polling
        self.poll_interval = poll_interval
        self._changed = threading.Event()
        self._observer = None

    def _make_observer(self):
        if self.polling:
            return PollingObserver(timeout=self.poll_interval)
        return Observer()

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = self._make_observer()
        try:
            observer.schedule(_ChangeHandler(self._changed), str(self.folder), recursive=False)
            observer.start()
        except OSError as e:
            raise WatchError(f"Failed to start change notification for {self.folder}: {e}") from e
        self._observer = observer
        kind = "polling" if self.polling else "native"
        print_info(f"Monitoring `{self.folder}` for changes ({kind} observer)...")

    def _check_alive(self) -> None:
        if self._observer is None:
            raise WatchError("Change notification has not been started.")
        if not self._observer.is_alive():
            raise WatchError(f"Change notification for {self.folder} stopped unexpectedly.")
        if not all(emitter.is_alive() for emitter in self._observer.emitters):
            raise WatchError(f"Change notification for {self.folder} was dropped.")
        if not self.folder.is_dir():
            raise WatchError(f"Watched folder {self.folder} no longer exists.")

    def wait(self, timeout: float | None = None) -> bool:
        self._check_alive()
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            step = _LIVENESS_CHECK_SECONDS
            if deadline is not None:
                step = min(step, max(deadline - time.monotonic(), 0))
            if self._changed.wait(step):
                self._changed.clear()
                return True
            self._check_alive()
            if deadline is not None and time.monotonic() >= deadline:
                return False

    def rearm(self) -> None:
        self._check_alive()

    def close(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None


def watch_loop(
    organizer,
    signal: ChangeSignal,
    debounce: float = DEFAULT_DEBOUNCE_SECONDS,
    max_cycles: int | None = None,
    sleep: Callable[[float], None] = time.sleep
) -> int:
    """
    Organize on startup, then once per change notification.

    Runs an unconditional catch-up pass, then alternates between waiting for
    a change and running one organize pass, sleeping `debounce` seconds after
    each pass before re-arming. Notifications arriving during a pass stay
    pending and trigger exactly one follow-up pass.

    Args:
        organizer: Object with organize_once() -> bool.
        signal: A started ChangeSignal for the watch folder.
        debounce: Delay after each pass to coalesce bursts of notifications.
        max_cycles: Stop after this many change-driven passes (None = forever).
        sleep: Sleep function (injectable for tests).

    Returns:
        Number of change-driven passes run (only when max_cycles is reached).

    Raises:
        WatchError: If waiting or re-arming the subscription fails.
    """
    print_info("Running organize pass on startup...")
    if not organizer.organize_once():
        print_warning("One or more files failed to move during the startup pass.")

    cycles = 0
    while max_cycles is None or cycles < max_cycles:
        signal.wait()

        if not organizer.organize_once():
            print_warning("One or more files failed to move during processing.")
        cycles += 1

        if debounce > 0:
            sleep(debounce)

        signal.rearm()

    return cycles
