import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from downloads_janitor.watcher import (
    DEFAULT_DEBOUNCE_SECONDS,
    ChangeSignal,
    WatchdogChangeSignal,
    WatchError,
    watch_loop,
)


class FakeSignal(ChangeSignal):
    """Scripted signal: each wait() consumes one entry; exceptions are raised."""

    def __init__(self, script, log, rearm_error_after=None):
        self.script = list(script)
        self.log = log
        self.rearms = 0
        self.rearm_error_after = rearm_error_after

    def start(self):
        self.log.append("start")

    def wait(self, timeout=None):
        self.log.append("wait")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def rearm(self):
        self.rearms += 1
        self.log.append("rearm")
        if self.rearm_error_after is not None and self.rearms > self.rearm_error_after:
            raise WatchError("re-arm failed")


class FakeOrganizer:
    def __init__(self, log, results=None):
        self.log = log
        self.results = list(results or [])

    def organize_once(self):
        self.log.append("organize")
        return self.results.pop(0) if self.results else True


class TestWatchLoop(unittest.TestCase):
    def test_startup_pass_then_one_pass_per_signal(self):
        log = []
        sleeps = []
        signal = FakeSignal([True, True], log)

        cycles = watch_loop(FakeOrganizer(log), signal, max_cycles=2, sleep=sleeps.append)

        self.assertEqual(cycles, 2)
        self.assertEqual(log, ["organize", "wait", "organize", "rearm", "wait", "organize", "rearm"])
        self.assertEqual(sleeps, [DEFAULT_DEBOUNCE_SECONDS, DEFAULT_DEBOUNCE_SECONDS])

    def test_failed_pass_keeps_looping(self):
        log = []
        signal = FakeSignal([True, True], log)
        organizer = FakeOrganizer(log, results=[False, False, True])

        cycles = watch_loop(organizer, signal, max_cycles=2, sleep=lambda s: None)

        self.assertEqual(cycles, 2)
        self.assertEqual(log.count("organize"), 3)

    def test_wait_failure_propagates(self):
        log = []
        signal = FakeSignal([True, WatchError("wait failed")], log)

        with self.assertRaises(WatchError):
            watch_loop(FakeOrganizer(log), signal, sleep=lambda s: None)

        self.assertEqual(log.count("organize"), 2)

    def test_rearm_failure_propagates(self):
        log = []
        signal = FakeSignal([True, True, True], log, rearm_error_after=1)

        with self.assertRaises(WatchError):
            watch_loop(FakeOrganizer(log), signal, sleep=lambda s: None)

        self.assertEqual(signal.rearms, 2)
        self.assertEqual(log.count("organize"), 3)

    def test_zero_debounce_skips_sleep(self):
        log = []
        sleeps = []
        watch_loop(FakeOrganizer(log), FakeSignal([True], log), debounce=0,
                   max_cycles=1, sleep=sleeps.append)
        self.assertEqual(sleeps, [])


class TestWatchdogChangeSignal(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.folder = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_polling_observer_reports_new_file(self):
        signal = WatchdogChangeSignal(self.folder, polling=True, poll_interval=0.1)
        with signal:
            self.assertFalse(signal.wait(timeout=0.3))
            (self.folder / "new.pdf").write_bytes(b"%PDF")
            self.assertTrue(signal.wait(timeout=5))
            signal.rearm()

    def test_start_failure_raises_watch_error(self):
        observer = MagicMock()
        observer.start.side_effect = FileNotFoundError(2, "No such file or directory")
        signal = WatchdogChangeSignal(self.folder / "missing")

        with patch.object(WatchdogChangeSignal, "_make_observer", return_value=observer):
            with self.assertRaises(WatchError):
                signal.start()

    def test_dead_observer_is_fatal(self):
        observer = MagicMock()
        observer.is_alive.return_value = False
        observer.emitters = set()
        signal = WatchdogChangeSignal(self.folder)

        with patch.object(WatchdogChangeSignal, "_make_observer", return_value=observer):
            signal.start()
            with self.assertRaises(WatchError):
                signal.wait(timeout=0.1)
            with self.assertRaises(WatchError):
                signal.rearm()
            signal.close()

        observer.stop.assert_called_once()

    def test_dead_emitter_is_fatal(self):
        emitter = MagicMock()
        emitter.is_alive.return_value = False
        observer = MagicMock()
        observer.is_alive.return_value = True
        observer.emitters = {emitter}
        signal = WatchdogChangeSignal(self.folder)

        with patch.object(WatchdogChangeSignal, "_make_observer", return_value=observer):
            signal.start()
            with self.assertRaises(WatchError):
                signal.rearm()
            signal.close()

    def test_removed_folder_is_fatal(self):
        watched = self.folder / "Downloads"
        watched.mkdir()
        signal = WatchdogChangeSignal(watched)
        try:
            signal.start()
        except WatchError as e:
            self.skipTest(f"native observer unavailable: {e}")
        try:
            self.assertFalse(signal.wait(timeout=0.2))
            shutil.rmtree(watched)
            with self.assertRaises(WatchError):
                # Events from the removal itself may wake wait() once or twice
                for _ in range(5):
                    signal.wait(timeout=2)
            with self.assertRaises(WatchError):
                signal.rearm()
        finally:
            signal.close()

    def test_not_started(self):
        signal = WatchdogChangeSignal(self.folder)
        with self.assertRaises(WatchError):
            signal.rearm()


class TestChangeSignal(unittest.TestCase):
    def test_incomplete_subclass_cannot_be_created(self):
        class StartOnly(ChangeSignal):
            def start(self):
                pass

        with self.assertRaises(TypeError):
            StartOnly()

    def test_close_defaults_to_no_op(self):
        log = []
        with FakeSignal([], log) as signal:
            self.assertIsInstance(signal, ChangeSignal)
        self.assertEqual(log, ["start"])


if __name__ == "__main__":
    unittest.main()
