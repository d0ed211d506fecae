"""
Organize pass for the Downloads Janitor.

Scans the watch folder once (non-recursively), resolves each regular file's
destination through the extension index and hands it to the move executor.
"""

import os
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from tqdm import tqdm

from .executor import MoveOutcome, MoveStatus, move_file
from .index import ExtensionIndex
from .utils import print_error, print_info, print_warning


@dataclass
class PassReport:
    """Outcomes collected during one organize pass."""
    outcomes: list[MoveOutcome] = field(default_factory=list)
    succeeded: bool = True

    def counts(self) -> dict[MoveStatus, int]:
        tally = Counter(o.status for o in self.outcomes)
        return {status: tally.get(status, 0) for status in MoveStatus}

    @property
    def moved_count(self) -> int:
        counts = self.counts()
        return (counts[MoveStatus.MOVED]
                + counts[MoveStatus.MOVED_WITH_RENAME]
                + counts[MoveStatus.COPIED_CROSS_DEVICE])

    @property
    def failed_count(self) -> int:
        return self.counts()[MoveStatus.FAILED]

    @property
    def skipped_count(self) -> int:
        return self.counts()[MoveStatus.SKIPPED]


class Organizer:
    """
    Moves files from the watch folder into destination folders based on
    extension rules.
    """

    def __init__(
        self,
        watch_folder: Path | str | None,
        rules: Iterable = (),
        mover: Callable[[Path, Path], MoveOutcome] = move_file,
        progress: bool = False
    ):
        self.watch_folder = Path(watch_folder) if watch_folder else None
        self.rules = list(rules)
        self.index = ExtensionIndex(self.rules)
        self.mover = mover
        self.progress = progress
        self.last_report: PassReport | None = None

    def update_rules(self, rules: Iterable) -> None:
        """Replace the rule set and rebuild the extension index."""
        self.rules = list(rules)
        self.index.rebuild(self.rules)

    def set_watch_folder(self, watch_folder: Path | str | None) -> None:
        """Point at a different folder; the index is left alone."""
        self.watch_folder = Path(watch_folder) if watch_folder else None

    def destination_for(self, path: Path) -> Path | None:
        """
        Resolve where a file should go.

        Relative destinations are anchored under the current watch folder.

        Returns:
            The destination directory, or None if no rule matches.
        """
        destination = self.index.resolve(path.name)
        if destination is None:
            return None
        dest_path = Path(destination).expanduser()
        if not dest_path.is_absolute() and self.watch_folder is not None:
            dest_path = self.watch_folder / dest_path
        return dest_path

    def _is_watch_folder(self, destination: Path) -> bool:
        try:
            return os.path.samefile(destination, self.watch_folder)
        except OSError:
            return False

    def _list_entries(self) -> list[os.DirEntry] | None:
        """Check the watch folder and list its immediate entries; None if unusable."""
        if self.watch_folder is None:
            print_error("Cannot organize files: watch folder has not been set.")
            return None

        try:
            if not self.watch_folder.exists():
                print_error(f"Watch folder `{self.watch_folder}` is not accessible: path does not exist")
                return None
            if not self.watch_folder.is_dir():
                print_error(f"Watch folder `{self.watch_folder}` is not a directory.")
                return None
            with os.scandir(self.watch_folder) as it:
                return sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            print_error(f"Unable to enumerate `{self.watch_folder}`: {e.strerror or e}")
            return None

    def organize_once(self) -> bool:
        """
        Scan the watch folder once and move any matching files.

        Per-file failures never stop the pass; they are logged and make the
        overall result False.

        Returns:
            True if every matched file was moved (unmatched files are fine),
            False if the watch folder is unusable or any file failed.
        """
        entries = self._list_entries()
        if entries is None:
            return False

        report = PassReport()

        for entry in tqdm(entries, unit="file", disable=not self.progress):
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
            except OSError:
                continue

            source = Path(entry.path)
            destination_dir = self.destination_for(source)

            if destination_dir is None or self._is_watch_folder(destination_dir):
                tqdm.write(f"[SKIP] No matching rule for `{source.name}`, leaving in place.")
                report.outcomes.append(MoveOutcome.skipped(source))
                continue

            try:
                destination_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                reason = f"Failed to create destination directory `{destination_dir}`: {e.strerror or e}"
                tqdm.write(f"[ERROR] {reason}")
                report.outcomes.append(MoveOutcome.failed(source, reason, destination_dir))
                report.succeeded = False
                continue

            outcome = self.mover(source, destination_dir)
            report.outcomes.append(outcome)

            if outcome.status is MoveStatus.MOVED:
                tqdm.write(f"[MOVE] `{source}` -> `{outcome.destination}`")
            elif outcome.status is MoveStatus.MOVED_WITH_RENAME:
                tqdm.write(f"[MOVE] `{source}` -> `{outcome.destination}` (renamed to avoid collision)")
            elif outcome.status is MoveStatus.COPIED_CROSS_DEVICE:
                tqdm.write(f"[MOVE] `{source}` -> `{outcome.destination}` (cross-device copy)")
            elif not outcome.ok:
                tqdm.write(f"[ERROR] Failed to move `{source}`: {outcome.reason}")
                report.succeeded = False

        self.last_report = report

        summary = (f"Pass complete: {report.moved_count} moved, "
                   f"{report.failed_count} failed, {report.skipped_count} left in place")
        if report.succeeded:
            print_info(summary)
        else:
            print_warning(summary)

        return report.succeeded
