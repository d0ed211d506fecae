"""
Move execution for the Downloads Janitor.

Relocates a single file into a destination folder:
1. No-replace rename under the original name
2. On a name collision, retry as name_1.ext ... name_50.ext
3. On a cross-device condition, copy the contents and delete the source
"""

import errno
import os
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from tqdm import tqdm

MAX_COLLISION_ATTEMPTS = 50

# errno values meaning "hard links are not available here"
_LINK_UNSUPPORTED = {
    getattr(errno, name) for name in ("EPERM", "ENOTSUP", "EOPNOTSUPP", "EMLINK", "ENOSYS")
    if hasattr(errno, name)
}


class MoveStatus(Enum):
    MOVED = "moved"
    MOVED_WITH_RENAME = "moved_with_rename"
    COPIED_CROSS_DEVICE = "copied_cross_device"
    SKIPPED = "skipped"
    FAILED = "failed"


class RenameFailure(Enum):
    ALREADY_EXISTS = "already_exists"
    CROSS_DEVICE = "cross_device"
    OTHER = "other"


@dataclass
class MoveOutcome:
    """Per-file result of a move attempt."""
    status: MoveStatus
    source: Path
    destination: Path | None = None
    suffix: str = ""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not MoveStatus.FAILED

    @classmethod
    def failed(cls, source: Path, reason: str, destination: Path | None = None) -> "MoveOutcome":
        return cls(MoveStatus.FAILED, source, destination, reason=reason)

    @classmethod
    def skipped(cls, source: Path, reason: str = "No matching rule") -> "MoveOutcome":
        return cls(MoveStatus.SKIPPED, source, reason=reason)


def classify_rename_error(error: OSError) -> RenameFailure:
    """Map an OSError from a rename attempt to a portable failure reason."""
    if isinstance(error, FileExistsError) or error.errno in (errno.EEXIST, errno.ENOTEMPTY):
        return RenameFailure.ALREADY_EXISTS
    if error.errno == errno.EXDEV:
        return RenameFailure.CROSS_DEVICE
    return RenameFailure.OTHER


def _describe(error: OSError) -> str:
    return error.strerror or str(error)


def _rename_no_replace(src: Path, dst: Path) -> None:
    """
    Rename src to dst, refusing to replace an existing dst.

    Raises:
        OSError: FileExistsError when dst exists, EXDEV across devices, or
            whatever the platform reports otherwise.
    """
    if os.name == "nt":
        # os.rename never replaces on Windows
        os.rename(src, dst)
        return

    try:
        os.link(src, dst)
    except OSError as e:
        if e.errno not in _LINK_UNSUPPORTED:
            raise
        # No hard links on this filesystem: check, then rename
        if os.path.lexists(dst):
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(dst)) from e
        os.rename(src, dst)
        return

    try:
        os.unlink(src)
    except OSError:
        os.unlink(dst)
        raise


def _collision_candidate(destination_dir: Path, filename: str, attempt: int) -> tuple[Path, str]:
    stem, ext = os.path.splitext(filename)
    suffix = f"_{attempt}"
    return destination_dir / f"{stem}{suffix}{ext}", suffix


def _move_with_suffix(src: Path, destination_dir: Path) -> tuple[MoveOutcome | None, RenameFailure, OSError | None]:
    """
    Retry the rename under name_1.ext, name_2.ext, ... until one is free.

    Returns:
        (outcome, failure, error). outcome is set when a candidate worked;
        otherwise failure and error describe why the loop stopped
        (error is None when every candidate was taken).
    """
    for attempt in range(1, MAX_COLLISION_ATTEMPTS + 1):
        candidate, suffix = _collision_candidate(destination_dir, src.name, attempt)
        try:
            _rename_no_replace(src, candidate)
        except OSError as e:
            failure = classify_rename_error(e)
            if failure is RenameFailure.ALREADY_EXISTS:
                continue
            return None, failure, e
        return MoveOutcome(MoveStatus.MOVED_WITH_RENAME, src, candidate, suffix=suffix), RenameFailure.ALREADY_EXISTS, None

    return None, RenameFailure.ALREADY_EXISTS, None


def _copy_across_devices(src: Path, dst: Path) -> MoveOutcome:
    """Copy src to dst (only if dst is free), then delete src."""
    created = False
    try:
        with open(src, 'rb') as fsrc, open(dst, 'xb') as fdst:
            created = True
            shutil.copyfileobj(fsrc, fdst)
    except OSError as e:
        if created:
            try:
                os.unlink(dst)
            except OSError:
                pass  # Leave the partial copy; the failure below is still reported
        return MoveOutcome.failed(src, f"Cross-device copy to {dst} failed: {_describe(e)}", dst)

    try:
        shutil.copystat(src, dst)
    except OSError as e:
        # Contents are already complete; missing timestamps or mode bits are tolerated
        tqdm.write(f"[WARN] Could not copy metadata to `{dst}`: {_describe(e)}")

    try:
        os.unlink(src)
    except OSError as e:
        return MoveOutcome.failed(
            src,
            f"Copied to {dst} but failed to remove original: {_describe(e)} (duplicate left behind)",
            dst,
        )

    return MoveOutcome(MoveStatus.COPIED_CROSS_DEVICE, src, dst)


def move_file(source: Path, destination_dir: Path) -> MoveOutcome:
    """
    Move a single file into destination_dir, safe for threads.

    Holds no state between calls; moves of distinct filenames may run
    concurrently. Filesystem errors are reported in the outcome, never raised.

    Args:
        source: The file to move.
        destination_dir: Existing directory that should receive it.

    Returns:
        MoveOutcome describing what happened.
    """
    source = Path(source)
    destination_dir = Path(destination_dir)
    target = destination_dir / source.name

    try:
        _rename_no_replace(source, target)
        return MoveOutcome(MoveStatus.MOVED, source, target)
    except OSError as e:
        failure = classify_rename_error(e)
        error = e

    if failure is RenameFailure.ALREADY_EXISTS:
        outcome, failure, error = _move_with_suffix(source, destination_dir)
        if outcome is not None:
            return outcome
        if error is None:
            return MoveOutcome.failed(
                source,
                f"No free name in {destination_dir} after {MAX_COLLISION_ATTEMPTS} attempts",
                target,
            )

    if failure is RenameFailure.CROSS_DEVICE:
        return _copy_across_devices(source, target)

    return MoveOutcome.failed(source, _describe(error), target)
