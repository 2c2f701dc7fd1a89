"""File utilities shared by the settings store and the file gateway."""

from __future__ import annotations

import os
import stat
import tempfile
from contextlib import suppress


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


_DEFAULT_FILE_MODE = 0o666 & ~_current_umask()


def write_text_atomic(path: str, content: str, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``content`` so readers never observe a partial file.

    The text is written to a hidden temp file in the same directory, flushed to
    disk, then renamed over the target. An existing file keeps its permission
    bits; a new file gets the process default mode.

    Raises:
        OSError: If the temp file cannot be created, written or renamed. The
            target is left untouched and the temp file removed.
    """
    target = os.path.abspath(path)
    directory = os.path.dirname(target) or os.curdir
    try:
        mode = stat.S_IMODE(os.stat(target).st_mode)
    except FileNotFoundError:
        mode = _DEFAULT_FILE_MODE

    fd, temp_path = tempfile.mkstemp(prefix=f".{os.path.basename(target)}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(temp_path, mode)
        os.replace(temp_path, target)
    except BaseException:
        with suppress(OSError):
            os.unlink(temp_path)
        raise
