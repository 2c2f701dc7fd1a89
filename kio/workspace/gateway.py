from __future__ import annotations

import os
import stat
from typing import Callable

from kio.fileutils import write_text_atomic
from kio.settings.recent import RecentFilesTracker
from kio.workspace.results import DirectoryEntry, Result


def _require_str(name: str, value: object) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string, got {type(value).__name__}.")
    return value


def _describe_os_error(action: str, path: str, error: OSError) -> str:
    reason = error.strerror or str(error) or type(error).__name__
    return f"{action} failed for {path}: {reason}"


class FileGateway:
    """Filesystem operations that report failures as ``Result`` values."""

    def __init__(
        self,
        recents: RecentFilesTracker | None = None,
        *,
        logger: Callable[[str], None] | None = None,
    ) -> None:
        self._recents = recents
        self._logger = logger

    def read_file(self, path: str) -> Result:
        absolute_path = os.path.abspath(_require_str("path", path))
        try:
            with open(absolute_path, "rb") as handle:
                raw = handle.read()
        except OSError as exc:
            self.log(f"[files] {_describe_os_error('Read', absolute_path, exc)}")
            return Result.failure(_describe_os_error("Read", absolute_path, exc))

        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            message = f"Read failed for {absolute_path}: not a UTF-8 text file ({exc.reason} at byte {exc.start})"
            self.log(f"[files] {message}")
            return Result.failure(message)

        self._record_opened(absolute_path)
        return Result.success(content)

    def write_file(self, path: str, content: str) -> Result:
        absolute_path = os.path.abspath(_require_str("path", path))
        _require_str("content", content)
        try:
            write_text_atomic(absolute_path, content)
        except OSError as exc:
            self.log(f"[files] {_describe_os_error('Write', absolute_path, exc)}")
            return Result.failure(_describe_os_error("Write", absolute_path, exc))

        self._record_opened(absolute_path)
        return Result.success()

    def list_directory(self, path: str) -> Result:
        absolute_path = os.path.abspath(_require_str("path", path))
        entries: list[DirectoryEntry] = []
        try:
            with os.scandir(absolute_path) as iterator:
                for child in iterator:
                    try:
                        stats = child.stat()
                    except OSError as exc:
                        self.log(f"[files] Skipping {child.path}: {exc}")
                        continue
                    entries.append(
                        DirectoryEntry(
                            name=child.name,
                            path=os.path.join(absolute_path, child.name),
                            is_directory=stat.S_ISDIR(stats.st_mode),
                            size=stats.st_size,
                            modified=stats.st_mtime,
                        )
                    )
        except OSError as exc:
            self.log(f"[files] {_describe_os_error('List', absolute_path, exc)}")
            return Result.failure(_describe_os_error("List", absolute_path, exc))

        return Result.success(entries)

    def path_exists(self, path: str) -> bool:
        return os.path.exists(_require_str("path", path))

    def _record_opened(self, path: str) -> None:
        if self._recents is not None:
            self._recents.record_opened(path)

    def log(self, message: str) -> None:
        if self._logger is not None:
            self._logger(message)
