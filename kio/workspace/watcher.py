from __future__ import annotations

import itertools
import os
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from watchdog.events import (
    DirDeletedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from kio.workspace.results import Result

_OBSERVER_JOIN_TIMEOUT_SECONDS = 2.0


class WatchEventKind(str, Enum):
    CHANGED = "changed"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class WatchEvent:
    kind: WatchEventKind
    path: str
    directory: str
    handle_id: int


EventSink = Callable[[WatchEvent], None]


def is_hidden_path(path: str, root: str) -> bool:
    try:
        relative = os.path.relpath(path, root)
    except ValueError:
        return True
    if relative == os.curdir:
        return False
    parts = relative.replace("\\", "/").split("/")
    return any(part.startswith(".") for part in parts)


def is_within(path: str, directory: str) -> bool:
    return path == directory or path.startswith(directory.rstrip(os.sep) + os.sep)


def scan_visible_files(root: str) -> set[str]:
    found: set[str] = set()
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = [name for name in dirnames if not name.startswith(".")]
        found.update(os.path.join(current, name) for name in filenames if not name.startswith("."))
    return found


class WatchHandle:
    def __init__(self, directory: str, handle_id: int, observer: Observer) -> None:
        self.directory = directory
        self.handle_id = handle_id
        self._observer = observer
        self._live = threading.Event()

    @property
    def is_live(self) -> bool:
        return self._live.is_set()

    def activate(self) -> None:
        self._live.set()

    def close(self) -> None:
        self._live.clear()
        if self._observer.is_alive():
            self._observer.stop()
            if self._observer is not threading.current_thread():
                self._observer.join(_OBSERVER_JOIN_TIMEOUT_SECONDS)


class _ForwardingHandler(FileSystemEventHandler):
    """Maps watchdog events onto added/changed/removed file events.

    ``known_files`` holds the visible files under the watched directory. It is
    seeded before the observer starts and afterwards only touched from the
    observer thread.
    """

    def __init__(self, handle: WatchHandle, sink: EventSink, known_files: Iterable[str] = ()) -> None:
        super().__init__()
        self._handle = handle
        self._directory = handle.directory
        self._sink = sink
        self._known = set(known_files)

    def on_created(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileCreatedEvent):
            self._add(os.fsdecode(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileModifiedEvent):
            path = os.fsdecode(event.src_path)
            self._remember(path)
            self._forward(WatchEventKind.CHANGED, path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = os.fsdecode(event.src_path)
        if isinstance(event, DirDeletedEvent):
            self._forget_directory(path)
        elif isinstance(event, FileDeletedEvent):
            self._remove(path)

    def on_moved(self, event: FileSystemEvent) -> None:
        source = os.fsdecode(event.src_path)
        destination = os.fsdecode(event.dest_path)
        if isinstance(event, DirMovedEvent):
            # Files below the destination arrive as their own moved events.
            self._forget_directory(source)
            return
        if not isinstance(event, FileMovedEvent):
            return
        if is_hidden_path(source, self._directory):
            # Atomic save or a hidden directory made visible.
            kind = WatchEventKind.CHANGED if destination in self._known else WatchEventKind.ADDED
            self._remember(destination)
            self._forward(kind, destination)
            return
        if source in self._known:
            self._remove(source)
        self._add(destination)

    def _add(self, path: str) -> None:
        self._remember(path)
        self._forward(WatchEventKind.ADDED, path)

    def _remove(self, path: str) -> None:
        self._known.discard(path)
        self._forward(WatchEventKind.REMOVED, path)

    def _remember(self, path: str) -> None:
        if path and not is_hidden_path(path, self._directory):
            self._known.add(path)

    def _forget_directory(self, directory: str) -> None:
        gone = sorted(path for path in self._known if is_within(path, directory))
        self._known.difference_update(gone)
        for path in gone:
            self._forward(WatchEventKind.REMOVED, path)

    def _forward(self, kind: WatchEventKind, path: str) -> None:
        if not path or is_hidden_path(path, self._directory):
            return
        if not self._handle.is_live:
            return
        self._sink(WatchEvent(kind, path, self._directory, self._handle.handle_id))


class WatchRegistry:
    """Active directory watches keyed by absolute directory path.

    Each watch owns its own watchdog observer thread, so events for one
    directory reach the sink in the order the OS reported them. Events from a
    handle that has been closed are dropped before they reach the sink.
    """

    def __init__(
        self,
        sink: EventSink,
        *,
        logger: Callable[[str], None] | None = None,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self._sink = sink
        self._logger = logger
        self._observer_factory = observer_factory
        self._lock = threading.Lock()
        self._handles: dict[str, WatchHandle] = {}
        self._ids = itertools.count(1)

    def watch(self, path: str) -> Result:
        directory = os.path.abspath(path)
        if not os.path.isdir(directory):
            self.log(f"[watcher] Not a directory: {directory}")
            return Result.failure(f"Cannot watch {directory}: not an existing directory")

        known_files = scan_visible_files(directory)
        with self._lock:
            previous = self._handles.pop(directory, None)
            if previous is not None:
                previous.close()
                self.log(f"[watcher] Replaced watch on {directory}")

            observer = self._observer_factory()
            observer.daemon = True
            handle = WatchHandle(directory, next(self._ids), observer)
            handler = _ForwardingHandler(handle, self._sink, known_files)
            try:
                observer.schedule(handler, directory, recursive=True)
                handle.activate()
                observer.start()
            except OSError as exc:
                handle.close()
                self.log(f"[watcher] Could not watch directory {directory}: {exc}")
                return Result.failure(f"Cannot watch {directory}: {exc.strerror or exc}")

            self._handles[directory] = handle

        self.log(f"[watcher] Watching {directory}")
        return Result.success()

    def unwatch(self, path: str) -> Result:
        directory = os.path.abspath(path)
        with self._lock:
            handle = self._handles.pop(directory, None)
            if handle is None:
                return Result.success()
            handle.close()

        self.log(f"[watcher] Stopped watching {directory}")
        return Result.success()

    def shutdown(self) -> None:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
            for handle in handles:
                handle.close()

        if handles:
            self.log(f"[watcher] Closed {len(handles)} watch(es).")

    def is_live(self, handle_id: int) -> bool:
        with self._lock:
            return any(
                handle.handle_id == handle_id and handle.is_live
                for handle in self._handles.values()
            )

    def watched_directories(self) -> list[str]:
        with self._lock:
            return list(self._handles)

    def log(self, message: str) -> None:
        if self._logger is not None:
            self._logger(message)
