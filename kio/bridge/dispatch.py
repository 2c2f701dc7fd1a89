from __future__ import annotations

import os
import threading
from collections.abc import Mapping
from functools import partial
from typing import TYPE_CHECKING, Callable

from PySide6.QtCore import QObject, Qt, QThreadPool, QTimer, Signal

from kio.bridge.commands import MAIN_THREAD_OPERATIONS, OPERATION_ARGUMENTS, Operation, SurfaceCommand
from kio.settings.recent import RecentFilesTracker
from kio.settings.store import SettingsError, SettingsPatch, SettingsStore
from kio.workspace.gateway import FileGateway
from kio.workspace.results import Result
from kio.workspace.watcher import WatchEvent, WatchEventKind, WatchRegistry

if TYPE_CHECKING:
    from kio.bridge.dialogs import DialogService

ResponseCallback = Callable[[Result], None]

_STRING_ARGUMENTS = frozenset({"path", "content", "url"})


class RequestContractError(ValueError):
    pass


def _max_io_threads() -> int | None:
    raw = os.environ.get("KIO_MAX_IO_THREADS", "").strip()
    if not raw:
        return None
    try:
        return max(1, int(raw))
    except ValueError:
        return None


class WorkspaceBridge(QObject):
    response_ready = Signal(int, object)
    watch_event = Signal(str, str)
    file_changed = Signal(str)
    file_added = Signal(str)
    file_removed = Signal(str)
    settings_loaded = Signal(object)
    command_issued = Signal(str)
    open_file_requested = Signal(str)
    open_folder_requested = Signal(str)
    error_notified = Signal(str, str)
    log_message = Signal(str)

    _request_finished = Signal(int, object)
    _watch_event_received = Signal(object)

    def __init__(
        self,
        store: SettingsStore,
        dialogs: DialogService | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._dialogs = dialogs
        self._recents = RecentFilesTracker(store)
        self._gateway = FileGateway(self._recents, logger=self.log)
        self._registry = WatchRegistry(self._watch_event_received.emit, logger=self.log)

        self._pool = QThreadPool(self)
        max_threads = _max_io_threads()
        if max_threads is not None:
            self._pool.setMaxThreadCount(max_threads)

        self._pending_lock = threading.Lock()
        self._pending_requests: dict[int, ResponseCallback | None] = {}
        self._next_request_id = 1
        self._surface_ready = False
        self._is_shut_down = False

        self._request_finished.connect(self._on_request_finished, Qt.ConnectionType.QueuedConnection)
        self._watch_event_received.connect(self._on_watch_event, Qt.ConnectionType.QueuedConnection)

        self._handlers: dict[Operation, Callable[..., Result]] = {
            Operation.GET_SETTINGS: self._get_settings,
            Operation.UPDATE_SETTINGS: self._store.patch,
            Operation.READ_FILE: self._gateway.read_file,
            Operation.WRITE_FILE: self._gateway.write_file,
            Operation.LIST_DIRECTORY: self._gateway.list_directory,
            Operation.WATCH_DIRECTORY: self._registry.watch,
            Operation.UNWATCH_DIRECTORY: self._registry.unwatch,
            Operation.PATH_EXISTS: self._path_exists,
            Operation.RECENT_FILES: self._recent_files,
            Operation.OPEN_FILE_DIALOG: self._open_file_dialog,
            Operation.OPEN_FOLDER_DIALOG: self._open_folder_dialog,
            Operation.SAVE_FILE_DIALOG: self._save_file_dialog,
            Operation.SHOW_IN_FOLDER: self._show_in_folder,
            Operation.OPEN_EXTERNAL: self._open_external,
        }

    @property
    def store(self) -> SettingsStore:
        return self._store

    @property
    def recents(self) -> RecentFilesTracker:
        return self._recents

    @property
    def gateway(self) -> FileGateway:
        return self._gateway

    @property
    def registry(self) -> WatchRegistry:
        return self._registry

    @property
    def dialogs(self) -> DialogService | None:
        return self._dialogs

    def is_surface_ready(self) -> bool:
        return self._surface_ready

    def call(self, operation: Operation | str, **arguments: object) -> Result:
        if self._is_shut_down:
            raise RuntimeError("Workspace bridge has been shut down.")
        resolved, prepared = self._prepare(operation, arguments)
        return self._execute(resolved, prepared)

    def submit(
        self,
        operation: Operation | str,
        arguments: Mapping[str, object] | None = None,
        callback: ResponseCallback | None = None,
    ) -> int:
        if self._is_shut_down:
            raise RuntimeError("Workspace bridge has been shut down.")
        resolved, prepared = self._prepare(operation, dict(arguments or {}))

        with self._pending_lock:
            request_id = self._next_request_id
            self._next_request_id += 1
            self._pending_requests[request_id] = callback

        if resolved in MAIN_THREAD_OPERATIONS:
            QTimer.singleShot(0, partial(self._run_request, request_id, resolved, prepared))
        else:
            self._pool.start(partial(self._run_request, request_id, resolved, prepared))
        return request_id

    def surface_ready(self) -> None:
        self._surface_ready = True
        self.settings_loaded.emit(self._store.get_all())

    def surface_disconnected(self) -> None:
        self._surface_ready = False
        self._registry.shutdown()
        self.log("[bridge] UI surface disconnected; watches closed.")

    def send_command(self, command: SurfaceCommand | str) -> None:
        try:
            resolved = SurfaceCommand(command)
        except ValueError as exc:
            raise RequestContractError(f"Unknown surface command {command!r}.") from exc
        self.command_issued.emit(resolved.value)

    def open_file(self) -> str | None:
        if self._dialogs is None:
            return None
        path = self._dialogs.open_file(self._store.get_all().workspace).first_path
        if path:
            self.open_file_requested.emit(path)
        return path

    def open_folder(self) -> str | None:
        if self._dialogs is None:
            return None
        path = self._dialogs.open_folder(self._store.get_all().workspace).first_path
        if path:
            self.open_folder_requested.emit(path)
        return path

    def open_recent_file(self, path: str) -> bool:
        if self._gateway.path_exists(path):
            self.open_file_requested.emit(path)
            return True

        message = f"File not found: {path}"
        self.log(f"[bridge] {message}")
        self.error_notified.emit("Error", message)
        return False

    def shutdown(self) -> None:
        if self._is_shut_down:
            return
        self._is_shut_down = True
        self._surface_ready = False
        try:
            self._registry.shutdown()
        finally:
            self._pool.waitForDone()
        self.log("[bridge] Shut down.")

    def log(self, message: str) -> None:
        self.log_message.emit(message)

    def _prepare(self, operation: Operation | str, arguments: Mapping[str, object]) -> tuple[Operation, dict[str, object]]:
        try:
            resolved = Operation(operation)
        except ValueError as exc:
            raise RequestContractError(f"Unknown operation {operation!r}.") from exc

        required, optional = OPERATION_ARGUMENTS[resolved]
        missing = [name for name in required if name not in arguments]
        if missing:
            raise RequestContractError(f"{resolved.value}: missing argument(s) {', '.join(missing)}.")
        unexpected = sorted(set(arguments) - set(required) - set(optional))
        if unexpected:
            raise RequestContractError(f"{resolved.value}: unexpected argument(s) {', '.join(unexpected)}.")

        prepared = dict(arguments)
        for name, value in prepared.items():
            if name in _STRING_ARGUMENTS and not isinstance(value, str):
                raise RequestContractError(f"{resolved.value}: {name} must be a string, got {type(value).__name__}.")
            if name == "default_path" and value is not None and not isinstance(value, str):
                raise RequestContractError(f"{resolved.value}: default_path must be a string or None.")

        if resolved is Operation.UPDATE_SETTINGS:
            settings = prepared["settings"]
            if not isinstance(settings, SettingsPatch):
                try:
                    settings = SettingsPatch.from_mapping(settings)
                except SettingsError as exc:
                    raise RequestContractError(f"{resolved.value}: {exc}") from exc
            prepared = {"partial": settings}

        return resolved, prepared

    def _execute(self, operation: Operation, arguments: dict[str, object]) -> Result:
        handler = self._handlers[operation]
        try:
            return handler(**arguments)
        except OSError as exc:
            self.log(f"[bridge] {operation.value} failed: {exc}")
            return Result.failure(f"{operation.value} failed: {exc}")

    def _run_request(self, request_id: int, operation: Operation, arguments: dict[str, object]) -> None:
        try:
            result = self._execute(operation, arguments)
        except Exception as exc:  # noqa: BLE001 (reported to the caller as a failure)
            self.log(f"[bridge] Unexpected error in {operation.value}: {exc!r}")
            result = Result.failure(f"{operation.value} failed: {exc}")
        self._request_finished.emit(request_id, result)

    def _on_request_finished(self, request_id: int, result: Result) -> None:
        with self._pending_lock:
            callback = self._pending_requests.pop(request_id, None)
        if callback is not None:
            callback(result)
        self.response_ready.emit(request_id, result)

    def _on_watch_event(self, event: WatchEvent) -> None:
        if not self._registry.is_live(event.handle_id):
            return

        self.watch_event.emit(event.kind.value, event.path)
        if event.kind is WatchEventKind.CHANGED:
            self.file_changed.emit(event.path)
        elif event.kind is WatchEventKind.ADDED:
            self.file_added.emit(event.path)
        else:
            self.file_removed.emit(event.path)

    def _get_settings(self) -> Result:
        return Result.success(self._store.get_all())

    def _path_exists(self, path: str) -> Result:
        return Result.success(self._gateway.path_exists(path))

    def _recent_files(self) -> Result:
        return Result.success(self._recents.list_for_menu())

    def _open_file_dialog(self) -> Result:
        if self._dialogs is None:
            return Result.failure("No dialog service is available.")
        return Result.success(self._dialogs.open_file(self._store.get_all().workspace))

    def _open_folder_dialog(self) -> Result:
        if self._dialogs is None:
            return Result.failure("No dialog service is available.")
        return Result.success(self._dialogs.open_folder(self._store.get_all().workspace))

    def _save_file_dialog(self, default_path: str | None = None) -> Result:
        if self._dialogs is None:
            return Result.failure("No dialog service is available.")
        return Result.success(self._dialogs.save_file(default_path))

    def _show_in_folder(self, path: str) -> Result:
        if self._dialogs is None:
            return Result.failure("No dialog service is available.")
        if not self._dialogs.show_in_folder(path):
            return Result.failure(f"Could not reveal {path}")
        return Result.success()

    def _open_external(self, url: str) -> Result:
        if self._dialogs is None:
            return Result.failure("No dialog service is available.")
        if not self._dialogs.open_external(url):
            return Result.failure(f"Could not open {url}")
        return Result.success()
