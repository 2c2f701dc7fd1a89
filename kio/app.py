from __future__ import annotations

import sys
from datetime import datetime
from typing import Callable

from PySide6.QtCore import QObject
from PySide6.QtWidgets import QApplication, QWidget

from kio import __version__
from kio.bridge import WorkspaceBridge
from kio.bridge.dialogs import DialogService
from kio.settings import SettingsStore

_APPLICATION_NAME = "Kio"
_ORGANIZATION_NAME = "Kio"

SurfaceFactory = Callable[[WorkspaceBridge], QObject]


def _log_to_stderr(message: str) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"{timestamp} {message}", file=sys.stderr, flush=True)


def build_bridge(
    settings_path: str | None = None,
    dialog_parent: QWidget | None = None,
    logger: Callable[[str], None] | None = _log_to_stderr,
) -> WorkspaceBridge:
    store = SettingsStore(settings_path, logger=logger)
    store.load()
    dialogs = DialogService(dialog_parent)
    bridge = WorkspaceBridge(store, dialogs)
    if logger is not None:
        bridge.log_message.connect(logger)
    bridge.error_notified.connect(dialogs.show_error)
    return bridge


def run(surface_factory: SurfaceFactory | None = None) -> int:
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName(_APPLICATION_NAME)
    app.setOrganizationName(_ORGANIZATION_NAME)
    app.setApplicationVersion(__version__)

    bridge = build_bridge()
    try:
        surface = surface_factory(bridge) if surface_factory is not None else None
        if isinstance(surface, QWidget) and bridge.dialogs is not None:
            bridge.dialogs.set_parent(surface)
        return app.exec()
    finally:
        bridge.shutdown()
