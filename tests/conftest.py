"""Shared fixtures for kio tests."""

import os
import time

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QCoreApplication  # noqa: E402

from kio.bridge import WorkspaceBridge  # noqa: E402
from kio.settings import SettingsStore  # noqa: E402
from kio.workspace.results import DialogSelection  # noqa: E402


class FakeDialogs:
    """Stand-in for the native dialog service; records every call."""

    def __init__(self, selection=None):
        self.selection = selection or DialogSelection(canceled=True)
        self.calls = []
        self.errors = []

    def open_file(self, start_dir=""):
        self.calls.append(("open_file", start_dir))
        return self.selection

    def open_folder(self, start_dir=""):
        self.calls.append(("open_folder", start_dir))
        return self.selection

    def save_file(self, default_path=None):
        self.calls.append(("save_file", default_path))
        return self.selection

    def show_error(self, title, message):
        self.errors.append((title, message))

    def show_in_folder(self, path):
        self.calls.append(("show_in_folder", path))
        return True

    def open_external(self, url):
        self.calls.append(("open_external", url))
        return True


@pytest.fixture(scope="session")
def qapp():
    """Single QCoreApplication for the whole session."""
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def wait_until(qapp):
    """Pump the Qt event loop until a predicate holds or the timeout expires."""

    def _wait(predicate, timeout=5.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            qapp.processEvents()
            if predicate():
                return True
            time.sleep(0.01)
        qapp.processEvents()
        return predicate()

    return _wait


@pytest.fixture
def settings_path(tmp_path):
    return str(tmp_path / "config" / "settings.json")


@pytest.fixture
def store(settings_path):
    store = SettingsStore(settings_path)
    store.load()
    return store


@pytest.fixture
def fake_dialogs():
    return FakeDialogs()


@pytest.fixture
def bridge(qapp, store, fake_dialogs):
    bridge = WorkspaceBridge(store, fake_dialogs)
    yield bridge
    bridge.shutdown()
