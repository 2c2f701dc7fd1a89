from __future__ import annotations

import os

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import QFileDialog, QMessageBox, QWidget

from kio.workspace.results import DialogSelection

CODE_FILE_EXTENSIONS: tuple[str, ...] = (
    "js",
    "ts",
    "jsx",
    "tsx",
    "html",
    "css",
    "json",
    "xml",
    "py",
    "java",
    "cpp",
    "c",
    "php",
    "rb",
    "go",
    "rs",
    "swift",
    "kt",
)
TEXT_FILE_EXTENSIONS: tuple[str, ...] = ("txt", "md")


def _filter(label: str, extensions: tuple[str, ...]) -> str:
    patterns = " ".join(f"*.{extension}" for extension in extensions)
    return f"{label} ({patterns})"


ALL_FILES_FILTER = "All Files (*)"
OPEN_FILE_FILTERS = ";;".join(
    (
        ALL_FILES_FILTER,
        _filter("Text Files", TEXT_FILE_EXTENSIONS),
        _filter("Code Files", CODE_FILE_EXTENSIONS),
    )
)
SAVE_FILE_FILTERS = OPEN_FILE_FILTERS


class DialogService:
    """Native dialogs and desktop hand-offs. Must be used on the GUI thread."""

    def __init__(self, parent: QWidget | None = None) -> None:
        self._parent = parent

    def set_parent(self, parent: QWidget | None) -> None:
        self._parent = parent

    def open_file(self, start_dir: str = "") -> DialogSelection:
        file_path, _ = QFileDialog.getOpenFileName(
            self._parent,
            "Open File",
            start_dir or os.getcwd(),
            OPEN_FILE_FILTERS,
        )
        return self._selection(file_path)

    def open_folder(self, start_dir: str = "") -> DialogSelection:
        folder = QFileDialog.getExistingDirectory(self._parent, "Open Folder", start_dir or os.getcwd())
        return self._selection(folder)

    def save_file(self, default_path: str | None = None) -> DialogSelection:
        file_path, _ = QFileDialog.getSaveFileName(
            self._parent,
            "Save File",
            default_path or os.getcwd(),
            SAVE_FILE_FILTERS,
        )
        return self._selection(file_path)

    def show_error(self, title: str, message: str) -> None:
        QMessageBox.critical(self._parent, title, message)

    def show_in_folder(self, path: str) -> bool:
        absolute_path = os.path.abspath(path)
        folder = absolute_path if os.path.isdir(absolute_path) else os.path.dirname(absolute_path)
        return QDesktopServices.openUrl(QUrl.fromLocalFile(folder))

    def open_external(self, url: str) -> bool:
        return QDesktopServices.openUrl(QUrl(url))

    @staticmethod
    def _selection(path: str) -> DialogSelection:
        if not path:
            return DialogSelection(canceled=True)
        return DialogSelection(canceled=False, paths=[os.path.abspath(path)])
