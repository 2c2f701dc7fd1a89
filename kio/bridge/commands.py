from __future__ import annotations

from enum import Enum


class Operation(str, Enum):
    GET_SETTINGS = "get-settings"
    UPDATE_SETTINGS = "update-settings"
    READ_FILE = "read-file"
    WRITE_FILE = "write-file"
    LIST_DIRECTORY = "read-directory"
    WATCH_DIRECTORY = "watch-directory"
    UNWATCH_DIRECTORY = "unwatch-directory"
    PATH_EXISTS = "path-exists"
    RECENT_FILES = "recent-files"
    OPEN_FILE_DIALOG = "open-file-dialog"
    OPEN_FOLDER_DIALOG = "open-folder-dialog"
    SAVE_FILE_DIALOG = "save-file-dialog"
    SHOW_IN_FOLDER = "show-in-folder"
    OPEN_EXTERNAL = "open-external"


# Operations that touch widgets or desktop services and must run on the GUI thread.
MAIN_THREAD_OPERATIONS = frozenset(
    {
        Operation.OPEN_FILE_DIALOG,
        Operation.OPEN_FOLDER_DIALOG,
        Operation.SAVE_FILE_DIALOG,
        Operation.SHOW_IN_FOLDER,
        Operation.OPEN_EXTERNAL,
    }
)

# Required and optional argument names per operation.
OPERATION_ARGUMENTS: dict[Operation, tuple[tuple[str, ...], tuple[str, ...]]] = {
    Operation.GET_SETTINGS: ((), ()),
    Operation.UPDATE_SETTINGS: (("settings",), ()),
    Operation.READ_FILE: (("path",), ()),
    Operation.WRITE_FILE: (("path", "content"), ()),
    Operation.LIST_DIRECTORY: (("path",), ()),
    Operation.WATCH_DIRECTORY: (("path",), ()),
    Operation.UNWATCH_DIRECTORY: (("path",), ()),
    Operation.PATH_EXISTS: (("path",), ()),
    Operation.RECENT_FILES: ((), ()),
    Operation.OPEN_FILE_DIALOG: ((), ()),
    Operation.OPEN_FOLDER_DIALOG: ((), ()),
    Operation.SAVE_FILE_DIALOG: ((), ("default_path",)),
    Operation.SHOW_IN_FOLDER: (("path",), ()),
    Operation.OPEN_EXTERNAL: (("url",), ()),
}


class SurfaceCommand(str, Enum):
    NEW_FILE = "new-file"
    SAVE_FILE = "save-file"
    SAVE_FILE_AS = "save-file-as"
    SHOW_FIND = "show-find"
    SHOW_REPLACE = "show-replace"
    SHOW_FIND_IN_FILES = "show-find-in-files"
    TOGGLE_SIDEBAR = "toggle-sidebar"
    TOGGLE_STATUS_BAR = "toggle-status-bar"
    TOGGLE_ZEN_MODE = "toggle-zen-mode"
    NEW_TERMINAL = "new-terminal"
    TOGGLE_TERMINAL = "toggle-terminal"
    SHOW_COMMAND_PALETTE = "show-command-palette"
