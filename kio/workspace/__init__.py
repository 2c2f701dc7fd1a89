from kio.workspace.results import DialogSelection, DirectoryEntry, Result
from kio.workspace.gateway import FileGateway
from kio.workspace.watcher import WatchEvent, WatchEventKind, WatchRegistry

__all__ = [
    "DialogSelection",
    "DirectoryEntry",
    "FileGateway",
    "Result",
    "WatchEvent",
    "WatchEventKind",
    "WatchRegistry",
]
