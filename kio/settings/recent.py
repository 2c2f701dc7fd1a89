from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kio.settings.store import EditorSettings, SettingsStore

MAX_RECENT_FILES = 10


@dataclass(frozen=True)
class RecentFileEntry:
    label: str
    path: str

    def to_payload(self) -> dict[str, str]:
        return {"label": self.label, "path": self.path}


def push_recent(entries: Iterable[str], path: str, limit: int = MAX_RECENT_FILES) -> list[str]:
    updated = [path]
    updated.extend(existing for existing in entries if existing != path)
    return updated[:limit]


def normalize_recent(entries: Iterable[str], limit: int = MAX_RECENT_FILES) -> list[str]:
    result: list[str] = []
    seen: set[str] = set()
    for value in entries:
        candidate = value.strip()
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        result.append(candidate)
        if len(result) >= limit:
            break
    return result


def menu_label(path: str) -> str:
    return os.path.basename(path) or path


class RecentFilesTracker:
    def __init__(self, store: SettingsStore, limit: int = MAX_RECENT_FILES) -> None:
        self._store = store
        self._limit = limit

    def record_opened(self, path: str) -> list[str]:
        absolute_path = os.path.abspath(path)

        def _apply(settings: EditorSettings) -> EditorSettings:
            settings.recent_files = push_recent(settings.recent_files, absolute_path, self._limit)
            return settings

        return self._store.update(_apply).recent_files

    def recent_files(self) -> list[str]:
        return self._store.get_all().recent_files

    def list_for_menu(self) -> list[RecentFileEntry]:
        return [RecentFileEntry(menu_label(path), path) for path in self.recent_files()]
