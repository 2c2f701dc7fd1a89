from __future__ import annotations

import json
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Callable

from PySide6.QtCore import QStandardPaths

from kio.fileutils import write_text_atomic
from kio.settings.recent import MAX_RECENT_FILES, normalize_recent
from kio.workspace.results import Result

SETTINGS_FILE_NAME = "settings.json"
_FALLBACK_SETTINGS_DIR_NAME = ".kio"
_MIN_FONT_SIZE = 6
_MAX_FONT_SIZE = 96
_MIN_TAB_SIZE = 1
_MAX_TAB_SIZE = 16


class SettingsError(ValueError):
    pass


@dataclass
class EditorSettings:
    theme: str = "vs-dark"
    font_size: int = 14
    font_family: str = 'Consolas, "Courier New", monospace'
    tab_size: int = 2
    insert_spaces: bool = True
    word_wrap: bool = False
    minimap: bool = True
    line_numbers: bool = True
    auto_save: bool = True
    recent_files: list[str] = field(default_factory=list)
    workspace: str = ""
    sidebar_visible: bool = True
    status_bar_visible: bool = True
    zen_mode: bool = False

    def copy(self) -> EditorSettings:
        return replace(self, recent_files=list(self.recent_files))

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {}
        for name in OPTION_NAMES:
            value = getattr(self, name)
            payload[_wire_key(name)] = list(value) if isinstance(value, list) else value
        return payload


@dataclass
class SettingsPatch:
    theme: str | None = None
    font_size: int | None = None
    font_family: str | None = None
    tab_size: int | None = None
    insert_spaces: bool | None = None
    word_wrap: bool | None = None
    minimap: bool | None = None
    line_numbers: bool | None = None
    auto_save: bool | None = None
    recent_files: list[str] | None = None
    workspace: str | None = None
    sidebar_visible: bool | None = None
    status_bar_visible: bool | None = None
    zen_mode: bool | None = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> SettingsPatch:
        if not isinstance(values, Mapping):
            raise SettingsError(f"Settings update must be a mapping, got {type(values).__name__}.")

        resolved: dict[str, object] = {}
        unknown: list[str] = []
        for key, value in values.items():
            name = _OPTION_BY_KEY.get(key) if isinstance(key, str) else None
            if name is None:
                unknown.append(str(key))
                continue
            resolved[name] = coerce_option(name, value)

        if unknown:
            raise SettingsError(f"Unknown settings key(s): {', '.join(sorted(unknown))}")
        return cls(**resolved)

    def supplied(self) -> dict[str, object]:
        return {
            name: getattr(self, name)
            for name in OPTION_NAMES
            if getattr(self, name) is not None
        }


OPTION_NAMES: tuple[str, ...] = tuple(option.name for option in fields(EditorSettings))

_OPTION_KINDS: dict[str, type] = {
    "theme": str,
    "font_size": int,
    "font_family": str,
    "tab_size": int,
    "insert_spaces": bool,
    "word_wrap": bool,
    "minimap": bool,
    "line_numbers": bool,
    "auto_save": bool,
    "recent_files": list,
    "workspace": str,
    "sidebar_visible": bool,
    "status_bar_visible": bool,
    "zen_mode": bool,
}

_INT_BOUNDS: dict[str, tuple[int, int]] = {
    "font_size": (_MIN_FONT_SIZE, _MAX_FONT_SIZE),
    "tab_size": (_MIN_TAB_SIZE, _MAX_TAB_SIZE),
}


def _wire_key(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


_OPTION_BY_KEY: dict[str, str] = {}
for _name in OPTION_NAMES:
    _OPTION_BY_KEY[_name] = _name
    _OPTION_BY_KEY[_wire_key(_name)] = _name


def coerce_option(name: str, value: object) -> object:
    kind = _OPTION_KINDS[name]
    wire_key = _wire_key(name)

    if kind is bool:
        if not isinstance(value, bool):
            raise SettingsError(f"{wire_key} must be a boolean, got {value!r}.")
        return value

    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise SettingsError(f"{wire_key} must be an integer, got {value!r}.")
        low, high = _INT_BOUNDS.get(name, (value, value))
        return max(low, min(high, value))

    if kind is str:
        if not isinstance(value, str):
            raise SettingsError(f"{wire_key} must be a string, got {value!r}.")
        return value

    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise SettingsError(f"{wire_key} must be a list of strings, got {value!r}.")
    return normalize_recent(value, MAX_RECENT_FILES)


def merge_settings(current: EditorSettings, patch: SettingsPatch) -> EditorSettings:
    updates = patch.supplied()
    if "recent_files" in updates:
        updates["recent_files"] = list(updates["recent_files"])
    return replace(current.copy(), **updates)


def settings_from_payload(
    payload: Mapping[str, object],
    logger: Callable[[str], None] | None = None,
) -> EditorSettings:
    values: dict[str, object] = {}
    for key, value in payload.items():
        name = _OPTION_BY_KEY.get(key) if isinstance(key, str) else None
        if name is None:
            if logger is not None:
                logger(f"[settings] Ignoring unknown key {key!r}.")
            continue
        try:
            values[name] = coerce_option(name, value)
        except SettingsError as exc:
            if logger is not None:
                logger(f"[settings] {exc} Using default.")
    return EditorSettings(**values)


def default_settings_path() -> str:
    override = os.environ.get("KIO_SETTINGS_PATH", "").strip()
    if override:
        return os.path.abspath(os.path.expanduser(override))

    location = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.AppDataLocation)
    if location:
        return os.path.join(location, SETTINGS_FILE_NAME)
    return os.path.join(os.path.expanduser("~"), _FALLBACK_SETTINGS_DIR_NAME, SETTINGS_FILE_NAME)


class SettingsStore:
    """Editor settings held in memory and mirrored to a JSON file on every change.

    ``patch`` and ``update`` run under one lock, so concurrent updates (for
    example two rapid recent-file recordings) apply one after the other and
    the file on disk always matches the last in-memory state.
    """

    def __init__(
        self,
        path: str | None = None,
        *,
        logger: Callable[[str], None] | None = None,
    ) -> None:
        self._path = os.path.abspath(path) if path else default_settings_path()
        self._logger = logger
        self._lock = threading.Lock()
        self._settings = EditorSettings()

    @property
    def path(self) -> str:
        return self._path

    def load(self) -> EditorSettings:
        settings = self._read_settings()
        with self._lock:
            self._settings = settings
        return settings.copy()

    def get_all(self) -> EditorSettings:
        with self._lock:
            return self._settings.copy()

    def patch(self, partial: SettingsPatch | Mapping[str, object]) -> Result:
        patch = partial if isinstance(partial, SettingsPatch) else SettingsPatch.from_mapping(partial)
        self.update(lambda current: merge_settings(current, patch))
        return Result.success()

    def update(self, mutator: Callable[[EditorSettings], EditorSettings]) -> EditorSettings:
        with self._lock:
            updated = mutator(self._settings.copy())
            self._settings = updated
            self._persist(updated)
            return updated.copy()

    def _read_settings(self) -> EditorSettings:
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError:
            self.log(f"[settings] No settings at {self._path}; using defaults.")
            return EditorSettings()
        except OSError as exc:
            self.log(f"[settings] Could not read {self._path}: {exc}")
            return EditorSettings()
        except ValueError as exc:
            self.log(f"[settings] Invalid JSON in {self._path}; using defaults: {exc}")
            return EditorSettings()

        if not isinstance(payload, dict):
            self.log("[settings] Root JSON must be an object; using defaults.")
            return EditorSettings()
        return settings_from_payload(payload, self._logger)

    def _persist(self, settings: EditorSettings) -> None:
        text = json.dumps(settings.to_payload(), indent=2, ensure_ascii=False) + "\n"
        try:
            os.makedirs(os.path.dirname(self._path), exist_ok=True)
            write_text_atomic(self._path, text)
        except OSError as exc:
            self.log(f"[settings] Could not write {self._path}: {exc}")

    def log(self, message: str) -> None:
        if self._logger is not None:
            self._logger(message)
