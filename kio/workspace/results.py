from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Result:
    """Outcome of a bridge request: a value on success, a message on failure."""

    ok: bool
    value: object | None = None
    error: str = ""

    @classmethod
    def success(cls, value: object | None = None) -> Result:
        return cls(True, value, "")

    @classmethod
    def failure(cls, message: str) -> Result:
        text = str(message).strip() or "Operation failed."
        return cls(False, None, text)

    def to_payload(self, value_key: str = "value") -> dict[str, object]:
        if not self.ok:
            return {"success": False, "error": self.error}

        payload: dict[str, object] = {"success": True}
        if self.value is not None:
            payload[value_key] = _to_plain(self.value)
        return payload


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: str
    is_directory: bool
    size: int
    modified: float

    def to_payload(self) -> dict[str, object]:
        return {
            "name": self.name,
            "path": self.path,
            "isDirectory": self.is_directory,
            "size": self.size,
            "modified": self.modified,
        }


@dataclass(frozen=True)
class DialogSelection:
    canceled: bool
    paths: list[str] = field(default_factory=list)

    @property
    def first_path(self) -> str | None:
        if self.canceled or not self.paths:
            return None
        return self.paths[0]

    def to_payload(self) -> dict[str, object]:
        return {"canceled": self.canceled, "filePaths": list(self.paths)}


def _to_plain(value: object) -> object:
    to_payload = getattr(value, "to_payload", None)
    if callable(to_payload):
        return to_payload()
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_plain(item) for key, item in value.items()}
    return value
