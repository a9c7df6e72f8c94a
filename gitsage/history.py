"""Commit message history stored as a JSON file."""

from __future__ import annotations

import json
import os
import re
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

DEFAULT_MAX_ENTRIES = 1000

_ZERO_TIME = "0001-01-01T00:00:00Z"
_FRACTION = re.compile(r"\.(\d+)")


def _format_time(moment: datetime | None) -> str:
    if moment is None:
        return _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def _parse_time(text: str) -> datetime | None:
    if not text or text == _ZERO_TIME:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass
class HistoryEntry:
    """One generated commit message and where it came from."""

    message: str = ""
    diff_summary: str = ""
    provider: str = ""
    model: str = ""
    committed: bool = False
    id: str = ""
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "id": self.id,
            "timestamp": _format_time(self.timestamp),
            "message": self.message,
            "diff_summary": self.diff_summary,
            "provider": self.provider,
            "model": self.model,
            "committed": self.committed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryEntry:
        """Build an entry from its JSON representation."""
        if not isinstance(data, dict):
            raise ValueError("history entry is not an object")
        return cls(
            id=str(data.get("id") or ""),
            timestamp=_parse_time(str(data.get("timestamp") or "")),
            message=str(data.get("message") or ""),
            diff_summary=str(data.get("diff_summary") or ""),
            provider=str(data.get("provider") or ""),
            model=str(data.get("model") or ""),
            committed=bool(data.get("committed", False)),
        )


class HistoryError(Exception):
    """Raised when the history file cannot be read or written."""


class HistoryManager:
    """Keeps at most ``max_entries`` history entries in a JSON file."""

    def __init__(self, file_path: str | os.PathLike[str], max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._path = Path(file_path)
        self._max_entries = max_entries if max_entries > 0 else DEFAULT_MAX_ENTRIES
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        return self._path

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def save(self, entry: HistoryEntry) -> None:
        """Append an entry, filling in its id and timestamp if missing.

        The oldest entries are dropped once the limit is exceeded.
        """
        with self._lock:
            if not entry.id:
                entry.id = str(uuid.uuid4())
            if entry.timestamp is None:
                entry.timestamp = datetime.now().astimezone()

            try:
                stored = self._load()
            except FileNotFoundError:
                stored = []
            except (OSError, ValueError) as exc:
                raise HistoryError(f"failed to load history: {exc}") from exc

            stored.append(entry)
            if len(stored) > self._max_entries:
                stored = stored[-self._max_entries :]

            try:
                self._write(json.dumps([item.to_dict() for item in stored], indent=2))
            except OSError as exc:
                raise HistoryError(f"failed to save history: {exc}") from exc

    def entries(self, limit: int = 0) -> list[HistoryEntry]:
        """The most recent entries, oldest first; a limit of 0 or less means all."""
        with self._lock:
            try:
                stored = self._load()
            except FileNotFoundError:
                return []
            except (OSError, ValueError) as exc:
                raise HistoryError(f"failed to load history: {exc}") from exc
        if limit <= 0 or len(stored) <= limit:
            return stored
        return stored[-limit:]

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            try:
                self._write("[]")
            except OSError as exc:
                raise HistoryError(f"failed to clear history: {exc}") from exc

    def _load(self) -> list[HistoryEntry]:
        text = self._path.read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"failed to parse history file: {exc}") from exc
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError("failed to parse history file: not a list")
        try:
            return [HistoryEntry.from_dict(item) for item in data]
        except (TypeError, ValueError) as exc:
            raise ValueError(f"failed to parse history file: {exc}") from exc

    def _write(self, text: str) -> None:
        self._path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)