"""Durable local storage for session snapshots."""

import os
from datetime import datetime
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from intake.utils.exceptions import SnapshotError
from intake.utils.logger import get_logger

from .models import SNAPSHOT_VERSION, OnboardingSession, SessionSnapshot

logger = get_logger(__name__)


class SnapshotStore(Protocol):
    """Key/value storage holding serialized snapshots."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self, key: str) -> None: ...


class MemorySnapshotStore:
    """In-process store, used by tests and the stateless API."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def clear(self, key: str) -> None:
        self._data.pop(key, None)


class FileSnapshotStore:
    """Stores each key as a JSON file under a directory.

    Args:
        directory: Directory holding the snapshot files.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SnapshotError(f"Cannot read snapshot {path}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            raise SnapshotError(f"Cannot write snapshot {path}: {exc}") from exc
        logger.debug("Wrote snapshot %s (%d bytes)", path, len(value))

    def clear(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise SnapshotError(f"Cannot delete snapshot {key}: {exc}") from exc


def encode_snapshot(session: OnboardingSession, saved_at: datetime) -> str:
    return SessionSnapshot(saved_at=saved_at, session=session).model_dump_json()


def decode_snapshot(text: str) -> SessionSnapshot:
    """Parse a stored snapshot.

    Raises:
        SnapshotError: If the payload is corrupt or from another version.
    """
    try:
        snapshot = SessionSnapshot.model_validate_json(text)
    except ValidationError as exc:
        raise SnapshotError(f"Unreadable snapshot: {exc.error_count()} errors") from exc
    if snapshot.version != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported snapshot version {snapshot.version}")
    return snapshot
