# painmap/drafts/store.py
from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class DraftStore(ABC):
    """
    Key-value storage for the in-progress draft.

    Simple abstraction so the client can keep drafts wherever it likes
    (browser storage bridge, local file, memory in tests).
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        ...

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class InMemoryDraftStore(DraftStore):
    def __init__(self):
        self._items: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._items.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._items[key] = bytes(value)

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


class FileDraftStore(DraftStore):
    """
    One file per key under `directory`; survives client restarts.

    Writes go to a temporary file first and are renamed into place so a
    crash mid-write never leaves a truncated draft behind.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
        return self.directory / f"{digest}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Could not read draft %s: %s", path, exc)
            return None

    def set(self, key: str, value: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(value)
        tmp_path.replace(path)

    def remove(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)
