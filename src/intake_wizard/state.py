"""
Observable answer store with a durable JSON snapshot.

Every accepted write lands in memory first, then the whole mapping is written
to the storage backend under one named entry. A reload rebuilds the store from
that entry (`PersistedState.load`).

If the backend fails, the store keeps working in memory only and reports the
failure once through `on_persist_error`.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from intake_wizard.config import STATE_ENTRY_NAME
from intake_wizard.errors import PersistenceError
from intake_wizard.schemas import FormAnswers

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Any], None]


class StateStorage(Protocol):
    def read(self, name: str) -> Optional[str]: ...

    def write(self, name: str, payload: str) -> None: ...

    def remove(self, name: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage. Good for tests and for running without a disk."""

    def __init__(self) -> None:
        self.entries: Dict[str, str] = {}

    def read(self, name: str) -> Optional[str]:
        return self.entries.get(name)

    def write(self, name: str, payload: str) -> None:
        self.entries[name] = payload

    def remove(self, name: str) -> None:
        self.entries.pop(name, None)


class JsonFileStorage:
    """One `<name>.json` file per entry inside `directory`."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    def read(self, name: str) -> Optional[str]:
        path = self._path(name)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, name: str, payload: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves a half-written entry.
        fd, tmp = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=str(self.directory))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path(name))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def remove(self, name: str) -> None:
        self._path(name).unlink(missing_ok=True)


class PersistedState:
    def __init__(
        self,
        storage: StateStorage,
        initial: Optional[Mapping[str, Any]] = None,
        *,
        name: str = STATE_ENTRY_NAME,
        on_persist_error: Optional[Callable[[PersistenceError], None]] = None,
    ) -> None:
        self._storage = storage
        self._name = name
        self._data: FormAnswers = dict(initial or {})
        self._subscribers: List[Subscriber] = []
        self._degraded = False
        # set once the durable entry is gone and memory is ahead of it
        self._stale = False
        self.on_persist_error = on_persist_error

    @classmethod
    def load(
        cls,
        storage: StateStorage,
        defaults: Mapping[str, Any],
        *,
        name: str = STATE_ENTRY_NAME,
        on_persist_error: Optional[Callable[[PersistenceError], None]] = None,
    ) -> "PersistedState":
        """
        Restore the store from durable storage, or start from `defaults`.

        Saved values are merged over the defaults so keys added to the template
        later are still present after a reload.
        """
        data = dict(defaults)
        raw = None
        try:
            raw = storage.read(name)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("[state] could not read %s: %s", name, exc)
        if raw:
            try:
                saved = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("[state] discarding undecodable snapshot %s", name)
                saved = None
            if isinstance(saved, dict):
                data.update(saved)
        return cls(storage, data, name=name, on_persist_error=on_persist_error)

    @property
    def degraded(self) -> bool:
        """True once a durable write failed and the store went memory-only."""
        return self._degraded

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Mapping[str, Any]) -> None:
        """Apply several writes with a single durable snapshot."""
        changed = {k: v for k, v in values.items() if k not in self._data or self._data[k] != v}
        if not changed and not self._stale:
            return
        self._data.update(changed)
        self._persist()
        for key, value in changed.items():
            self._notify(key, value)

    def snapshot(self) -> FormAnswers:
        return dict(self._data)

    def clear(self) -> None:
        """Erase the durable entry. In-memory values stay readable."""
        try:
            self._storage.remove(self._name)
        except OSError as exc:
            self._fail(PersistenceError(f"could not remove {self._name}: {exc}"))
            return
        self._stale = True
        logger.info("[state] stored form data cleared")

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _persist(self) -> None:
        if self._degraded:
            return
        try:
            payload = json.dumps(self._data, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            self._fail(PersistenceError(f"answers are not JSON serializable: {exc}"))
            return
        try:
            self._storage.write(self._name, payload)
        except OSError as exc:
            self._fail(PersistenceError(f"could not write {self._name}: {exc}"))
            return
        self._stale = False

    def _fail(self, err: PersistenceError) -> None:
        first = not self._degraded
        self._degraded = True
        logger.warning("[state] %s; keeping answers in memory only", err)
        if first and self.on_persist_error is not None:
            self.on_persist_error(err)

    def _notify(self, key: str, value: Any) -> None:
        for callback in list(self._subscribers):
            callback(key, value)
