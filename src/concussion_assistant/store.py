"""Key-value persistence used by the learning store.

The store is an injected collaborator: anything with ``get``, ``set`` and
``get_by_prefix`` works. It offers no transactions and no multi-key atomicity.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

JSONValue = Any


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[JSONValue]:
        ...

    def set(self, key: str, value: JSONValue) -> None:
        ...

    def get_by_prefix(self, prefix: str) -> List[JSONValue]:
        ...


def _copy(value: JSONValue) -> JSONValue:
    return json.loads(json.dumps(value))


class InMemoryKeyValueStore:
    """Thread-safe dict store; values are isolated copies, as with a remote store."""

    def __init__(self, initial: Optional[Dict[str, JSONValue]] = None):
        self._data: Dict[str, JSONValue] = {key: _copy(value) for key, value in (initial or {}).items()}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[JSONValue]:
        with self._lock:
            value = self._data.get(key)
        return None if value is None else _copy(value)

    def set(self, key: str, value: JSONValue) -> None:
        copied = _copy(value)
        with self._lock:
            self._data[key] = copied

    def get_by_prefix(self, prefix: str) -> List[JSONValue]:
        with self._lock:
            matches = [(key, value) for key, value in self._data.items() if key.startswith(prefix)]
        return [_copy(value) for _, value in sorted(matches, key=lambda item: item[0])]


class JsonFileKeyValueStore:
    """Whole-document JSON file store for local use and the CLI."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, JSONValue]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreUnavailable(f"Cannot read store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreUnavailable(f"Store {self.path} is not a JSON object")
        return data

    def _dump(self, data: Dict[str, JSONValue]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise StoreUnavailable(f"Cannot write store {self.path}: {exc}") from exc

    def get(self, key: str) -> Optional[JSONValue]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: JSONValue) -> None:
        with self._lock:
            data = self._load()
            data[key] = _copy(value)
            self._dump(data)
        logger.debug(f"Stored key {key} in {self.path}")

    def get_by_prefix(self, prefix: str) -> List[JSONValue]:
        with self._lock:
            data = self._load()
        return [data[key] for key in sorted(data) if key.startswith(prefix)]
