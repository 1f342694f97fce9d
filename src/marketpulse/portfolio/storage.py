"""Durable key-value storage for the local stores."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from ..config.logging import get_logger

logger = get_logger(__name__)


class KeyValueStorage(Protocol):
    """Protocol for durable local storage backends."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class MemoryStorage:
    """Non-durable storage, used for tests and bypass sessions."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {
            key: json.dumps(value) for key, value in (initial or {}).items()
        }

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        return default if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)


class JsonFileStorage:
    """All keys in a single JSON document, rewritten atomically on every set."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.error(
                "Local store file unreadable, starting empty",
                path=str(self.path),
                error=str(e),
            )
            return {}

        if not isinstance(data, dict):
            logger.error("Local store file is not an object", path=str(self.path))
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        value = self._data.get(key)
        return default if value is None else json.loads(json.dumps(value))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._write()

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
