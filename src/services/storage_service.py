"""
Persistent key-value storage for customer session state
"""
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

CART_PREFIX = "cart_"
LAST_ORDER_PREFIX = "lastOrder_"
DONT_CLEAR_PREFIX = "dontClear_"
PREFILL_LOCATION_PREFIX = "prefillLocation_"
CUSTOMER_DETAILS_KEY = "customerDetails"


def cart_key(tenant: str) -> str:
    return f"{CART_PREFIX}{tenant}"


def last_order_key(tenant: str) -> str:
    return f"{LAST_ORDER_PREFIX}{tenant}"


def dont_clear_key(tenant: str) -> str:
    return f"{DONT_CLEAR_PREFIX}{tenant}"


def prefill_location_key(tenant: str) -> str:
    return f"{PREFILL_LOCATION_PREFIX}{tenant}"


class KeyValueStore(ABC):
    """String-to-string store; a missing key is a normal state, not an error"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...

    def keys_with_prefix(self, prefix: str) -> List[str]:
        return [key for key in self.keys() if key.startswith(prefix)]

    def reload(self) -> None:
        """Pick up changes made outside this process; no-op when nothing is shared"""


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())


class JsonFileKeyValueStore(KeyValueStore):
    """
    Key-value store persisted as one JSON document.

    Every set/remove rewrites the file before returning, so a second
    process opening the same file sees the latest state. Removing the
    last key deletes the file. Write errors (disk full, permissions)
    propagate to the caller.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session store {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring session store {self.path}: expected an object")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self):
        if not self._data:
            # An empty session leaves nothing behind on disk
            self.path.unlink(missing_ok=True)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def reload(self) -> None:
        self._data = self._load()

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    def keys(self) -> List[str]:
        return list(self._data.keys())
