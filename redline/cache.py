import hashlib
import os
import threading
from collections import OrderedDict
from typing import Any, Optional, Protocol

from .text_utils import normalize_for_key

CACHE_SIZE = int(os.environ.get("LLM_CACHE_SIZE", "128"))


def make_key(text: str, variant: str) -> str:
    h = hashlib.sha256((normalize_for_key(text) + "::" + (variant or "")).encode("utf-8")).hexdigest()
    return h


class ResultCache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...


class LRUCache:
    """
    Bounded in-memory cache shared by all requests of the process.

    Values for one key are always the same parsed result, so two requests racing
    to insert it is harmless; the lock only keeps the OrderedDict consistent.
    """

    def __init__(self, capacity: int = CACHE_SIZE):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._data: "OrderedDict[str, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            if key not in self._data:
                return None
            self._data.move_to_end(key)
            return self._data[key]

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self.capacity:
                self._data.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data
