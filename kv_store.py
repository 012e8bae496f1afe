import json
import threading


class MemoryKVStore:
    """In-process stand-in for the external key-value store.

    Values are stored JSON-encoded, so callers always get a fresh copy and
    have to write back whatever they change. Only single get/set calls
    are atomic; read-modify-write sequences built on top are not.
    """

    def __init__(self):
        self._data = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key, value):
        raw = json.dumps(value)
        with self._lock:
            self._data[key] = raw
