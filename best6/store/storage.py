"""
Key/value storage backends for the local store.

Values are raw strings; the local store owns JSON encoding.
"""

import logging
import os
import re
import tempfile
import threading

logger = logging.getLogger(__name__)


class MemoryStorage:
    """In-process storage, used by tests and throwaway sessions"""

    def __init__(self, initial=None):
        self._data = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._data.get(key)

    def set(self, key, value):
        with self._lock:
            self._data[key] = value

    def remove(self, *keys):
        with self._lock:
            for key in keys:
                self._data.pop(key, None)


class FileStorage:
    """One file per key inside a directory"""

    def __init__(self, directory):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, key):
        # Keys like "best6:rounds" become "best6_rounds.json"
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return os.path.join(self.directory, f"{safe}.json")

    def get(self, key):
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return None

    def set(self, key, value):
        path = self._path(key)
        with self._lock:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_path, path)
            except OSError:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise

    def remove(self, *keys):
        with self._lock:
            for key in keys:
                try:
                    os.remove(self._path(key))
                except FileNotFoundError:
                    pass