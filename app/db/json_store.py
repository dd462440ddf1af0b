"""File-backed JSON collections.

Every persisted collection in the assistant (documents, notifications,
conversation references, session flags) is a single JSON document on disk.
Reads tolerate a missing or corrupt file by returning the collection's empty
shape; writes always replace the whole file (temp file + rename) so a failed
write never leaves a partially written collection behind.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Union

from app.config.logger import app_logger


class JsonCollection:
    """A JSON document persisted as one file, read and written whole."""

    def __init__(self, path: Union[str, Path], empty: Callable[[], Dict[str, Any]]):
        """
        Args:
            path: Location of the JSON file.
            empty: Factory for the collection's empty shape, used when the
                file is missing or unreadable.
        """
        self.path = Path(path)
        self._empty = empty
        self._lock = threading.RLock()

    def read(self) -> Dict[str, Any]:
        """Read the collection, degrading to the empty shape on any failure."""
        with self._lock:
            try:
                raw = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return self._empty()
            except OSError as e:
                app_logger.warning(f"Could not read {self.path}: {e}")
                return self._empty()

            try:
                parsed = json.loads(raw) if raw.strip() else None
            except json.JSONDecodeError as e:
                app_logger.warning(f"Corrupt JSON in {self.path}, treating as empty: {e}")
                return self._empty()

            if not isinstance(parsed, dict):
                return self._empty()
            return parsed

    def write(self, data: Dict[str, Any]) -> None:
        """Replace the collection on disk with ``data``.

        Raises:
            OSError: If the file could not be written. The previous content
                is left untouched in that case.
        """
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                    f.write("\n")
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
                raise

    @contextmanager
    def locked(self) -> Iterator["JsonCollection"]:
        """Hold the collection lock across a read-modify-write cycle."""
        with self._lock:
            yield self
