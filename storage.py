"""
WordArena — JSON document store
Key-value JSON documents for owner configuration, sudo/ban lists and games.
Each document lives in its own file and is loaded/saved independently.
"""

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any

log = logging.getLogger("wordarena.storage")

_SAFE_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


class JsonStore:
    """Directory of named JSON documents with atomic writes."""

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def path_for(self, name: str) -> Path:
        if not _SAFE_NAME_RE.match(name or ""):
            raise ValueError(f"invalid document name: {name!r}")
        return self.data_dir / f"{name}.json"

    def load(self, name: str, default: Any = None) -> Any:
        """Return the stored document, or `default` when missing or unreadable."""
        path = self.path_for(name)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except Exception as e:
            log.warning(f"Failed to read {path.name}, using defaults: {e}")
            return default

    def save(self, name: str, data: Any):
        """Write the document atomically. Raises on I/O errors."""
        path = self.path_for(name)
        payload = json.dumps(data, indent=2, ensure_ascii=False)
        with self._lock:
            tmp = path.with_suffix(".tmp")
            tmp.write_text(payload, encoding="utf-8")
            tmp.replace(path)
