"""Per-user profile notes (bio and role), persisted through the JSON store."""

from __future__ import annotations

import threading

from storage import JsonStore

from .identity import normalize
from .logging_setup import log

PROFILES_DOC = "profiles"

MAX_BIO_CHARS = 512
MAX_ROLE_CHARS = 64


class ProfileStore:
    """identity -> {"bio": str, "role": str}. Write failures are logged, not raised."""

    def __init__(self, store: JsonStore):
        self.store = store
        self._lock = threading.Lock()
        raw = store.load(PROFILES_DOC, {})
        self._profiles: dict[str, dict[str, str]] = {}
        if isinstance(raw, dict):
            for key, value in raw.items():
                if isinstance(value, dict) and normalize(key):
                    self._profiles[normalize(key)] = {
                        k: str(v) for k, v in value.items() if k in ("bio", "role") and v
                    }

    def get(self, identity: str) -> dict[str, str]:
        return dict(self._profiles.get(normalize(identity), {}))

    def set_bio(self, identity: str, bio: str):
        self._set_field(identity, "bio", bio.strip()[:MAX_BIO_CHARS])

    def set_role(self, identity: str, role: str):
        self._set_field(identity, "role", role.strip()[:MAX_ROLE_CHARS])

    def _set_field(self, identity: str, field_name: str, value: str):
        key = normalize(identity)
        if not key:
            return
        with self._lock:
            self._profiles.setdefault(key, {})[field_name] = value
            snapshot = {k: dict(v) for k, v in self._profiles.items()}
        try:
            self.store.save(PROFILES_DOC, snapshot)
        except Exception as e:
            log.warning(f"Failed to save {PROFILES_DOC}.json: {e}")
