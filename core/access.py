"""Owner/sudo/ban registry and bot mode, persisted through the JSON store."""

from __future__ import annotations

import threading

from storage import JsonStore

from .identity import normalize
from .logging_setup import log

CONFIG_DOC = "config"
SUDO_DOC = "sudo"
BANNED_DOC = "banned"


def _normalized_unique(items) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for item in items if isinstance(items, list) else []:
        norm = normalize(item)
        if not norm or norm in seen:
            continue
        seen.add(norm)
        result.append(norm)
    return result


class AccessRegistry:
    """Process-lifetime access state. The owner is always in the sudo list."""

    def __init__(
        self,
        store: JsonStore,
        owner_override: str = "",
        default_prefix: str = ".",
        bot_name: str = "",
    ):
        self.store = store
        self._lock = threading.Lock()

        stored = store.load(CONFIG_DOC, {})
        if not isinstance(stored, dict):
            stored = {}
        self._config: dict = {
            "owner": normalize(stored.get("owner", "")),
            "prefix": str(stored.get("prefix") or default_prefix or "."),
            "mode_public": bool(stored.get("mode_public", False)),
            "bot_name": str(stored.get("bot_name") or bot_name or "WordArena"),
        }
        if owner_override:
            self._config["owner"] = normalize(owner_override)
        if self._config != stored:
            self._save_config()

        raw_sudo = store.load(SUDO_DOC, [])
        self._sudo = _normalized_unique(raw_sudo)
        owner = self.owner
        if owner and owner not in self._sudo:
            self._sudo.insert(0, owner)
        if self._sudo != raw_sudo:
            self._save_list(SUDO_DOC, self._sudo)

        raw_banned = store.load(BANNED_DOC, [])
        self._banned = _normalized_unique(raw_banned)
        if self._banned != raw_banned:
            self._save_list(BANNED_DOC, self._banned)

    # ── Read side ────────────────────────────────────────────

    @property
    def owner(self) -> str:
        return self._config["owner"]

    @property
    def prefix(self) -> str:
        return self._config["prefix"]

    @property
    def public_mode(self) -> bool:
        return self._config["mode_public"]

    @property
    def bot_name(self) -> str:
        return self._config["bot_name"]

    def is_owner(self, identity) -> bool:
        owner = self.owner
        return bool(owner) and normalize(identity) == owner

    def is_sudo(self, identity) -> bool:
        return self.is_owner(identity) or normalize(identity) in self._sudo

    def is_banned(self, identity) -> bool:
        return normalize(identity) in self._banned

    def sudo_list(self) -> list[str]:
        return list(self._sudo)

    def banned_list(self) -> list[str]:
        return list(self._banned)

    # ── Mutations ────────────────────────────────────────────

    def add_sudo(self, identity) -> bool:
        norm = normalize(identity)
        if not norm:
            return False
        with self._lock:
            if norm in self._sudo:
                return False
            self._sudo.append(norm)
            snapshot = list(self._sudo)
        self._save_list(SUDO_DOC, snapshot)
        return True

    def remove_sudo(self, identity) -> bool:
        """Remove a sudo identity. The owner cannot be removed."""
        norm = normalize(identity)
        if not norm or norm == self.owner:
            return False
        with self._lock:
            if norm not in self._sudo:
                return False
            self._sudo = [x for x in self._sudo if x != norm]
            snapshot = list(self._sudo)
        self._save_list(SUDO_DOC, snapshot)
        return True

    def ban(self, identity) -> bool:
        """Ban an identity. The owner cannot be banned."""
        norm = normalize(identity)
        if not norm or norm == self.owner:
            return False
        with self._lock:
            if norm in self._banned:
                return False
            self._banned.append(norm)
            snapshot = list(self._banned)
        self._save_list(BANNED_DOC, snapshot)
        return True

    def unban(self, identity) -> bool:
        norm = normalize(identity)
        with self._lock:
            if norm not in self._banned:
                return False
            self._banned = [x for x in self._banned if x != norm]
            snapshot = list(self._banned)
        self._save_list(BANNED_DOC, snapshot)
        return True

    def set_mode(self, public: bool):
        with self._lock:
            self._config["mode_public"] = bool(public)
        self._save_config()

    def set_prefix(self, prefix: str) -> bool:
        value = (prefix or "").strip()
        if not value or any(ch.isspace() for ch in value):
            return False
        with self._lock:
            self._config["prefix"] = value
        self._save_config()
        return True

    # ── Persistence (never raises) ───────────────────────────

    def _save_config(self):
        try:
            self.store.save(CONFIG_DOC, dict(self._config))
        except Exception as e:
            log.warning(f"Failed to save {CONFIG_DOC}.json: {e}")

    def _save_list(self, name: str, items: list[str]):
        try:
            self.store.save(name, items)
        except Exception as e:
            log.warning(f"Failed to save {name}.json: {e}")
