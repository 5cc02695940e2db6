"""Processed-message cache guarding against double dispatch."""

from __future__ import annotations

import asyncio
import threading
import time

from .logging_setup import log


class ProcessedMessageCache:
    """message-id -> arrival time, evicted after `ttl_sec` by a periodic sweep."""

    def __init__(self, ttl_sec: float = 600, sweep_interval_sec: float = 60, clock=time.monotonic):
        self.ttl_sec = float(ttl_sec)
        self.sweep_interval_sec = float(sweep_interval_sec)
        self._clock = clock
        self._seen: dict[str, float] = {}
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, message_id: str) -> bool:
        return message_id in self._seen

    def check_and_add(self, message_id: str) -> bool:
        """Record `message_id`; return False if it was already recorded."""
        with self._lock:
            if message_id in self._seen:
                return False
            self._seen[message_id] = self._clock()
            return True

    def sweep(self) -> int:
        cutoff = self._clock() - self.ttl_sec
        with self._lock:
            expired = [k for k, ts in self._seen.items() if ts < cutoff]
            for key in expired:
                del self._seen[key]
        return len(expired)

    def ensure_sweeper(self):
        if self._sweep_task and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())

    def stop_sweeper(self):
        task = self._sweep_task
        self._sweep_task = None
        if task and not task.done():
            task.cancel()

    async def _sweep_loop(self):
        try:
            while True:
                await asyncio.sleep(self.sweep_interval_sec)
                removed = self.sweep()
                if removed:
                    log.debug(f"Evicted {removed} processed message id(s)")
        except Exception as e:
            log.error(f"Processed-message sweeper stopped due to error: {e}")
