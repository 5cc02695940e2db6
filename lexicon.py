"""
WordArena — Lexical validation client
Remote boolean lookup keyed by a single word (dictionaryapi.dev by default).
A failed call or any non-200 answer counts as "not a word".
"""

import logging
import re
from urllib.parse import quote

import httpx

from config import Config

log = logging.getLogger("wordarena.lexicon")

_WORD_RE = re.compile(r"^[a-z]+$")


class LexiconClient:
    """Async word validator backed by a dictionary HTTP API."""

    def __init__(self, config: Config, cache_size: int = 2048):
        self.base_url = config.lexicon_base_url.rstrip("/")
        self.timeout = float(config.lexicon_timeout_sec)
        self.cache_size = max(0, int(cache_size))
        # Only definitive answers (200 / 404) are cached.
        self._cache: dict[str, bool] = {}

    @staticmethod
    def clean(word: str) -> str:
        return (word or "").strip().lower()

    async def is_valid(self, word: str) -> bool:
        """Return True when the service knows `word`. Never raises."""
        token = self.clean(word)
        if not token or not _WORD_RE.match(token):
            return False
        if token in self._cache:
            return self._cache[token]

        url = f"{self.base_url}/{quote(token)}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers={"User-Agent": "WordArena/1.0"})
        except Exception as e:
            log.error(f"Word validation failed for '{token}': {e}")
            return False

        if response.status_code == 200:
            self._remember(token, True)
            return True
        if response.status_code == 404:
            self._remember(token, False)
        else:
            log.warning(f"Word validation for '{token}' returned HTTP {response.status_code}")
        return False

    def _remember(self, token: str, valid: bool):
        if not self.cache_size:
            return
        if len(self._cache) >= self.cache_size:
            self._cache.pop(next(iter(self._cache)))
        self._cache[token] = valid
