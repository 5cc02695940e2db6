import os
import unittest
from unittest.mock import patch

from config import DEFAULT_LEXICON_BASE_URL, load_config


class TestLoadConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            cfg = load_config()
        self.assertEqual(cfg.command_prefix, ".")
        self.assertEqual(cfg.answer_marker, ">>")
        self.assertEqual(cfg.lexicon_base_url, DEFAULT_LEXICON_BASE_URL)
        self.assertEqual(cfg.reconnect_delay_sec, 3)
        self.assertEqual(cfg.dedupe_ttl_sec, 600)

    def test_values_and_inline_comments(self) -> None:
        env = {
            "TELEGRAM_BOT_TOKEN": "123:abc",
            "OWNER": "4242  # me",
            "COMMAND_PREFIX": "!",
            "LEXICON_BASE_URL": "https://dict.test/en/",
            "LEXICON_TIMEOUT_SEC": "0",
            "RECONNECT_DELAY_SEC": "7 # seconds",
            "MAX_ROUNDS": "many",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config()
        self.assertEqual(cfg.telegram_bot_token, "123:abc")
        self.assertEqual(cfg.owner, "4242")
        self.assertEqual(cfg.command_prefix, "!")
        self.assertEqual(cfg.lexicon_base_url, "https://dict.test/en")
        self.assertEqual(cfg.lexicon_timeout_sec, 1)
        self.assertEqual(cfg.reconnect_delay_sec, 7)
        self.assertEqual(cfg.max_rounds, 50)

    def test_answer_marker_cannot_equal_prefix(self) -> None:
        with patch.dict(os.environ, {"COMMAND_PREFIX": "~", "ANSWER_MARKER": "~"}, clear=True):
            cfg = load_config()
        self.assertEqual(cfg.answer_marker, ">>")


if __name__ == "__main__":
    unittest.main()
