import tempfile
import unittest

from core.profiles import MAX_ROLE_CHARS, ProfileStore
from storage import JsonStore


class _BrokenStore(JsonStore):
    def save(self, name, data):
        raise OSError("disk full")


class TestProfileStore(unittest.TestCase):
    def test_fields_are_saved_under_normalized_ids(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = JsonStore(td)
            profiles = ProfileStore(store)
            profiles.set_bio("200:3", "  likes long words  ")
            profiles.set_role("200", "x" * (MAX_ROLE_CHARS + 10))

            self.assertEqual(profiles.get("200:7")["bio"], "likes long words")
            self.assertEqual(len(profiles.get("200")["role"]), MAX_ROLE_CHARS)
            self.assertEqual(ProfileStore(store).get("200"), profiles.get("200"))

    def test_unknown_fields_are_dropped_on_load(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = JsonStore(td)
            store.save("profiles", {"300": {"bio": "hi", "score": 9}, "": {"bio": "lost"}, "400": "junk"})

            profiles = ProfileStore(store)
            self.assertEqual(profiles.get("300"), {"bio": "hi"})
            self.assertEqual(profiles.get("400"), {})

    def test_write_failure_is_logged_not_raised(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            profiles = ProfileStore(_BrokenStore(td))
            with self.assertLogs("wordarena", level="WARNING"):
                profiles.set_bio("200", "still here")
            self.assertEqual(profiles.get("200"), {"bio": "still here"})


if __name__ == "__main__":
    unittest.main()
