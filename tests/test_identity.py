import unittest

from core.identity import normalize, same_party


class TestNormalize(unittest.TestCase):
    def test_strips_device_suffix_from_local_part_only(self) -> None:
        self.assertEqual(normalize("2348012345678:61@s.whatsapp.net"), "2348012345678@s.whatsapp.net")
        self.assertEqual(normalize("123@host:8080"), "123@host:8080")

    def test_without_domain_drops_trailing_suffix(self) -> None:
        self.assertEqual(normalize("42:7"), "42")
        self.assertEqual(normalize("-100123"), "-100123")

    def test_malformed_input_never_raises(self) -> None:
        for raw in (None, "", "   ", "@", ":", "::@@", "a@b@c", ":5@x", 12345, "@domain", "x:"):
            with self.subTest(raw=raw):
                result = normalize(raw)
                self.assertIsInstance(result, str)

    def test_idempotent(self) -> None:
        samples = [
            "123:4@s.whatsapp.net",
            "123@g.us",
            "a:b:c",
            "a:b@c:d",
            " 55:1@x ",
            "a@b@c",
            "@",
            ":",
            "",
            "-100555",
        ]
        for raw in samples:
            with self.subTest(raw=raw):
                once = normalize(raw)
                self.assertEqual(normalize(once), once)

    def test_same_party_compares_normalized_forms(self) -> None:
        self.assertTrue(same_party("77:3@s.whatsapp.net", "77@s.whatsapp.net"))
        self.assertFalse(same_party("77@s.whatsapp.net", "78@s.whatsapp.net"))


if __name__ == "__main__":
    unittest.main()
