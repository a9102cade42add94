import unittest

from domain.errors import ErrorKind, ValidationError
from domain.game_types import GameType
from domain.values import (
    PlayerId,
    SessionId,
    normalize_email,
    normalize_player_name,
)


class IdentifierTests(unittest.TestCase):
    def test_new_ids_are_unique_guids(self):
        first, second = PlayerId.new(), PlayerId.new()
        self.assertNotEqual(first, second)
        self.assertEqual(len(str(first)), 36)

    def test_ids_compare_by_value(self):
        raw = "8c6f1b5e-2a9b-4a61-9a55-0a3c2c7d8e10"
        self.assertEqual(PlayerId(raw), PlayerId(raw))
        self.assertEqual(hash(SessionId(raw)), hash(SessionId(raw)))

    def test_player_and_session_ids_are_distinct_types(self):
        raw = "8c6f1b5e-2a9b-4a61-9a55-0a3c2c7d8e10"
        self.assertNotEqual(PlayerId(raw), SessionId(raw))

    def test_rejects_malformed_ids(self):
        for raw in ("", "   ", "not-a-guid", "12345"):
            with self.subTest(raw=raw):
                with self.assertRaises(ValidationError) as ctx:
                    PlayerId(raw)
                self.assertEqual(ctx.exception.kind, ErrorKind.VALIDATION)

        with self.assertRaises(ValidationError):
            SessionId("nope")


class PlayerNameTests(unittest.TestCase):
    def test_trims_whitespace(self):
        self.assertEqual(normalize_player_name("  Ada  "), "Ada")

    def test_length_bounds(self):
        self.assertEqual(normalize_player_name("Al"), "Al")
        self.assertEqual(len(normalize_player_name("x" * 50)), 50)
        with self.assertRaises(ValidationError):
            normalize_player_name("A")
        with self.assertRaises(ValidationError):
            normalize_player_name("x" * 51)

    def test_rejects_empty_and_control_characters(self):
        with self.assertRaises(ValidationError):
            normalize_player_name("   ")
        with self.assertRaises(ValidationError):
            normalize_player_name("Ada\x07Lovelace")


class EmailTests(unittest.TestCase):
    def test_lower_cases_and_trims(self):
        self.assertEqual(normalize_email("  ADA@EX.com "), "ada@ex.com")

    def test_rejects_invalid_formats(self):
        for raw in ("", "ada", "ada@", "ada@ex", "@ex.com", "ada ex@ex.com"):
            with self.subTest(raw=raw):
                with self.assertRaises(ValidationError) as ctx:
                    normalize_email(raw)
                self.assertEqual(ctx.exception.field, "email")

    def test_rejects_overlong_email(self):
        with self.assertRaises(ValidationError):
            normalize_email("a" * 95 + "@ex.com")


class GameTypeParseTests(unittest.TestCase):
    def test_accepts_ids_and_names(self):
        self.assertIs(GameType.parse(1), GameType.DEPLOY_THE_CAT)
        self.assertIs(GameType.parse("2"), GameType.GIT_BLASTER)
        self.assertIs(GameType.parse("git-blaster"), GameType.GIT_BLASTER)
        self.assertIs(GameType.parse("Deploy the cat"), GameType.DEPLOY_THE_CAT)
        self.assertIs(GameType.parse(GameType.GIT_BLASTER), GameType.GIT_BLASTER)

    def test_rejects_values_outside_the_enumeration(self):
        for raw in (0, 3, -1, "7", "chess", "", True, None, 1.0):
            with self.subTest(raw=raw):
                with self.assertRaises(ValidationError):
                    GameType.parse(raw)

    def test_label(self):
        self.assertEqual(GameType.GIT_BLASTER.label, "Git Blaster")


if __name__ == "__main__":
    unittest.main()
