import unittest

from application.events import EventDispatcher
from application.services import (
    ExternalContext,
    create_player,
    deactivate_player,
    get_leaderboard,
    get_player,
    reactivate_player,
    register_from_channel,
    resolve_channel_player,
    update_player_info,
)
from domain.errors import ErrorKind
from domain.events import PlayerCreated
from domain.values import PlayerId
from fakes import InMemoryIdentityRepository, InMemoryPlayerRepository


class RecordingDispatcher(EventDispatcher):
    def __init__(self):
        super().__init__()
        self.events = []

    def dispatch(self, events):
        events = list(events)
        self.events.extend(events)
        super().dispatch(events)


class PlayerServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.player_repo = InMemoryPlayerRepository()
        self.dispatcher = RecordingDispatcher()

    def test_create_player_normalizes_and_persists(self):
        result = create_player("Ada", "ADA@EX.com", self.player_repo, self.dispatcher)
        self.assertTrue(result.success)
        self.assertEqual(result.player.email, "ada@ex.com")
        self.assertEqual(result.player.total_score, 0)
        self.assertEqual(result.player.games_played, 0)
        self.assertTrue(result.player.is_active)

        stored = self.player_repo.get_by_id(result.player.id)
        self.assertEqual(stored.email, "ada@ex.com")
        self.assertEqual([type(e) for e in self.dispatcher.events], [PlayerCreated])

    def test_create_player_rejects_duplicate_email(self):
        create_player("Ada", "ada@ex.com", self.player_repo, self.dispatcher)
        result = create_player("Other Ada", "ADA@ex.com", self.player_repo, self.dispatcher)
        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, ErrorKind.CONFLICT)
        self.assertEqual(len(self.player_repo.players), 1)

    def test_create_player_reports_validation_errors(self):
        result = create_player("A", "ada@ex.com", self.player_repo, self.dispatcher)
        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, ErrorKind.VALIDATION)
        self.assertEqual(self.player_repo.players, {})
        self.assertEqual(self.dispatcher.events, [])

    def test_get_player(self):
        created = create_player("Ada", "ada@ex.com", self.player_repo).player
        result = get_player(str(created.id), self.player_repo)
        self.assertTrue(result.success)
        self.assertEqual(result.player.id, created.id)

        missing = get_player(PlayerId.new(), self.player_repo)
        self.assertEqual(missing.error_kind, ErrorKind.NOT_FOUND)

        malformed = get_player("not-a-guid", self.player_repo)
        self.assertEqual(malformed.error_kind, ErrorKind.VALIDATION)

    def test_update_player_info_checks_email_ownership(self):
        ada = create_player("Ada", "ada@ex.com", self.player_repo).player
        create_player("Grace", "grace@ex.com", self.player_repo)

        taken = update_player_info(ada.id, "Ada", "GRACE@ex.com", self.player_repo)
        self.assertEqual(taken.error_kind, ErrorKind.CONFLICT)

        same = update_player_info(ada.id, "Ada L.", "ada@ex.com", self.player_repo)
        self.assertTrue(same.success)
        self.assertEqual(self.player_repo.get_by_id(ada.id).name, "Ada L.")

    def test_deactivate_and_reactivate(self):
        ada = create_player("Ada", "ada@ex.com", self.player_repo).player
        self.assertTrue(deactivate_player(ada.id, self.player_repo).success)
        self.assertFalse(self.player_repo.get_by_id(ada.id).is_active)

        self.assertTrue(reactivate_player(ada.id, self.player_repo).success)
        self.assertTrue(self.player_repo.get_by_id(ada.id).is_active)

        self.assertEqual(
            deactivate_player(PlayerId.new(), self.player_repo).error_kind,
            ErrorKind.NOT_FOUND,
        )

    def test_leaderboard_lists_qualifying_players_by_score(self):
        ids = {}
        for name, score, games in (("Ada", 300, 2), ("Grace", 900, 3), ("Linus", 0, 0)):
            player = create_player(name, f"{name.lower()}@ex.com", self.player_repo).player
            for _ in range(games):
                player.update_score(score // games, completed=True)
            self.player_repo.update(player)
            ids[name] = player.id

        deactivate_player(ids["Ada"], self.player_repo)
        result = get_leaderboard(self.player_repo, limit=5)
        self.assertEqual([p.name for p in result.players], ["Grace"])

        reactivate_player(ids["Ada"], self.player_repo)
        result = get_leaderboard(self.player_repo, limit=5)
        self.assertEqual([p.name for p in result.players], ["Grace", "Ada"])


class ChannelRegistrationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.player_repo = InMemoryPlayerRepository()
        self.identity_repo = InMemoryIdentityRepository()
        self.ctx = ExternalContext(
            provider="telegram",
            provider_user_id="12345",
            display_name="John Doe",
        )

    def test_register_links_identity(self):
        result = register_from_channel(
            self.ctx, "John", "john@ex.com", self.player_repo, self.identity_repo
        )
        self.assertTrue(result.success)
        self.assertEqual(
            self.identity_repo.find_player_id("telegram", "12345"), result.player.id
        )

        resolved = resolve_channel_player(self.ctx, self.player_repo, self.identity_repo)
        self.assertTrue(resolved.success)
        self.assertEqual(resolved.player.id, result.player.id)

    def test_register_twice_is_a_conflict(self):
        register_from_channel(
            self.ctx, "John", "john@ex.com", self.player_repo, self.identity_repo
        )
        again = register_from_channel(
            self.ctx, "John", "john2@ex.com", self.player_repo, self.identity_repo
        )
        self.assertFalse(again.success)
        self.assertEqual(again.error_kind, ErrorKind.CONFLICT)
        self.assertEqual(len(self.player_repo.players), 1)

    def test_failed_registration_does_not_link(self):
        result = register_from_channel(
            self.ctx, "John", "broken", self.player_repo, self.identity_repo
        )
        self.assertFalse(result.success)
        self.assertIsNone(self.identity_repo.find_player_id("telegram", "12345"))

    def test_resolve_unknown_user(self):
        result = resolve_channel_player(self.ctx, self.player_repo, self.identity_repo)
        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, ErrorKind.NOT_FOUND)


if __name__ == "__main__":
    unittest.main()
