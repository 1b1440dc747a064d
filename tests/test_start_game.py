"""Tests for game setup.

Critical scenarios tested:
- Player list validation (count, duplicates, usernames)
- Player cap derived from the deck and hand size
- Track order, identities and host
- Hands dealt without sharing cards
- Objects and NPCs placed on free cells; static NPCs at their location
- Seeded setups are reproducible
- Crowded boards fail loudly
"""

import random

import pytest

from app.schemas.game_engine import BoardSpace, GameStatus, PlayerRole, PlayerSubRole
from app.schemas.scenario import Scenario, ScenarioDataError
from app.services.game.engine.catalog import SECRET_IDENTITIES, SUB_ROLES
from app.services.game.start_game import max_players, setup_game, validate_game_settings

from .conftest import (
    MARKET,
    PLAYER_1_ID,
    PLAYER_2_ID,
    SCENARIO_DATA,
    START,
    USERNAMES,
)


def many_players(count: int) -> tuple[list[str], dict[str, str]]:
    ids = [f"00000000-0000-0000-0000-{i:012d}" for i in range(1, count + 1)]
    return ids, {pid: f"Player {i}" for i, pid in enumerate(ids, start=1)}


class TestValidateGameSettings:
    def test_two_players_is_enough(self):
        validate_game_settings([PLAYER_1_ID, PLAYER_2_ID], USERNAMES, hand_size=4)

    def test_too_few_players(self):
        with pytest.raises(ValueError, match="minimum of 2"):
            validate_game_settings([PLAYER_1_ID], USERNAMES, hand_size=4)

    def test_player_cap_from_deck(self):
        """31 cards deal seven hands of four; eight players do not fit."""
        assert max_players(4) == 7
        ids, names = many_players(8)

        with pytest.raises(ValueError, match="At most 7"):
            validate_game_settings(ids, names, hand_size=4)

    def test_smaller_hands_fit_every_identity(self):
        assert max_players(3) == len(SECRET_IDENTITIES)

    def test_duplicate_player(self):
        with pytest.raises(ValueError, match="Duplicate"):
            validate_game_settings([PLAYER_1_ID, PLAYER_1_ID], USERNAMES, hand_size=4)

    def test_missing_username(self):
        with pytest.raises(ValueError, match="Missing username"):
            validate_game_settings([PLAYER_1_ID, "unknown"], USERNAMES, hand_size=4)


class TestSetupGame:
    def test_initial_state(self, scenario, three_players):
        state, privates = setup_game(three_players, USERNAMES, scenario, random.Random(3))

        assert state.status == GameStatus.ACTIVE
        assert state.current_round == 1
        assert state.harbinger_position == START
        assert state.host_id == PLAYER_1_ID
        assert state.board_size == BoardSpace(x=7, y=7)
        assert state.game_log == ["Game started with 3 players."]
        assert sorted(s.player_id for s in state.priority_track) == sorted(three_players)

    def test_identities_follow_track_order(self, scenario, three_players):
        state, privates = setup_game(three_players, USERNAMES, scenario, random.Random(3))

        assert [s.identity for s in state.priority_track] == SECRET_IDENTITIES[:3]
        assert [p.user_id for p in privates] == [s.player_id for s in state.priority_track]
        assert [p.secret_identity for p in privates] == SECRET_IDENTITIES[:3]

    def test_hands_are_disjoint(self, scenario, three_players):
        _, privates = setup_game(three_players, USERNAMES, scenario, random.Random(3))

        ids = [c.id for p in privates for c in p.hand]
        assert all(len(p.hand) == 4 for p in privates)
        assert len(set(ids)) == 12

    def test_custom_hand_size(self, scenario, two_players):
        _, privates = setup_game(two_players, USERNAMES, scenario, random.Random(3), hand_size=5)

        assert all(len(p.hand) == 5 for p in privates)

    def test_roles_and_goals_are_consistent(self, scenario, three_players):
        for seed in range(20):
            _, privates = setup_game(three_players, USERNAMES, scenario, random.Random(seed))
            for private in privates:
                assert private.sub_role in SUB_ROLES[private.role]
                if private.sub_role == PlayerSubRole.DATA_BROKER:
                    assert private.role == PlayerRole.OPPORTUNIST
                    assert private.personal_goal.locations == ["Market", "Clocktower"]
                    assert private.personal_goal.visited == []
                else:
                    assert private.personal_goal is None

    def test_public_players_start_clean(self, scenario, two_players):
        state, privates = setup_game(two_players, USERNAMES, scenario, random.Random(3))

        assert [p.user_id for p in state.players] == [p.user_id for p in privates]
        assert all(p.vp == 0 and not p.submitted_action for p in state.players)

    def test_entities_on_free_cells(self, scenario, three_players):
        state, _ = setup_game(three_players, USERNAMES, scenario, random.Random(11))

        location_cells = {loc.position for loc in scenario.locations}
        random_placed = [o.position for o in state.board_objects] + [
            n.position for n in state.board_npcs if n.name != "Archivist"
        ]
        assert len(state.board_objects) == 4
        assert len(random_placed) == len(set(random_placed))
        assert not set(random_placed) & location_cells
        assert START not in random_placed

    def test_static_npc_at_its_location(self, scenario, two_players):
        state, _ = setup_game(two_players, USERNAMES, scenario, random.Random(11))

        names = sorted(n.name for n in state.board_npcs)
        assert names == ["Archivist", "Beggar"]
        archivist = next(n for n in state.board_npcs if n.name == "Archivist")
        assert archivist.position == MARKET

    def test_seeded_setup_is_reproducible(self, scenario, three_players):
        first, first_privates = setup_game(three_players, USERNAMES, scenario, random.Random(42))
        second, second_privates = setup_game(three_players, USERNAMES, scenario, random.Random(42))

        assert first.priority_track == second.priority_track
        assert [(o.name, o.position) for o in first.board_objects] == [
            (o.name, o.position) for o in second.board_objects
        ]
        assert [[c.name for c in p.hand] for p in first_privates] == [
            [c.name for c in p.hand] for p in second_privates
        ]
        assert [(p.role, p.sub_role) for p in first_privates] == [
            (p.role, p.sub_role) for p in second_privates
        ]

    def test_given_game_id_is_used(self, scenario, two_players):
        state, _ = setup_game(two_players, USERNAMES, scenario, game_id="game-xyz")

        assert state.game_id == "game-xyz"

    def test_crowded_board_raises(self, two_players):
        """Five locations on a 3x3 board leave no room for four objects and an NPC."""
        crowded = Scenario.model_validate(
            {
                **SCENARIO_DATA,
                "board_size_x": 3,
                "board_size_y": 3,
                "locations": [
                    {"name": "Start", "position": {"x": 2, "y": 2}},
                    {"name": "Cathedral", "position": {"x": 1, "y": 1}},
                    {"name": "Vault", "position": {"x": 3, "y": 3}},
                    {"name": "Clocktower", "position": {"x": 3, "y": 1}},
                    {"name": "Market", "position": {"x": 1, "y": 3}},
                ],
            }
        )

        with pytest.raises(ScenarioDataError):
            setup_game(two_players, USERNAMES, crowded, random.Random(1))

    def test_data_broker_without_goals_raises(self, scenario, two_players):
        no_goals = scenario.model_copy(update={"opportunist_goals": []})

        with pytest.raises(ScenarioDataError):
            for seed in range(50):
                setup_game(two_players, USERNAMES, no_goals, random.Random(seed))
