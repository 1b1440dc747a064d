"""Tests for GameService with in-memory Redis and Supabase.

Critical scenarios tested:
- Creating a game stores the session and scenario and writes a snapshot
- Unknown, invalid or unplayable setups fail with error codes
- Actions run under a per-game lock that is always released
- A busy lock rejects the action
- Snapshot failures do not fail the request
- Lock release never removes a lock held by someone else
"""

import asyncio

from app.dependencies.redis import acquire_lock, release_lock
from app.schemas.game_engine import CardName, GameStatus
from app.services.game.engine import SubmitCardAction
from app.services.game.engine.catalog import create_card
from app.services.game.service import GameService

from .conftest import (
    PLAYER_1_ID,
    PLAYER_2_ID,
    PLAYER_3_ID,
    PROFILE_ROWS,
    SCENARIO_DATA,
    FakeRedis,
    FakeSupabase,
    make_settings,
)


def create_service(
    tables: dict | None = None,
    fail_writes: bool = False,
) -> tuple[GameService, FakeRedis, FakeSupabase]:
    redis = FakeRedis()
    supabase = FakeSupabase(
        {"profiles": PROFILE_ROWS, **(tables or {})},
        fail_writes=fail_writes,
    )
    service = GameService(redis_client=redis, supabase_client=supabase, settings=make_settings())
    return service, redis, supabase


class TestCreateGame:
    def test_creates_default_game(self):
        service, redis, supabase = create_service()

        result = asyncio.run(service.create_game(PLAYER_1_ID, [PLAYER_2_ID, PLAYER_3_ID]))

        assert result.success
        state = result.session.state
        game_id = state.game_id
        assert state.status == GameStatus.ACTIVE
        assert state.host_id == PLAYER_1_ID
        assert state.scenario_id == "default"
        assert sorted(p.username for p in state.players) == ["Alice", "Bob", "Carol"]
        assert f"game:{game_id}:session" in redis.store
        assert f"game:{game_id}:scenario" in redis.store
        assert supabase.upserts["games"][0]["id"] == game_id
        assert len(supabase.upserts["game_players"][0]) == 3

    def test_host_listed_twice_is_counted_once(self):
        service, _, _ = create_service()

        result = asyncio.run(service.create_game(PLAYER_1_ID, [PLAYER_1_ID, PLAYER_2_ID]))

        assert len(result.session.state.players) == 2

    def test_loads_scenario_from_database(self):
        service, _, _ = create_service({"scenarios": [SCENARIO_DATA]})

        result = asyncio.run(service.create_game(PLAYER_1_ID, [PLAYER_2_ID], scenario_id="test"))

        assert result.success
        assert result.session.state.scenario_name == "Test Town"

    def test_unknown_scenario(self):
        service, _, _ = create_service()

        result = asyncio.run(service.create_game(PLAYER_1_ID, [PLAYER_2_ID], scenario_id="nope"))

        assert result.error_code == "SCENARIO_NOT_FOUND"

    def test_invalid_scenario_row(self):
        service, _, _ = create_service({"scenarios": [{"id": "broken", "name": "Broken"}]})

        result = asyncio.run(service.create_game(PLAYER_1_ID, [PLAYER_2_ID], scenario_id="broken"))

        assert result.error_code == "SCENARIO_INVALID"

    def test_too_few_players(self):
        service, redis, _ = create_service()

        result = asyncio.run(service.create_game(PLAYER_1_ID, []))

        assert result.error_code == "INVALID_SETTINGS"
        assert redis.store == {}

    def test_snapshot_failure_is_not_fatal(self):
        service, redis, _ = create_service(fail_writes=True)

        result = asyncio.run(service.create_game(PLAYER_1_ID, [PLAYER_2_ID]))

        assert result.success
        assert f"game:{result.session.state.game_id}:session" in redis.store


class TestApplyAction:
    def start_game(self):
        service, redis, supabase = create_service()
        created = asyncio.run(service.create_game(PLAYER_1_ID, [PLAYER_2_ID]))
        return service, redis, supabase, created.session

    def test_submission_is_saved(self):
        service, redis, _, session = self.start_game()
        card = session.private_state(PLAYER_1_ID).hand[0]

        result = asyncio.run(
            service.apply_action(session.state.game_id, PLAYER_1_ID, SubmitCardAction(card_id=card.id))
        )

        assert result.success
        stored = asyncio.run(service.get_session(session.state.game_id))
        assert stored.public_player(PLAYER_1_ID).submitted_action is True
        assert card.id not in {c.id for c in stored.private_state(PLAYER_1_ID).hand}
        assert f"game:{session.state.game_id}:lock" not in redis.store

    def test_rejected_action_releases_lock(self):
        service, redis, _, session = self.start_game()

        result = asyncio.run(
            service.apply_action(session.state.game_id, PLAYER_1_ID, SubmitCardAction(card_id="nope"))
        )

        assert result.error_code == "CARD_NOT_IN_HAND"
        assert f"game:{session.state.game_id}:lock" not in redis.store

    def test_busy_lock_rejects_action(self):
        service, redis, _, session = self.start_game()
        game_id = session.state.game_id
        redis.store[f"game:{game_id}:lock"] = "someone-else"
        card = session.private_state(PLAYER_1_ID).hand[0]

        result = asyncio.run(
            service.apply_action(game_id, PLAYER_1_ID, SubmitCardAction(card_id=card.id))
        )

        assert result.error_code == "ROUND_LOCKED"
        assert redis.store[f"game:{game_id}:lock"] == "someone-else"

    def test_unknown_game(self):
        service, redis, _ = create_service()

        result = asyncio.run(
            service.apply_action("missing-game", PLAYER_1_ID, SubmitCardAction(card_id="c"))
        )

        assert result.error_code == "GAME_NOT_FOUND"
        assert redis.store == {}

    def test_completed_round_writes_snapshot(self):
        service, redis, supabase, session = self.start_game()
        game_id = session.state.game_id
        buffers = {p.user_id: create_card(CardName.BUFFER) for p in session.private_states}
        session = session.model_copy(
            update={
                "private_states": [
                    p.model_copy(update={"hand": [buffers[p.user_id]]})
                    for p in session.private_states
                ]
            }
        )
        redis.store[f"game:{game_id}:session"] = session.model_dump_json()

        for player_id in (PLAYER_1_ID, PLAYER_2_ID):
            result = asyncio.run(
                service.apply_action(
                    game_id, player_id, SubmitCardAction(card_id=buffers[player_id].id)
                )
            )
            assert result.success

        assert result.session.state.current_round == 2
        assert len(supabase.upserts["games"]) == 2
        assert supabase.upserts["games"][-1]["current_round"] == 2


class TestRoundLock:
    def test_lock_is_exclusive(self):
        redis = FakeRedis()

        first = asyncio.run(acquire_lock(redis, "game:g:lock", 30))
        second = asyncio.run(acquire_lock(redis, "game:g:lock", 30))

        assert first is not None
        assert second is None

    def test_release_keeps_lock_taken_over_by_another_owner(self):
        """A holder whose lock expired must not release the new owner's lock."""
        redis = FakeRedis()
        stale = asyncio.run(acquire_lock(redis, "game:g:lock", 30))
        redis.store["game:g:lock"] = "new-owner"

        asyncio.run(release_lock(redis, "game:g:lock", stale))

        assert redis.store["game:g:lock"] == "new-owner"

    def test_release_by_owner(self):
        redis = FakeRedis()
        token = asyncio.run(acquire_lock(redis, "game:g:lock", 30))

        asyncio.run(release_lock(redis, "game:g:lock", token))

        assert "game:g:lock" not in redis.store
