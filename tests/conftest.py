"""Shared fixtures for game engine tests."""

import random
from types import SimpleNamespace

import pytest

from app.config import Settings
from app.dependencies.redis import RELEASE_LOCK_SCRIPT
from app.schemas.game_engine import (
    BoardSpace,
    CardName,
    CommandCard,
    EngineRules,
    GameNPC,
    GameObject,
    GameState,
    GameStatus,
    PersonalGoal,
    PlayerRole,
    PlayerSubRole,
    PrioritySlot,
    PrivatePlayerState,
    PublicPlayerState,
    RoundState,
    SecretIdentity,
    SubmittedAction,
)
from app.schemas.scenario import Scenario
from app.services.game.engine.catalog import create_card
from app.services.game.engine.context import ResolutionContext
from app.services.game.engine.resolution import RoundResolver

# Fixed ids for deterministic testing
PLAYER_1_ID = "00000000-0000-0000-0000-000000000001"
PLAYER_2_ID = "00000000-0000-0000-0000-000000000002"
PLAYER_3_ID = "00000000-0000-0000-0000-000000000003"
PLAYER_4_ID = "00000000-0000-0000-0000-000000000004"

USERNAMES = {
    PLAYER_1_ID: "Alice",
    PLAYER_2_ID: "Bob",
    PLAYER_3_ID: "Carol",
    PLAYER_4_ID: "Dave",
}

START = BoardSpace(x=4, y=4)
CATHEDRAL = BoardSpace(x=1, y=1)
VAULT = BoardSpace(x=7, y=7)
CLOCKTOWER = BoardSpace(x=7, y=1)
MARKET = BoardSpace(x=1, y=7)

# Rules with no random complication spawns
QUIET_RULES = EngineRules(complication_spawn_chance=0.0)

SCENARIO_DATA = {
    "id": "test",
    "name": "Test Town",
    "board_size_x": 7,
    "board_size_y": 7,
    "locations": [
        {"name": "Start", "position": {"x": 4, "y": 4}},
        {"name": "Cathedral", "position": {"x": 1, "y": 1}},
        {"name": "Vault", "position": {"x": 7, "y": 7}},
        {"name": "Clocktower", "position": {"x": 7, "y": 1}},
        {"name": "Market", "position": {"x": 1, "y": 7}},
    ],
    "object_effects": {
        "Lantern": {
            "effects": [
                {"type": "MODIFY_TURN", "next_move_value_modifier": 1, "description": "Next Move +1."}
            ]
        },
        "Mirror": {"effects": [{"type": "WARP", "description": "Warp."}]},
        "Bell": {"effects": [{"type": "REMOVE_COMPLICATION", "description": "Ring."}]},
        "Hourglass": {
            "effects": [
                {"type": "MODIFY_TURN", "next_action_protected": True, "description": "Stillness."}
            ]
        },
    },
    "npc_effects": {
        "Beggar": {
            "effects": {
                "positive": {"type": "DRAW_CARD", "amount": 1, "description": "Gift."},
                "negative": {"type": "DISCARD_CARD", "amount": 1, "description": "Theft."},
            }
        },
        "Archivist": {
            "static_location": "Market",
            "effects": {
                "positive": {
                    "type": "MOVE_TOWARDS",
                    "target_location": "Cathedral",
                    "distance": 1,
                    "description": "Guided.",
                },
                "negative": {
                    "type": "MOVE_TOWARDS",
                    "target_location": "Vault",
                    "distance": 1,
                    "description": "Misled.",
                },
            },
        },
    },
    "complication_effects": {
        "Fog": {
            "description": "Moves are weaker.",
            "duration": 2,
            "trigger": {"type": "ACTION_PLAYED", "cards": ["Move 1", "Move 2", "Move 3"]},
            "effect": {"type": "MODIFY_TURN", "move_value": -1, "description": "Fog."},
        },
        "Riot": {
            "description": "Warp immediately.",
            "duration": 0,
            "effect": {"type": "WARP", "description": "Riot."},
        },
    },
    "sub_role_definitions": {
        "The Guide": {
            "vp": 3,
            "trigger": {
                "type": "END_OF_ROUND",
                "condition": {"type": "IS_NEAR", "location": "Cathedral", "distance": 1},
            },
        },
        "The Fixer": {"vp": 4, "trigger": {"type": "ON_REMOVE_COMPLICATION"}},
        "The Instigator": {
            "vp": 5,
            "trigger": {"type": "ON_CARD", "cards": ["Deny", "Rethink", "Gamble"]},
        },
        "The Waster": {
            "vp": 2,
            "trigger": {"type": "END_OF_ROUND", "condition": {"type": "NO_MOVE"}},
        },
        "The Data Broker": {"vp": 0},
        "The Mimic": {"vp": 4, "trigger": {"type": "ON_COPY"}},
    },
    "opportunist_goals": [["Market", "Clocktower"]],
    "random_npc_count": 1,
    "main_prophecy": {
        "start_location": "Start",
        "win_location": "Cathedral",
        "win_action": "Interact",
        "trigger_message": "The prophecy is fulfilled!",
        "vp": 20,
    },
    "doomsday_condition": {
        "lose_location": "Vault",
        "trigger_message": "Doomsday!",
        "vp": 20,
    },
    "global_fail_condition": {
        "lose_location": "Clocktower",
        "max_round": 5,
        "trigger_message": "Time has run out.",
    },
}


class ScriptedRandom(random.Random):
    """Random source whose random() calls return scripted values first."""

    def __init__(self, values: list[float], seed: int = 0):
        super().__init__(seed)
        self._values = list(values)

    def random(self) -> float:
        if self._values:
            return self._values.pop(0)
        return super().random()


@pytest.fixture
def scenario() -> Scenario:
    return Scenario.model_validate(SCENARIO_DATA)


@pytest.fixture
def resolver(scenario: Scenario) -> RoundResolver:
    """Resolver with spawns disabled and a fixed seed."""
    return RoundResolver(scenario, QUIET_RULES, random.Random(1234))


def make_context(
    scenario: Scenario,
    rules: EngineRules = QUIET_RULES,
    rng: random.Random | None = None,
) -> ResolutionContext:
    return ResolutionContext(scenario=scenario, rules=rules, rng=rng or random.Random(7))


def card(name: CardName) -> CommandCard:
    return create_card(name)


def action(player_id: str, name: CardName) -> SubmittedAction:
    """Helper to create a submitted action."""
    return SubmittedAction(player_id=player_id, card=create_card(name))


def create_private(
    player_id: str,
    role: PlayerRole = PlayerRole.TRUE_BELIEVER,
    sub_role: PlayerSubRole = PlayerSubRole.GUIDE,
    identity: SecretIdentity = SecretIdentity.EYE,
    hand: list[CommandCard] | None = None,
    vp: int = 0,
    personal_goal: PersonalGoal | None = None,
) -> PrivatePlayerState:
    """Helper to create a private player state."""
    if hand is None:
        hand = [card(CardName.MOVE_1), card(CardName.BUFFER), card(CardName.CHARGE)]
    return PrivatePlayerState(
        id=f"private-{player_id[-1]}",
        user_id=player_id,
        username=USERNAMES[player_id],
        hand=hand,
        role=role,
        sub_role=sub_role,
        secret_identity=identity,
        vp=vp,
        personal_goal=personal_goal,
    )


def create_state(
    player_ids: list[str],
    harbinger: BoardSpace = START,
    board_objects: list[GameObject] | None = None,
    board_npcs: list[GameNPC] | None = None,
    current_round: int = 1,
    status: GameStatus = GameStatus.ACTIVE,
    disconnected: set[str] | None = None,
) -> GameState:
    """Helper to create an active game state with the track in the given order."""
    disconnected = disconnected or set()
    identities = list(SecretIdentity)
    return GameState(
        game_id="game-0000-0000",
        scenario_id="test",
        scenario_name="Test Town",
        status=status,
        current_round=current_round,
        board_size=BoardSpace(x=7, y=7),
        locations=[],
        harbinger_position=harbinger,
        priority_track=[
            PrioritySlot(player_id=pid, identity=identities[i]) for i, pid in enumerate(player_ids)
        ],
        board_objects=board_objects or [],
        board_npcs=board_npcs or [],
        players=[
            PublicPlayerState(
                id=f"private-{pid[-1]}",
                user_id=pid,
                username=USERNAMES[pid],
                is_disconnected=pid in disconnected,
            )
            for pid in player_ids
        ],
        host_id=player_ids[0],
    )


def create_privates(player_ids: list[str], **overrides) -> list[PrivatePlayerState]:
    """Default private states, with per-player overrides as dicts of kwargs."""
    identities = list(SecretIdentity)
    return [
        create_private(pid, identity=identities[i], **overrides.get(pid, {}))
        for i, pid in enumerate(player_ids)
    ]


def create_round_state(
    state: GameState,
    private_states: list[PrivatePlayerState],
    queue: list[SubmittedAction] | None = None,
) -> RoundState:
    return RoundState(
        state=state,
        private_states=private_states,
        action_queue=queue or [],
        previous_harbinger_position=state.harbinger_position,
    )


def create_object(name: str, position: BoardSpace) -> GameObject:
    return GameObject(id=f"obj-{name}", name=name, position=position)


def create_npc(name: str, position: BoardSpace) -> GameNPC:
    return GameNPC(id=f"npc-{name}", name=name, position=position)


class FakeRedis:
    """In-memory stand-in for the async Upstash client."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def get(self, key: str):
        return self.store.get(key)

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def eval(self, script: str, keys: list[str] | None = None, args: list[str] | None = None):
        # Only the compare-and-delete lock release is scripted
        assert script == RELEASE_LOCK_SCRIPT
        if self.store.get(keys[0]) == args[0]:
            return await self.delete(keys[0])
        return 0

    async def close(self) -> None:
        pass


class FakeQuery:
    def __init__(self, client: "FakeSupabase", table: str):
        self._client = client
        self._table = table
        self._filters: list[tuple[str, set[str]]] = []

    def select(self, *columns):
        return self

    def eq(self, column: str, value):
        self._filters.append((column, {str(value)}))
        return self

    def in_(self, column: str, values):
        self._filters.append((column, {str(v) for v in values}))
        return self

    def limit(self, count: int):
        return self

    def upsert(self, rows, on_conflict: str | None = None):
        if self._client.fail_writes:
            raise RuntimeError("database unavailable")
        self._client.upserts.setdefault(self._table, []).append(rows)
        return self

    def execute(self):
        rows = [
            row
            for row in self._client.tables.get(self._table, [])
            if all(str(row.get(column)) in values for column, values in self._filters)
        ]
        return SimpleNamespace(data=rows)


class FakeSupabase:
    """Just enough of the sync Supabase client for the game service."""

    def __init__(self, tables: dict[str, list[dict]] | None = None, fail_writes: bool = False):
        self.tables = tables or {}
        self.upserts: dict[str, list] = {}
        self.fail_writes = fail_writes

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


def make_settings(**overrides) -> Settings:
    values = {
        "SUPABASE_URL": "https://example.supabase.co",
        "SUPABASE_API_KEY": "service-key",
        "UPSTASH_REDIS_REST_URL": "https://example.upstash.io",
        "UPSTASH_REDIS_REST_TOKEN": "token",
        **overrides,
    }
    return Settings(_env_file=None, **values)


PROFILE_ROWS = [{"id": pid, "display_name": name} for pid, name in USERNAMES.items()]


@pytest.fixture
def two_players() -> list[str]:
    return [PLAYER_1_ID, PLAYER_2_ID]


@pytest.fixture
def three_players() -> list[str]:
    return [PLAYER_1_ID, PLAYER_2_ID, PLAYER_3_ID]
