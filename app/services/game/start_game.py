import logging
import random
from uuid import uuid4

from app.schemas.game_engine import (
    BoardSpace,
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
)
from app.schemas.scenario import Scenario, ScenarioDataError
from app.services.game.engine.catalog import (
    DECK_TEMPLATE,
    PLAYER_ROLES,
    SECRET_IDENTITIES,
    SUB_ROLES,
    deal_hands,
)

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2
OBJECT_COUNTS = (6, 7, 8)


def max_players(hand_size: int) -> int:
    """Players are bounded by identities and by how many hands one deck can deal."""
    return min(len(SECRET_IDENTITIES), len(DECK_TEMPLATE) // hand_size)


def validate_game_settings(
    player_ids: list[str],
    usernames: dict[str, str],
    hand_size: int,
) -> None:
    """Validate the player list before initializing a game."""
    if len(player_ids) < MIN_PLAYERS:
        raise ValueError(f"A minimum of {MIN_PLAYERS} players is required to start the game.")
    limit = max_players(hand_size)
    if len(player_ids) > limit:
        raise ValueError(f"At most {limit} players can join a game.")

    seen: set[str] = set()
    for player_id in player_ids:
        if player_id in seen:
            raise ValueError(f"Duplicate player ID found: {player_id}")
        if not usernames.get(player_id):
            raise ValueError(f"Missing username for player: {player_id}")
        seen.add(player_id)


class _Placer:
    """Rejection sampler for free cells, bounded so a full board fails loudly."""

    def __init__(self, board_size: BoardSpace, occupied: set[BoardSpace], rng: random.Random):
        self.board_size = board_size
        self.occupied = set(occupied)
        self.rng = rng
        self.max_attempts = board_size.x * board_size.y * 4

    def take(self) -> BoardSpace:
        for _ in range(self.max_attempts):
            candidate = BoardSpace(
                x=self.rng.randint(1, self.board_size.x),
                y=self.rng.randint(1, self.board_size.y),
            )
            if candidate not in self.occupied:
                self.occupied.add(candidate)
                return candidate
        raise ScenarioDataError(
            f"No free cell found after {self.max_attempts} attempts; the board is too crowded"
        )


def _assign_roles(
    player_ids: list[str],
    scenario: Scenario,
    rng: random.Random,
) -> dict[str, tuple[PlayerRole, PlayerSubRole, PersonalGoal | None]]:
    assignments = {}
    for player_id in player_ids:
        role = rng.choice(PLAYER_ROLES)
        sub_role = rng.choice(SUB_ROLES[role])
        goal = None
        if role == PlayerRole.OPPORTUNIST and sub_role == PlayerSubRole.DATA_BROKER:
            if not scenario.opportunist_goals:
                raise ScenarioDataError(f"Scenario '{scenario.id}' has no Data Broker goals")
            locations = list(rng.choice(scenario.opportunist_goals))
            for name in locations:
                scenario.location(name)
            goal = PersonalGoal(locations=locations)
        assignments[player_id] = (role, sub_role, goal)
    return assignments


def _place_entities(
    scenario: Scenario,
    start: BoardSpace,
    rng: random.Random,
) -> tuple[list[GameObject], list[GameNPC]]:
    occupied = {loc.position for loc in scenario.locations}
    occupied.add(start)
    placer = _Placer(scenario.board_size, occupied, rng)

    object_pool = sorted(scenario.object_effects)
    object_count = min(rng.choice(OBJECT_COUNTS), len(object_pool))
    objects = [
        GameObject(id=str(uuid4()), name=name, position=placer.take())
        for name in rng.sample(object_pool, object_count)
    ]

    npcs = []
    random_pool = []
    for name in sorted(scenario.npc_effects):
        static_location = scenario.npc_effects[name].static_location
        if static_location is None:
            random_pool.append(name)
            continue
        position = scenario.location(static_location).position
        npcs.append(GameNPC(id=str(uuid4()), name=name, position=position))

    npc_count = min(scenario.random_npc_count, len(random_pool))
    npcs.extend(
        GameNPC(id=str(uuid4()), name=name, position=placer.take())
        for name in rng.sample(random_pool, npc_count)
    )
    return objects, npcs


def setup_game(
    player_ids: list[str],
    usernames: dict[str, str],
    scenario: Scenario,
    rng: random.Random | None = None,
    hand_size: int = 4,
    game_id: str | None = None,
) -> tuple[GameState, list[PrivatePlayerState]]:
    """
    Validate the players and return the initial public and private states.

    The priority track is a shuffle of the players, and secret identities are
    handed out in track order. The first id in ``player_ids`` becomes the host.

    Args:
        player_ids: User ids of everyone joining, host first.
        usernames: Display name per user id.
        scenario: The scenario the game is played on.
        rng: Random source; pass a seeded one for reproducible setups.
        hand_size: Cards dealt to each player.
        game_id: Id for the new game, generated when omitted.

    Returns:
        The active GameState and one PrivatePlayerState per player, in
        priority-track order.

    Raises:
        ValueError: If the player list is invalid.
        ScenarioDataError: If the scenario references unknown locations or
            has no room left for its objects and NPCs.
    """
    validate_game_settings(player_ids, usernames, hand_size)
    rng = rng or random.Random()

    track_order = list(player_ids)
    rng.shuffle(track_order)
    priority_track = [
        PrioritySlot(player_id=player_id, identity=SECRET_IDENTITIES[i])
        for i, player_id in enumerate(track_order)
    ]

    roles = _assign_roles(track_order, scenario, rng)
    hands = deal_hands(track_order, rng, hand_size)
    start = scenario.location(scenario.main_prophecy.start_location).position
    objects, npcs = _place_entities(scenario, start, rng)

    private_states = []
    public_states = []
    for slot in priority_track:
        role, sub_role, goal = roles[slot.player_id]
        private = PrivatePlayerState(
            id=str(uuid4()),
            user_id=slot.player_id,
            username=usernames[slot.player_id],
            hand=hands[slot.player_id],
            role=role,
            sub_role=sub_role,
            secret_identity=slot.identity,
            personal_goal=goal,
        )
        private_states.append(private)
        public_states.append(
            PublicPlayerState(id=private.id, user_id=slot.player_id, username=private.username)
        )

    state = GameState(
        game_id=game_id or str(uuid4()),
        scenario_id=scenario.id,
        scenario_name=scenario.name,
        status=GameStatus.ACTIVE,
        board_size=scenario.board_size,
        locations=scenario.locations,
        harbinger_position=start,
        priority_track=priority_track,
        board_objects=objects,
        board_npcs=npcs,
        players=public_states,
        game_log=[f"Game started with {len(player_ids)} players."],
        host_id=player_ids[0],
    )
    logger.info(
        "Game set up: game=%s, scenario=%s, players=%d, objects=%d, npcs=%d",
        state.game_id[:8],
        scenario.id,
        len(player_ids),
        len(objects),
        len(npcs),
    )
    return state, private_states
