from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# Game lifecycle
class GameStatus(str, Enum):
    LOBBY = "lobby"
    ACTIVE = "active"
    FINISHED = "finished"


# Round resolution phases (Idle is "no RoundState at all")
class RoundPhase(str, Enum):
    SORTING = "sorting"
    DRAINING = "draining"
    AWAITING_MOVE = "awaiting_move"
    COMPLETE = "complete"


class CardName(str, Enum):
    MOVE_1 = "Move 1"
    MOVE_2 = "Move 2"
    MOVE_3 = "Move 3"
    HOMAGE = "Homage"
    HESITATE = "Hesitate"
    FORESIGHT = "Foresight"
    CHARGE = "Charge"
    DENY = "Deny"
    RETHINK = "Rethink"
    EMPOWER = "Empower"
    IMPULSE = "Impulse"
    DEGRADE = "Degrade"
    INTERACT = "Interact"
    INHIBIT = "Inhibit"
    BUFFER = "Buffer"
    GAMBLE = "Gamble"
    HAIL_MARY = "Hail Mary"
    RELOAD = "Reload"

    @property
    def move_value(self) -> int | None:
        """Base movement points for Move cards, None for everything else."""
        if self.value.startswith("Move "):
            return int(self.value.split(" ")[1])
        return None


class PlayerRole(str, Enum):
    TRUE_BELIEVER = "True Believer"
    HERETIC = "Heretic"
    OPPORTUNIST = "Opportunist"


class PlayerSubRole(str, Enum):
    GUIDE = "The Guide"
    FIXER = "The Fixer"
    INSTIGATOR = "The Instigator"
    WASTER = "The Waster"
    DATA_BROKER = "The Data Broker"
    MIMIC = "The Mimic"


class SecretIdentity(str, Enum):
    EYE = "The Eye"
    HAND = "The Hand"
    KEY = "The Key"
    GRIP = "The Grip"
    CHAIN = "The Chain"
    BOLT = "The Bolt"
    HOOK = "The Hook"
    COMPASS = "The Compass"


class RethinkMode(str, Enum):
    """How a Rethink treats the action it cancels."""

    COSMETIC = "cosmetic"  # log only, effects stay applied
    REVERT = "revert"  # restore the checkpoint taken before the action


class DurationKind(str, Enum):
    IMMEDIATE = "immediate"
    ROUNDS = "rounds"
    PERMANENT = "permanent"


# Board primitives
class BoardSpace(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: int

    def __str__(self) -> str:
        return f"{self.x}, {self.y}"


class Location(BaseModel):
    name: str
    position: BoardSpace


class GameObject(BaseModel):
    id: str
    name: str
    position: BoardSpace
    interacted: bool = False


class GameNPC(BaseModel):
    id: str
    name: str
    position: BoardSpace
    interacted: bool = False


class ComplicationDuration(BaseModel):
    """Lifetime of an active complication.

    Scenario data encodes durations as plain integers: 0 is an immediate
    complication (resolved when added), a positive value is a number of
    rounds, and a negative value is permanent.
    """

    model_config = ConfigDict(frozen=True)

    kind: DurationKind
    rounds: int = 0

    @classmethod
    def immediate(cls) -> "ComplicationDuration":
        return cls(kind=DurationKind.IMMEDIATE)

    @classmethod
    def for_rounds(cls, rounds: int) -> "ComplicationDuration":
        if rounds <= 0:
            raise ValueError("A timed complication needs a positive number of rounds")
        return cls(kind=DurationKind.ROUNDS, rounds=rounds)

    @classmethod
    def permanent(cls) -> "ComplicationDuration":
        return cls(kind=DurationKind.PERMANENT)

    @classmethod
    def from_raw(cls, raw: int) -> "ComplicationDuration":
        if raw == 0:
            return cls.immediate()
        if raw < 0:
            return cls.permanent()
        return cls.for_rounds(raw)

    def tick(self) -> "ComplicationDuration | None":
        """Advance one round. Returns None once the complication has expired."""
        if self.kind == DurationKind.PERMANENT:
            return self
        if self.kind == DurationKind.IMMEDIATE or self.rounds <= 1:
            return None
        return ComplicationDuration(kind=DurationKind.ROUNDS, rounds=self.rounds - 1)


class ActiveComplication(BaseModel):
    id: str
    name: str
    effect: str
    duration: ComplicationDuration


# Cards and actions
class CommandCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: CardName
    effect: str


class SubmittedAction(BaseModel):
    player_id: str
    card: CommandCard
    priority: int = Field(0, description="Index on the priority track when the round started")
    copied: bool = Field(False, description="Queued by Foresight, Homage, Reload or an effect")


# Players
class PrioritySlot(BaseModel):
    player_id: str
    identity: SecretIdentity


class PersonalGoal(BaseModel):
    type: str = "Data Broker"
    locations: list[str]
    visited: list[str] = []

    @property
    def completed(self) -> bool:
        return all(name in self.visited for name in self.locations)


class PublicPlayerState(BaseModel):
    id: str
    user_id: str
    username: str
    vp: int = 0
    submitted_action: bool = False
    is_disconnected: bool = False


class PrivatePlayerState(BaseModel):
    id: str
    user_id: str
    username: str
    hand: list[CommandCard]
    role: PlayerRole
    sub_role: PlayerSubRole
    secret_identity: SecretIdentity
    vp: int = 0
    personal_goal: PersonalGoal | None = None


# End of game
class PlayerResult(BaseModel):
    user_id: str
    username: str
    secret_identity: SecretIdentity
    role: PlayerRole
    sub_role: PlayerSubRole
    main_goal_vp: int
    sub_role_vp: int
    total_vp: int
    personal_goal_completed: bool | None = None
    rank: int = 0


class GameResults(BaseModel):
    winning_role: str
    end_condition: str
    leaderboard: list[PlayerResult]


# Game state for broadcasting and persistence
class GameState(BaseModel):
    """Public game state shared by every player."""

    game_id: str
    scenario_id: str
    scenario_name: str
    status: GameStatus
    current_round: int = 1
    board_size: BoardSpace
    locations: list[Location]
    harbinger_position: BoardSpace
    stalker_position: BoardSpace | None = None
    priority_track: list[PrioritySlot]
    active_complications: list[ActiveComplication] = []
    board_objects: list[GameObject] = []
    board_npcs: list[GameNPC] = []
    players: list[PublicPlayerState]
    game_log: list[str] = []
    host_id: str | None = None
    results: GameResults | None = None
    event_seq: int = 0  # Next sequence number for events (monotonically increasing)


class EngineRules(BaseModel):
    """Immutable configuration for a RoundResolver."""

    model_config = ConfigDict(frozen=True)

    rethink_mode: RethinkMode = RethinkMode.COSMETIC
    prophecy_requires_action: bool = True
    complication_spawn_chance: float = Field(0.2, ge=0.0, le=1.0)
    max_active_complications: int = 3
    hand_size: int = 4
    hand_refill_interval: int = 3
    instigator_bonus_vp: int = 5
    opportunist_goal_vp: int = 30


# Ephemeral round state (never persisted past the end of a round)
class RoundModifiers(BaseModel):
    move_value: int = 0
    next_move_value: int = 0
    next_action_denied: bool = False
    denied_by: str | None = None
    next_interact_inhibited: bool = False
    skip_next_move: bool = False
    next_action_protected: bool = False
    foresight: SubmittedAction | None = None
    foresight_copied: bool = False


class MovePrompt(BaseModel):
    """Emitted when resolution pauses for a player's movement target."""

    player_id: str
    acting_username: str
    move_value: int
    valid_moves: list[BoardSpace]


class RoundCheckpoint(BaseModel):
    """Snapshot taken before an action is applied, used by reverting Rethinks."""

    state: GameState
    private_states: list[PrivatePlayerState]
    modifiers: RoundModifiers


class ProcessedAction(BaseModel):
    action: SubmittedAction
    checkpoint: RoundCheckpoint | None = None


class RoundState(BaseModel):
    """Everything one round's resolution owns while it is in flight."""

    state: GameState
    private_states: list[PrivatePlayerState]
    action_queue: list[SubmittedAction] = []
    processed_actions: list[ProcessedAction] = []
    unresolved_actions: list[SubmittedAction] = []
    modifiers: RoundModifiers = Field(default_factory=RoundModifiers)
    previous_harbinger_position: BoardSpace
    phase: RoundPhase = RoundPhase.SORTING
    awaiting_move: MovePrompt | None = None
    suspended_action: ProcessedAction | None = None
    prophecy_action_seen: bool = False
    halted: bool = False

    def private_state(self, player_id: str) -> PrivatePlayerState:
        return next(p for p in self.private_states if p.user_id == player_id)

    def replace_private(self, updated: PrivatePlayerState) -> "RoundState":
        return self.model_copy(
            update={
                "private_states": [
                    updated if p.user_id == updated.user_id else p for p in self.private_states
                ]
            }
        )

    def log(self, *lines: str) -> "RoundState":
        new_state = self.state.model_copy(update={"game_log": [*self.state.game_log, *lines]})
        return self.model_copy(update={"state": new_state})


class GameSession(BaseModel):
    """A live game as stored between requests.

    ``round`` is set only while a round is suspended waiting for a move; at
    that point ``state`` and ``private_states`` mirror the round's copies.
    """

    state: GameState
    private_states: list[PrivatePlayerState]
    submissions: list[SubmittedAction] = []
    round: RoundState | None = None

    def private_state(self, player_id: str) -> PrivatePlayerState | None:
        return next((p for p in self.private_states if p.user_id == player_id), None)

    def public_player(self, player_id: str) -> PublicPlayerState | None:
        return next((p for p in self.state.players if p.user_id == player_id), None)
