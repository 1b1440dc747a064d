"""Static scenario definitions.

Scenarios are authored as JSON (stored in the Supabase ``scenarios`` table)
and validated into these models once per game. Effects and conditions are
discriminated by their ``type`` field.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.schemas.game_engine import (
    BoardSpace,
    CardName,
    ComplicationDuration,
    Location,
    PlayerRole,
    PlayerSubRole,
)


class ScenarioDataError(ValueError):
    """Scenario data and the engine's effect tables are out of sync."""


# Conditions
class IsNearCondition(BaseModel):
    type: Literal["IS_NEAR"] = "IS_NEAR"
    location: str
    distance: int = 1


class IsOnLocationCondition(BaseModel):
    type: Literal["IS_ON_LOCATION"] = "IS_ON_LOCATION"
    location: str


class NoMoveCondition(BaseModel):
    type: Literal["NO_MOVE"] = "NO_MOVE"


Condition = Annotated[
    IsNearCondition | IsOnLocationCondition | NoMoveCondition,
    Field(discriminator="type"),
]


# Effects
class AddActionEffect(BaseModel):
    type: Literal["ADD_ACTION"] = "ADD_ACTION"
    card_name: CardName
    description: str = ""


class ModifyTurnEffect(BaseModel):
    type: Literal["MODIFY_TURN"] = "MODIFY_TURN"
    skip_next_move: bool = False
    next_move_value_modifier: int = 0
    next_action_protected: bool = False
    move_value: int | Literal["active_complications"] = 0
    description: str = ""


class MoveTowardsEffect(BaseModel):
    type: Literal["MOVE_TOWARDS"] = "MOVE_TOWARDS"
    target_location: str
    distance: int = 1
    description: str = ""


class WarpEffect(BaseModel):
    type: Literal["WARP"] = "WARP"
    target: Literal["random_empty"] = "random_empty"
    description: str = ""


class RemoveComplicationEffect(BaseModel):
    type: Literal["REMOVE_COMPLICATION"] = "REMOVE_COMPLICATION"
    target: Literal["last"] = "last"
    description: str = ""


class VPCondition(BaseModel):
    if_role: PlayerRole
    target_role: PlayerRole | None = None
    amount: int = 0
    target_self: int = 0
    target_others: int = 0


class ConditionalVPEffect(BaseModel):
    type: Literal["CONDITIONAL_VP"] = "CONDITIONAL_VP"
    conditions: list[VPCondition]
    description: str = ""


class DrawCardEffect(BaseModel):
    type: Literal["DRAW_CARD"] = "DRAW_CARD"
    target: Literal["self"] = "self"
    amount: int = 1
    description: str = ""


class DiscardCardEffect(BaseModel):
    type: Literal["DISCARD_CARD"] = "DISCARD_CARD"
    target: Literal["self"] = "self"
    selection: Literal["random"] = "random"
    amount: int = 1
    description: str = ""


class EmitEventEffect(BaseModel):
    type: Literal["EMIT_EVENT"] = "EMIT_EVENT"
    event_name: str
    description: str = ""


class ModifyVPEffect(BaseModel):
    type: Literal["MODIFY_VP"] = "MODIFY_VP"
    target: Literal["role"] = "role"
    role: PlayerRole
    amount: int
    description: str = ""


class SpawnStalkerEffect(BaseModel):
    """Places the Intrepid Stalker where the Harbinger started the round."""

    type: Literal["SPAWN_STALKER"] = "SPAWN_STALKER"
    description: str = ""


Effect = Annotated[
    AddActionEffect
    | ModifyTurnEffect
    | MoveTowardsEffect
    | WarpEffect
    | RemoveComplicationEffect
    | ConditionalVPEffect
    | DrawCardEffect
    | DiscardCardEffect
    | EmitEventEffect
    | ModifyVPEffect
    | SpawnStalkerEffect,
    Field(discriminator="type"),
]


# Board entities
class ObjectDefinition(BaseModel):
    description: str = ""
    effects: list[Effect] = Field(..., min_length=1)


class NPCOutcomes(BaseModel):
    positive: Effect
    negative: Effect


class NPCDefinition(BaseModel):
    description: str = ""
    static_location: str | None = None
    effects: NPCOutcomes


class ComplicationTrigger(BaseModel):
    type: Literal["ACTION_PLAYED", "ON_ADD"]
    cards: list[CardName] | None = None
    condition: Condition | None = None


class ComplicationDefinition(BaseModel):
    description: str
    duration: int = Field(1, description="0 = immediate, >0 = rounds, <0 = permanent")
    trigger: ComplicationTrigger | None = None
    effect: Effect

    def initial_duration(self) -> ComplicationDuration:
        return ComplicationDuration.from_raw(self.duration)


class SubRoleTrigger(BaseModel):
    type: Literal["END_OF_ROUND", "ON_CARD", "ON_COPY", "ON_REMOVE_COMPLICATION"]
    condition: Condition | None = None
    cards: list[CardName] = []


class SubRoleDefinition(BaseModel):
    description: str = ""
    vp: int
    trigger: SubRoleTrigger | None = None


# Terminal conditions
class ProphecyCondition(BaseModel):
    start_location: str
    win_location: str
    win_action: CardName
    winner: PlayerRole = PlayerRole.TRUE_BELIEVER
    trigger_message: str
    vp: int = 20


class DoomsdayCondition(BaseModel):
    lose_location: str
    winner: PlayerRole = PlayerRole.HERETIC
    trigger_message: str
    vp: int = 20


class GlobalFailCondition(BaseModel):
    lose_location: str
    max_round: int
    winner: PlayerRole = PlayerRole.HERETIC
    trigger_message: str


class Scenario(BaseModel):
    id: str
    name: str
    board_size_x: int = Field(..., ge=3)
    board_size_y: int = Field(..., ge=3)
    locations: list[Location]
    object_effects: dict[str, ObjectDefinition] = {}
    npc_effects: dict[str, NPCDefinition] = {}
    complication_effects: dict[str, ComplicationDefinition] = {}
    sub_role_definitions: dict[PlayerSubRole, SubRoleDefinition] = {}
    opportunist_goals: list[list[str]] = []
    random_npc_count: int = 3
    main_prophecy: ProphecyCondition
    doomsday_condition: DoomsdayCondition
    global_fail_condition: GlobalFailCondition

    @property
    def board_size(self) -> BoardSpace:
        return BoardSpace(x=self.board_size_x, y=self.board_size_y)

    def location(self, name: str) -> Location:
        """Look up a fixed location by name, failing loudly on unknown names."""
        for location in self.locations:
            if location.name == name:
                return location
        raise ScenarioDataError(f"Scenario '{self.id}' has no location named '{name}'")

    def location_at(self, position: BoardSpace) -> Location | None:
        return next((loc for loc in self.locations if loc.position == position), None)

    def object_definition(self, name: str) -> ObjectDefinition:
        if name not in self.object_effects:
            raise ScenarioDataError(f"Scenario '{self.id}' has no object named '{name}'")
        return self.object_effects[name]

    def npc_definition(self, name: str) -> NPCDefinition:
        if name not in self.npc_effects:
            raise ScenarioDataError(f"Scenario '{self.id}' has no NPC named '{name}'")
        return self.npc_effects[name]

    def complication_definition(self, name: str) -> ComplicationDefinition:
        if name not in self.complication_effects:
            raise ScenarioDataError(f"Scenario '{self.id}' has no complication named '{name}'")
        return self.complication_effects[name]

    def sub_role_vp(self, sub_role: PlayerSubRole, default: int = 0) -> int:
        definition = self.sub_role_definitions.get(sub_role)
        return definition.vp if definition is not None else default
