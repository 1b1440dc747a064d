"""Scenario effect and condition interpreter.

Objects, NPC outcomes and complications all describe what they do with the
typed effects from app.schemas.scenario. This module applies them to a
RoundState on behalf of an acting player.
"""

import logging

from app.schemas.game_engine import (
    BoardSpace,
    PlayerSubRole,
    RoundState,
    SubmittedAction,
)
from app.schemas.scenario import (
    AddActionEffect,
    Condition,
    ConditionalVPEffect,
    DiscardCardEffect,
    DrawCardEffect,
    Effect,
    EmitEventEffect,
    IsNearCondition,
    IsOnLocationCondition,
    ModifyTurnEffect,
    ModifyVPEffect,
    MoveTowardsEffect,
    NoMoveCondition,
    RemoveComplicationEffect,
    ScenarioDataError,
    SpawnStalkerEffect,
    WarpEffect,
)

from .catalog import DECK_TEMPLATE, create_card
from .context import ResolutionContext, StepResult, add_vp
from .events import AnyGameEvent, ComplicationExpired, HarbingerMoved
from .movement import chebyshev_distance, step_towards

logger = logging.getLogger(__name__)


def check_condition(
    ctx: ResolutionContext,
    round_state: RoundState,
    condition: Condition | None,
) -> bool:
    """Evaluate a scenario condition against the current Harbinger position."""
    if condition is None:
        return True

    position = round_state.state.harbinger_position
    if isinstance(condition, IsNearCondition):
        target = ctx.scenario.location(condition.location).position
        return chebyshev_distance(position, target) <= condition.distance
    if isinstance(condition, IsOnLocationCondition):
        return position == ctx.scenario.location(condition.location).position
    if isinstance(condition, NoMoveCondition):
        return position == round_state.previous_harbinger_position

    raise ScenarioDataError(f"Unknown condition type: {type(condition).__name__}")


def move_harbinger(
    round_state: RoundState,
    destination: BoardSpace,
    reason: str,
) -> StepResult:
    """Place the Harbinger on a cell and emit the movement event."""
    origin = round_state.state.harbinger_position
    new_state = round_state.state.model_copy(update={"harbinger_position": destination})
    events: list[AnyGameEvent] = []
    if destination != origin:
        events.append(HarbingerMoved(from_position=origin, to_position=destination, reason=reason))
    return StepResult(round_state.model_copy(update={"state": new_state}), events)


def empty_spaces(ctx: ResolutionContext, round_state: RoundState) -> list[BoardSpace]:
    """Cells holding no location, object, NPC, Stalker or the Harbinger itself."""
    state = round_state.state
    occupied = {loc.position for loc in ctx.scenario.locations}
    occupied.add(state.harbinger_position)
    if state.stalker_position is not None:
        occupied.add(state.stalker_position)
    occupied.update(o.position for o in state.board_objects)
    occupied.update(n.position for n in state.board_npcs)
    return [
        BoardSpace(x=x, y=y)
        for x in range(1, state.board_size.x + 1)
        for y in range(1, state.board_size.y + 1)
        if BoardSpace(x=x, y=y) not in occupied
    ]


def apply_effect(
    ctx: ResolutionContext,
    round_state: RoundState,
    actor_id: str,
    effect: Effect,
) -> StepResult:
    """Apply one scenario effect on behalf of actor_id.

    Raises:
        ScenarioDataError: If the effect references a location that does not exist
            or its type is not handled.
    """
    effect_type = type(effect).__name__
    logger.debug("Applying effect: type=%s, actor=%s", effect_type, actor_id[:8])
    actor = round_state.private_state(actor_id)

    if isinstance(effect, AddActionEffect):
        added = SubmittedAction(
            player_id=actor_id, card=create_card(effect.card_name), copied=True
        )
        round_state = round_state.model_copy(
            update={"action_queue": [added, *round_state.action_queue]}
        )
        return StepResult(round_state.log(f"{effect.card_name.value} is added to the queue."))

    if isinstance(effect, ModifyTurnEffect):
        modifiers = round_state.modifiers
        if effect.move_value == "active_complications":
            move_delta = len(round_state.state.active_complications)
        else:
            move_delta = effect.move_value
        updated = modifiers.model_copy(
            update={
                "skip_next_move": modifiers.skip_next_move or effect.skip_next_move,
                "next_action_protected": modifiers.next_action_protected
                or effect.next_action_protected,
                "next_move_value": modifiers.next_move_value + effect.next_move_value_modifier,
                "move_value": modifiers.move_value + move_delta,
            }
        )
        return StepResult(round_state.model_copy(update={"modifiers": updated}))

    if isinstance(effect, MoveTowardsEffect):
        target = ctx.scenario.location(effect.target_location).position
        position = round_state.state.harbinger_position
        for _ in range(max(1, effect.distance)):
            position = step_towards(position, target, round_state.state.board_size)
        result = move_harbinger(round_state, position, "effect")
        result.round_state = result.round_state.log(
            f"Harbinger is drawn toward {effect.target_location} ({position})."
        )
        return result

    if isinstance(effect, WarpEffect):
        candidates = empty_spaces(ctx, round_state)
        if not candidates:
            return StepResult(round_state.log("The Harbinger flickers but has nowhere to warp."))
        destination = ctx.rng.choice(candidates)
        result = move_harbinger(round_state, destination, "warp")
        result.round_state = result.round_state.log(f"Warped to {destination}!")
        return result

    if isinstance(effect, RemoveComplicationEffect):
        complications = round_state.state.active_complications
        if not complications:
            return StepResult(round_state.log("There is no Complication to remove."))
        removed = complications[-1]
        new_state = round_state.state.model_copy(
            update={"active_complications": complications[:-1]}
        )
        round_state = round_state.model_copy(update={"state": new_state})
        round_state = round_state.log(f"Removed Complication: {removed.name}")
        round_state = add_vp(
            round_state,
            ctx.scenario.sub_role_vp(PlayerSubRole.FIXER),
            lambda p: p.sub_role == PlayerSubRole.FIXER,
        )
        return StepResult(round_state, [ComplicationExpired(name=removed.name)])

    if isinstance(effect, ConditionalVPEffect):
        for cond in effect.conditions:
            if cond.if_role != actor.role:
                continue
            if cond.target_role is not None:
                target_role = cond.target_role
                round_state = add_vp(round_state, cond.amount, lambda p: p.role == target_role)
            if cond.target_self:
                round_state = add_vp(round_state, cond.target_self, lambda p: p.user_id == actor_id)
            if cond.target_others:
                round_state = add_vp(
                    round_state, cond.target_others, lambda p: p.user_id != actor_id
                )
        return StepResult(round_state)

    if isinstance(effect, DrawCardEffect):
        drawn = [create_card(ctx.rng.choice(DECK_TEMPLATE)) for _ in range(effect.amount)]
        updated_actor = actor.model_copy(update={"hand": [*actor.hand, *drawn]})
        round_state = round_state.replace_private(updated_actor)
        return StepResult(round_state.log(f"{actor.username} draws {len(drawn)} card(s)."))

    if isinstance(effect, DiscardCardEffect):
        hand = list(actor.hand)
        lines = []
        for _ in range(effect.amount):
            if not hand:
                break
            discarded = hand.pop(ctx.rng.randrange(len(hand)))
            lines.append(f"{actor.username} discarded {discarded.name.value}.")
        round_state = round_state.replace_private(actor.model_copy(update={"hand": hand}))
        return StepResult(round_state.log(*lines))

    if isinstance(effect, EmitEventEffect):
        return StepResult(round_state.log(f"(Event for {actor.username}: {effect.event_name})"))

    if isinstance(effect, ModifyVPEffect):
        role = effect.role
        return StepResult(add_vp(round_state, effect.amount, lambda p: p.role == role))

    if isinstance(effect, SpawnStalkerEffect):
        position = round_state.previous_harbinger_position
        new_state = round_state.state.model_copy(update={"stalker_position": position})
        round_state = round_state.model_copy(update={"state": new_state})
        return StepResult(round_state.log(f"An Intrepid Stalker appears at {position}!"))

    raise ScenarioDataError(f"Unhandled effect type: {effect_type}")

