"""End-of-round scoring and the complication lifecycle."""

import logging
from uuid import uuid4

from app.schemas.game_engine import ActiveComplication, PersonalGoal, RoundState

from .context import ResolutionContext, StepResult
from .effects import apply_effect, check_condition
from .events import AnyGameEvent, ComplicationAdded, ComplicationExpired

logger = logging.getLogger(__name__)


def apply_end_of_round(ctx: ResolutionContext, round_state: RoundState) -> StepResult:
    """Score passive sub-role triggers, age complications and maybe spawn one.

    Order:
    1. The Stalker, if present, follows to where the Harbinger started the round
    2. END_OF_ROUND sub-role triggers whose condition holds award their VP
    3. Data Broker goals record the location the Harbinger ended on
    4. Active complications tick down; expired ones are removed
    5. With the configured chance (and below the cap) a new complication spawns
    """
    events: list[AnyGameEvent] = []

    round_state = _follow_with_stalker(round_state)
    round_state = _score_sub_roles(ctx, round_state)
    round_state = _track_personal_goals(ctx, round_state)

    result = _age_complications(round_state)
    round_state = result.round_state
    events.extend(result.events)

    result = _maybe_spawn_complication(ctx, round_state)
    events.extend(result.events)

    return StepResult(result.round_state, events)


def _follow_with_stalker(round_state: RoundState) -> RoundState:
    if round_state.state.stalker_position is None:
        return round_state
    position = round_state.previous_harbinger_position
    new_state = round_state.state.model_copy(update={"stalker_position": position})
    return round_state.model_copy(update={"state": new_state}).log(
        f"The Stalker moves to {position}..."
    )


def _score_sub_roles(ctx: ResolutionContext, round_state: RoundState) -> RoundState:
    updated_players = []
    lines = []
    for player in round_state.private_states:
        definition = ctx.scenario.sub_role_definitions.get(player.sub_role)
        if (
            definition is not None
            and definition.trigger is not None
            and definition.trigger.type == "END_OF_ROUND"
            and check_condition(ctx, round_state, definition.trigger.condition)
        ):
            player = player.model_copy(update={"vp": player.vp + definition.vp})
            lines.append(f"{player.username} gains {definition.vp} VP ({player.sub_role.value}).")
            logger.debug(
                "Sub-role scored: player=%s, sub_role=%s, vp=%d",
                player.user_id[:8],
                player.sub_role.value,
                definition.vp,
            )
        updated_players.append(player)

    return round_state.model_copy(update={"private_states": updated_players}).log(*lines)


def _track_personal_goals(ctx: ResolutionContext, round_state: RoundState) -> RoundState:
    location = ctx.scenario.location_at(round_state.state.harbinger_position)
    if location is None:
        return round_state

    updated_players = []
    lines = []
    for player in round_state.private_states:
        goal = player.personal_goal
        if goal is not None and location.name in goal.locations and location.name not in goal.visited:
            new_goal = PersonalGoal(
                type=goal.type,
                locations=goal.locations,
                visited=[*goal.visited, location.name],
            )
            player = player.model_copy(update={"personal_goal": new_goal})
            lines.append(f"{player.username} ({goal.type}) visited {location.name}!")
        updated_players.append(player)

    return round_state.model_copy(update={"private_states": updated_players}).log(*lines)


def _age_complications(round_state: RoundState) -> StepResult:
    events: list[AnyGameEvent] = []
    remaining: list[ActiveComplication] = []
    for complication in round_state.state.active_complications:
        duration = complication.duration.tick()
        if duration is None:
            events.append(ComplicationExpired(name=complication.name))
            logger.debug("Complication expired: %s", complication.name)
            continue
        remaining.append(complication.model_copy(update={"duration": duration}))

    new_state = round_state.state.model_copy(update={"active_complications": remaining})
    round_state = round_state.model_copy(update={"state": new_state})
    return StepResult(round_state.log(*(f"{e.name} ends." for e in events)), events)


def _maybe_spawn_complication(ctx: ResolutionContext, round_state: RoundState) -> StepResult:
    pool = sorted(ctx.scenario.complication_effects)
    active = round_state.state.active_complications
    if not pool or len(active) >= ctx.rules.max_active_complications:
        return StepResult(round_state)
    if ctx.rng.random() >= ctx.rules.complication_spawn_chance:
        return StepResult(round_state)

    name = ctx.rng.choice(pool)
    definition = ctx.scenario.complication_definition(name)
    complication = ActiveComplication(
        id=str(uuid4()),
        name=name,
        effect=definition.description,
        duration=definition.initial_duration(),
    )
    new_state = round_state.state.model_copy(update={"active_complications": [*active, complication]})
    round_state = round_state.model_copy(update={"state": new_state})
    round_state = round_state.log(f"New Complication added: {name}!")
    events: list[AnyGameEvent] = [ComplicationAdded(name=name)]
    logger.info("Complication spawned: %s (duration=%s)", name, complication.duration.kind.value)

    on_add = definition.trigger is not None and definition.trigger.type == "ON_ADD"
    if complication.duration.kind.value == "immediate" or on_add:
        # Immediate complications resolve against the player first on the track
        pseudo_actor = round_state.state.priority_track[0].player_id
        result = apply_effect(ctx, round_state, pseudo_actor, definition.effect)
        round_state = result.round_state
        events.extend(result.events)

    return StepResult(round_state, events)
