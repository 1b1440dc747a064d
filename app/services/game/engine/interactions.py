"""Interact card resolution against NPCs and objects under the Harbinger."""

import logging

from app.schemas.game_engine import RoundState

from .context import ResolutionContext, StepResult
from .effects import apply_effect
from .events import InteractionResolved

logger = logging.getLogger(__name__)


def resolve_interaction(
    ctx: ResolutionContext,
    round_state: RoundState,
    actor_id: str,
) -> StepResult:
    """Resolve an Interact played by actor_id.

    An NPC on the Harbinger's cell takes precedence over an object. NPCs roll
    a 50/50 positive/negative outcome and stay on the board; objects apply one
    of their effects and are removed after a single use.

    Raises:
        ScenarioDataError: If the NPC or object on the cell has no scenario definition.
    """
    state = round_state.state
    position = state.harbinger_position

    npc = next((n for n in state.board_npcs if n.position == position), None)
    if npc is not None:
        definition = ctx.scenario.npc_definition(npc.name)
        outcome = "positive" if ctx.rng.random() < 0.5 else "negative"
        effect = getattr(definition.effects, outcome)
        logger.info(
            "NPC interaction: npc=%s, actor=%s, outcome=%s",
            npc.name,
            actor_id[:8],
            outcome,
        )

        new_npcs = [
            n.model_copy(update={"interacted": True}) if n.id == npc.id else n
            for n in state.board_npcs
        ]
        round_state = round_state.model_copy(
            update={"state": state.model_copy(update={"board_npcs": new_npcs})}
        )
        round_state = round_state.log(
            f"Interacting with NPC: {npc.name}",
            f"Outcome: {outcome}! ({effect.description})",
        )
        result = apply_effect(ctx, round_state, actor_id, effect)
        result.events.insert(
            0,
            InteractionResolved(
                player_id=actor_id,
                target_kind="npc",
                target_name=npc.name,
                outcome=outcome,
            ),
        )
        return result

    obj = next((o for o in state.board_objects if o.position == position), None)
    if obj is not None:
        definition = ctx.scenario.object_definition(obj.name)
        effect = ctx.rng.choice(definition.effects)
        logger.info("Object interaction: object=%s, actor=%s", obj.name, actor_id[:8])

        remaining = [o for o in state.board_objects if o.id != obj.id]
        round_state = round_state.model_copy(
            update={"state": state.model_copy(update={"board_objects": remaining})}
        )
        round_state = round_state.log(
            f"Interacting with Object: {obj.name}",
            f"Effect: {effect.description}",
        )
        result = apply_effect(ctx, round_state, actor_id, effect)
        result.events.insert(
            0,
            InteractionResolved(player_id=actor_id, target_kind="object", target_name=obj.name),
        )
        return result

    logger.debug("Interaction found nothing at %s", position)
    return StepResult(
        round_state.log("Interacted with... nothing."),
        [InteractionResolved(player_id=actor_id, target_kind="nothing")],
    )
