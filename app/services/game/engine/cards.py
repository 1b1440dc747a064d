"""Command card handlers.

Every CardName has exactly one handler, registered with @card_handler. The
registry is checked for completeness when this module is imported, so adding
a card to the catalog without a handler fails at startup rather than mid-game.

Handlers receive the RoundState with the acting card already popped off the
queue and return a StepResult. A Move that needs a player's choice sets
RoundState.awaiting_move; the resolver treats that as a suspension point.
"""

import logging
from collections.abc import Callable

from app.schemas.game_engine import (
    CardName,
    MovePrompt,
    PlayerRole,
    PlayerSubRole,
    RethinkMode,
    RoundState,
    SubmittedAction,
)

from .catalog import deal_hands
from .context import ResolutionContext, StepResult, add_vp
from .effects import move_harbinger
from .events import ActionCancelled, AnyGameEvent
from .interactions import resolve_interaction
from .movement import adjacent_spaces, sorted_spaces, valid_moves

logger = logging.getLogger(__name__)

CardHandler = Callable[[ResolutionContext, RoundState, SubmittedAction], StepResult]

# Handler registry: maps CardName to handler function
_handlers: dict[CardName, CardHandler] = {}


def card_handler(*names: CardName) -> Callable[[CardHandler], CardHandler]:
    """Decorator to register a handler for one or more cards.

    Usage:
        @card_handler(CardName.BUFFER)
        def handle_buffer(ctx, round_state, action) -> StepResult:
            ...
    """

    def decorator(func: CardHandler) -> CardHandler:
        for name in names:
            if name in _handlers:
                raise RuntimeError(f"Duplicate handler for {name.value}")
            _handlers[name] = func
        return func

    return decorator


def dispatch_card(
    ctx: ResolutionContext,
    round_state: RoundState,
    action: SubmittedAction,
) -> StepResult:
    """Run the registered handler for the action's card."""
    return _handlers[action.card.name](ctx, round_state, action)


def grant_instigator_bonus(
    ctx: ResolutionContext,
    round_state: RoundState,
    action: SubmittedAction,
) -> RoundState:
    """Award the Instigator sub-role VP when its holder plays a disruptive card."""
    actor = round_state.private_state(action.player_id)
    if actor.sub_role != PlayerSubRole.INSTIGATOR:
        return round_state

    definition = ctx.scenario.sub_role_definitions.get(PlayerSubRole.INSTIGATOR)
    if definition is None:
        amount = ctx.rules.instigator_bonus_vp
    else:
        trigger = definition.trigger
        if trigger is not None and trigger.cards and action.card.name not in trigger.cards:
            return round_state
        amount = definition.vp

    logger.debug("Instigator bonus: player=%s, vp=%d", actor.user_id[:8], amount)
    return add_vp(round_state, amount, lambda p: p.user_id == actor.user_id)


def grant_mimic_bonus(
    ctx: ResolutionContext,
    round_state: RoundState,
    copier_id: str,
    original_player_id: str,
) -> RoundState:
    """Award the Mimic sub-role VP when its holder copies a True Believer."""
    copier = round_state.private_state(copier_id)
    original = round_state.private_state(original_player_id)
    if copier.sub_role != PlayerSubRole.MIMIC or original.role != PlayerRole.TRUE_BELIEVER:
        return round_state
    amount = ctx.scenario.sub_role_vp(PlayerSubRole.MIMIC)
    return add_vp(round_state, amount, lambda p: p.user_id == copier_id)


def _with_modifiers(round_state: RoundState, **changes) -> RoundState:
    return round_state.model_copy(
        update={"modifiers": round_state.modifiers.model_copy(update=changes)}
    )


@card_handler(CardName.MOVE_1, CardName.MOVE_2, CardName.MOVE_3)
def handle_move(ctx, round_state, action):
    modifiers = round_state.modifiers
    if modifiers.skip_next_move:
        return StepResult(_with_modifiers(round_state, skip_next_move=False).log("Movement skipped."))

    base = action.card.name.move_value or 0
    total = max(0, base + modifiers.move_value + modifiers.next_move_value)
    round_state = _with_modifiers(round_state, move_value=0, next_move_value=0)

    state = round_state.state
    destinations = valid_moves(state.harbinger_position, total, state.board_size) if total else set()
    if not destinations:
        return StepResult(round_state.log(f"Harbinger had {total} MP but nowhere to move."))

    if len(destinations) == 1:
        (destination,) = destinations
        result = move_harbinger(round_state, destination, "move")
        result.round_state = result.round_state.log(f"Harbinger moves to {destination}.")
        return result

    actor = round_state.private_state(action.player_id)
    prompt = MovePrompt(
        player_id=action.player_id,
        acting_username=actor.username,
        move_value=total,
        valid_moves=sorted_spaces(destinations),
    )
    round_state = round_state.model_copy(update={"awaiting_move": prompt})
    return StepResult(round_state.log(f"Awaiting move of {total} from {actor.username}..."))


@card_handler(CardName.IMPULSE)
def handle_impulse(ctx, round_state, action):
    state = round_state.state
    neighbours = adjacent_spaces(state.harbinger_position, state.board_size)
    if not neighbours:
        return StepResult(round_state.log("The Harbinger twitches but cannot move."))
    destination = ctx.rng.choice(neighbours)
    result = move_harbinger(round_state, destination, "impulse")
    result.round_state = result.round_state.log(f"Harbinger moves by Impulse to {destination}")
    return result


@card_handler(CardName.HESITATE, CardName.DEGRADE)
def handle_slow(ctx, round_state, action):
    return StepResult(
        _with_modifiers(round_state, next_move_value=round_state.modifiers.next_move_value - 1)
    )


@card_handler(CardName.CHARGE)
def handle_charge(ctx, round_state, action):
    return StepResult(
        _with_modifiers(round_state, next_move_value=round_state.modifiers.next_move_value + 1)
    )


@card_handler(CardName.EMPOWER)
def handle_empower(ctx, round_state, action):
    return StepResult(
        _with_modifiers(round_state, next_move_value=round_state.modifiers.next_move_value + 2)
    )


@card_handler(CardName.DENY)
def handle_deny(ctx, round_state, action):
    round_state = _with_modifiers(round_state, next_action_denied=True, denied_by=action.player_id)
    return StepResult(grant_instigator_bonus(ctx, round_state, action))


@card_handler(CardName.RETHINK)
def handle_rethink(ctx, round_state, action):
    events: list[AnyGameEvent] = []
    if not round_state.processed_actions:
        round_state = round_state.log("Rethink has nothing to cancel.")
    else:
        cancelled = round_state.processed_actions[-1]
        round_state = round_state.model_copy(
            update={"processed_actions": round_state.processed_actions[:-1]}
        )
        reverted = ctx.rules.rethink_mode == RethinkMode.REVERT and cancelled.checkpoint is not None
        if reverted:
            checkpoint = cancelled.checkpoint
            # Only the board and hands rewind
            restored = checkpoint.state.model_copy(
                update={
                    "game_log": round_state.state.game_log,
                    "event_seq": round_state.state.event_seq,
                    "players": round_state.state.players,
                }
            )
            round_state = round_state.model_copy(
                update={
                    "state": restored,
                    "private_states": checkpoint.private_states,
                    "modifiers": checkpoint.modifiers,
                }
            )
        round_state = round_state.log(f"Rethink cancels {cancelled.action.card.name.value}.")
        events.append(
            ActionCancelled(
                player_id=cancelled.action.player_id,
                card_name=cancelled.action.card.name,
                reverted=reverted,
            )
        )
        logger.debug(
            "Rethink: cancelled=%s, mode=%s",
            cancelled.action.card.name.value,
            ctx.rules.rethink_mode.value,
        )

    return StepResult(grant_instigator_bonus(ctx, round_state, action), events)


@card_handler(CardName.HOMAGE)
def handle_homage(ctx, round_state, action):
    if not round_state.processed_actions:
        return StepResult(round_state.log("Homage has nothing to copy."))

    previous = round_state.processed_actions[-1].action
    copy = action.model_copy(update={"card": previous.card, "copied": True})
    round_state = round_state.model_copy(
        update={"action_queue": [copy, *round_state.action_queue]}
    ).log(f"Homage copies {previous.card.name.value}.")
    return StepResult(grant_mimic_bonus(ctx, round_state, action.player_id, previous.player_id))


@card_handler(CardName.FORESIGHT)
def handle_foresight(ctx, round_state, action):
    return StepResult(_with_modifiers(round_state, foresight=action, foresight_copied=False))


@card_handler(CardName.INHIBIT)
def handle_inhibit(ctx, round_state, action):
    return StepResult(_with_modifiers(round_state, next_interact_inhibited=True))


@card_handler(CardName.INTERACT)
def handle_interact(ctx, round_state, action):
    return resolve_interaction(ctx, round_state, action.player_id)


@card_handler(CardName.GAMBLE)
def handle_gamble(ctx, round_state, action):
    """Re-deal the remaining queue from the queued players' pooled hands.

    Cards are drawn without replacement; an action left without a card once
    the pool runs dry is dropped. Hands themselves are not changed.
    """
    round_state = round_state.log("GAMBLE! All remaining actions are randomized!")
    queued_players = {a.player_id for a in round_state.action_queue}
    pool = [
        card
        for player in round_state.private_states
        if player.user_id in queued_players
        for card in player.hand
    ]

    new_queue = []
    for queued in round_state.action_queue:
        if not pool:
            round_state = round_state.log(
                f"{round_state.private_state(queued.player_id).username} has no card left to gamble."
            )
            continue
        card = pool.pop(ctx.rng.randrange(len(pool)))
        new_queue.append(queued.model_copy(update={"card": card}))

    round_state = round_state.model_copy(update={"action_queue": new_queue})
    return StepResult(grant_instigator_bonus(ctx, round_state, action))


@card_handler(CardName.HAIL_MARY)
def handle_hail_mary(ctx, round_state, action):
    player_ids = [p.user_id for p in round_state.private_states]
    hands = deal_hands(player_ids, ctx.rng, ctx.rules.hand_size)
    round_state = round_state.model_copy(
        update={
            "private_states": [
                p.model_copy(update={"hand": hands[p.user_id]}) for p in round_state.private_states
            ]
        }
    )
    return StepResult(round_state.log("HAIL MARY! All hands are redrawn!"))


@card_handler(CardName.RELOAD)
def handle_reload(ctx, round_state, action):
    actor = round_state.private_state(action.player_id)
    hand = deal_hands([actor.user_id], ctx.rng, ctx.rules.hand_size)[actor.user_id]
    chosen = hand.pop(ctx.rng.randrange(len(hand)))
    copy = action.model_copy(update={"card": chosen, "copied": True})
    round_state = round_state.replace_private(actor.model_copy(update={"hand": hand}))
    round_state = round_state.model_copy(
        update={"action_queue": [copy, *round_state.action_queue]}
    )
    return StepResult(
        round_state.log(
            f"{actor.username} uses Reload!",
            f"{actor.username} plays {chosen.name.value} from the new hand.",
        )
    )


@card_handler(CardName.BUFFER)
def handle_buffer(ctx, round_state, action):
    return StepResult(round_state.log("...does nothing."))


_missing = [name.value for name in CardName if name not in _handlers]
if _missing:
    raise RuntimeError(f"Cards without a handler: {', '.join(_missing)}")
