"""Main entry point for game action processing.

This module provides the primary interface for processing game actions:
- process_action(): Validates and processes any game action
- Collects submissions and hands complete rounds to the RoundResolver
- Returns ProcessResult with the new session and sequenced events
"""

import logging

from app.schemas.game_engine import (
    CardName,
    GameSession,
    GameState,
    GameStatus,
    SubmittedAction,
)

from .actions import (
    ForfeitMoveAction,
    GameAction,
    SetConnectionAction,
    SubmitCardAction,
    SubmitMoveAction,
)
from .catalog import create_card
from .events import ActionSubmitted, AnyGameEvent
from .resolution import ResolutionResult, RoundResolver
from .validation import ProcessResult, validate_action

logger = logging.getLogger(__name__)


def process_action(
    session: GameSession,
    action: GameAction,
    player_id: str,
    resolver: RoundResolver,
) -> ProcessResult:
    """Process a game action and return the result.

    This is the main entry point for all game actions. It:
    1. Validates the action is legal given the current session
    2. Dispatches to the appropriate handler
    3. Assigns sequence numbers to events
    4. Returns ProcessResult with the new session and events

    Args:
        session: Current game session.
        action: The action to process.
        player_id: The player attempting the action.
        resolver: Resolver configured with this game's scenario.

    Returns:
        ProcessResult containing:
        - success: Whether the action was processed successfully
        - session: The new session (if successful)
        - events: List of events that occurred (with seq numbers)
        - error_code/error_message: Error details (if failed)

    Example:
        >>> result = process_action(session, SubmitCardAction(card_id=cid), player_id, resolver)
        >>> if result.success:
        ...     session = result.session
        ...     for event in result.events:
        ...         broadcast(event)  # event.seq is set
        ... else:
        ...     send_error(result.error_code, result.error_message)
    """
    action_type = type(action).__name__
    logger.info(
        "Processing action: type=%s, player=%s, game=%s",
        action_type,
        player_id[:8],
        session.state.game_id[:8],
    )
    logger.debug("Action details: %s", action)

    validation = validate_action(session, action, player_id)
    if not validation.is_valid:
        logger.warning(
            "Action validation failed: code=%s, message=%s, player=%s, action=%s",
            validation.error_code,
            validation.error_message,
            player_id[:8],
            action_type,
        )
        return ProcessResult.failure(
            validation.error_code or "VALIDATION_ERROR",
            validation.error_message or "Invalid action",
        )

    if isinstance(action, SubmitCardAction):
        result = _process_submit_card(session, action.card_id, player_id, resolver)

    elif isinstance(action, SubmitMoveAction):
        resolution = resolver.submit_move(session.round, player_id, action.position)
        result = _apply_resolution(session, resolution, [])

    elif isinstance(action, ForfeitMoveAction):
        resolution = resolver.forfeit_move(session.round)
        result = _apply_resolution(session, resolution, [])

    elif isinstance(action, SetConnectionAction):
        result = _process_set_connection(session, action.connected, player_id, resolver)

    else:
        logger.error("Unknown action type received: %s", action_type)
        return ProcessResult.failure(
            "UNKNOWN_ACTION",
            f"Unknown action type: {action_type}",
        )

    if result.success and result.session is not None:
        result = _assign_event_sequences(result)
        logger.info(
            "Action processed successfully: type=%s, player=%s, events_generated=%d",
            action_type,
            player_id[:8],
            len(result.events),
        )
        logger.debug("Generated events: %s", [type(e).__name__ for e in result.events])
    else:
        logger.warning(
            "Action processing failed: type=%s, player=%s, error=%s",
            action_type,
            player_id[:8],
            result.error_code,
        )

    return result


def _process_submit_card(
    session: GameSession,
    card_id: str,
    player_id: str,
    resolver: RoundResolver,
) -> ProcessResult:
    """Move the card from the hand into the round's submissions."""
    private = session.private_state(player_id)
    card = next(c for c in private.hand if c.id == card_id)
    updated_private = private.model_copy(
        update={"hand": [c for c in private.hand if c.id != card_id]}
    )
    players = [
        p.model_copy(update={"submitted_action": True}) if p.user_id == player_id else p
        for p in session.state.players
    ]
    session = session.model_copy(
        update={
            "state": session.state.model_copy(update={"players": players}),
            "private_states": [
                updated_private if p.user_id == player_id else p for p in session.private_states
            ],
            "submissions": [
                *session.submissions,
                SubmittedAction(player_id=player_id, card=card),
            ],
        }
    )
    logger.debug("Card submitted: player=%s, card=%s", player_id[:8], card.name.value)

    events: list[AnyGameEvent] = [ActionSubmitted(player_id=player_id)]
    return _maybe_start_round(session, resolver, events)


def _process_set_connection(
    session: GameSession,
    connected: bool,
    player_id: str,
    resolver: RoundResolver,
) -> ProcessResult:
    def with_presence(state: GameState) -> GameState:
        players = [
            p.model_copy(update={"is_disconnected": not connected}) if p.user_id == player_id else p
            for p in state.players
        ]
        return state.model_copy(update={"players": players})

    # The suspended round's copy of the state replaces session.state on resume
    round_state = session.round
    if round_state is not None:
        round_state = round_state.model_copy(update={"state": with_presence(round_state.state)})
    session = session.model_copy(
        update={"state": with_presence(session.state), "round": round_state}
    )
    logger.info("Presence changed: player=%s, connected=%s", player_id[:8], connected)

    # A disconnect may leave every connected player already submitted
    if not connected and session.submissions and session.round is None:
        return _maybe_start_round(session, resolver, [])
    return ProcessResult.ok(session, [])


def _maybe_start_round(
    session: GameSession,
    resolver: RoundResolver,
    events: list[AnyGameEvent],
) -> ProcessResult:
    """Start the round once every connected player has submitted.

    Disconnected players without a submission are given a Buffer.
    """
    submitted = {s.player_id: s for s in session.submissions}
    waiting_on = [
        p.user_id
        for p in session.state.players
        if not p.is_disconnected and p.user_id not in submitted
    ]
    if waiting_on or session.state.status != GameStatus.ACTIVE:
        return ProcessResult.ok(session, events)

    actions = []
    for slot in session.state.priority_track:
        action = submitted.get(slot.player_id)
        if action is None:
            action = SubmittedAction(player_id=slot.player_id, card=create_card(CardName.BUFFER))
        actions.append(action)

    session = session.model_copy(update={"submissions": []})
    resolution = resolver.start_round(session.state, session.private_states, actions)
    return _apply_resolution(session, resolution, events)


def _apply_resolution(
    session: GameSession,
    resolution: ResolutionResult,
    events: list[AnyGameEvent],
) -> ProcessResult:
    """Fold a resolver result back into the session."""
    if not resolution.success:
        return ProcessResult.failure(
            resolution.error_code or "RESOLUTION_FAILED",
            resolution.error_message or "Round resolution failed",
        )

    round_state = resolution.round_state
    session = session.model_copy(
        update={
            "state": round_state.state,
            "private_states": round_state.private_states,
            "round": round_state if resolution.is_awaiting else None,
        }
    )
    return ProcessResult.ok(session, [*events, *resolution.events])


def _assign_event_sequences(result: ProcessResult) -> ProcessResult:
    """Assign monotonically increasing sequence numbers to events.

    Updates each event's seq field and advances the state's event_seq counter
    (mirrored into the suspended round, if any).
    """
    if result.session is None or not result.events:
        return result

    session = result.session
    current_seq = session.state.event_seq
    for event in result.events:
        event.seq = current_seq
        current_seq += 1

    new_state = session.state.model_copy(update={"event_seq": current_seq})
    new_round = session.round
    if new_round is not None:
        new_round = new_round.model_copy(update={"state": new_state})
    result.session = session.model_copy(update={"state": new_state, "round": new_round})
    return result
