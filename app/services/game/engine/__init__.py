"""Game engine module - pure functional round resolution.

This module provides the core game engine with:
- Action types for explicit player inputs
- Event types for client broadcasts
- RoundResolver, the round resolution state machine
- ProcessResult pattern for error handling

Usage:
    from app.services.game.engine import (
        RoundResolver,
        SubmitCardAction,
        process_action,
    )

    resolver = RoundResolver(scenario, rules, random.Random(seed))
    result = process_action(session, SubmitCardAction(card_id=card_id), player_id, resolver)

    if result.success:
        session = result.session
        events = result.events  # Broadcast these to clients
    else:
        # Handle error
        print(f"Error: {result.error_code} - {result.error_message}")
"""

# Actions - explicit player inputs
from .actions import (
    ForfeitMoveAction,
    GameAction,
    SetConnectionAction,
    SubmitCardAction,
    SubmitMoveAction,
    build_action_from_payload,
)

# Events - for client broadcasts
from .events import (
    ActionCancelled,
    ActionDenied,
    ActionInhibited,
    ActionSubmitted,
    AnyGameEvent,
    AwaitingMove,
    CardPlayed,
    ComplicationAdded,
    ComplicationExpired,
    GameEnded,
    GameEvent,
    HarbingerMoved,
    InteractionResolved,
    RoundEnded,
    RoundStarted,
)

# Movement
from .movement import valid_moves

# Main processing
from .process import process_action
from .resolution import ResolutionResult, RoundResolver

# Result types
from .validation import ProcessResult, ValidationResult, validate_action

__all__ = [
    # Actions
    "GameAction",
    "SubmitCardAction",
    "SubmitMoveAction",
    "ForfeitMoveAction",
    "SetConnectionAction",
    "build_action_from_payload",
    # Events
    "GameEvent",
    "AnyGameEvent",
    "ActionSubmitted",
    "RoundStarted",
    "CardPlayed",
    "ActionDenied",
    "ActionInhibited",
    "ActionCancelled",
    "HarbingerMoved",
    "AwaitingMove",
    "InteractionResolved",
    "ComplicationAdded",
    "ComplicationExpired",
    "RoundEnded",
    "GameEnded",
    # Processing
    "process_action",
    "RoundResolver",
    "ResolutionResult",
    # Validation
    "ProcessResult",
    "ValidationResult",
    "validate_action",
    # Movement
    "valid_moves",
]
