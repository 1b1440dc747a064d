"""Validation layer for game actions and ProcessResult pattern.

Separates validation from processing logic:
- validate_action() checks if an action is valid given the current session
- ProcessResult replaces exceptions for control flow
"""

import logging
from dataclasses import dataclass, field

from app.schemas.game_engine import GameSession, GameStatus

from .actions import (
    ForfeitMoveAction,
    GameAction,
    SetConnectionAction,
    SubmitCardAction,
    SubmitMoveAction,
)
from .events import AnyGameEvent

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Result of processing a game action.

    Replaces exceptions for control flow, providing explicit success/failure
    with error codes suitable for client localization.
    """

    session: GameSession | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    success: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(
        cls,
        session: GameSession,
        events: list[AnyGameEvent] | None = None,
    ) -> "ProcessResult":
        """Create a successful result with the new session and events."""
        return cls(
            session=session,
            events=events or [],
            success=True,
        )

    @classmethod
    def failure(cls, code: str, message: str) -> "ProcessResult":
        """Create a failure result with error details."""
        return cls(
            session=None,
            events=[],
            success=False,
            error_code=code,
            error_message=message,
        )


@dataclass
class ValidationResult:
    """Result of validating an action before processing."""

    is_valid: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(is_valid=True)

    @classmethod
    def error(cls, code: str, message: str) -> "ValidationResult":
        """Create a validation failure with error details."""
        return cls(
            is_valid=False,
            error_code=code,
            error_message=message,
        )


def validate_action(
    session: GameSession,
    action: GameAction,
    player_id: str,
) -> ValidationResult:
    """Validate an action before processing.

    Checks:
    - The player belongs to the game
    - The game is active (presence changes are always accepted)
    - Card submissions: no round in flight, one card per round, card in hand
    - Moves: a move is pending, it is this player's, the cell is on offer
    - Forfeits: a move is pending and the caller is its player or the host

    Args:
        session: Current game session.
        action: The action to validate.
        player_id: The player attempting the action.

    Returns:
        ValidationResult indicating success or failure with error details.
    """
    state = session.state
    logger.debug(
        "Validating action: type=%s, player=%s, status=%s",
        type(action).__name__,
        player_id[:8],
        state.status.value,
    )

    public = session.public_player(player_id)
    if public is None:
        logger.warning("Validation failed: NOT_IN_GAME, player=%s", player_id[:8])
        return ValidationResult.error("NOT_IN_GAME", "You are not a player in this game")

    if isinstance(action, SetConnectionAction):
        return ValidationResult.ok()

    if state.status != GameStatus.ACTIVE:
        logger.warning("Validation failed: GAME_NOT_ACTIVE, status=%s", state.status.value)
        return ValidationResult.error("GAME_NOT_ACTIVE", "Game is not active")

    if isinstance(action, SubmitCardAction):
        if session.round is not None:
            return ValidationResult.error(
                "ROUND_IN_PROGRESS",
                "The current round is still being resolved",
            )
        if public.submitted_action:
            logger.warning("Validation failed: ACTION_ALREADY_SUBMITTED, player=%s", player_id[:8])
            return ValidationResult.error(
                "ACTION_ALREADY_SUBMITTED",
                "You have already submitted an action this round",
            )
        private = session.private_state(player_id)
        if private is None or all(card.id != action.card_id for card in private.hand):
            logger.warning(
                "Validation failed: CARD_NOT_IN_HAND, player=%s, card=%s",
                player_id[:8],
                action.card_id[:8],
            )
            return ValidationResult.error("CARD_NOT_IN_HAND", "That card is not in your hand")
        return ValidationResult.ok()

    prompt = session.round.awaiting_move if session.round is not None else None
    if prompt is None:
        return ValidationResult.error("NOT_AWAITING_MOVE", "No move is pending")

    if isinstance(action, SubmitMoveAction):
        if prompt.player_id != player_id:
            logger.warning(
                "Validation failed: NOT_YOUR_TURN_TO_MOVE, expected=%s, attempted=%s",
                prompt.player_id[:8],
                player_id[:8],
            )
            return ValidationResult.error(
                "NOT_YOUR_TURN_TO_MOVE",
                "It is not your turn to move the Harbinger",
            )
        if action.position not in prompt.valid_moves:
            logger.warning("Validation failed: ILLEGAL_MOVE, requested=%s", action.position)
            return ValidationResult.error(
                "ILLEGAL_MOVE",
                f"({action.position}) is not a valid destination",
            )

    elif isinstance(action, ForfeitMoveAction):
        if player_id not in (prompt.player_id, state.host_id):
            return ValidationResult.error(
                "NOT_YOUR_TURN_TO_MOVE",
                "Only the moving player or the host can forfeit the move",
            )

    return ValidationResult.ok()
