"""Game event types - emitted during round resolution for client broadcasts.

Events describe what happened while a round was resolved, enabling:
- Efficient updates (only send what changed)
- Frontend animations (know exactly which card did what)
- Reconnection state catch-up

The human-readable narration lives in GameState.game_log; events are the
structured counterpart.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.schemas.game_engine import BoardSpace, CardName


class GameEvent(BaseModel):
    """Base class for all game events."""

    event_type: str
    seq: int = 0  # Sequence number assigned during processing


class ActionSubmitted(GameEvent):
    """A player locked in a card for this round (the card stays secret)."""

    event_type: Literal["action_submitted"] = "action_submitted"
    player_id: str


class RoundStarted(GameEvent):
    """All actions are in and the queue has been sorted by priority."""

    event_type: Literal["round_started"] = "round_started"
    round_number: int
    player_order: list[str] = Field(..., description="Player IDs in resolution order")


class CardPlayed(GameEvent):
    """An action was popped off the queue."""

    event_type: Literal["card_played"] = "card_played"
    player_id: str
    card_name: CardName
    copied: bool = Field(False, description="True when Foresight/Homage/Reload queued it")


class ActionDenied(GameEvent):
    event_type: Literal["action_denied"] = "action_denied"
    player_id: str
    card_name: CardName
    denied_by: str | None = None


class ActionInhibited(GameEvent):
    event_type: Literal["action_inhibited"] = "action_inhibited"
    player_id: str


class ActionCancelled(GameEvent):
    """A Rethink cancelled the previously resolved action."""

    event_type: Literal["action_cancelled"] = "action_cancelled"
    player_id: str
    card_name: CardName
    reverted: bool


class HarbingerMoved(GameEvent):
    event_type: Literal["harbinger_moved"] = "harbinger_moved"
    from_position: BoardSpace
    to_position: BoardSpace
    reason: str = Field(..., description="'move', 'impulse', 'effect', 'warp'")


class AwaitingMove(GameEvent):
    """Resolution is suspended until the acting player picks a destination."""

    event_type: Literal["awaiting_move"] = "awaiting_move"
    player_id: str
    acting_username: str
    move_value: int
    valid_moves: list[BoardSpace]


class InteractionResolved(GameEvent):
    event_type: Literal["interaction_resolved"] = "interaction_resolved"
    player_id: str
    target_kind: Literal["npc", "object", "nothing"]
    target_name: str | None = None
    outcome: str | None = None


class ComplicationAdded(GameEvent):
    event_type: Literal["complication_added"] = "complication_added"
    name: str


class ComplicationExpired(GameEvent):
    event_type: Literal["complication_expired"] = "complication_expired"
    name: str


class RoundEnded(GameEvent):
    event_type: Literal["round_ended"] = "round_ended"
    round_number: int
    next_round: int | None = Field(None, description="None when the game finished")


class GameEnded(GameEvent):
    """The game has finished."""

    event_type: Literal["game_ended"] = "game_ended"
    winning_role: str
    end_condition: str
    final_rankings: list[str] = Field(..., description="Player IDs in leaderboard order")


# Union of all event types for type checking
AnyGameEvent = Annotated[
    ActionSubmitted
    | RoundStarted
    | CardPlayed
    | ActionDenied
    | ActionInhibited
    | ActionCancelled
    | HarbingerMoved
    | AwaitingMove
    | InteractionResolved
    | ComplicationAdded
    | ComplicationExpired
    | RoundEnded
    | GameEnded,
    Field(discriminator="event_type"),
]
