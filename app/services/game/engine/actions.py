"""Game action types - explicit player inputs separated from game state."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.schemas.game_engine import BoardSpace


class SubmitCardAction(BaseModel):
    """Player commits a card from their hand for this round."""

    action_type: Literal["submit_card"] = "submit_card"
    card_id: str = Field(..., description="ID of the card in the player's hand")


class SubmitMoveAction(BaseModel):
    """Player picks the Harbinger's destination while a move is pending."""

    action_type: Literal["submit_move"] = "submit_move"
    x: int
    y: int

    @property
    def position(self) -> BoardSpace:
        return BoardSpace(x=self.x, y=self.y)


class ForfeitMoveAction(BaseModel):
    """The pending move is resolved with the Harbinger staying put."""

    action_type: Literal["forfeit_move"] = "forfeit_move"


class SetConnectionAction(BaseModel):
    """Presence change reported by the transport layer."""

    action_type: Literal["set_connection"] = "set_connection"
    connected: bool


# Union type for all game actions
GameAction = Annotated[
    SubmitCardAction | SubmitMoveAction | ForfeitMoveAction | SetConnectionAction,
    Field(discriminator="action_type"),
]


def build_action_from_payload(payload: dict) -> GameAction:
    """Build a typed action from a raw payload dict.

    Args:
        payload: Dict with 'action_type' key and action-specific fields.

    Returns:
        The appropriate GameAction subtype.

    Raises:
        ValueError: If action_type is missing or unknown.
    """
    action_type = payload.get("action_type")

    if action_type == "submit_card":
        return SubmitCardAction.model_validate(payload)
    elif action_type == "submit_move":
        return SubmitMoveAction.model_validate(payload)
    elif action_type == "forfeit_move":
        return ForfeitMoveAction.model_validate(payload)
    elif action_type == "set_connection":
        return SetConnectionAction.model_validate(payload)
    else:
        raise ValueError(f"Unknown action type: {action_type}")
