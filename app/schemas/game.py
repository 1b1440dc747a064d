"""Pydantic schemas for game operations."""

from pydantic import BaseModel, Field

from app.schemas.game_engine import (
    GameSession,
    GameState,
    MovePrompt,
    PrivatePlayerState,
)
from app.services.game.engine.events import AnyGameEvent


class CreateGameRequest(BaseModel):
    player_ids: list[str] = Field(
        ...,
        min_length=1,
        description="User ids of the other players; the caller joins as host",
    )
    scenario_id: str = "default"


class SubmitCardRequest(BaseModel):
    card_id: str


class SubmitMoveRequest(BaseModel):
    x: int = Field(..., ge=1)
    y: int = Field(..., ge=1)


class PresenceRequest(BaseModel):
    connected: bool


class GameView(BaseModel):
    """What one player is allowed to see of a game."""

    state: GameState
    private_state: PrivatePlayerState | None = None
    awaiting_move: MovePrompt | None = None

    @classmethod
    def for_player(cls, session: GameSession, user_id: str) -> "GameView":
        return cls(
            state=session.state,
            private_state=session.private_state(user_id),
            awaiting_move=session.round.awaiting_move if session.round is not None else None,
        )


class ActionResponse(GameView):
    events: list[AnyGameEvent] = []
