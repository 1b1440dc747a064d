"""REST endpoints for playing a game."""

import logging

from fastapi import APIRouter, HTTPException, status

from app.dependencies.auth import CurrentPlayerId
from app.schemas.game import (
    ActionResponse,
    CreateGameRequest,
    GameView,
    PresenceRequest,
    SubmitCardRequest,
    SubmitMoveRequest,
)
from app.services.game.engine import (
    ForfeitMoveAction,
    GameAction,
    SetConnectionAction,
    SubmitCardAction,
    SubmitMoveAction,
)
from app.services.game.service import GameOperationResult, get_game_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])

error_status_map = {
    "GAME_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "SCENARIO_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NOT_IN_GAME": status.HTTP_403_FORBIDDEN,
    "NOT_YOUR_TURN_TO_MOVE": status.HTTP_403_FORBIDDEN,
    "GAME_NOT_ACTIVE": status.HTTP_409_CONFLICT,
    "ROUND_IN_PROGRESS": status.HTTP_409_CONFLICT,
    "ROUND_LOCKED": status.HTTP_409_CONFLICT,
    "ACTION_ALREADY_SUBMITTED": status.HTTP_409_CONFLICT,
    "NOT_AWAITING_MOVE": status.HTTP_409_CONFLICT,
    "CARD_NOT_IN_HAND": status.HTTP_400_BAD_REQUEST,
    "ILLEGAL_MOVE": status.HTTP_400_BAD_REQUEST,
    "INVALID_SETTINGS": status.HTTP_400_BAD_REQUEST,
    "SCENARIO_INVALID": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "INTERNAL_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _raise_for_failure(result: GameOperationResult, user_id: str) -> None:
    http_status = error_status_map.get(result.error_code, status.HTTP_400_BAD_REQUEST)
    logger.warning(
        "Game request failed for user %s: %s - %s",
        user_id,
        result.error_code,
        result.error_message,
    )
    raise HTTPException(
        status_code=http_status,
        detail={"error_code": result.error_code, "message": result.error_message},
    )


async def _apply(game_id: str, user_id: str, action: GameAction) -> ActionResponse:
    result = await get_game_service().apply_action(game_id, user_id, action)
    if not result.success:
        _raise_for_failure(result, user_id)
    view = GameView.for_player(result.session, user_id)
    return ActionResponse(**view.model_dump(), events=result.events)


@router.post("", response_model=GameView, status_code=status.HTTP_201_CREATED)
async def create_game(
    user_id: CurrentPlayerId,
    request: CreateGameRequest,
):
    """Create and start a game with the caller as host.

    Raises:
        HTTPException 400: If the player list is invalid.
        HTTPException 404: If the scenario does not exist.
    """
    logger.info("POST /games - user: %s, players: %d", user_id, len(request.player_ids))

    result = await get_game_service().create_game(
        host_id=user_id,
        player_ids=request.player_ids,
        scenario_id=request.scenario_id,
    )
    if not result.success:
        _raise_for_failure(result, user_id)
    return GameView.for_player(result.session, user_id)


@router.get("/{game_id}", response_model=GameView)
async def get_game(user_id: CurrentPlayerId, game_id: str):
    """Public state plus the caller's private state."""
    session = await get_game_service().get_session(game_id)
    if session is None or session.public_player(user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return GameView.for_player(session, user_id)


@router.post("/{game_id}/actions", response_model=ActionResponse)
async def submit_card(user_id: CurrentPlayerId, game_id: str, request: SubmitCardRequest):
    """Commit a card for this round. The round resolves once everyone has submitted."""
    logger.info("POST /games/%s/actions - user: %s", game_id, user_id)
    return await _apply(game_id, user_id, SubmitCardAction(card_id=request.card_id))


@router.post("/{game_id}/move", response_model=ActionResponse)
async def submit_move(user_id: CurrentPlayerId, game_id: str, request: SubmitMoveRequest):
    logger.info("POST /games/%s/move - user: %s, to: %d,%d", game_id, user_id, request.x, request.y)
    return await _apply(game_id, user_id, SubmitMoveAction(x=request.x, y=request.y))


@router.post("/{game_id}/forfeit-move", response_model=ActionResponse)
async def forfeit_move(user_id: CurrentPlayerId, game_id: str):
    """Resolve the pending move in place. Allowed for the moving player and the host."""
    logger.info("POST /games/%s/forfeit-move - user: %s", game_id, user_id)
    return await _apply(game_id, user_id, ForfeitMoveAction())


@router.post("/{game_id}/presence", response_model=ActionResponse)
async def set_presence(user_id: CurrentPlayerId, game_id: str, request: PresenceRequest):
    logger.info(
        "POST /games/%s/presence - user: %s, connected: %s", game_id, user_id, request.connected
    )
    return await _apply(game_id, user_id, SetConnectionAction(connected=request.connected))
