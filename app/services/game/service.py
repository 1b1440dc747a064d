"""Game service: live sessions in Redis, durable snapshots in Supabase."""

import logging
import random
from dataclasses import dataclass, field
from uuid import uuid4

from pydantic import ValidationError
from upstash_redis.asyncio import Redis

from app.config import Settings, get_settings
from app.dependencies.redis import acquire_lock, get_redis_client, release_lock
from app.dependencies.supabase import get_supabase_client
from app.schemas.game_engine import GameSession
from app.schemas.scenario import Scenario, ScenarioDataError
from app.services.game.engine import (
    AnyGameEvent,
    GameAction,
    RoundEnded,
    RoundResolver,
    process_action,
)
from app.services.game.scenarios import DEFAULT_SCENARIO_ID, load_default_scenario
from app.services.game.start_game import setup_game

logger = logging.getLogger(__name__)


@dataclass
class GameOperationResult:
    """Result of a game service operation."""

    success: bool
    session: GameSession | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def failure(cls, code: str, message: str) -> "GameOperationResult":
        return cls(success=False, error_code=code, error_message=message)


class GameService:
    """Service for creating games and applying player actions.

    The live GameSession is stored in Redis for the duration of the game.
    Every mutation holds a per-game lock so at most one round resolution is
    in flight. Finished rounds are written to Supabase.
    """

    def __init__(
        self,
        redis_client: Redis | None = None,
        supabase_client=None,
        settings: Settings | None = None,
    ):
        self._redis = redis_client or get_redis_client()
        self._supabase = supabase_client or get_supabase_client()
        self._settings = settings or get_settings()

    def _session_key(self, game_id: str) -> str:
        return f"game:{game_id}:session"

    def _scenario_key(self, game_id: str) -> str:
        return f"game:{game_id}:scenario"

    def _lock_key(self, game_id: str) -> str:
        return f"game:{game_id}:lock"

    def _get_display_names(self, user_ids: list[str]) -> dict[str, str]:
        """Fetch display names from the profiles table, falling back to a short id."""
        names = {user_id: f"Player {user_id[:4]}" for user_id in user_ids}
        try:
            response = (
                self._supabase.table("profiles")
                .select("id, display_name")
                .in_("id", user_ids)
                .execute()
            )
            for row in response.data or []:
                if row.get("display_name"):
                    names[str(row["id"])] = row["display_name"]
        except Exception as e:
            logger.warning("Failed to fetch display names: %s", e)
        return names

    def _load_scenario(self, scenario_id: str) -> Scenario | None:
        """Load a scenario definition. Unknown ids return None.

        Raises:
            ScenarioDataError: If the stored scenario does not validate.
        """
        if scenario_id == DEFAULT_SCENARIO_ID:
            return load_default_scenario()

        response = (
            self._supabase.table("scenarios")
            .select("*")
            .eq("id", scenario_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        try:
            return Scenario.model_validate(response.data[0])
        except ValidationError as e:
            raise ScenarioDataError(f"Scenario '{scenario_id}' is invalid: {e}") from e

    async def _save(self, session: GameSession, scenario: Scenario | None = None) -> None:
        game_id = session.state.game_id
        ttl = self._settings.GAME_SESSION_TTL
        await self._redis.set(self._session_key(game_id), session.model_dump_json(), ex=ttl)
        if scenario is not None:
            await self._redis.set(self._scenario_key(game_id), scenario.model_dump_json(), ex=ttl)

    async def get_session(self, game_id: str) -> GameSession | None:
        raw = await self._redis.get(self._session_key(game_id))
        if raw is None:
            return None
        return GameSession.model_validate_json(raw)

    async def _get_scenario(self, game_id: str) -> Scenario | None:
        raw = await self._redis.get(self._scenario_key(game_id))
        if raw is None:
            return None
        return Scenario.model_validate_json(raw)

    def _persist_snapshot(self, session: GameSession) -> None:
        """Write the public state and per-player rows to Supabase.

        Persistence failures are logged; the live session in Redis stays authoritative.
        """
        state = session.state
        try:
            self._supabase.table("games").upsert(
                {
                    "id": state.game_id,
                    "scenario_id": state.scenario_id,
                    "host_id": state.host_id,
                    "status": state.status.value,
                    "current_round": state.current_round,
                    "game_state": state.model_dump(mode="json"),
                }
            ).execute()
            self._supabase.table("game_players").upsert(
                [
                    {
                        "game_id": state.game_id,
                        "user_id": p.user_id,
                        "private_state": p.model_dump(mode="json"),
                    }
                    for p in session.private_states
                ],
                on_conflict="game_id,user_id",
            ).execute()
            logger.debug("Persisted snapshot: game=%s, round=%d", state.game_id[:8], state.current_round)
        except Exception as e:
            logger.error("Failed to persist game %s: %s", state.game_id[:8], e)

    async def create_game(
        self,
        host_id: str,
        player_ids: list[str],
        scenario_id: str = DEFAULT_SCENARIO_ID,
    ) -> GameOperationResult:
        """Set up a new game with the host first on the player list."""
        all_players = [host_id, *(p for p in player_ids if p != host_id)]
        logger.info(
            "Creating game: host=%s, players=%d, scenario=%s",
            host_id[:8],
            len(all_players),
            scenario_id,
        )

        try:
            scenario = self._load_scenario(scenario_id)
        except ScenarioDataError as e:
            logger.error("Scenario %s failed validation: %s", scenario_id, e)
            return GameOperationResult.failure("SCENARIO_INVALID", str(e))
        if scenario is None:
            return GameOperationResult.failure("SCENARIO_NOT_FOUND", "Scenario not found")

        usernames = self._get_display_names(all_players)
        try:
            state, private_states = setup_game(
                all_players,
                usernames,
                scenario,
                rng=random.Random(),
                hand_size=self._settings.HAND_SIZE,
                game_id=str(uuid4()),
            )
        except ScenarioDataError as e:
            logger.error("Scenario %s cannot be set up: %s", scenario_id, e)
            return GameOperationResult.failure("SCENARIO_INVALID", str(e))
        except ValueError as e:
            return GameOperationResult.failure("INVALID_SETTINGS", str(e))

        session = GameSession(state=state, private_states=private_states)
        await self._save(session, scenario)
        self._persist_snapshot(session)
        logger.info("Game %s created", state.game_id[:8])
        return GameOperationResult(success=True, session=session)

    async def apply_action(
        self,
        game_id: str,
        player_id: str,
        action: GameAction,
    ) -> GameOperationResult:
        """Apply one player action under the game's lock."""
        lock_key = self._lock_key(game_id)
        lock_token = await acquire_lock(self._redis, lock_key, self._settings.ROUND_LOCK_TTL)
        if lock_token is None:
            logger.warning("Game %s is locked, rejecting action from %s", game_id[:8], player_id[:8])
            return GameOperationResult.failure(
                "ROUND_LOCKED", "Another action is being resolved, try again"
            )

        try:
            session = await self.get_session(game_id)
            scenario = await self._get_scenario(game_id)
            if session is None or scenario is None:
                return GameOperationResult.failure("GAME_NOT_FOUND", "Game not found")

            resolver = RoundResolver(scenario, self._settings.engine_rules())
            result = process_action(session, action, player_id, resolver)
            if not result.success:
                return GameOperationResult.failure(
                    result.error_code or "INTERNAL_ERROR",
                    result.error_message or "Action failed",
                )

            await self._save(result.session)
            if any(isinstance(e, RoundEnded) for e in result.events):
                self._persist_snapshot(result.session)
            return GameOperationResult(success=True, session=result.session, events=result.events)
        finally:
            await release_lock(self._redis, lock_key, lock_token)


# Singleton instance
_game_service: GameService | None = None


def get_game_service() -> GameService:
    """Get the singleton GameService instance."""
    global _game_service
    if _game_service is None:
        _game_service = GameService()
    return _game_service
