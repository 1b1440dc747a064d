"""Round resolution state machine.

A round moves through Sorting -> Draining -> (AwaitingMove -> Draining)* ->
Complete. The resolver never keeps a round in memory between calls: every
entry point takes a RoundState and returns a ResolutionResult carrying the
next one, so the caller decides where an in-flight round lives.
"""

import logging
import random
from dataclasses import dataclass, field

from app.schemas.game_engine import (
    BoardSpace,
    CardName,
    EngineRules,
    GameState,
    GameStatus,
    MovePrompt,
    PrivatePlayerState,
    ProcessedAction,
    RethinkMode,
    RoundCheckpoint,
    RoundModifiers,
    RoundPhase,
    RoundState,
    SubmittedAction,
)
from app.schemas.scenario import Scenario

from .cards import dispatch_card, grant_mimic_bonus
from .catalog import CARD_EFFECTS, create_card, deal_hands
from .context import ResolutionContext, StepResult
from .effects import apply_effect, check_condition, move_harbinger
from .end_of_round import apply_end_of_round
from .events import (
    ActionDenied,
    ActionInhibited,
    AnyGameEvent,
    AwaitingMove,
    CardPlayed,
    RoundEnded,
    RoundStarted,
)
from .win_conditions import check_win_conditions, is_doomsday

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    """Tagged result of a resolver call.

    Either the round finished (``is_complete``), paused for a movement choice
    (``prompt`` is set), or the input was rejected (``success`` is False and
    nothing was changed).
    """

    round_state: RoundState | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    prompt: MovePrompt | None = None
    success: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, round_state: RoundState, events: list[AnyGameEvent]) -> "ResolutionResult":
        return cls(round_state=round_state, events=events)

    @classmethod
    def awaiting(
        cls,
        round_state: RoundState,
        prompt: MovePrompt,
        events: list[AnyGameEvent],
    ) -> "ResolutionResult":
        return cls(round_state=round_state, events=events, prompt=prompt)

    @classmethod
    def failure(cls, code: str, message: str) -> "ResolutionResult":
        return cls(success=False, error_code=code, error_message=message)

    @property
    def is_awaiting(self) -> bool:
        return self.success and self.prompt is not None

    @property
    def is_complete(self) -> bool:
        return self.success and self.prompt is None


class RoundResolver:
    """Resolves rounds for games played on one scenario.

    Construct one per game (or per request) with the scenario, the rules and
    a random source; pass a seeded ``random.Random`` for reproducible games.
    """

    def __init__(
        self,
        scenario: Scenario,
        rules: EngineRules | None = None,
        rng: random.Random | None = None,
    ):
        self.ctx = ResolutionContext(
            scenario=scenario,
            rules=rules or EngineRules(),
            rng=rng or random.Random(),
        )

    @property
    def scenario(self) -> Scenario:
        return self.ctx.scenario

    @property
    def rules(self) -> EngineRules:
        return self.ctx.rules

    def start_round(
        self,
        state: GameState,
        private_states: list[PrivatePlayerState],
        actions: list[SubmittedAction],
    ) -> ResolutionResult:
        """Sort the round's actions by priority and drain the queue.

        Every player on the priority track must have exactly one action.
        Invalid input is rejected without touching the state.
        """
        if state.status != GameStatus.ACTIVE:
            return ResolutionResult.failure("GAME_NOT_ACTIVE", "Game is not active")

        track = [slot.player_id for slot in state.priority_track]
        seen: set[str] = set()
        for action in actions:
            if action.player_id not in track:
                logger.warning("Rejected round: unknown player %s", action.player_id[:8])
                return ResolutionResult.failure(
                    "UNKNOWN_PLAYER", f"Player {action.player_id} is not on the priority track"
                )
            if action.card.name not in CARD_EFFECTS:
                return ResolutionResult.failure(
                    "UNKNOWN_CARD", f"Card {action.card.name} is not in the catalog"
                )
            if action.player_id in seen:
                return ResolutionResult.failure(
                    "DUPLICATE_ACTION", f"Player {action.player_id} submitted more than one action"
                )
            seen.add(action.player_id)
        missing = [pid for pid in track if pid not in seen]
        if missing:
            return ResolutionResult.failure(
                "MISSING_ACTION", f"Waiting on actions from {len(missing)} player(s)"
            )

        queue = sorted(
            (a.model_copy(update={"priority": track.index(a.player_id)}) for a in actions),
            key=lambda a: a.priority,
        )
        round_state = RoundState(
            state=state,
            private_states=private_states,
            action_queue=queue,
            previous_harbinger_position=state.harbinger_position,
            phase=RoundPhase.DRAINING,
        ).log(f"--- Round {state.current_round} ---")

        logger.info(
            "Round started: game=%s, round=%d, players=%d",
            state.game_id[:8],
            state.current_round,
            len(queue),
        )
        events: list[AnyGameEvent] = [
            RoundStarted(
                round_number=state.current_round,
                player_order=[a.player_id for a in queue],
            )
        ]
        return self._drain(round_state, events)

    def submit_move(
        self,
        round_state: RoundState,
        player_id: str,
        position: BoardSpace,
    ) -> ResolutionResult:
        """Answer the pending movement prompt and continue draining."""
        prompt = round_state.awaiting_move
        if prompt is None or round_state.suspended_action is None:
            return ResolutionResult.failure("NOT_AWAITING_MOVE", "No move is pending")
        if prompt.player_id != player_id:
            logger.warning(
                "Move from wrong player: expected=%s, got=%s",
                prompt.player_id[:8],
                player_id[:8],
            )
            return ResolutionResult.failure(
                "NOT_YOUR_TURN_TO_MOVE", "It is not your turn to move the Harbinger"
            )
        if position not in prompt.valid_moves:
            return ResolutionResult.failure("ILLEGAL_MOVE", f"{position} is not a valid destination")

        result = move_harbinger(round_state, position, "move")
        round_state = result.round_state.log(f"Harbinger moves to {position}.")
        return self._resume(round_state, list(result.events))

    def forfeit_move(self, round_state: RoundState) -> ResolutionResult:
        """Resolve the pending move without moving the Harbinger."""
        prompt = round_state.awaiting_move
        if prompt is None or round_state.suspended_action is None:
            return ResolutionResult.failure("NOT_AWAITING_MOVE", "No move is pending")

        logger.info("Move forfeited: player=%s", prompt.player_id[:8])
        round_state = round_state.log(f"{prompt.acting_username} forfeits the move.")
        return self._resume(round_state, [])

    def _resume(self, round_state: RoundState, events: list[AnyGameEvent]) -> ResolutionResult:
        suspended = round_state.suspended_action
        round_state = round_state.model_copy(
            update={
                "awaiting_move": None,
                "suspended_action": None,
                "phase": RoundPhase.DRAINING,
                "processed_actions": [*round_state.processed_actions, suspended],
            }
        )
        round_state = self._note_prophecy_action(round_state, suspended.action)
        if is_doomsday(self.ctx, round_state):
            round_state = self._halt(round_state)
        return self._drain(round_state, events)

    def _drain(self, round_state: RoundState, events: list[AnyGameEvent]) -> ResolutionResult:
        while round_state.action_queue and not round_state.halted:
            action, *remaining = round_state.action_queue
            round_state = round_state.model_copy(update={"action_queue": remaining})

            result = self._resolve_action(round_state, action)
            round_state = result.round_state
            events.extend(result.events)

            prompt = round_state.awaiting_move
            if prompt is not None:
                round_state = round_state.model_copy(update={"phase": RoundPhase.AWAITING_MOVE})
                events.append(
                    AwaitingMove(
                        player_id=prompt.player_id,
                        acting_username=prompt.acting_username,
                        move_value=prompt.move_value,
                        valid_moves=prompt.valid_moves,
                    )
                )
                logger.info(
                    "Round suspended for move: player=%s, options=%d",
                    prompt.player_id[:8],
                    len(prompt.valid_moves),
                )
                return ResolutionResult.awaiting(round_state, prompt, events)

            if is_doomsday(self.ctx, round_state):
                round_state = self._halt(round_state)

        return self._complete(round_state, events)

    def _resolve_action(self, round_state: RoundState, action: SubmittedAction) -> StepResult:
        """Resolve one popped action, including the checks that precede dispatch."""
        events: list[AnyGameEvent] = []
        state = round_state.state
        actor = round_state.private_state(action.player_id)
        slot = next(s for s in state.priority_track if s.player_id == action.player_id)
        public = next(p for p in state.players if p.user_id == action.player_id)

        if public.is_disconnected:
            action = action.model_copy(update={"card": create_card(CardName.BUFFER)})
            round_state = round_state.log(
                f"Priority {slot.identity.value} ({actor.username}) is disconnected. Playing 'Buffer'."
            )
        else:
            round_state = round_state.log(
                f"Priority {slot.identity.value} ({actor.username}) plays {action.card.name.value}."
            )
        events.append(
            CardPlayed(player_id=action.player_id, card_name=action.card.name, copied=action.copied)
        )
        logger.debug("Resolving %s for %s", action.card.name.value, action.player_id[:8])

        result = self._apply_complication_triggers(round_state, action)
        round_state = result.round_state
        events.extend(result.events)

        stalker = round_state.state.stalker_position
        if (
            stalker is not None
            and stalker == round_state.state.harbinger_position
            and action.card.name.move_value is not None
        ):
            processed = ProcessedAction(action=action, checkpoint=self._checkpoint(round_state))
            round_state = round_state.log("The Intrepid Stalker blocks all movement!")
            logger.debug("Move blocked by the Stalker: player=%s", action.player_id[:8])
            return StepResult(self._record(round_state, processed), events)

        modifiers = round_state.modifiers
        if modifiers.foresight is not None and not modifiers.foresight_copied:
            holder = modifiers.foresight
            copy = holder.model_copy(update={"card": action.card, "copied": True})
            round_state = round_state.model_copy(
                update={
                    "action_queue": [copy, *round_state.action_queue],
                    "modifiers": modifiers.model_copy(update={"foresight_copied": True}),
                }
            ).log(
                f"{round_state.private_state(holder.player_id).username} uses Foresight "
                f"to copy {action.card.name.value}."
            )
            round_state = grant_mimic_bonus(self.ctx, round_state, holder.player_id, action.player_id)

        processed = ProcessedAction(action=action, checkpoint=self._checkpoint(round_state))

        modifiers = round_state.modifiers
        if modifiers.next_action_protected and action.card.name in (CardName.DENY, CardName.RETHINK):
            round_state = round_state.model_copy(
                update={"modifiers": modifiers.model_copy(update={"next_action_protected": False})}
            ).log("Action is protected! It cannot be Denied or Rethought.")
            return StepResult(self._record(round_state, processed), events)

        if modifiers.next_action_denied:
            denier = modifiers.denied_by
            round_state = round_state.model_copy(
                update={
                    "modifiers": modifiers.model_copy(
                        update={"next_action_denied": False, "denied_by": None}
                    )
                }
            )
            if denier is not None:
                round_state = round_state.log(
                    f"Action is Denied by {round_state.private_state(denier).username}!"
                )
            else:
                round_state = round_state.log("Action is Denied!")
            events.append(
                ActionDenied(player_id=action.player_id, card_name=action.card.name, denied_by=denier)
            )
            return StepResult(self._record(round_state, processed), events)

        if modifiers.next_interact_inhibited and action.card.name == CardName.INTERACT:
            round_state = round_state.model_copy(
                update={"modifiers": modifiers.model_copy(update={"next_interact_inhibited": False})}
            ).log("Action is Inhibited!")
            events.append(ActionInhibited(player_id=action.player_id))
            return StepResult(self._record(round_state, processed), events)

        result = dispatch_card(self.ctx, round_state, action)
        round_state = result.round_state
        events.extend(result.events)

        if round_state.awaiting_move is not None:
            round_state = round_state.model_copy(update={"suspended_action": processed})
            return StepResult(round_state, events)

        round_state = self._note_prophecy_action(round_state, action)
        return StepResult(self._record(round_state, processed), events)

    def _apply_complication_triggers(
        self,
        round_state: RoundState,
        action: SubmittedAction,
    ) -> StepResult:
        events: list[AnyGameEvent] = []
        for complication in round_state.state.active_complications:
            definition = self.scenario.complication_definition(complication.name)
            trigger = definition.trigger
            if trigger is None or trigger.type != "ACTION_PLAYED":
                continue
            if trigger.cards is not None and action.card.name not in trigger.cards:
                continue
            if not check_condition(self.ctx, round_state, trigger.condition):
                continue
            round_state = round_state.log(f"Complication {complication.name} triggers!")
            result = apply_effect(self.ctx, round_state, action.player_id, definition.effect)
            round_state = result.round_state
            events.extend(result.events)
        return StepResult(round_state, events)

    def _checkpoint(self, round_state: RoundState) -> RoundCheckpoint | None:
        if self.rules.rethink_mode != RethinkMode.REVERT:
            return None
        return RoundCheckpoint(
            state=round_state.state,
            private_states=round_state.private_states,
            modifiers=round_state.modifiers,
        )

    @staticmethod
    def _record(round_state: RoundState, processed: ProcessedAction) -> RoundState:
        return round_state.model_copy(
            update={"processed_actions": [*round_state.processed_actions, processed]}
        )

    def _note_prophecy_action(self, round_state: RoundState, action: SubmittedAction) -> RoundState:
        prophecy = self.scenario.main_prophecy
        if action.card.name != prophecy.win_action:
            return round_state
        target = self.scenario.location(prophecy.win_location).position
        if round_state.state.harbinger_position != target:
            return round_state
        return round_state.model_copy(update={"prophecy_action_seen": True})

    def _halt(self, round_state: RoundState) -> RoundState:
        """Stop draining: the Harbinger reached the doomsday location."""
        unresolved = round_state.action_queue
        lines = [f"{a.card.name.value} is never resolved." for a in unresolved]
        logger.info(
            "Doomsday reached mid-round: game=%s, unresolved=%d",
            round_state.state.game_id[:8],
            len(unresolved),
        )
        return round_state.model_copy(
            update={
                "action_queue": [],
                "unresolved_actions": [*round_state.unresolved_actions, *unresolved],
                "halted": True,
            }
        ).log(*lines)

    def _complete(self, round_state: RoundState, events: list[AnyGameEvent]) -> ResolutionResult:
        """Run end-of-round effects and win checks, then set up the next round."""
        finished_round = round_state.state.current_round

        if not round_state.halted:
            result = apply_end_of_round(self.ctx, round_state)
            round_state = result.round_state
            events.extend(result.events)

        result = check_win_conditions(self.ctx, round_state)
        round_state = result.round_state
        events.extend(result.events)

        state = round_state.state
        next_round = None
        if state.status != GameStatus.FINISHED:
            next_round = finished_round + 1
            track = state.priority_track
            state = state.model_copy(
                update={
                    "priority_track": [*track[1:], track[0]],
                    "current_round": next_round,
                }
            )
            round_state = round_state.model_copy(update={"state": state})
            if finished_round % self.rules.hand_refill_interval == 0:
                round_state = self._refill_hands(round_state)

        state = round_state.state.model_copy(
            update={
                "players": [
                    p.model_copy(update={"submitted_action": False})
                    for p in round_state.state.players
                ]
            }
        )
        round_state = round_state.model_copy(
            update={
                "state": state,
                "phase": RoundPhase.COMPLETE,
                "modifiers": RoundModifiers(),
            }
        )
        events.append(RoundEnded(round_number=finished_round, next_round=next_round))

        logger.info(
            "Round complete: game=%s, round=%d, status=%s",
            state.game_id[:8],
            finished_round,
            state.status.value,
        )
        return ResolutionResult.ok(round_state, events)

    def _refill_hands(self, round_state: RoundState) -> RoundState:
        player_ids = [p.user_id for p in round_state.private_states]
        hands = deal_hands(player_ids, self.ctx.rng, self.rules.hand_size)
        logger.debug("Hands refilled: game=%s", round_state.state.game_id[:8])
        return round_state.model_copy(
            update={
                "private_states": [
                    p.model_copy(update={"hand": hands[p.user_id]})
                    for p in round_state.private_states
                ]
            }
        ).log("A new deck is shuffled. All hands are redrawn!")
