"""Shared plumbing for the resolution steps."""

import random
from collections.abc import Callable
from dataclasses import dataclass, field

from app.schemas.game_engine import EngineRules, PrivatePlayerState, RoundState
from app.schemas.scenario import Scenario

from .events import AnyGameEvent


@dataclass(frozen=True)
class ResolutionContext:
    """Immutable configuration every resolution step reads from."""

    scenario: Scenario
    rules: EngineRules
    rng: random.Random


@dataclass
class StepResult:
    """Result of applying one step to a RoundState."""

    round_state: RoundState
    events: list[AnyGameEvent] = field(default_factory=list)


def add_vp(
    round_state: RoundState,
    amount: int,
    predicate: Callable[[PrivatePlayerState], bool],
) -> RoundState:
    """Add VP to every private state matching predicate."""
    if amount == 0:
        return round_state
    return round_state.model_copy(
        update={
            "private_states": [
                p.model_copy(update={"vp": p.vp + amount}) if predicate(p) else p
                for p in round_state.private_states
            ]
        }
    )
