"""Game service module.

Provides:
- Game setup (start_game.py)
- Bundled scenarios (scenarios.py)
- Round resolution engine (engine/)
"""

# Re-export from engine for convenience
from .engine import (
    GameAction,
    ProcessResult,
    RoundResolver,
    build_action_from_payload,
    process_action,
)
from .start_game import setup_game, validate_game_settings

__all__ = [
    # Setup
    "setup_game",
    "validate_game_settings",
    # Engine
    "GameAction",
    "ProcessResult",
    "RoundResolver",
    "process_action",
    "build_action_from_payload",
]
