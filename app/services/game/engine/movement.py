"""Harbinger movement on the scenario grid."""

import logging
from collections import deque

from app.schemas.game_engine import BoardSpace

logger = logging.getLogger(__name__)

ORTHOGONAL_STEPS = ((0, 1), (0, -1), (1, 0), (-1, 0))
DIAGONAL_STEPS = ((1, 1), (1, -1), (-1, 1), (-1, -1))

# movement points -> (minimum orthogonal steps, maximum diagonal steps)
MOVEMENT_TABLE: dict[int, tuple[int, int]] = {
    1: (1, 0),
    2: (1, 1),
    3: (2, 1),
    4: (2, 2),
    5: (3, 2),
}


def movement_allowance(movement_points: int) -> tuple[int, int]:
    """Return (min_orthogonal, max_diagonal) for a movement point budget."""
    if movement_points in MOVEMENT_TABLE:
        return MOVEMENT_TABLE[movement_points]
    return -(-movement_points // 2), movement_points // 2


def is_on_board(pos: BoardSpace, board_size: BoardSpace) -> bool:
    return 1 <= pos.x <= board_size.x and 1 <= pos.y <= board_size.y


def valid_moves(
    start: BoardSpace,
    movement_points: int,
    board_size: BoardSpace,
) -> set[BoardSpace]:
    """Compute every cell the Harbinger can end on with exactly this many steps.

    Breadth-first search over (x, y, orthogonal_steps, diagonal_steps). The
    same cell can be reached with different orthogonal/diagonal splits that
    are not equally valid, so visited states are keyed on the full tuple.
    A path is valid when it spends every movement point, never leaves the
    board, uses at most max_diagonal diagonal steps and at least
    min_orthogonal orthogonal steps. The start cell is never a destination.

    Args:
        start: Current Harbinger position.
        movement_points: Total steps to spend.
        board_size: Bottom-right corner of the 1-indexed board.

    Returns:
        Set of reachable end positions (empty when movement_points <= 0).
    """
    if movement_points <= 0:
        return set()

    min_orthogonal, max_diagonal = movement_allowance(movement_points)
    destinations: set[BoardSpace] = set()
    visited: set[tuple[int, int, int, int]] = {(start.x, start.y, 0, 0)}
    queue: deque[tuple[int, int, int, int]] = deque([(start.x, start.y, 0, 0)])

    while queue:
        x, y, o, d = queue.popleft()

        if o + d == movement_points:
            if o >= min_orthogonal and (x, y) != (start.x, start.y):
                destinations.add(BoardSpace(x=x, y=y))
            continue

        steps = [(dx, dy, 1, 0) for dx, dy in ORTHOGONAL_STEPS]
        if d < max_diagonal:
            steps += [(dx, dy, 0, 1) for dx, dy in DIAGONAL_STEPS]

        for dx, dy, do, dd in steps:
            nx, ny = x + dx, y + dy
            if not (1 <= nx <= board_size.x and 1 <= ny <= board_size.y):
                continue
            key = (nx, ny, o + do, d + dd)
            if key in visited:
                continue
            visited.add(key)
            queue.append(key)

    logger.debug(
        "Valid moves: start=%s, mp=%d, min_orth=%d, max_diag=%d, count=%d",
        start,
        movement_points,
        min_orthogonal,
        max_diagonal,
        len(destinations),
    )
    return destinations


def sorted_spaces(spaces: set[BoardSpace]) -> list[BoardSpace]:
    """Stable ordering for prompts and random selection."""
    return sorted(spaces, key=lambda s: (s.x, s.y))


def adjacent_spaces(pos: BoardSpace, board_size: BoardSpace) -> list[BoardSpace]:
    """The in-bounds 8-neighbourhood of a cell."""
    spaces = []
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            candidate = BoardSpace(x=pos.x + dx, y=pos.y + dy)
            if is_on_board(candidate, board_size):
                spaces.append(candidate)
    return spaces


def step_towards(start: BoardSpace, target: BoardSpace, board_size: BoardSpace) -> BoardSpace:
    """Take one king-move step from start toward target, staying on the board."""
    dx = (target.x > start.x) - (target.x < start.x)
    dy = (target.y > start.y) - (target.y < start.y)
    candidate = BoardSpace(x=start.x + dx, y=start.y + dy)
    return candidate if is_on_board(candidate, board_size) else start


def chebyshev_distance(a: BoardSpace, b: BoardSpace) -> int:
    return max(abs(a.x - b.x), abs(a.y - b.y))
