"""
Pathfinding on the game board.

Breadth-first search over a 4-connected grid. Neighbours are explored in
the fixed order up, down, left, right, which decides ties between paths
of equal length.

Returns PathResult with reason for success/failure.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .models import CARDINAL_DIRECTIONS, Direction, GridModel, Position

logger = logging.getLogger(__name__)


class PathStopReason(Enum):
    """Reasons why pathfinding stopped or couldn't start."""
    SUCCESS = "success"
    ALREADY_AT_TARGET = "already_at_target"
    NO_PATH_EXISTS = "no_path_exists"


@dataclass
class PathResult:
    """Result of a pathfinding operation."""
    path: list[Direction]
    reason: PathStopReason
    message: str = ""

    @property
    def success(self) -> bool:
        """Whether a path (possibly empty) was found."""
        return self.reason != PathStopReason.NO_PATH_EXISTS

    def __bool__(self) -> bool:
        """Allow `if result:` to check for success."""
        return self.success

    def __iter__(self):
        """Allow `for direction in result:` to iterate path."""
        return iter(self.path)

    def __len__(self) -> int:
        """Return path length."""
        return len(self.path)

    def __repr__(self) -> str:
        if self.success:
            return f"PathResult(path=[{len(self.path)} steps], reason={self.reason.value})"
        return f"PathResult(path=None, reason={self.reason.value}, message='{self.message}')"


def shortest_path(
    start: Position,
    goal: Position,
    width: int,
    height: int,
    blocked: Optional[Iterable[Position]] = None,
) -> Optional[list[Direction]]:
    """
    Find the shortest path from start to goal.

    Args:
        start: Starting cell
        goal: Target cell
        width: Board width
        height: Board height
        blocked: Cells that cannot be entered

    Returns:
        List of directions (empty when start == goal), or None when the
        goal cannot be reached.
    """
    blocked_set = frozenset(blocked or ())
    if start == goal:
        return []

    # Each visited cell remembers the cell and direction it was reached from
    came_from: dict[Position, Optional[tuple[Position, Direction]]] = {start: None}
    queue = deque([start])

    while queue:
        pos = queue.popleft()
        for direction in CARDINAL_DIRECTIONS:
            neighbor = pos.step(direction)
            if not neighbor.in_bounds(width, height):
                continue
            if neighbor in blocked_set or neighbor in came_from:
                continue
            came_from[neighbor] = (pos, direction)
            if neighbor == goal:
                return _reconstruct(came_from, goal)
            queue.append(neighbor)

    return None


def _reconstruct(
    came_from: dict[Position, Optional[tuple[Position, Direction]]],
    goal: Position,
) -> list[Direction]:
    path: list[Direction] = []
    step = came_from[goal]
    while step is not None:
        previous, direction = step
        path.append(direction)
        step = came_from[previous]
    path.reverse()
    return path


def find_path(grid: GridModel) -> PathResult:
    """
    Find a path from the agent to the goal on a discovered board.

    Args:
        grid: Discovered board

    Returns:
        PathResult with path (list of directions) and reason for success/failure
    """
    start, goal = grid.agent, grid.goal
    if start == goal:
        return PathResult(path=[], reason=PathStopReason.ALREADY_AT_TARGET)

    path = shortest_path(start, goal, grid.width, grid.height, grid.blocked)
    if path is None:
        logger.debug(f"No path {start} -> {goal} on {grid.width}x{grid.height}, {len(grid.blocked)} blocked")
        return PathResult(
            path=[],
            reason=PathStopReason.NO_PATH_EXISTS,
            message=f"Goal {goal} is not reachable from {start}",
        )
    return PathResult(path=path, reason=PathStopReason.SUCCESS)
