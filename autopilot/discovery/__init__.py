"""Board discovery - turn a page snapshot into a GridModel."""

import logging
from typing import Callable, Optional, Sequence

from autopilot.api.models import GridModel
from autopilot.api.surface import Surface, SurfaceSnapshot

from .geometric import geometric_board
from .strategies import (
    annotated_board,
    canonical_board,
    component_state_board,
    homogeneous_board,
    is_valid_grid,
)

logger = logging.getLogger(__name__)

Strategy = Callable[[SurfaceSnapshot], Optional[GridModel]]

# Most specific first; later entries are slower and more heuristic
STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("canonical", canonical_board),
    ("annotated", annotated_board),
    ("geometric", geometric_board),
    ("homogeneous", homogeneous_board),
    ("component_state", component_state_board),
)

# Strategies that read component state rather than the element tree
STATE_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("component_state", component_state_board),
)


def discover(
    snapshot: SurfaceSnapshot,
    strategies: Sequence[tuple[str, Strategy]] = STRATEGIES,
) -> Optional[GridModel]:
    """
    Find the game board in a snapshot.

    Args:
        snapshot: Page snapshot to inspect
        strategies: (name, strategy) pairs, tried in order

    Returns:
        The first structurally valid board, or None
    """
    for name, strategy in strategies:
        grid = strategy(snapshot)
        if grid is None:
            continue
        if not is_valid_grid(grid):
            logger.debug(f"Strategy {name} produced an invalid {grid.width}x{grid.height} board")
            continue
        logger.debug(
            f"Strategy {name}: {grid.width}x{grid.height}, agent {grid.agent}, goal {grid.goal}"
        )
        return grid
    return None


async def discover_surface(surface: Surface) -> Optional[GridModel]:
    """
    Snapshot a surface and find the game board.

    Component state is only fetched when no strategy finds a board in the
    snapshot itself.

    Raises:
        SurfaceError: If the surface cannot be read
    """
    snapshot = await surface.snapshot()
    grid = discover(snapshot)
    if grid is not None or snapshot.components is not None:
        return grid

    components = await surface.component_tree()
    if components is None:
        return None
    return discover(SurfaceSnapshot(snapshot.root, components), STATE_STRATEGIES)


__all__ = [
    "STATE_STRATEGIES",
    "STRATEGIES",
    "Strategy",
    "annotated_board",
    "canonical_board",
    "component_state_board",
    "discover",
    "discover_surface",
    "geometric_board",
    "homogeneous_board",
    "is_valid_grid",
]
