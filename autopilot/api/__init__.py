"""Board model, page surface, pathfinding and key replay."""

from .input import InputReplayer
from .models import (
    CARDINAL_DIRECTIONS,
    MAX_BOARD_SIZE,
    Direction,
    GridModel,
    LoopResult,
    LoopStopReason,
    Position,
    StepOutcome,
    StepResult,
    TransitionKey,
)
from .pathfinding import PathResult, PathStopReason, find_path, shortest_path
from .surface import Element, Rect, Surface, SurfaceError, SurfaceSnapshot, parse_level

__all__ = [
    # Models
    "CARDINAL_DIRECTIONS",
    "MAX_BOARD_SIZE",
    "Direction",
    "GridModel",
    "LoopResult",
    "LoopStopReason",
    "Position",
    "StepOutcome",
    "StepResult",
    "TransitionKey",
    # Surface
    "Element",
    "Rect",
    "Surface",
    "SurfaceError",
    "SurfaceSnapshot",
    "parse_level",
    # Pathfinding
    "PathResult",
    "PathStopReason",
    "find_path",
    "shortest_path",
    # Input
    "InputReplayer",
]
