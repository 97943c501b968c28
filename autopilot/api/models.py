"""
Data models for the grid autopilot.

These dataclasses describe the discovered board and the outcome of each
automation step. Boards are value objects: a fresh GridModel is built on
every discovery poll and never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from .surface import Element

# Largest board accepted on either axis
MAX_BOARD_SIZE = 60


class Direction(Enum):
    """Movement directions, in breadth-first exploration order."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def delta(self) -> tuple[int, int]:
        """Get (dx, dy) for this direction."""
        deltas = {
            Direction.UP: (0, -1),
            Direction.DOWN: (0, 1),
            Direction.LEFT: (-1, 0),
            Direction.RIGHT: (1, 0),
        }
        return deltas[self]

    @property
    def key(self) -> str:
        """Keyboard event key name."""
        return "Arrow" + self.value.capitalize()

    @property
    def key_code(self) -> int:
        """Legacy numeric keyCode for the arrow key."""
        codes = {
            Direction.UP: 38,
            Direction.DOWN: 40,
            Direction.LEFT: 37,
            Direction.RIGHT: 39,
        }
        return codes[self]

    @classmethod
    def parse(cls, name: Union[str, "Direction"]) -> "Direction":
        """Accept a Direction, a name ('up') or a key name ('ArrowUp')."""
        if isinstance(name, Direction):
            return name
        value = name.strip()
        if value.startswith("Arrow"):
            value = value[len("Arrow"):]
        return cls(value.lower())


# Exploration order used by the pathfinder
CARDINAL_DIRECTIONS = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)


@dataclass(frozen=True, order=True)
class Position:
    """A cell coordinate on the board."""

    x: int
    y: int

    def step(self, direction: Direction) -> "Position":
        """Neighbouring position in the given direction."""
        dx, dy = direction.delta
        return Position(self.x + dx, self.y + dy)

    def manhattan_distance(self, other: "Position") -> int:
        """Number of moves with 4-directional movement."""
        return abs(self.x - other.x) + abs(self.y - other.y)

    def in_bounds(self, width: int, height: int) -> bool:
        """Whether the position lies inside a width x height board."""
        return 0 <= self.x < width and 0 <= self.y < height

    def __str__(self) -> str:
        return f"({self.x},{self.y})"


@dataclass(frozen=True)
class GridModel:
    """
    A discovered board.

    Cells are addressed by index in the order the discovery strategy found
    them; `coordinates[i]` is the board position of cell `i` and `cells[i]`
    is the snapshot element behind it (None when the strategy works without
    visual cells).
    """

    width: int
    height: int
    coordinates: tuple[Position, ...]
    agent_index: int
    goal_index: int
    blocked: frozenset[Position] = frozenset()
    cells: tuple[Optional["Element"], ...] = field(default=(), compare=False, repr=False)
    source: str = ""  # name of the strategy that produced the board

    def cell_at(self, index: int) -> Optional["Element"]:
        """Element behind cell `index`, if the strategy recorded one."""
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return None

    def coordinate_of(self, cell: Union[int, "Element"]) -> Position:
        """Board position of a cell given by index or by element."""
        if isinstance(cell, int):
            return self.coordinates[cell]
        for index, candidate in enumerate(self.cells):
            if candidate is cell:
                return self.coordinates[index]
        raise ValueError("Element is not a cell of this board")

    @property
    def agent(self) -> Position:
        """Agent position."""
        return self.coordinates[self.agent_index]

    @property
    def goal(self) -> Position:
        """Goal position."""
        return self.coordinates[self.goal_index]

    @property
    def is_valid(self) -> bool:
        """Board size within limits and agent/goal on the board."""
        if not (0 <= self.width <= MAX_BOARD_SIZE and 0 <= self.height <= MAX_BOARD_SIZE):
            return False
        for index in (self.agent_index, self.goal_index):
            if not 0 <= index < len(self.coordinates):
                return False
            if not self.coordinates[index].in_bounds(self.width, self.height):
                return False
        return True

    @property
    def transition_key(self) -> "TransitionKey":
        """Fingerprint used to tell boards apart across polls."""
        return TransitionKey(self.width, self.height, self.agent_index, self.goal_index)

    def render(self) -> str:
        """Draw the board as text: @ agent, * goal, # blocked, . free."""
        rows = [["." for _ in range(self.width)] for _ in range(self.height)]
        for pos in self.blocked:
            if pos.in_bounds(self.width, self.height):
                rows[pos.y][pos.x] = "#"
        rows[self.goal.y][self.goal.x] = "*"
        rows[self.agent.y][self.agent.x] = "@"
        return "\n".join("".join(row) for row in rows)


@dataclass(frozen=True)
class TransitionKey:
    """Board fingerprint compared across polls during level transitions."""

    width: int
    height: int
    agent_index: int
    goal_index: int

    def __str__(self) -> str:
        return f"{self.width},{self.height},{self.agent_index},{self.goal_index}"


class StepOutcome(Enum):
    """How a single discovery + path + replay step ended."""

    MOVED = "moved"
    DISCOVERY_FAILED = "discovery_failed"
    UNREACHABLE_GOAL = "unreachable_goal"
    SURFACE_ERROR = "surface_error"


@dataclass
class StepResult:
    """Result of one automation step."""

    outcome: StepOutcome
    path: list[Direction] = field(default_factory=list)
    grid: Optional[GridModel] = None
    keys_sent: int = 0
    message: str = ""

    @property
    def success(self) -> bool:
        """Whether the full path was replayed."""
        return self.outcome == StepOutcome.MOVED

    def __bool__(self) -> bool:
        return self.success


class LoopStopReason(Enum):
    """Why the automation loop stopped."""

    STOP_LEVEL = "stop_level"
    DISCOVERY_FAILED = "discovery_failed"
    UNREACHABLE_GOAL = "unreachable_goal"
    SURFACE_ERROR = "surface_error"
    MAX_CYCLES = "max_cycles"


@dataclass
class LoopResult:
    """Result of an automation loop run."""

    reason: LoopStopReason
    cycles: int = 0
    last_level: Optional[int] = None
    transitions: list[str] = field(default_factory=list)  # monitor outcome per cycle
