"""
Board discovery strategies.

Each strategy inspects a page snapshot and returns a GridModel or None.
Strategies never touch the live page and do not depend on each other;
they are tried in order by `autopilot.discovery.discover`.
"""

import logging
import math
import re
from typing import Any, Callable, Iterable, Optional

from autopilot.api.models import GridModel, Position
from autopilot.api.surface import Element, SurfaceSnapshot

logger = logging.getLogger(__name__)

# Column count when the layout gives no hint and the cell count is not square
DEFAULT_COLUMNS = 25

# Depth bound for the component-state walk
MAX_COMPONENT_DEPTH = 25

# Bounds on the number of same-size children in a homogeneous container
MIN_HOMOGENEOUS_CELLS = 4
MAX_HOMOGENEOUS_CELLS = 10000
SIZE_TOLERANCE = 2  # px

REPEAT_RE = re.compile(r"repeat\s*\(\s*(\d+)")
TRACK_RE = re.compile(r"[\d.]+(px|fr|%|r?em)")
LEADING_INT_RE = re.compile(r"^\s*([-+]?\d+)")

PLAYER_WORDS_RE = re.compile(r"player|character|you")
GOAL_WORDS_RE = re.compile(r"apple|fruit|goal")

BLOCKED_STATE_VALUES = ("wall", "#", 1)


def is_valid_grid(grid: Optional[GridModel]) -> bool:
    """Board fits the size limit and has its agent and goal on the board."""
    return grid is not None and grid.is_valid


def js_round(value: float) -> int:
    """Round half up, as browsers do."""
    return int(math.floor(value + 0.5))


def parse_int(value: Optional[str]) -> Optional[int]:
    """Leading integer of an attribute value, or None."""
    if value is None:
        return None
    match = LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else None


def last_index(items: list[Element], predicate: Callable[[Element], bool]) -> int:
    """Index of the last matching item, -1 if none."""
    for index in range(len(items) - 1, -1, -1):
        if predicate(items[index]):
            return index
    return -1


def row_major(count: int, columns: int) -> tuple[Position, ...]:
    return tuple(Position(i % columns, i // columns) for i in range(count))


# =============================================================================
# Canonical container: .game-board > .grid > .game-cell
# =============================================================================


def column_count(grid_el: Element, cell_count: int) -> int:
    """Columns from the grid layout declaration, else a square-root guess."""
    style = grid_el.get("style", "") or ""
    computed = grid_el.computed.get("gridTemplateColumns", "") or ""
    match = REPEAT_RE.search(style) or REPEAT_RE.search(computed)
    if match:
        return int(match.group(1))

    # Computed styles list resolved tracks ("40px 40px ...") instead of repeat()
    tracks = computed.split()
    if tracks and all(TRACK_RE.fullmatch(track) for track in tracks):
        return len(tracks)

    root = math.isqrt(cell_count)
    if root * root == cell_count:
        return root
    return DEFAULT_COLUMNS


def canonical_board(snapshot: SurfaceSnapshot) -> Optional[GridModel]:
    """Board rendered as a CSS grid of tagged cells inside `.game-board`."""
    board = snapshot.query(lambda e: e.has_class("game-board"))
    if board is None:
        return None

    grid_el = board.query(lambda e: e.has_class("grid"))
    if grid_el is None and board.children:
        grid_el = board.children[0]
    if grid_el is None:
        return None

    cells = [c for c in grid_el.children if c.has_class("game-cell")]
    if not cells:
        return None

    columns = column_count(grid_el, len(cells))
    if columns <= 0 or len(cells) % columns:
        return None
    rows = len(cells) // columns

    # Last occurrence wins: the game briefly renders two players while re-rendering
    agent = last_index(cells, lambda c: c.has_class("player"))
    goal = last_index(cells, lambda c: c.has_class("apple"))
    if agent < 0 or goal < 0:
        return None

    coordinates = row_major(len(cells), columns)
    blocked = frozenset(coordinates[i] for i, c in enumerate(cells) if c.has_class("wall"))
    return GridModel(
        width=columns,
        height=rows,
        coordinates=coordinates,
        agent_index=agent,
        goal_index=goal,
        blocked=blocked,
        cells=tuple(cells),
        source="canonical",
    )


# =============================================================================
# Attribute-annotated cells: data-board / data-x / data-y / data-index
# =============================================================================

ANCHOR_ATTRIBUTES = ("data-board", "data-grid", "data-cols")
CELL_ATTRIBUTES = ("data-cell", "data-x", "data-index", "data-row")


def _has_any(element: Element, names: Iterable[str]) -> bool:
    return any(element.has_attribute(name) for name in names)


def entity_marker(entity: str) -> Callable[[Element], bool]:
    """Matches [data-<entity>], .<entity> and [data-entity="<entity>"]."""
    def matches(element: Element) -> bool:
        return (
            element.has_attribute(f"data-{entity}")
            or element.has_class(entity)
            or element.get("data-entity") == entity
        )
    return matches


def _first_present(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value is not None:
            return value
    return None


def annotated_coordinate(cell: Element, index: int, columns: int) -> Position:
    """Position from explicit x/y data, else from the flat index."""
    data = cell.dataset
    x = parse_int(_first_present(data.get("x"), data.get("col"), data.get("index")))
    y = parse_int(_first_present(data.get("y"), data.get("row")))
    if x is not None and y is not None:
        return Position(x, y)

    flat = parse_int(data.get("index"))
    if flat is None:
        flat = index
    return Position(flat % columns, flat // columns)


def annotated_board(snapshot: SurfaceSnapshot) -> Optional[GridModel]:
    """Cells carrying positional data attributes, with nested entity markers."""
    anchor = snapshot.query(lambda e: _has_any(e, ANCHOR_ATTRIBUTES))
    if anchor is None:
        return None

    board = anchor.query(lambda e: e.has_attribute("data-board")) or anchor
    cells = board.query_all(lambda e: _has_any(e, CELL_ATTRIBUTES))
    if not cells:
        return None

    declared = parse_int(board.get("data-cols"))
    columns = declared if declared and declared > 0 else math.ceil(math.sqrt(len(cells)))

    is_player = entity_marker("player")
    is_apple = entity_marker("apple")
    is_wall = entity_marker("wall")
    agent = last_index(cells, lambda c: c.query(is_player) is not None)
    goal = last_index(cells, lambda c: c.query(is_apple) is not None)
    if agent < 0 or goal < 0:
        return None

    coordinates = tuple(annotated_coordinate(c, i, columns) for i, c in enumerate(cells))
    blocked = frozenset(
        coordinates[i] for i, c in enumerate(cells)
        if is_wall(c) or c.query(is_wall) is not None
    )

    # Explicit coordinates may reach past the count-based estimate
    width = max([columns] + [p.x + 1 for p in coordinates])
    height = max([math.ceil(len(cells) / columns)] + [p.y + 1 for p in coordinates])
    return GridModel(
        width=width,
        height=height,
        coordinates=coordinates,
        agent_index=agent,
        goal_index=goal,
        blocked=blocked,
        cells=tuple(cells),
        source="annotated",
    )


# =============================================================================
# Homogeneous children: a board-ish container of same-size cells
# =============================================================================

BOARD_CLASS_HINTS = ("board", "grid", "Board", "Grid")


def _class_contains_below(element: Element, fragment: str) -> bool:
    return element.query(lambda d: d.class_contains(fragment)) is not None


def homogeneous_board(snapshot: SurfaceSnapshot) -> Optional[GridModel]:
    """Flat list of equally sized cells, laid out by the container width."""
    containers = snapshot.query_all(lambda e: any(e.class_contains(h) for h in BOARD_CLASS_HINTS))
    for container in containers:
        cells = [c for c in container.children if c.tag in ("div", "span")]
        if not MIN_HOMOGENEOUS_CELLS <= len(cells) <= MAX_HOMOGENEOUS_CELLS:
            continue

        first = cells[0].rect
        if first.width <= 0:
            continue
        same_size = all(
            abs(c.rect.width - first.width) < SIZE_TOLERANCE
            and abs(c.rect.height - first.height) < SIZE_TOLERANCE
            for c in cells
        )
        if not same_size:
            continue

        columns = js_round(container.rect.width / first.width) or 1
        rows = math.ceil(len(cells) / columns)

        agent = goal = -1
        blocked_indices = []
        for i, el in enumerate(cells):
            cls = el.class_name.lower()
            text = el.text.strip()
            if (
                "player" in cls
                or _class_contains_below(el, "player")
                or (el.children and PLAYER_WORDS_RE.search(cls + text))
            ):
                agent = i
            if "apple" in cls or _class_contains_below(el, "apple") or GOAL_WORDS_RE.search(cls + text):
                goal = i
            if "wall" in cls:
                blocked_indices.append(i)

        if agent < 0 or goal < 0:
            continue

        coordinates = row_major(len(cells), columns)
        grid = GridModel(
            width=columns,
            height=rows,
            coordinates=coordinates,
            agent_index=agent,
            goal_index=goal,
            blocked=frozenset(coordinates[i] for i in blocked_indices),
            cells=tuple(cells),
            source="homogeneous",
        )
        if is_valid_grid(grid):
            return grid
    return None


# =============================================================================
# Component state: board/player/apple held by the page's UI framework
# =============================================================================


def find_component_state(node: Optional[dict[str, Any]], depth: int = 0) -> Optional[dict[str, Any]]:
    """Depth-first walk (child, then sibling) for a board/player/apple state."""
    if not isinstance(node, dict) or depth > MAX_COMPONENT_DEPTH:
        return None
    state = node.get("state")
    if isinstance(state, dict) and state.get("board") and state.get("player") is not None \
            and state.get("apple") is not None:
        return state
    return (
        find_component_state(node.get("child"), depth + 1)
        or find_component_state(node.get("sibling"), depth + 1)
    )


def _state_int(value: Any) -> Optional[int]:
    """Integral number held in page state, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or int(value) != value:
        return None
    return int(value)


def _state_position(value: Any, width: int) -> Optional[Position]:
    if isinstance(value, dict):
        x, y = _state_int(value.get("x")), _state_int(value.get("y"))
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        x, y = _state_int(value[0]), _state_int(value[1])
    else:
        flat = _state_int(value)
        if flat is None or width <= 0:
            return None
        return Position(flat % width, flat // width)
    if x is None or y is None:
        return None
    return Position(x, y)


def _state_cell_blocked(value: Any) -> bool:
    if isinstance(value, dict):
        return bool(value.get("wall") or value.get("blocked"))
    if isinstance(value, (str, int)):
        return value in BLOCKED_STATE_VALUES
    return False


def _state_rows(board: Any) -> Optional[list[list[Any]]]:
    if not isinstance(board, list) or not board:
        return None
    if all(isinstance(row, list) for row in board):
        return board
    # Flat board: only usable when square
    side = math.isqrt(len(board))
    if side * side != len(board):
        return None
    return [board[i * side:(i + 1) * side] for i in range(side)]


def component_state_board(snapshot: SurfaceSnapshot) -> Optional[GridModel]:
    """Board read straight from framework component state, skipping the rendered cells."""
    state = find_component_state(snapshot.components)
    if state is None:
        return None

    rows = _state_rows(state["board"])
    if rows is None:
        return None
    height = len(rows)
    width = max(len(row) for row in rows)
    if width == 0:
        return None

    agent = _state_position(state["player"], width)
    goal = _state_position(state["apple"], width)
    if agent is None or goal is None:
        return None
    if not (agent.in_bounds(width, height) and goal.in_bounds(width, height)):
        return None

    blocked = frozenset(
        Position(x, y)
        for y, row in enumerate(rows)
        for x, value in enumerate(row)
        if _state_cell_blocked(value)
    )
    return GridModel(
        width=width,
        height=height,
        coordinates=row_major(width * height, width),
        agent_index=agent.y * width + agent.x,
        goal_index=goal.y * width + goal.x,
        blocked=blocked,
        source="component_state",
    )
