"""
Geometric board discovery.

Fallback for pages with no usable markup: visible elements inside a
candidate container are clustered by their on-screen centre, a uniform
cell pitch is inferred from the distinct centre coordinates, and the
dense grid is rebuilt by sampling one element per inferred cell.
"""

import logging
from typing import Optional

import numpy as np

from autopilot.api.models import GridModel, Position
from autopilot.api.surface import Element, SurfaceSnapshot

from .strategies import is_valid_grid, js_round

logger = logging.getLogger(__name__)

MIN_ELEMENT_SIZE = 5  # px, smaller elements are decoration
MIN_DISTINCT_CENTERS = 4
MAX_GEOMETRIC_CELLS = 5000

# A sampled element larger than this many pitches is a container, not a cell
MAX_SAMPLE_SPAN = 1.5

CELL_TAGS = ("div", "span")
BLOCKED_CLASS_WORDS = ("wall", "obstacle")


def _is_candidate_container(element: Element) -> bool:
    return (
        element.tag == "main"
        or element.get("role") == "main"
        or element.id == "__next"
        or any(element.class_contains(hint) for hint in ("board", "grid", "game"))
    )


def cluster_by_center(container: Element) -> dict[tuple[int, int], list[Element]]:
    """Group visible classed div/span descendants by rounded centre; stacked elements share a key."""
    by_pos: dict[tuple[int, int], list[Element]] = {}
    for el in container.iter_descendants():
        if el.tag not in CELL_TAGS or not el.has_attribute("class"):
            continue
        if el.rect.width < MIN_ELEMENT_SIZE or el.rect.height < MIN_ELEMENT_SIZE:
            continue
        cx, cy = el.center
        by_pos.setdefault((js_round(cx), js_round(cy)), []).append(el)
    return by_pos


def infer_pitch(coords: np.ndarray) -> int:
    """Gap between the two smallest distinct coordinates (1 if only one)."""
    if len(coords) < 2:
        return 1
    return int(coords[1] - coords[0]) or 1


def _is_descendant(element: Element, ancestor: Element) -> bool:
    return element is not ancestor and element.closest(lambda e: e is ancestor) is not None


def _sample(
    snapshot: SurfaceSnapshot,
    container: Element,
    x: int,
    y: int,
    pitch_x: int,
    pitch_y: int,
) -> Optional[Element]:
    """Cell-sized element of `container` under the point, if any."""
    el = snapshot.element_at(x, y)
    if el is None or not _is_descendant(el, container):
        return None
    if el.rect.width > pitch_x * MAX_SAMPLE_SPAN or el.rect.height > pitch_y * MAX_SAMPLE_SPAN:
        return None
    return el


def _names_player(el: Element) -> bool:
    return "player" in el.markup or el.query(lambda d: d.class_contains("player")) is not None


def _names_apple(el: Element) -> bool:
    return "apple" in el.markup or el.query(lambda d: d.class_contains("apple")) is not None


def _has_nested_marker(el: Element) -> bool:
    # Weak: any cell with a div/span inside looks like "something on this cell".
    # Only consulted when no cell names the player explicitly.
    return bool(el.children) and el.query(lambda d: d.tag in CELL_TAGS) is not None


def grid_from_container(snapshot: SurfaceSnapshot, container: Element) -> Optional[GridModel]:
    """Rebuild a board from the element geometry inside one container."""
    by_pos = cluster_by_center(container)
    if len(by_pos) < MIN_DISTINCT_CENTERS:
        return None

    centers = np.array(list(by_pos.keys()), dtype=np.int64)
    xs = np.unique(centers[:, 0])
    ys = np.unique(centers[:, 1])
    pitch_x = infer_pitch(xs)
    pitch_y = infer_pitch(ys)
    columns = js_round((xs[-1] - xs[0]) / pitch_x) + 1
    rows = js_round((ys[-1] - ys[0]) / pitch_y) + 1
    if columns * rows > MAX_GEOMETRIC_CELLS:
        logger.debug(f"Skipping container with {columns}x{rows} inferred cells")
        return None

    origin_x, origin_y = int(xs[0]), int(ys[0])
    cells: list[Optional[Element]] = []
    coordinates: list[Position] = []
    for row in range(rows):
        for col in range(columns):
            gx = origin_x + col * pitch_x
            gy = origin_y + row * pitch_y
            stacked = by_pos.get((gx, gy))
            el = stacked[0] if stacked else _sample(snapshot, container, gx, gy, pitch_x, pitch_y)
            cells.append(el)
            coordinates.append(Position(col, row))

    agent = goal = fallback_agent = -1
    blocked = set()
    for i, el in enumerate(cells):
        if el is None:
            continue
        if _names_player(el):
            agent = i
        elif _has_nested_marker(el):
            fallback_agent = i
        if _names_apple(el):
            goal = i
        cls = el.class_name.lower()
        if any(word in cls for word in BLOCKED_CLASS_WORDS):
            blocked.add(coordinates[i])

    if agent < 0:
        agent = fallback_agent
    if agent < 0 or goal < 0:
        return None

    return GridModel(
        width=columns,
        height=rows,
        coordinates=tuple(coordinates),
        agent_index=agent,
        goal_index=goal,
        blocked=frozenset(blocked),
        cells=tuple(cells),
        source="geometric",
    )


def geometric_board(snapshot: SurfaceSnapshot) -> Optional[GridModel]:
    """First candidate container whose element geometry yields a valid board."""
    for container in snapshot.query_all(_is_candidate_container):
        grid = grid_from_container(snapshot, container)
        if is_valid_grid(grid):
            return grid
    return None
