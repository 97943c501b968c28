"""Fakes for autopilot tests: page builders, a virtual clock and an in-memory surface."""

import asyncio
from typing import Iterable, Optional

from autopilot.api.models import Direction
from autopilot.api.surface import Element, Rect, Surface, SurfaceSnapshot, link_tree

CELL = 40  # px


def el(tag="div", cls=None, children=(), rect=None, text="", **attrs):
    """Build a snapshot element. Underscores in attribute names become dashes."""
    attributes = {k.replace("_", "-"): str(v) for k, v in attrs.items()}
    if cls is not None:
        attributes["class"] = cls
    return Element(
        tag=tag,
        attributes=attributes,
        own_text=text,
        rect=rect or Rect(),
        children=list(children),
    )


def page(*children) -> Element:
    """<html><body>children</body></html>"""
    return el("html", children=[el("body", children=list(children), rect=Rect(0, 0, 1280, 900))])


def snapshot_of(root: Element, components=None) -> SurfaceSnapshot:
    return SurfaceSnapshot(link_tree(root), components)


def level_display(level: Optional[int]) -> Element:
    return el("div", cls="stat-display", text=f"LEVEL: {level}" if level is not None else "LEVEL: --")


def canonical_board(
    width: int,
    height: int,
    agent: tuple[int, int],
    goal: tuple[int, int],
    walls: Iterable[tuple[int, int]] = (),
    style: Optional[str] = "repeat",
    extra_agents: Iterable[tuple[int, int]] = (),
) -> Element:
    """.game-board > .grid > .game-cell board, row-major."""
    walls = set(walls)
    agents = {agent} | set(extra_agents)
    cells = []
    for y in range(height):
        for x in range(width):
            classes = ["game-cell"]
            if (x, y) in agents:
                classes.append("player")
            if (x, y) == goal:
                classes.append("apple")
            if (x, y) in walls:
                classes.append("wall")
            cells.append(el("div", cls=" ".join(classes), rect=Rect(x * CELL, y * CELL, CELL, CELL)))
    grid_attrs = {}
    if style == "repeat":
        grid_attrs["style"] = f"display: grid; grid-template-columns: repeat({width}, {CELL}px)"
    grid = el("div", cls="grid", children=cells, rect=Rect(0, 0, width * CELL, height * CELL), **grid_attrs)
    return el("div", cls="game-board", children=[grid], rect=Rect(0, 0, width * CELL, height * CELL))


def canonical_page(width, height, agent, goal, walls=(), level: Optional[int] = 1, **kwargs) -> Element:
    return page(
        el("div", cls="game-left-panel", children=[level_display(level)]),
        canonical_board(width, height, agent, goal, walls, **kwargs),
    )


class FakeClock:
    """Virtual clock: sleeping advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.time = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.time

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.time += max(0.0, seconds)
        await asyncio.sleep(0)


class FakeSurface(Surface):
    """
    In-memory surface driven by a timeline.

    Each frame is (start_time, page_root, level); the frame active at the
    clock's current time is what snapshot() and read_level() see.
    """

    def __init__(self, clock: FakeClock, root: Optional[Element] = None, level: Optional[int] = None):
        self.clock = clock
        self.frames: list[tuple[float, Optional[Element], Optional[int]]] = []
        if root is not None or level is not None:
            self.frames.append((0.0, root, level))
        self.keys: list[tuple[Direction, Optional[Element]]] = []
        self.focused: list[Optional[Element]] = []
        self.snapshots = 0
        self.level_reads = 0
        self.components = None  # served by component_tree()
        self.component_reads = 0
        self.on_keys_done = None  # (count, callback) fired after that many keys

    def schedule(self, at: float, root: Optional[Element], level: Optional[int]) -> None:
        self.frames.append((at, root, level))
        self.frames.sort(key=lambda frame: frame[0])

    def _frame(self):
        active = (0.0, None, None)
        for frame in self.frames:
            if frame[0] <= self.clock.now():
                active = frame
        return active

    async def snapshot(self) -> SurfaceSnapshot:
        self.snapshots += 1
        _, root, _ = self._frame()
        return snapshot_of(root if root is not None else page())

    async def read_level(self) -> Optional[int]:
        self.level_reads += 1
        return self._frame()[2]

    async def component_tree(self):
        self.component_reads += 1
        return self.components

    async def focus(self, target: Optional[Element]) -> None:
        self.focused.append(target)

    async def dispatch_key(self, direction: Direction, target: Optional[Element]) -> None:
        self.keys.append((direction, target))
        if self.on_keys_done and len(self.keys) == self.on_keys_done[0]:
            self.on_keys_done[1]()
