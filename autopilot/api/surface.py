"""
Read-only snapshots of the game page.

The page is rendered and mutated by the game itself. Everything the
autopilot inspects goes through a SurfaceSnapshot: an immutable copy of
the element tree taken at one instant, queried fresh on every poll.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

from .models import Direction

logger = logging.getLogger(__name__)

LEVEL_PREFIX = "LEVEL:"


class SurfaceError(Exception):
    """The live surface could not be read or written."""


@dataclass(frozen=True)
class Rect:
    """Bounding box in viewport pixels."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height


@dataclass(eq=False)
class Element:
    """One node of a page snapshot."""

    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    own_text: str = ""  # text nodes directly under this element
    rect: Rect = field(default_factory=Rect)
    computed: dict[str, str] = field(default_factory=dict)
    children: list["Element"] = field(default_factory=list)
    path: tuple[int, ...] = ()  # child indices from the document root
    parent: Optional["Element"] = field(default=None, repr=False)

    @property
    def classes(self) -> list[str]:
        return self.attributes.get("class", "").split()

    @property
    def class_name(self) -> str:
        return self.attributes.get("class", "")

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def class_contains(self, fragment: str) -> bool:
        """Equivalent of the [class*="fragment"] selector."""
        return fragment in self.class_name

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    @property
    def id(self) -> str:
        return self.attributes.get("id", "")

    @property
    def dataset(self) -> dict[str, str]:
        """data-* attributes keyed without the prefix."""
        return {k[5:]: v for k, v in self.attributes.items() if k.startswith("data-")}

    @property
    def text(self) -> str:
        """Full text content of the subtree."""
        return self.own_text + "".join(child.text for child in self.children)

    @property
    def markup(self) -> str:
        """Lowercase serialisation of the subtree, standing in for outer HTML."""
        attrs = "".join(f' {k}="{v}"' for k, v in self.attributes.items())
        inner = self.own_text + "".join(child.markup for child in self.children)
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>".lower()

    @property
    def center(self) -> tuple[float, float]:
        return self.rect.center

    def iter_descendants(self) -> Iterator["Element"]:
        """Descendants in document order, excluding self."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def query(self, predicate: Callable[["Element"], bool]) -> Optional["Element"]:
        """First descendant matching predicate."""
        for element in self.iter_descendants():
            if predicate(element):
                return element
        return None

    def query_all(self, predicate: Callable[["Element"], bool]) -> list["Element"]:
        """All descendants matching predicate."""
        return [element for element in self.iter_descendants() if predicate(element)]

    def closest(self, predicate: Callable[["Element"], bool]) -> Optional["Element"]:
        """Self or nearest ancestor matching predicate."""
        element: Optional[Element] = self
        while element is not None:
            if predicate(element):
                return element
            element = element.parent
        return None

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        path: tuple[int, ...] = (),
        parent: Optional["Element"] = None,
    ) -> "Element":
        """Build an element tree from the serialised form produced by the browser."""
        rect = data.get("rect") or (0, 0, 0, 0)
        element = cls(
            tag=str(data.get("tag", "div")).lower(),
            attributes={str(k): str(v) for k, v in (data.get("attrs") or {}).items()},
            own_text=data.get("text") or "",
            rect=Rect(*rect),
            computed=dict(data.get("computed") or {}),
            path=path,
            parent=parent,
        )
        element.children = [
            cls.from_dict(child, path + (i,), element)
            for i, child in enumerate(data.get("children") or [])
        ]
        return element


def link_tree(root: Element) -> Element:
    """Fill in parent links and paths for a tree built by hand."""
    root.path = ()
    root.parent = None
    stack = [root]
    while stack:
        element = stack.pop()
        for i, child in enumerate(element.children):
            child.parent = element
            child.path = element.path + (i,)
            stack.append(child)
    return root


class SurfaceSnapshot:
    """
    An immutable view of the page at one instant.

    Args:
        root: Document root element
        components: Serialised component-state tree, when the page exposes one
    """

    def __init__(self, root: Element, components: Optional[dict[str, Any]] = None):
        self.root = root
        self.components = components
        self._elements = [root] + list(root.iter_descendants())

    def query(self, predicate: Callable[[Element], bool]) -> Optional[Element]:
        for element in self._elements:
            if predicate(element):
                return element
        return None

    def query_all(self, predicate: Callable[[Element], bool]) -> list[Element]:
        return [element for element in self._elements if predicate(element)]

    def find_by_id(self, element_id: str) -> Optional[Element]:
        return self.query(lambda e: e.id == element_id)

    def element_at(self, x: float, y: float) -> Optional[Element]:
        """Topmost element containing the point (last in document order)."""
        hit = None
        for element in self._elements:
            if element.rect.width > 0 and element.rect.height > 0 and element.rect.contains(x, y):
                hit = element
        return hit

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SurfaceSnapshot":
        return cls(Element.from_dict(data["root"]), data.get("components"))


def parse_level(snapshot: SurfaceSnapshot) -> Optional[int]:
    """Read the level counter from the "LEVEL: N" stat display."""
    displays = snapshot.query_all(lambda e: e.has_class("stat-display"))
    return parse_level_texts(display.text for display in displays)


def parse_level_texts(texts) -> Optional[int]:
    """Level from the first text starting with LEVEL:, using all its digits."""
    for text in texts:
        text = (text or "").strip()
        if text.startswith(LEVEL_PREFIX):
            digits = re.sub(r"\D", "", text)
            if digits:
                return int(digits)
    return None


class Surface(ABC):
    """
    The live page the autopilot plays on.

    Implementations return fresh snapshots on every call and never cache
    them, since the game may re-render at any moment.
    """

    @abstractmethod
    async def snapshot(self) -> SurfaceSnapshot:
        """Capture the current element tree."""

    async def read_level(self) -> Optional[int]:
        """Current level, or None when the indicator is not rendered."""
        return parse_level(await self.snapshot())

    async def component_tree(self) -> Optional[dict[str, Any]]:
        """Serialised framework component state, None when the page exposes none."""
        return None

    @abstractmethod
    async def focus(self, target: Optional[Element]) -> None:
        """Make `target` focusable and move input focus to it."""

    @abstractmethod
    async def dispatch_key(self, direction: Direction, target: Optional[Element]) -> None:
        """Deliver one key press and release for `direction`."""
