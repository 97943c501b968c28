"""Tests for page snapshots."""

from autopilot.api.surface import Element, Rect, SurfaceSnapshot, parse_level, parse_level_texts

from fakes import el, level_display, page, snapshot_of


class TestElement:
    """Tests for Element helpers."""

    def test_classes_and_dataset(self):
        element = el("div", cls="game-cell player", data_x=3, data_y="4", role="button")

        assert element.classes == ["game-cell", "player"]
        assert element.has_class("player")
        assert not element.has_class("play")
        assert element.class_contains("play")
        assert element.dataset == {"x": "3", "y": "4"}

    def test_text_and_markup(self):
        """Text and markup cover the whole subtree."""
        element = el("div", cls="Cell", text="a", children=[el("span", cls="Player", text="b")])

        assert element.text == "ab"
        assert element.markup == '<div class="cell">a<span class="player">b</span></div>'

    def test_query_and_closest(self):
        inner = el("span", cls="apple")
        board = el("div", cls="game-board", children=[el("div", cls="grid", children=[inner])])
        snapshot_of(page(board))

        assert board.query(lambda e: e.has_class("apple")) is inner
        assert board.query(lambda e: e.has_class("missing")) is None
        assert inner.closest(lambda e: e.has_class("game-board")) is board
        assert len(board.query_all(lambda e: e.tag in ("div", "span"))) == 2

    def test_paths_follow_child_indices(self):
        """Paths address elements from the document root."""
        target = el("div", cls="target")
        root = page(el("div"), el("div", children=[el("span"), target]))
        snapshot_of(root)

        assert target.path == (0, 1, 1)
        assert target.parent.parent.tag == "body"

    def test_from_dict(self):
        data = {
            "tag": "DIV",
            "attrs": {"class": "grid", "style": "grid-template-columns: repeat(3, 1fr)"},
            "text": "",
            "rect": [10, 20, 120, 120],
            "computed": {"display": "grid"},
            "children": [
                {"tag": "div", "attrs": {"class": "game-cell"}, "rect": [10, 20, 40, 40]},
            ],
        }
        element = Element.from_dict(data)

        assert element.tag == "div"
        assert element.rect == Rect(10, 20, 120, 120)
        assert element.computed["display"] == "grid"
        assert element.children[0].path == (0,)
        assert element.children[0].parent is element


class TestSurfaceSnapshot:
    """Tests for SurfaceSnapshot."""

    def test_element_at_returns_topmost(self):
        """The innermost (last in document order) element wins."""
        cell = el("div", cls="cell", rect=Rect(40, 40, 40, 40))
        board = el("div", cls="board", rect=Rect(0, 0, 200, 200), children=[cell])
        snapshot = snapshot_of(page(board))

        assert snapshot.element_at(60, 60) is cell
        assert snapshot.element_at(10, 10) is board
        assert snapshot.element_at(5000, 5000) is None

    def test_find_by_id(self):
        root = el("div", id="__next")
        snapshot = snapshot_of(page(root))
        assert snapshot.find_by_id("__next") is root

    def test_from_dict(self):
        snapshot = SurfaceSnapshot.from_dict({
            "root": {"tag": "html", "children": [{"tag": "body"}]},
            "components": {"state": None, "child": None, "sibling": None},
        })
        assert snapshot.root.children[0].tag == "body"
        assert snapshot.components["state"] is None


class TestParseLevel:
    """Tests for reading the level indicator."""

    def test_level_display(self):
        snapshot = snapshot_of(page(el("div", children=[level_display(42)])))
        assert parse_level(snapshot) == 42

    def test_ignores_other_stats(self):
        snapshot = snapshot_of(page(
            el("div", cls="stat-display", text="SCORE: 900"),
            el("div", cls="stat-display", children=[el("span", text="LEVEL:"), el("span", text=" 7")]),
        ))
        assert parse_level(snapshot) == 7

    def test_missing_or_unreadable(self):
        assert parse_level(snapshot_of(page())) is None
        assert parse_level_texts(["LEVEL: --"]) is None

    def test_strips_whitespace(self):
        assert parse_level_texts(["  LEVEL: 1000\n"]) == 1000
