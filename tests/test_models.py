"""Tests for board models."""

import pytest

from autopilot.api.models import (
    MAX_BOARD_SIZE,
    Direction,
    GridModel,
    Position,
    StepOutcome,
    StepResult,
    TransitionKey,
)

from fakes import el


def square_grid(size, agent=0, goal=1, blocked=()):
    coordinates = tuple(Position(i % size, i // size) for i in range(size * size))
    return GridModel(
        width=size,
        height=size,
        coordinates=coordinates,
        agent_index=agent,
        goal_index=goal,
        blocked=frozenset(blocked),
    )


class TestDirection:
    """Tests for Direction."""

    def test_deltas(self):
        assert Direction.UP.delta == (0, -1)
        assert Direction.DOWN.delta == (0, 1)
        assert Direction.LEFT.delta == (-1, 0)
        assert Direction.RIGHT.delta == (1, 0)

    def test_key_names_and_codes(self):
        """Arrow key names and legacy key codes."""
        assert Direction.UP.key == "ArrowUp"
        assert Direction.RIGHT.key == "ArrowRight"
        assert [d.key_code for d in Direction] == [38, 40, 37, 39]

    @pytest.mark.parametrize("name,expected", [
        ("up", Direction.UP),
        ("ArrowDown", Direction.DOWN),
        (" LEFT ", Direction.LEFT),
        (Direction.RIGHT, Direction.RIGHT),
    ])
    def test_parse(self, name, expected):
        assert Direction.parse(name) == expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Direction.parse("diagonal")


class TestGridModel:
    """Tests for GridModel."""

    def test_agent_and_goal_positions(self):
        grid = square_grid(4, agent=5, goal=14)

        assert grid.agent == Position(1, 1)
        assert grid.goal == Position(2, 3)

    def test_coordinate_of_index_and_element(self):
        """Cells can be looked up by index or by their element."""
        cells = tuple(el("div", cls="game-cell") for _ in range(4))
        grid = GridModel(
            width=2,
            height=2,
            coordinates=(Position(0, 0), Position(1, 0), Position(0, 1), Position(1, 1)),
            agent_index=0,
            goal_index=3,
            cells=cells,
        )

        assert grid.coordinate_of(2) == Position(0, 1)
        assert grid.coordinate_of(cells[3]) == Position(1, 1)
        assert grid.cell_at(1) is cells[1]
        assert grid.cell_at(10) is None
        with pytest.raises(ValueError):
            grid.coordinate_of(el("div"))

    def test_valid_board(self):
        assert square_grid(5).is_valid

    def test_oversized_board_is_invalid(self):
        """One column past the limit is rejected."""
        size = MAX_BOARD_SIZE + 1
        coordinates = tuple(Position(i % size, i // size) for i in range(size * 2))
        grid = GridModel(width=size, height=2, coordinates=coordinates, agent_index=0, goal_index=1)
        assert not grid.is_valid

    def test_agent_out_of_bounds_is_invalid(self):
        grid = GridModel(
            width=2,
            height=2,
            coordinates=(Position(0, 0), Position(5, 0)),
            agent_index=1,
            goal_index=0,
        )
        assert not grid.is_valid

    def test_agent_on_goal_is_valid(self):
        """Already-arrived boards are structurally fine."""
        assert square_grid(3, agent=4, goal=4).is_valid

    def test_render(self):
        grid = square_grid(3, agent=0, goal=8, blocked=[Position(1, 1)])
        assert grid.render() == "@..\n.#.\n..*"


class TestTransitionKey:
    """Tests for TransitionKey."""

    def test_equal_for_same_layout(self):
        """Cell handles do not take part in the fingerprint."""
        a = square_grid(4, agent=1, goal=2)
        b = square_grid(4, agent=1, goal=2, blocked=[Position(3, 3)])
        assert a.transition_key == b.transition_key

    def test_agent_move_changes_key(self):
        assert square_grid(4, agent=1, goal=2).transition_key != square_grid(4, agent=5, goal=2).transition_key

    def test_str(self):
        assert str(TransitionKey(5, 5, 0, 24)) == "5,5,0,24"


class TestStepResult:
    """Tests for StepResult truthiness."""

    def test_moved_is_truthy(self):
        assert StepResult(StepOutcome.MOVED)

    @pytest.mark.parametrize("outcome", [
        StepOutcome.DISCOVERY_FAILED,
        StepOutcome.UNREACHABLE_GOAL,
        StepOutcome.SURFACE_ERROR,
    ])
    def test_failures_are_falsy(self, outcome):
        assert not StepResult(outcome)
