"""
Main automation loop.

Each cycle: discover the board, find a path from the player to the apple,
replay it as arrow keys, then wait out the level transition before the
next cycle. Runs until the stop level, or until a cycle cannot proceed.
"""

import logging
from typing import Optional, Union

from autopilot.api.input import DoneCallback, InputReplayer
from autopilot.api.models import (
    Direction,
    GridModel,
    LoopResult,
    LoopStopReason,
    StepOutcome,
    StepResult,
    TransitionKey,
)
from autopilot.api.pathfinding import find_path
from autopilot.api.surface import Element, Surface, SurfaceError
from autopilot.clock import Clock
from autopilot.config import AutomationConfig, MonitorConfig
from autopilot.discovery import discover_surface
from autopilot.runlog import CycleLogger

from .monitor import LevelTransitionMonitor, TransitionState

logger = logging.getLogger(__name__)
cycle_logger = CycleLogger()

BOARD_CONTAINER_CLASS = "game-board"

_STEP_TO_STOP = {
    StepOutcome.DISCOVERY_FAILED: LoopStopReason.DISCOVERY_FAILED,
    StepOutcome.UNREACHABLE_GOAL: LoopStopReason.UNREACHABLE_GOAL,
    StepOutcome.SURFACE_ERROR: LoopStopReason.SURFACE_ERROR,
}


def key_target(grid: GridModel) -> Optional[Element]:
    """Board container enclosing the first cell, which receives the key presses."""
    first = grid.cell_at(0)
    if first is None:
        return None
    return first.closest(lambda e: e.has_class(BOARD_CONTAINER_CLASS))


class AutomationLoop:
    """
    Plays the game on a surface.

    Example usage:
        loop = AutomationLoop(surface)

        # One board
        result = await loop.run_step(delay=0.01)

        # Until the stop level
        result = await loop.run_loop()
    """

    def __init__(
        self,
        surface: Surface,
        config: Optional[AutomationConfig] = None,
        monitor_config: Optional[MonitorConfig] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the loop.

        Args:
            surface: Game page
            config: Replay and retry settings
            monitor_config: Level transition timings
            clock: Clock for delays and polling
        """
        self.surface = surface
        self.config = config or AutomationConfig()
        self.clock = clock or Clock()
        self.replayer = InputReplayer(surface, self.clock)
        self.monitor = LevelTransitionMonitor(
            surface,
            config=monitor_config,
            clock=self.clock,
            stop_level=self.config.stop_level,
            discover_grid=self._poll_grid,
        )
        self.cycle = 0

    async def discover_grid(self, log_level: int = logging.WARNING) -> Optional[GridModel]:
        """
        Discover the board on a fresh snapshot.

        Args:
            log_level: Level for reporting an unreadable page

        Returns:
            The board, or None if not found
        """
        try:
            return await discover_surface(self.surface)
        except SurfaceError as e:
            logger.log(log_level, f"Could not read the page: {e}")
            return None

    async def _poll_grid(self) -> Optional[GridModel]:
        # Failed polls are routine while the next board renders
        return await self.discover_grid(log_level=logging.DEBUG)

    async def dispatch_key(
        self,
        direction: Union[str, Direction],
        target: Optional[Element] = None,
    ) -> None:
        """Send one arrow key to the page."""
        await self.replayer.dispatch_key(direction, target)

    async def read_level(self) -> Optional[int]:
        """Current level, None when the indicator cannot be read."""
        try:
            return await self.surface.read_level()
        except SurfaceError as e:
            logger.warning(f"Could not read the level: {e}")
            return None

    async def run_step(
        self,
        delay: Optional[float] = None,
        on_done: Optional[DoneCallback] = None,
    ) -> StepResult:
        """
        Run one step: discover, compute the path and send the moves.

        Args:
            delay: Seconds between key presses (defaults to config)
            on_done: Called once after the full move sequence was sent

        Returns:
            StepResult describing how the step ended
        """
        grid = await self.discover_grid()
        if grid is None:
            logger.warning(
                "Could not find game grid. Make sure you are on the game board and the board is visible."
            )
            return StepResult(StepOutcome.DISCOVERY_FAILED, message="No board found")
        return await self._play(grid, delay, on_done)

    async def _play(
        self,
        grid: GridModel,
        delay: Optional[float],
        on_done: Optional[DoneCallback],
    ) -> StepResult:
        delay = self.config.key_delay if delay is None else delay
        cycle_logger.log_board(
            self.cycle,
            grid.source,
            (grid.width, grid.height),
            (grid.agent.x, grid.agent.y),
            (grid.goal.x, grid.goal.y),
            len(grid.blocked),
            board=grid.render(),
        )

        result = find_path(grid)
        if not result:
            logger.warning(f"No path found (walls?). {result.message}")
            return StepResult(StepOutcome.UNREACHABLE_GOAL, grid=grid, message=result.message)

        logger.info(f"Player {grid.agent} -> Apple {grid.goal}, path length {len(result.path)}")
        cycle_logger.log_path(self.cycle, len(result.path))

        try:
            sent = await self.replayer.replay(result.path, key_target(grid), delay, on_done)
        except SurfaceError as e:
            logger.warning(f"Key delivery failed: {e}")
            return StepResult(StepOutcome.SURFACE_ERROR, path=result.path, grid=grid, message=str(e))

        cycle_logger.log_replay(self.cycle, sent)
        return StepResult(StepOutcome.MOVED, path=result.path, grid=grid, keys_sent=sent)

    async def _discover_with_retry(self) -> Optional[GridModel]:
        """Immediate attempt, then retries at a fixed interval within the retry window."""
        deadline = self.clock.now() + self.config.discovery_retry_window
        while True:
            grid = await self.discover_grid()
            if grid is not None:
                return grid
            if self.clock.now() + self.config.discovery_retry_interval > deadline:
                return None
            await self.clock.sleep(self.config.discovery_retry_interval)

    async def _transition_key_now(self) -> Optional[TransitionKey]:
        grid = await self.discover_grid()
        return grid.transition_key if grid is not None else None

    async def run_loop(
        self,
        delay: Optional[float] = None,
        level_poll_interval: Optional[float] = None,
    ) -> LoopResult:
        """
        Play level after level until the stop level or a failed cycle.

        Args:
            delay: Seconds between key presses (defaults to config)
            level_poll_interval: Override for the monitor's level poll interval

        Returns:
            LoopResult with the stop reason and number of completed cycles
        """
        result = LoopResult(reason=LoopStopReason.STOP_LEVEL)
        self.cycle = 0

        while True:
            level = await self.read_level()
            result.last_level = level
            if level is not None and level >= self.config.stop_level:
                logger.info(f"Already at level {level}. Stopping.")
                result.reason = LoopStopReason.STOP_LEVEL
                return result

            if self.config.max_cycles is not None and result.cycles >= self.config.max_cycles:
                logger.info(f"Completed {result.cycles} cycles. Stopping.")
                result.reason = LoopStopReason.MAX_CYCLES
                return result

            self.cycle += 1
            grid = await self._discover_with_retry()
            if grid is None:
                logger.warning(
                    f"Could not find game grid within {self.config.discovery_retry_window}s. Giving up."
                )
                result.reason = LoopStopReason.DISCOVERY_FAILED
                return result

            step = await self._play(grid, delay, None)
            if not step:
                result.reason = _STEP_TO_STOP[step.outcome]
                return result
            result.cycles += 1

            key_after = await self._transition_key_now()
            transition = await self.monitor.wait(level, key_after, level_poll_interval)
            result.transitions.append(transition.state.value)
            cycle_logger.log_transition(
                self.cycle,
                transition.state.value,
                level=transition.level,
                key=str(transition.key) if transition.key else None,
            )

            if transition.state == TransitionState.HALTED:
                result.last_level = transition.level
                result.reason = LoopStopReason.STOP_LEVEL
                return result
