"""
Level transition monitor.

After a move sequence the game advances to the next level asynchronously:
the level label updates first, then the new board renders, sometimes
through several intermediate states. The monitor waits for the level to
change and for a *different* board to stay unchanged for a short window
before letting the next cycle start.

States:
    AWAITING_LEVEL_CHANGE -> AWAITING_NEW_BOARD -> STABLE | TIMEOUT
    AWAITING_LEVEL_CHANGE -> TIMEOUT (level never changed)
    AWAITING_LEVEL_CHANGE -> HALTED (stop level reached)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from autopilot.api.models import GridModel, TransitionKey
from autopilot.api.surface import Surface, SurfaceError
from autopilot.clock import Clock
from autopilot.config import MonitorConfig, STOP_LEVEL
from autopilot.discovery import discover_surface

logger = logging.getLogger(__name__)


class TransitionState(Enum):
    """States of the level transition monitor."""

    IDLE = "idle"
    AWAITING_LEVEL_CHANGE = "awaiting_level_change"
    AWAITING_NEW_BOARD = "awaiting_new_board"
    STABLE = "stable"
    TIMEOUT = "timeout"
    HALTED = "halted"


@dataclass
class TransitionResult:
    """How a level transition resolved."""

    state: TransitionState
    level: Optional[int] = None  # target level (or the stop level when halted)
    key: Optional[TransitionKey] = None  # the stable new board, when one was seen
    elapsed: float = 0.0

    @property
    def should_resume(self) -> bool:
        """Whether the next cycle may start."""
        return self.state in (TransitionState.STABLE, TransitionState.TIMEOUT)


class LevelTransitionMonitor:
    """
    Waits out a level transition.

    Example usage:
        monitor = LevelTransitionMonitor(surface)
        result = await monitor.wait(level_before=3, key_before=grid.transition_key)
        if result.should_resume:
            ...  # start the next cycle
    """

    def __init__(
        self,
        surface: Surface,
        config: Optional[MonitorConfig] = None,
        clock: Optional[Clock] = None,
        stop_level: int = STOP_LEVEL,
        discover_grid: Optional[Callable[[], Awaitable[Optional[GridModel]]]] = None,
    ):
        """
        Initialize the monitor.

        Args:
            surface: Surface to poll
            config: Transition timings
            clock: Clock for polling and timeouts
            stop_level: Level at which the run halts
            discover_grid: Board discovery coroutine (defaults to discovery on a fresh snapshot)
        """
        self.surface = surface
        self.config = config or MonitorConfig()
        self.clock = clock or Clock()
        self.stop_level = stop_level
        self._discover_grid = discover_grid or self._discover_from_snapshot
        self.state = TransitionState.IDLE

    async def _discover_from_snapshot(self) -> Optional[GridModel]:
        try:
            return await discover_surface(self.surface)
        except SurfaceError as e:
            logger.debug(f"Snapshot failed while waiting for board: {e}")
            return None

    async def _read_level(self) -> Optional[int]:
        try:
            return await self.surface.read_level()
        except SurfaceError as e:
            logger.debug(f"Level read failed: {e}")
            return None

    async def wait(
        self,
        level_before: Optional[int],
        key_before: Optional[TransitionKey],
        level_poll_interval: Optional[float] = None,
    ) -> TransitionResult:
        """
        Wait for the next level's board.

        Args:
            level_before: Level of the board that was just played (None if unreadable)
            key_before: Fingerprint of that board after the moves (None if unknown)
            level_poll_interval: Override for the level poll interval

        Returns:
            TransitionResult; HALTED means the stop level was reached
        """
        started = self.clock.now()
        poll = level_poll_interval if level_poll_interval is not None else self.config.level_poll_interval

        self.state = TransitionState.AWAITING_LEVEL_CHANGE
        target_level = await self._await_level_change(level_before, poll)

        if self.state == TransitionState.HALTED:
            logger.info(f"Reached level {target_level}. Stopping.")
            return TransitionResult(self.state, level=target_level, elapsed=self.clock.now() - started)

        if self.state == TransitionState.TIMEOUT:
            logger.info(
                f"Level did not change after {self.config.level_change_timeout}s, resuming anyway."
            )
            await self.clock.sleep(self.config.resume_delay)
            return TransitionResult(self.state, level=level_before, elapsed=self.clock.now() - started)

        logger.info(f"Level changed to {target_level}, waiting for new board...")
        self.state = TransitionState.AWAITING_NEW_BOARD
        key = await self._await_new_board(target_level, key_before)

        if self.state == TransitionState.STABLE:
            logger.info(f"New board stable, resuming for level {target_level}.")
        else:
            logger.info("Board stable timeout, resuming anyway.")
        return TransitionResult(self.state, level=target_level, key=key, elapsed=self.clock.now() - started)

    async def _await_level_change(self, level_before: Optional[int], poll: float) -> Optional[int]:
        """Poll the level label; returns the target level and sets the next state."""
        await self.clock.sleep(self.config.resume_delay)
        deadline = self.clock.now() + self.config.level_change_timeout

        while True:
            level = await self._read_level()
            if level is not None and level >= self.stop_level:
                self.state = TransitionState.HALTED
                return level

            # An unreadable starting level gives nothing to compare against
            if level_before is None:
                return level
            if level is not None and level != level_before:
                return level

            if self.clock.now() >= deadline:
                self.state = TransitionState.TIMEOUT
                return None
            await self.clock.sleep(poll)

    async def _await_new_board(
        self,
        target_level: Optional[int],
        key_before: Optional[TransitionKey],
    ) -> Optional[TransitionKey]:
        """Poll discovery until a new board holds still; sets STABLE or TIMEOUT."""
        deadline = self.clock.now() + self.config.board_stable_timeout
        candidate: Optional[TransitionKey] = None
        candidate_since = 0.0

        await self.clock.sleep(self.config.board_poll_interval)
        while self.clock.now() < deadline:
            grid = await self._discover_grid()
            level = await self._read_level()
            now = self.clock.now()

            if level != target_level or grid is None:
                candidate = None
            elif key_before is not None and grid.transition_key == key_before:
                # Level label updated but the old board is still rendered
                candidate = None
            elif grid.transition_key != candidate:
                candidate = grid.transition_key
                candidate_since = now
            elif now - candidate_since >= self.config.board_stable_duration:
                self.state = TransitionState.STABLE
                return candidate

            await self.clock.sleep(self.config.board_poll_interval)

        self.state = TransitionState.TIMEOUT
        return None
