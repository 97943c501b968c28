"""
Input replay for the game page.

Turns a path into arrow-key presses delivered to the surface, one per
step, with a fixed pause after each press.
"""

import inspect
import logging
from typing import Awaitable, Callable, Optional, Sequence, Union

from autopilot.clock import Clock

from .models import Direction
from .surface import Element, Surface

logger = logging.getLogger(__name__)

# Called once the whole sequence has been sent
DoneCallback = Callable[[], Union[None, Awaitable[None]]]


async def _notify(on_done: Optional[DoneCallback]) -> None:
    if on_done is None:
        return
    result = on_done()
    if inspect.isawaitable(result):
        await result


class InputReplayer:
    """
    Sends directional key presses to a surface.

    Handles focusing the key target before the first press and pacing the
    presses, so the page's listeners see each move separately.
    """

    def __init__(self, surface: Surface, clock: Optional[Clock] = None):
        """
        Initialize the replayer.

        Args:
            surface: Surface receiving the key events
            clock: Clock used for the pause between presses
        """
        self.surface = surface
        self.clock = clock or Clock()

    async def dispatch_key(
        self,
        direction: Union[str, Direction],
        target: Optional[Element] = None,
    ) -> None:
        """Send a single press and release for `direction` ('up' or 'ArrowUp' also accepted)."""
        await self.surface.dispatch_key(Direction.parse(direction), target)

    async def replay(
        self,
        path: Sequence[Direction],
        target: Optional[Element],
        delay: float,
        on_done: Optional[DoneCallback] = None,
    ) -> int:
        """
        Replay a path as key presses.

        Args:
            path: Directions to send, in order
            target: Element that should receive the keys (None = focused element)
            delay: Seconds to wait after each press
            on_done: Invoked once after the last press (immediately for an empty path)

        Returns:
            Number of key presses sent
        """
        await self.surface.focus(target)

        sent = 0
        for direction in path:
            await self.surface.dispatch_key(direction, target)
            sent += 1
            await self.clock.sleep(delay)

        logger.debug(f"Move sequence done ({sent} keys)")
        await _notify(on_done)
        return sent
