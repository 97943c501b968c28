"""Time source and suspension primitive shared by the polling loops."""

import asyncio
import time


class Clock:
    """
    Monotonic clock plus cooperative sleep.

    All waiting in the autopilot goes through one Clock so that tests can
    substitute a virtual one.
    """

    def now(self) -> float:
        """Current time in seconds."""
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        """Suspend the current task."""
        await asyncio.sleep(max(0.0, seconds))
