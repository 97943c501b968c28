"""Automation loop and level transition handling."""

from .loop import AutomationLoop, key_target
from .monitor import LevelTransitionMonitor, TransitionResult, TransitionState

__all__ = [
    "AutomationLoop",
    "LevelTransitionMonitor",
    "TransitionResult",
    "TransitionState",
    "key_target",
]
