"""Grid autopilot - finds the board on a live game page and walks the player to the apple."""

__version__ = "0.1.0"
