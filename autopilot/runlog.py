"""
Logging for autopilot runs.

Creates timestamped log files per run and structured one-line records for
each automation cycle (discovery, path, replay, level transition).
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional


class RunLogger:
    """
    Manages logging for a single run.

    Adds a timestamped log file next to whatever handlers are already
    configured, and restores them on teardown.
    """

    LOG_DIR = Path("./data/logs")

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize the run logger.

        Args:
            log_dir: Directory for log files (defaults to ./data/logs)
        """
        self.log_dir = log_dir or self.LOG_DIR
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.run_id = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        self.log_file = self.log_dir / f"run_{self.run_id}.log"

        self._file_handler: Optional[logging.FileHandler] = None
        self._root_level: Optional[int] = None

    def setup(self) -> Path:
        """
        Set up logging for this run.

        Returns:
            Path to the log file
        """
        self._file_handler = logging.FileHandler(self.log_file, encoding="utf-8")
        self._file_handler.setLevel(logging.DEBUG)
        self._file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

        root_logger = logging.getLogger()
        self._root_level = root_logger.level
        previous_level = root_logger.level or logging.WARNING
        if previous_level > logging.DEBUG:
            # Existing handlers keep the configured level, the file gets everything
            for handler in root_logger.handlers:
                if handler.level == logging.NOTSET:
                    handler.setLevel(previous_level)
            root_logger.setLevel(logging.DEBUG)
        root_logger.addHandler(self._file_handler)

        logger = logging.getLogger("autopilot.session")
        logger.info("=" * 60)
        logger.info(f"RUN STARTED: {self.run_id}")
        logger.info(f"Log file: {self.log_file}")
        logger.info("=" * 60)

        return self.log_file

    def teardown(self) -> None:
        """Clean up logging handlers."""
        logger = logging.getLogger("autopilot.session")
        logger.info("=" * 60)
        logger.info(f"RUN ENDED: {self.run_id}")
        logger.info("=" * 60)

        if self._file_handler:
            logging.getLogger().removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None
        if self._root_level is not None:
            logging.getLogger().setLevel(self._root_level)
            self._root_level = None


class CycleLogger:
    """Logger for automation cycles."""

    def __init__(self):
        self.logger = logging.getLogger("autopilot.cycle")

    def log_board(
        self,
        cycle: int,
        source: str,
        size: tuple[int, int],
        agent: tuple[int, int],
        goal: tuple[int, int],
        blocked: int,
        board: Optional[str] = None,
    ) -> None:
        """Log a discovered board."""
        self.logger.info(
            f"CYCLE {cycle}: board {size[0]}x{size[1]} via {source} | "
            f"player {agent} -> apple {goal} | {blocked} blocked"
        )
        if board:
            for line in board.split("\n"):
                self.logger.debug(f"  {line}")

    def log_path(self, cycle: int, length: int) -> None:
        """Log the computed path."""
        self.logger.info(f"CYCLE {cycle}: path length {length}")

    def log_replay(self, cycle: int, keys_sent: int) -> None:
        """Log the end of a move sequence."""
        self.logger.info(f"CYCLE {cycle}: move sequence done ({keys_sent} keys)")

    def log_transition(
        self,
        cycle: int,
        outcome: str,
        level: Optional[int] = None,
        key: Optional[str] = None,
    ) -> None:
        """Log how the level transition resolved."""
        parts = [f"CYCLE {cycle}: transition {outcome}"]
        if level is not None:
            parts.append(f"level={level}")
        if key:
            parts.append(f"board={key}")
        self.logger.info(" | ".join(parts))


# Global instance for the current run
_current_run: Optional[RunLogger] = None


def setup_run_logging(log_dir: Optional[Path] = None) -> Path:
    """
    Set up logging for a new run.

    Args:
        log_dir: Optional custom log directory

    Returns:
        Path to the log file
    """
    global _current_run

    if _current_run:
        _current_run.teardown()

    _current_run = RunLogger(log_dir)
    return _current_run.setup()


def teardown_run_logging() -> None:
    """Clean up logging for the current run."""
    global _current_run

    if _current_run:
        _current_run.teardown()
        _current_run = None


def get_log_file() -> Optional[Path]:
    """Get the path to the current log file."""
    if _current_run:
        return _current_run.log_file
    return None
