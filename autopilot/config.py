"""Configuration management for the grid autopilot."""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Level at which the game is considered finished
STOP_LEVEL = 1000


@dataclass
class BrowserConfig:
    """Browser session configuration."""

    url: str = "https://jobbo.n1.xyz"
    headless: bool = False
    # Attach to a running browser instead of launching one
    cdp_url: Optional[str] = None
    viewport_width: int = 1280
    viewport_height: int = 900
    timeout: float = 30.0  # seconds, page navigation


@dataclass
class AutomationConfig:
    """Discovery retry and replay settings for the automation loop."""

    key_delay: float = 0.010  # pause after every key press
    discovery_retry_interval: float = 0.2
    discovery_retry_window: float = 5.0
    stop_level: int = STOP_LEVEL
    max_cycles: Optional[int] = None  # None = run until the stop level


@dataclass
class MonitorConfig:
    """Level transition timings."""

    # Pause before the first level poll, and before resuming after a timeout
    resume_delay: float = 0.025
    level_poll_interval: float = 0.015
    level_change_timeout: float = 3.5
    board_poll_interval: float = 0.012
    # Same board for this long = safe to run
    board_stable_duration: float = 0.022
    # Max wait for the new board to appear and settle
    board_stable_timeout: float = 0.4


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = "./data/autopilot.log"


@dataclass
class Config:
    """Main configuration container."""

    browser: BrowserConfig = field(default_factory=BrowserConfig)
    automation: AutomationConfig = field(default_factory=AutomationConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# YAML section name -> dataclass
SECTIONS: dict[str, type] = {
    "browser": BrowserConfig,
    "automation": AutomationConfig,
    "monitor": MonitorConfig,
    "logging": LoggingConfig,
}


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _load_section(data: dict[str, Any], name: str, section_cls: type) -> Optional[Any]:
    """Build one section from YAML, None when the section is absent or empty."""
    values = data.get(name)
    if not values:
        return None
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(values).__name__}")

    known = {f.name for f in fields(section_cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise TypeError(f"Unknown keys in config section '{name}': {', '.join(map(str, unknown))}")
    return section_cls(**values)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config file. Defaults to config/default.yaml

    Returns:
        Populated Config dataclass
    """
    if config_path is None:
        # Look for config in standard locations
        candidates = [
            Path("config/default.yaml"),
            Path(__file__).parent.parent / "config" / "default.yaml",
        ]
        for candidate in candidates:
            if candidate.exists():
                config_path = str(candidate)
                break

    config = Config()

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            data = yaml.safe_load(f)

        if data is not None and not isinstance(data, dict):
            raise ValueError(f"{config_path}: expected a mapping of sections, got {type(data).__name__}")

        for name, section_cls in SECTIONS.items():
            section = _load_section(data or {}, name, section_cls)
            if section is not None:
                setattr(config, name, section)
    elif config_path:
        logger.warning(f"Config file {config_path} not found, using defaults")

    # Environment variable overrides
    if os.environ.get("AUTOPILOT_URL"):
        config.browser.url = os.environ["AUTOPILOT_URL"]
    if os.environ.get("AUTOPILOT_CDP_URL"):
        config.browser.cdp_url = os.environ["AUTOPILOT_CDP_URL"]
    if os.environ.get("AUTOPILOT_HEADLESS"):
        config.browser.headless = _env_flag(os.environ["AUTOPILOT_HEADLESS"])
    if os.environ.get("AUTOPILOT_LOG_LEVEL"):
        config.logging.level = os.environ["AUTOPILOT_LOG_LEVEL"]

    return config


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure logging based on configuration.

    Args:
        config: Logging configuration
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.file:
        # Ensure log directory exists
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.file))

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("playwright").setLevel(logging.WARNING)

    logger.info(f"Logging configured at level {config.level}")
