"""Logging from config and env.

Levels (inclusive):
- ERROR: critical errors only
- WARNING: non-critical issues and ERROR
- INFO: per pull request progress, WARNING, and ERROR
- DEBUG: API calls, git commands and all levels above

Configure via config.yaml (logging.level, logging.format, logging.directory)
or env (LOGGING_LEVEL, LOGGING_FORMAT, LOGGING_DIRECTORY). When a directory
is set, lines are also appended to prsweep-YYYY-MM-DD.log there.
"""

import logging
from datetime import date
from pathlib import Path

from prsweep.config import LoggingConfig

# Supported levels only (DEBUG, INFO, WARNING, ERROR)
LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

DEFAULT_LEVEL = "INFO"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_level(level: str) -> int:
    """Map level name to logging constant.

    Falls back to INFO if unknown.
    """
    return LEVELS.get(level.upper().strip(), logging.INFO)


def log_file_path(directory: Path, day: date | None = None) -> Path:
    """Dated log file inside directory."""
    day = day or date.today()
    return Path(directory) / f"prsweep-{day.isoformat()}.log"


class PRSweepLogging:
    """Configures root logger from LoggingConfig (YAML + env LOGGING_*)."""

    def __init__(self, config: LoggingConfig) -> None:
        """Store logging config (level, format and optional file directory)."""
        self._level = _resolve_level(config.level)
        self._format = config.format or DEFAULT_FORMAT
        self._directory = config.directory

    def setup(self) -> None:
        """Apply level and format to the root logger."""
        handlers: list[logging.Handler] = [logging.StreamHandler()]
        if self._directory is not None:
            path = log_file_path(self._directory)
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(path, mode="a", encoding="utf-8"))
        logging.basicConfig(
            level=self._level,
            format=self._format,
            handlers=handlers,
            force=True,
        )

    def get_logger(self, name: str) -> logging.Logger:
        """Return a logger with the given name (uses root config)."""
        return logging.getLogger(name)
