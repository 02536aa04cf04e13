"""Logging configuration for worktree-flow."""

import logging
import sys


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.COLORS.get(record.levelname)
        if color and sys.stderr.isatty():
            message = message.replace(record.levelname, f"{color}{record.levelname}{self.RESET}", 1)
        return message


def setup_logging(verbose: bool = False, debug: bool = False, level: str = "WARNING") -> None:
    """
    Configure logging for the command line tool.

    Args:
        verbose: If True, show INFO level messages.
        debug: If True, show DEBUG level messages with timestamps.
        level: Level used when neither verbose nor debug is set.
    """
    if debug:
        log_level = logging.DEBUG
    elif verbose:
        log_level = logging.INFO
    else:
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            log_level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    if debug:
        handler.setFormatter(
            ColoredFormatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    else:
        handler.setFormatter(ColoredFormatter(fmt="%(levelname)s: %(message)s"))
    root_logger.addHandler(handler)

    # GitPython logs every command at DEBUG
    logging.getLogger("git").setLevel(max(log_level, logging.INFO))
