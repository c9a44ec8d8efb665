import logging
import os

from rich.console import Console
from rich.logging import RichHandler

# log output goes to stderr so CLI output on stdout stays clean
_console = Console(stderr=True)


class CenteredFormatter(logging.Formatter):
    name_width = 12

    def format(self, record):
        CenteredFormatter.name_width = max(
            CenteredFormatter.name_width, len(record.name)
        )
        record.name = record.name.center(CenteredFormatter.name_width)
        return super().format(record)


def _level() -> int:
    if os.getenv("DEBUG"):
        return logging.DEBUG
    name = os.getenv("POS_LOG_LEVEL", "INFO").upper()
    return getattr(logging, name, logging.INFO)


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger that writes through a RichHandler.

    Handlers are attached once per logger name; later calls reuse them.
    """
    logger = logging.getLogger(name or "pos")
    level = _level()
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            console=_console,
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
        handler.setLevel(level)
        logger.addHandler(handler)

        logger.propagate = False
        logger.debug(f"Logger for '{logger.name}' ready.")

    return logger
