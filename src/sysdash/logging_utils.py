from __future__ import annotations

import logging

from textual.logging import TextualHandler

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: int, log_file: str | None = None, tui: bool = True) -> None:
    """
    Route log records for the dashboard.

    While the TUI owns the terminal, records go to the Textual devtools
    console; otherwise they go to stderr. A log file is added when given.
    """
    handlers: list[logging.Handler] = []
    if tui:
        handlers.append(TextualHandler())
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(handler)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)
    logging.basicConfig(level=level, handlers=handlers, force=True)


def resolve_log_level(verbosity: int, fallback: str) -> int:
    if verbosity >= 1:
        return logging.DEBUG
    return logging.getLevelNamesMapping().get(fallback.upper(), logging.WARNING)
