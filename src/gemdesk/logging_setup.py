# src/gemdesk/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Loggers that fire on every sweep or write; the console only shows their warnings.
CHATTY_LOGGERS = (
    "gemdesk.tasks.delay_scanner",
    "gemdesk.storage",
)


class _ConsoleFilter(logging.Filter):
    """
    Keep the operator console readable while the REPL is active.

    gemdesk logs pass, except the per-sweep / per-write chatter listed in
    CHATTY_LOGGERS. asyncio and captured Python warnings only show at
    WARNING+ (a never-retrieved task exception is an operator concern).
    """

    def __init__(self, chatty: tuple[str, ...] = CHATTY_LOGGERS) -> None:
        super().__init__()
        self._chatty = chatty

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("gemdesk."):
            if name.startswith(self._chatty):
                return record.levelno >= logging.WARNING
            return True
        return record.levelno >= logging.WARNING


def setup_logging(
    *,
    log_dir: str | Path = ".local/gemdesk",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console handler (filtered) plus a full debug log in log_dir/gemdesk.log.

    Call once at startup, before the store and engine log anything.
    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "gemdesk.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
