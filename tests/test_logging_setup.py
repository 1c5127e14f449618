# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from gemdesk.logging_setup import _ConsoleFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("gemdesk.tasks.task_service", logging.INFO, True),
        ("gemdesk.tasks.delay_scanner", logging.INFO, False),
        ("gemdesk.tasks.delay_scanner", logging.WARNING, True),
        ("gemdesk.storage.sqlite_store", logging.DEBUG, False),
        ("asyncio", logging.INFO, False),
        ("asyncio", logging.ERROR, True),
        ("py.warnings", logging.WARNING, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleFilter().filter(_record(name, level)) is shown


def test_setup_logging_writes_full_log_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / "logs")
        logging.getLogger("gemdesk.tasks.delay_scanner").debug("sweep tick")
        for h in root.handlers:
            h.flush()

        assert log_file == tmp_path / "logs" / "gemdesk.log"
        assert "sweep tick" in log_file.read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
