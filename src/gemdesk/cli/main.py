# src/gemdesk/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the task engine (live feed + auto-delay sweep) in a background thread,
- console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, load_custom_messages, save_custom_messages
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..connectors.engine_runner import start_engine_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        save_custom_messages(state)
    except Exception:
        logger.exception("Failed to save custom messages.")

    try:
        store = getattr(state, "store", None)
        if store is not None and hasattr(store, "close"):
            store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    # choose log dir (prefer settings.data_dir if it exists)
    log_dir = getattr(settings, "data_dir", ".local/gemdesk")
    log_file = setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s... (log file: %s)", getattr(settings, "app_name", "gemdesk"), log_file)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    try:
        state.messages = load_custom_messages(state)
    except Exception:
        logger.exception("Failed to load custom messages.")

    state.runner = start_engine_in_background(state)
    if state.runner is None:
        logger.error("Task engine failed to start; commands will run inline without the delay sweep.")

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except Exception:
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the delay sweep only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        runner = state.runner
        state.runner = None
        if runner is not None:
            runner.stop()
            runner.join(timeout=10.0)

        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
