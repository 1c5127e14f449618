# src/gemdesk/connectors/engine_runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

from ..core.state import AppState

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _run_engine(state: AppState, stop_event: asyncio.Event) -> None:
    """
    Engine host (async):

    attach feeds -> start delay sweep -> wait for stop

    Shutdown model:
    - main thread sets stop_event via loop.call_soon_threadsafe(stop_event.set)
    - the sweep task is cancelled and subscriptions are released.
    """
    state.gems.attach()
    state.clients.attach()
    await state.engine.start()
    logger.info(
        "Engine started (tasks=%d clients=%d gems=%d).",
        len(state.engine.tasks()),
        len(state.clients.clients()),
        len(state.gems.gems()),
    )

    try:
        await stop_event.wait()
    except Exception:
        logger.exception("Engine host crashed.")
    finally:
        with contextlib.suppress(Exception):
            await state.engine.stop()
        state.clients.detach()
        state.gems.detach()
        logger.info("Engine stopped.")


@dataclass
class EngineBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def call(self, coro: Coroutine[Any, Any, T], timeout: float | None = 30.0) -> T:
        """Run a coroutine on the engine loop and block for its result."""
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return fut.result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal engine stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_engine_in_background(state: AppState) -> EngineBackgroundRunner | None:
    """
    Start the task engine in a background thread (so console REPL can run in parallel).

    Why a thread:
    - console REPL is blocking (input()).
    - the delay sweep is async and wants its own event loop.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_engine(state, stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.stop()
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="gemdesk-engine", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Engine thread did not initialize properly.")
        return None

    logger.info("Engine background thread started.")
    return EngineBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
