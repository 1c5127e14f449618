# src/gemdesk/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import TYPE_CHECKING

from ..clients.client_service import ClientService
from ..gems.gem_service import GemService
from ..notify.messages import CustomMessageHistory
from ..tasks.task_service import TaskEngine
from .ports import RecordStore

if TYPE_CHECKING:
    from ..connectors.engine_runner import EngineBackgroundRunner


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    store: RecordStore
    engine: TaskEngine
    clients: ClientService
    gems: GemService
    messages: CustomMessageHistory

    tz: tzinfo | None = None
    runner: EngineBackgroundRunner | None = None
