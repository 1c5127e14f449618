# src/gemdesk/notify/messages.py

from __future__ import annotations

"""
Reminder texts an admin sends to a gem about a task.

Only the text is produced here; how it reaches the gem (chat app link,
email, ...) is up to the caller.
"""

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum


class MessageKind(StrEnum):
    STATUS = "status"
    UPLOAD = "upload"
    REMINDER = "reminder"
    DELAYED = "delayed"
    START = "start"
    APPRECIATION = "appreciation"


@dataclass(slots=True, frozen=True)
class MessageTemplate:
    kind: MessageKind
    label: str
    body: str

    def render(self, gem_name: str, task_title: str) -> str:
        return self.body.format(gem=gem_name, task=task_title)


TEMPLATES: dict[MessageKind, MessageTemplate] = {
    MessageKind.STATUS: MessageTemplate(
        MessageKind.STATUS,
        "Ask Status",
        "Hi {gem}!\n\nJust checking in on the task \"{task}\".\n\n"
        "Could you share a quick update on the progress? Let me know if you need any help!\n\nThank you!",
    ),
    MessageKind.UPLOAD: MessageTemplate(
        MessageKind.UPLOAD,
        "Request Upload",
        "Hi {gem}!\n\nGreat work on \"{task}\"!\n\n"
        "When you're ready, please upload the completed work to your designated folder.",
    ),
    MessageKind.REMINDER: MessageTemplate(
        MessageKind.REMINDER,
        "Gentle Reminder",
        "Hi {gem}!\n\nA friendly reminder about the task \"{task}\".\n\n"
        "The deadline is approaching, so please prioritize this when you can.\n\n"
        "Let me know if anything is blocking you.",
    ),
    MessageKind.DELAYED: MessageTemplate(
        MessageKind.DELAYED,
        "Delayed Task",
        "Hi {gem}!\n\nThe task \"{task}\" is now marked as *DELAYED*.\n\n"
        "It needs immediate attention. Please let me know:\n\n"
        "1. What's blocking you?\n2. When can you complete it?\n3. Do you need any help?\n\n"
        "Please update me today. Thank you!",
    ),
    MessageKind.START: MessageTemplate(
        MessageKind.START,
        "Start Working",
        "Hi {gem}!\n\nThe task \"{task}\" might need some attention.\n\n"
        "Please start working on it when you can, and reach out if you need any clarification.",
    ),
    MessageKind.APPRECIATION: MessageTemplate(
        MessageKind.APPRECIATION,
        "Appreciation",
        "Hi {gem}!\n\nThank you for your excellent work on \"{task}\"!\n\n"
        "Keep it up, you're a valuable part of our team!",
    ),
}


def render_message(kind: MessageKind | str, gem_name: str, task_title: str) -> str:
    return TEMPLATES[MessageKind(kind)].render(gem_name, task_title)


class CustomMessageHistory:
    """
    Last N distinct custom messages, most recent first.

    Re-sending a saved message moves it back to the front.
    """

    def __init__(self, limit: int = 10, initial: Iterable[str] = ()) -> None:
        self._limit = max(1, int(limit))
        self._items: deque[str] = deque(maxlen=self._limit)
        for text in reversed(list(initial)):
            self.remember(text)

    @property
    def limit(self) -> int:
        return self._limit

    def remember(self, text: str) -> bool:
        """Store a message; returns False for blank input."""
        msg = (text or "").strip()
        if not msg:
            return False
        if msg in self._items:
            self._items.remove(msg)
        self._items.appendleft(msg)
        return True

    def items(self) -> list[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
